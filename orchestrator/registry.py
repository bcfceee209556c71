# ============================================================================
# TARGET REGISTRY
# ============================================================================
# STATUS: Core - Active target bookkeeping
# PURPOSE: One live probe loop per target identity
# CREATED: 05 SEP 2026
# ============================================================================
"""
Target Registry

Maps a target identity (its address string) to the handle of the probe loop
running for it. Every admission path goes through here: CLI arguments, the
static config file and workload discovery.

    registry = TargetRegistry(runner=scheduler.run)
    handle = registry.admit("https://example.com", config)
    registry.withdraw("https://example.com")

Guarantees:
    - At most one live loop per identity. A second admit while the first
      loop is alive raises DuplicateTargetError.
    - withdraw() is idempotent. Withdrawing an unknown identity is a no-op.
    - admit/withdraw/snapshot are safe to call from concurrent tasks and
      threads; the check-and-insert happens under one lock.

A loop that ends on its own (count exhausted) stays in the map so /targets
can show its last round, but no longer counts as active. Admitting the same
identity again replaces it.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional

from core.contracts import TargetSource
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import ProbeConfig, StatsModel

logger = get_logger(__name__, ComponentType.ORCHESTRATOR)


class AdmissionError(Exception):
    """A target could not be admitted."""

    def __init__(self, message: str, identity: str):
        super().__init__(message)
        self.identity = identity


class DuplicateTargetError(AdmissionError):
    """The identity already has a live probe loop."""

    def __init__(self, identity: str):
        super().__init__(f"Target already admitted: {identity}", identity)


@dataclass
class ProbeHandle:
    """
    Control handle for one target's probe loop.

    The loop reads ``config`` and ``stop``; the registry owns ``task``.
    """

    identity: str
    config: ProbeConfig
    stop: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task] = None
    admitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_stats: Optional[StatsModel] = None
    last_round_at: Optional[datetime] = None
    rounds: int = 0

    @property
    def source(self) -> TargetSource:
        return self.config.source

    @property
    def alive(self) -> bool:
        return self.task is not None and not self.task.done()

    @property
    def cancelled(self) -> bool:
        return self.stop.is_set()

    def record(self, stats: StatsModel) -> None:
        """Keep the latest round's snapshot."""
        self.last_stats = stats
        self.last_round_at = datetime.now(timezone.utc)
        self.rounds += 1

    def cancel(self) -> None:
        """Signal the loop to exit. The loop notices during its wait."""
        self.stop.set()
        if self.task is not None and not self.task.done():
            self.task.cancel()

    def to_dict(self) -> Dict[str, object]:
        return {
            "target": self.identity,
            "alive": self.alive,
            "admitted_at": self.admitted_at.isoformat(),
            "rounds": self.rounds,
            "last_round_at": self.last_round_at.isoformat() if self.last_round_at else None,
            "state": self.last_stats.State if self.last_stats else None,
            "config": self.config.summary(),
        }


LoopRunner = Callable[[ProbeHandle], Awaitable[None]]


class TargetRegistry:
    """
    Thread-safe identity -> ProbeHandle map.

    Args:
        runner: Coroutine function started as a task for each admitted
            handle. When None, admitted handles get no task (useful for
            bookkeeping-only callers and tests).
    """

    def __init__(self, runner: Optional[LoopRunner] = None):
        self._runner = runner
        self._lock = threading.Lock()
        self._handles: Dict[str, ProbeHandle] = {}

    def admit(self, identity: str, config: ProbeConfig) -> ProbeHandle:
        """
        Register a target and start its probe loop.

        Must be called from a running event loop when a runner is set.

        Args:
            identity: Target address string
            config: Per-target ProbeConfig

        Returns:
            The new ProbeHandle

        Raises:
            DuplicateTargetError: identity already has a live loop
            AdmissionError: identity is empty
        """
        if not identity:
            raise AdmissionError("Target identity must not be empty", identity)

        if config.address != identity:
            config = config.for_target(identity)

        with self._lock:
            existing = self._handles.get(identity)
            if existing is not None and (existing.alive or self._runner is None):
                raise DuplicateTargetError(identity)

            handle = ProbeHandle(identity=identity, config=config)
            if self._runner is not None:
                handle.task = asyncio.get_running_loop().create_task(
                    self._runner(handle),
                    name=f"probe-{identity}",
                )
            self._handles[identity] = handle

        with log_context(target=identity, source=config.source.value):
            log_checkpoint(
                "target_admitted",
                {"interval": config.interval, "count": config.count},
                logger=logger.logger,
            )
        return handle

    def withdraw(self, identity: str) -> Optional[ProbeHandle]:
        """
        Stop and forget a target. No-op if it is not registered.

        Returns:
            The removed handle, or None
        """
        with self._lock:
            handle = self._handles.pop(identity, None)

        if handle is None:
            return None

        handle.cancel()
        with log_context(target=identity, source=handle.source.value):
            log_checkpoint("target_withdrawn", {"rounds": handle.rounds}, logger=logger.logger)
        return handle

    def get(self, identity: str) -> Optional[ProbeHandle]:
        with self._lock:
            return self._handles.get(identity)

    def snapshot(self) -> FrozenSet[str]:
        """Identities with a live probe loop."""
        with self._lock:
            handles = list(self._handles.values())
        return frozenset(h.identity for h in handles if h.alive or h.task is None)

    def handles(self) -> List[ProbeHandle]:
        """All registered handles, finished loops included."""
        with self._lock:
            return list(self._handles.values())

    def __contains__(self, identity: str) -> bool:
        return identity in self.snapshot()

    def __len__(self) -> int:
        return len(self.snapshot())

    async def wait(self) -> None:
        """Wait until every admitted loop has finished."""
        tasks = [h.task for h in self.handles() if h.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Withdraw every target and wait for the loops to exit.

        Args:
            timeout: Seconds to wait for loops; None waits indefinitely
        """
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()

        for handle in handles:
            handle.cancel()

        tasks = [h.task for h in handles if h.task is not None]
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} probe loops did not stop within {timeout}s")
        logger.info(f"Registry shut down ({len(handles)} targets)")


__all__ = [
    "AdmissionError",
    "DuplicateTargetError",
    "ProbeHandle",
    "LoopRunner",
    "TargetRegistry",
]
