# ============================================================================
# DISCOVERY RECONCILER
# ============================================================================
# STATUS: Core - Annotation-driven target discovery
# PURPOSE: Keep the registry in step with annotated workloads
# CREATED: 10 SEP 2026
# ============================================================================
"""
Discovery Reconciler

Every tick lists workloads and derives the desired discovered targets from
their annotations:

    tcpprobe/targets:   https://example.com,https://example.org   (required)
    tcpprobe/interval:  6s                                         (optional)
    tcpprobe/labels:    {"mykey": "myvalue"}                       (optional)

Only workloads in a ready phase (Running) count. A bad interval or label
annotation falls back to the default, it never drops the workload.

Then the registry is brought in line:
    - desired targets not yet probed are admitted
    - targets this reconciler admitted whose workload is gone (or no longer
      annotated) are withdrawn
    - targets whose interval or labels changed are re-admitted

Targets admitted by other sources (CLI, config file) are never withdrawn
here. If one of them already holds an identity, discovery skips it.
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.config import DiscoveryDefaults, get_defaults
from core.contracts import TargetSource
from core.durations import parse_duration_or
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import ProbeConfig, Workload
from discovery.inventory import WorkloadInventory
from orchestrator.registry import (
    AdmissionError,
    DuplicateTargetError,
    ProbeHandle,
    TargetRegistry,
)

logger = get_logger(__name__, ComponentType.DISCOVERY)


@dataclass(frozen=True)
class DiscoveredTarget:
    """One target derived from a workload's annotations."""

    identity: str
    interval: float
    labels: Dict[str, str]
    workload: str


@dataclass
class ReconcileResult:
    """What one tick changed."""

    admitted: List[str] = field(default_factory=list)
    withdrawn: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "admitted": self.admitted,
            "withdrawn": self.withdrawn,
            "skipped": self.skipped,
        }


def parse_labels(raw: Optional[str]) -> Dict[str, str]:
    """
    Decode a JSON label annotation.

    Returns:
        str -> str map; empty when absent, not JSON, or not an object
    """
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid labels annotation: {raw!r}")
        return {}
    if not isinstance(value, dict):
        logger.warning(f"Ignoring labels annotation that is not an object: {raw!r}")
        return {}
    return {str(k): str(v) for k, v in value.items()}


def parse_targets(raw: Optional[str]) -> List[str]:
    """Split a comma-separated targets annotation, dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


class DiscoveryReconciler:
    """
    Periodic workload -> registry reconciliation.

    Args:
        registry: TargetRegistry shared with the other admission paths
        inventory: WorkloadInventory to list
        base_config: ProbeConfig copied for every discovered target
        settings: DiscoveryDefaults (annotation keys, phases, poll interval)
        default_interval: Interval when the annotation is absent or invalid
    """

    def __init__(
        self,
        registry: TargetRegistry,
        inventory: WorkloadInventory,
        base_config: ProbeConfig,
        settings: Optional[DiscoveryDefaults] = None,
        default_interval: Optional[float] = None,
    ):
        defaults = get_defaults()
        self.registry = registry
        self.inventory = inventory
        self.base_config = base_config
        self.settings = settings or defaults.discovery
        self.default_interval = default_interval or defaults.probe.target_interval

        # identity -> target as last admitted by this reconciler
        self._owned: Dict[str, DiscoveredTarget] = {}

        self.ticks = 0
        self.errors = 0
        self.last_tick_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def owned(self) -> List[str]:
        return sorted(self._owned)

    @property
    def healthy(self) -> bool:
        return self.last_error is None

    def desired(self, workloads: List[Workload]) -> Dict[str, DiscoveredTarget]:
        """Targets the given workloads ask for. First workload wins a shared identity."""
        result: Dict[str, DiscoveredTarget] = {}
        for workload in workloads:
            if workload.phase not in self.settings.ready_phases:
                continue
            annotations = workload.annotations
            targets = parse_targets(annotations.get(self.settings.targets_annotation))
            if not targets:
                continue

            interval = parse_duration_or(
                annotations.get(self.settings.interval_annotation),
                self.default_interval,
            )
            labels = parse_labels(annotations.get(self.settings.labels_annotation))

            for identity in targets:
                if identity in result:
                    continue
                result[identity] = DiscoveredTarget(
                    identity=identity,
                    interval=interval,
                    labels=labels,
                    workload=workload.key,
                )
        return result

    def _admit(self, target: DiscoveredTarget, result: ReconcileResult) -> None:
        config = self.base_config.for_target(
            target.identity,
            interval=target.interval,
            labels=target.labels,
            source=TargetSource.DISCOVERY,
            namespace=self.settings.namespace,
        )
        try:
            self.registry.admit(target.identity, config)
        except DuplicateTargetError:
            logger.debug(f"{target.identity} already probed by another source")
            result.skipped.append(target.identity)
            return
        except AdmissionError as e:
            logger.warning(f"Cannot admit {target.identity} from {target.workload}: {e}")
            result.skipped.append(target.identity)
            return
        self._owned[target.identity] = target
        result.admitted.append(target.identity)

    def _withdraw(self, identity: str, result: ReconcileResult) -> Optional[ProbeHandle]:
        self._owned.pop(identity, None)
        handle = self.registry.withdraw(identity)
        result.withdrawn.append(identity)
        return handle

    async def _settle(self, handle: Optional[ProbeHandle]) -> None:
        """Wait for a withdrawn loop to exit before its identity is admitted again."""
        if handle is None or handle.task is None or handle.task.done():
            return
        timeout = get_defaults().server.shutdown_timeout
        _, pending = await asyncio.wait([handle.task], timeout=timeout)
        if pending:
            logger.warning(f"Loop for {handle.identity} still stopping, re-admitting anyway")

    async def tick(self) -> ReconcileResult:
        """
        One reconciliation pass.

        Raises:
            Exception: Whatever the inventory raises; the registry is left
                untouched in that case
        """
        workloads = await self.inventory.list_workloads()
        desired = self.desired(workloads)
        active = self.registry.snapshot()
        result = ReconcileResult()

        for identity in list(self._owned):
            wanted = desired.get(identity)
            if wanted is None:
                self._withdraw(identity, result)
            elif wanted != self._owned[identity]:
                logger.info(f"{identity} changed on {wanted.workload}, re-admitting")
                await self._settle(self._withdraw(identity, result))
            elif identity not in active:
                # Withdrawn elsewhere or the loop ended; probe it again
                self._owned.pop(identity, None)
                self.registry.withdraw(identity)

        for identity, target in desired.items():
            if identity not in self._owned:
                self._admit(target, result)

        self.ticks += 1
        self.last_tick_at = datetime.now(timezone.utc)
        self.last_error = None

        if result.admitted or result.withdrawn:
            log_checkpoint("discovery_tick", result.to_dict(), logger=logger.logger)
        return result

    async def run(self, stop: asyncio.Event) -> None:
        """Tick every poll interval until ``stop`` is set."""
        logger.info(
            f"Discovery started (namespace={self.settings.namespace}, "
            f"poll_interval={self.settings.poll_interval}s)"
        )
        with log_context(source=TargetSource.DISCOVERY.value):
            while not stop.is_set():
                try:
                    await self.tick()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self.errors += 1
                    self.last_error = str(e)
                    logger.exception(f"Discovery tick failed: {e}")

                try:
                    await asyncio.wait_for(stop.wait(), timeout=self.settings.poll_interval)
                    break
                except asyncio.TimeoutError:
                    pass

        logger.info(f"Discovery stopped (ticks={self.ticks}, errors={self.errors})")

    def withdraw_all(self) -> List[str]:
        """Withdraw every discovered target."""
        result = ReconcileResult()
        for identity in list(self._owned):
            self._withdraw(identity, result)
        return result.withdrawn


__all__ = [
    "DiscoveredTarget",
    "ReconcileResult",
    "DiscoveryReconciler",
    "parse_labels",
    "parse_targets",
]
