# ============================================================================
# PROBE SCHEDULER LOOP
# ============================================================================
# STATUS: Core - Per-target probe loop
# PURPOSE: Run probe rounds on an interval until count or cancellation
# CREATED: 05 SEP 2026
# ============================================================================
"""
Probe Scheduler Loop

One loop per admitted target:

    1. Run a probe round
    2. Publish the round (metrics exporter, result sink, handle snapshot)
    3. Stop if count rounds are done
    4. Wait ``interval`` seconds, or until the handle's stop event fires
    5. Repeat

A failing round never ends the loop. Probe failures are already folded into
the round's StatsModel by ProbeClient; anything else that escapes a round is
logged and the loop carries on.

The loop ends when:
    - count > 0 and count rounds have run
    - the handle is cancelled (withdraw / shutdown)
"""

import asyncio
from typing import Callable, Optional

from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import ProbeConfig, StatsModel
from orchestrator.registry import ProbeHandle
from probe import ProbeClient

logger = get_logger(__name__, ComponentType.ORCHESTRATOR)

ClientFactory = Callable[[ProbeConfig], ProbeClient]


class ProbeScheduler:
    """
    Runs probe loops for registry handles.

    ``run`` is the registry's LoopRunner:

        scheduler = ProbeScheduler(exporter=exporter, sink=sink)
        registry = TargetRegistry(runner=scheduler.run)

    Args:
        exporter: Optional MetricsExporter that receives every round
        sink: Optional ResultSink that receives every round
        client_factory: Builds a ProbeClient from a ProbeConfig
    """

    def __init__(
        self,
        exporter=None,
        sink=None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.exporter = exporter
        self.sink = sink
        self._client_factory = client_factory or ProbeClient

    async def run(self, handle: ProbeHandle) -> None:
        config = handle.config
        with log_context(target=handle.identity, source=config.source.value):
            await self._run(handle, config)

    async def _run(self, handle: ProbeHandle, config: ProbeConfig) -> None:
        client = self._client_factory(config)
        rounds = 0
        reason = "cancelled"

        try:
            while not handle.cancelled:
                rounds += 1
                with log_context(round=rounds):
                    await self._round(handle, client)

                if config.count > 0 and rounds >= config.count:
                    reason = "count_exhausted"
                    break

                try:
                    await asyncio.wait_for(handle.stop.wait(), timeout=config.interval)
                    break
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            reason = "cancelled"
            raise
        finally:
            await client.close()
            if self.exporter is not None and handle.cancelled:
                self.exporter.remove(handle.identity, owner=handle)
            log_checkpoint(
                "loop_finished",
                {"rounds": rounds, "reason": reason},
                logger=logger.logger,
            )

    async def _round(self, handle: ProbeHandle, client: ProbeClient) -> Optional[StatsModel]:
        """Run and publish one round. Never raises except on cancellation."""
        try:
            stats = await client.probe()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error probing {handle.identity}: {e}")
            return None

        snapshot = stats.copy()
        handle.record(snapshot)

        if client.last_error is not None:
            logger.info(f"Round failed: {client.last_error}")

        try:
            if self.exporter is not None:
                self.exporter.update(handle.identity, handle.config.labels, snapshot, owner=handle)
            if self.sink is not None:
                self.sink.emit(handle.identity, snapshot)
        except Exception as e:
            logger.exception(f"Error publishing round for {handle.identity}: {e}")

        return snapshot


async def run_probe_loop(
    config: ProbeConfig,
    exporter=None,
    sink=None,
    client_factory: Optional[ClientFactory] = None,
    stop: Optional[asyncio.Event] = None,
) -> ProbeHandle:
    """
    Run one target's loop in the current task, outside any registry.

    Returns:
        The handle, carrying the last round's stats
    """
    handle = ProbeHandle(identity=config.address, config=config)
    if stop is not None:
        handle.stop = stop
    scheduler = ProbeScheduler(exporter=exporter, sink=sink, client_factory=client_factory)
    await scheduler.run(handle)
    return handle


__all__ = ["ClientFactory", "ProbeScheduler", "run_probe_loop"]
