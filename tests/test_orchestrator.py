# ============================================================================
# ORCHESTRATOR TESTS
# ============================================================================
# STATUS: Tests - Target registry and scheduler loop
# PURPOSE: Verify admission rules, loop termination and failure isolation
# CREATED: 18 SEP 2026
# ============================================================================
"""
Orchestrator Tests

Covers:
1. Duplicate admission rejected, withdraw idempotent
2. Concurrent admission of one identity: exactly one wins
3. Loop runs count rounds, or forever until withdrawn
4. A round that raises does not end the loop
5. Rounds reach the exporter and the sink in order

Run with:
    pytest tests/test_orchestrator.py -v
"""

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Set
from unittest.mock import MagicMock

import pytest
from prometheus_client import CollectorRegistry

from core.contracts import TargetSource
from core.models import ProbeConfig, StatsModel
from metrics import MetricsExporter
from orchestrator import (
    AdmissionError,
    DuplicateTargetError,
    ProbeScheduler,
    TargetRegistry,
    run_probe_loop,
)


# ============================================================================
# FAKES
# ============================================================================

class FakeClient:
    """Stands in for ProbeClient; succeeds unless told to raise."""

    instances: List["FakeClient"] = []

    def __init__(self, config: ProbeConfig, raise_on: Set[int] = frozenset()):
        self.config = config
        self.stats = StatsModel()
        self.last_error = None
        self.raise_on = raise_on
        self.calls = 0
        self.call_times: List[float] = []
        self.closed = False
        FakeClient.instances.append(self)

    async def probe(self) -> StatsModel:
        self.calls += 1
        self.call_times.append(time.monotonic())
        if self.calls in self.raise_on:
            raise RuntimeError("boom")
        self.stats.reset_round()
        self.stats.State = 1
        self.stats.Rtt = self.calls
        self.stats.Rounds += 1
        return self.stats

    async def close(self) -> None:
        self.closed = True


class ListSink:
    def __init__(self):
        self.rounds = []

    def emit(self, target, stats):
        self.rounds.append((target, stats))


@pytest.fixture(autouse=True)
def _reset_fakes():
    FakeClient.instances.clear()
    yield
    FakeClient.instances.clear()


def _config(address="https://example.com", **kwargs) -> ProbeConfig:
    kwargs.setdefault("interval", 0.01)
    return ProbeConfig(address=address, **kwargs)


# ============================================================================
# REGISTRY
# ============================================================================

class TestTargetRegistry:

    def test_duplicate_rejected(self):
        registry = TargetRegistry()
        registry.admit("a", _config("a"))
        with pytest.raises(DuplicateTargetError):
            registry.admit("a", _config("a"))
        assert registry.snapshot() == {"a"}

    def test_duplicate_is_admission_error(self):
        assert issubclass(DuplicateTargetError, AdmissionError)

    def test_empty_identity(self):
        with pytest.raises(AdmissionError):
            TargetRegistry().admit("", _config(""))

    def test_withdraw_idempotent(self):
        registry = TargetRegistry()
        registry.admit("a", _config("a"))
        assert registry.withdraw("a") is not None
        assert registry.withdraw("a") is None
        assert registry.withdraw("never-admitted") is None
        assert registry.snapshot() == frozenset()

    def test_readmit_after_withdraw(self):
        registry = TargetRegistry()
        registry.admit("a", _config("a"))
        registry.withdraw("a")
        handle = registry.admit("a", _config("a", interval=5.0))
        assert handle.config.interval == 5.0

    def test_config_address_follows_identity(self):
        handle = TargetRegistry().admit("b", _config("a"))
        assert handle.config.address == "b"

    def test_concurrent_admission_one_winner(self):
        registry = TargetRegistry()

        def admit(_):
            try:
                registry.admit("same", _config("same"))
                return True
            except DuplicateTargetError:
                return False

        with ThreadPoolExecutor(max_workers=16) as pool:
            outcomes = list(pool.map(admit, range(64)))

        assert outcomes.count(True) == 1
        assert registry.snapshot() == {"same"}

    def test_withdraw_cancels_loop(self):
        scheduler = ProbeScheduler(client_factory=FakeClient)

        async def scenario():
            registry = TargetRegistry(runner=scheduler.run)
            handle = registry.admit("a", _config("a", count=0))
            await asyncio.sleep(0.05)
            assert handle.alive
            registry.withdraw("a")
            await asyncio.wait_for(asyncio.gather(handle.task, return_exceptions=True), 2)
            return handle

        handle = asyncio.run(scenario())
        assert not handle.alive
        assert handle.rounds >= 1
        assert FakeClient.instances[0].closed

    def test_finished_loop_not_active_and_readmittable(self):
        scheduler = ProbeScheduler(client_factory=FakeClient)

        async def scenario():
            registry = TargetRegistry(runner=scheduler.run)
            registry.admit("a", _config("a", count=1))
            await registry.wait()
            assert registry.snapshot() == frozenset()
            assert registry.get("a").rounds == 1
            registry.admit("a", _config("a", count=1))
            await registry.wait()
            return registry

        registry = asyncio.run(scenario())
        assert len(FakeClient.instances) == 2

    def test_shutdown_stops_everything(self):
        scheduler = ProbeScheduler(client_factory=FakeClient)

        async def scenario():
            registry = TargetRegistry(runner=scheduler.run)
            handles = [registry.admit(t, _config(t)) for t in ("a", "b", "c")]
            await asyncio.sleep(0.03)
            await registry.shutdown(timeout=2)
            return registry, handles

        registry, handles = asyncio.run(scenario())
        assert registry.snapshot() == frozenset()
        assert all(not h.alive for h in handles)


# ============================================================================
# SCHEDULER LOOP
# ============================================================================

class TestProbeLoop:

    def test_count_rounds_then_stop(self):
        sink = ListSink()
        handle = asyncio.run(run_probe_loop(_config(count=3), sink=sink, client_factory=FakeClient))

        assert handle.rounds == 3
        assert [stats.Rtt for _, stats in sink.rounds] == [1, 2, 3]
        assert FakeClient.instances[0].closed

    def test_snapshots_are_independent(self):
        sink = ListSink()
        asyncio.run(run_probe_loop(_config(count=2), sink=sink, client_factory=FakeClient))
        first, second = (stats for _, stats in sink.rounds)
        assert first is not second
        assert first.Rtt == 1

    def test_round_exception_does_not_end_loop(self):
        sink = ListSink()

        def factory(config):
            return FakeClient(config, raise_on={1, 3})

        handle = asyncio.run(run_probe_loop(_config(count=4), sink=sink, client_factory=factory))

        assert FakeClient.instances[0].calls == 4
        assert handle.rounds == 2
        assert len(sink.rounds) == 2

    def test_sink_failure_does_not_end_loop(self):
        sink = MagicMock()
        sink.emit.side_effect = ValueError("closed pipe")
        handle = asyncio.run(run_probe_loop(_config(count=2), sink=sink, client_factory=FakeClient))
        assert handle.rounds == 2
        assert sink.emit.call_count == 2

    def test_exporter_receives_labels(self):
        exporter = MagicMock()
        config = _config(count=1, labels={"pop": "bur"})
        asyncio.run(run_probe_loop(config, exporter=exporter, client_factory=FakeClient))

        identity, labels, stats = exporter.update.call_args.args
        assert identity == "https://example.com"
        assert labels == {"pop": "bur"}
        assert stats.State == 1
        assert exporter.update.call_args.kwargs["owner"].identity == identity
        exporter.remove.assert_not_called()

    def test_interval_between_rounds(self):
        asyncio.run(run_probe_loop(_config(count=3, interval=0.05), client_factory=FakeClient))
        times = FakeClient.instances[0].call_times
        gaps = [b - a for a, b in zip(times, times[1:])]
        assert all(gap >= 0.04 for gap in gaps)

    def test_stop_event_ends_forever_loop(self):
        async def scenario():
            stop = asyncio.Event()
            task = asyncio.create_task(
                run_probe_loop(_config(count=0), client_factory=FakeClient, stop=stop)
            )
            await asyncio.sleep(0.05)
            stop.set()
            return await asyncio.wait_for(task, 2)

        handle = asyncio.run(scenario())
        assert handle.rounds >= 1
        assert FakeClient.instances[0].closed

    def test_withdrawn_target_series_removed(self):
        exporter = MagicMock()
        scheduler = ProbeScheduler(exporter=exporter, client_factory=FakeClient)

        async def scenario():
            registry = TargetRegistry(runner=scheduler.run)
            handle = registry.admit("a", _config("a", source=TargetSource.DISCOVERY))
            await asyncio.sleep(0.03)
            registry.withdraw("a")
            await asyncio.gather(handle.task, return_exceptions=True)
            return handle

        handle = asyncio.run(scenario())
        exporter.remove.assert_called_once_with("a", owner=handle)

    def test_readmitted_target_keeps_new_series(self):
        class SlowCloseClient(FakeClient):
            async def close(self) -> None:
                if self is FakeClient.instances[0]:
                    await asyncio.sleep(0.2)
                await super().close()

        metrics_registry = CollectorRegistry()
        exporter = MetricsExporter(registry=metrics_registry)
        scheduler = ProbeScheduler(exporter=exporter, client_factory=SlowCloseClient)

        async def scenario():
            registry = TargetRegistry(runner=scheduler.run)
            registry.admit("t", _config("t", interval=0.05, labels={"gen": "old"}))
            await asyncio.sleep(0.03)
            old = registry.withdraw("t")
            registry.admit("t", _config("t", interval=0.05, labels={"gen": "new"}))
            await asyncio.sleep(0.5)
            await registry.shutdown(timeout=2)
            return old

        def sample(gen):
            return metrics_registry.get_sample_value("tp_state", {"target": "t", "gen": gen})

        async def run_and_sample():
            task = asyncio.create_task(scenario())
            await asyncio.sleep(0.45)
            values = (sample("old"), sample("new"))
            await task
            return values

        old_value, new_value = asyncio.run(run_and_sample())
        assert FakeClient.instances[0].closed
        assert old_value is None
        assert new_value == 1.0
