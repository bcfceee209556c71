# ============================================================================
# DISCOVERY TESTS
# ============================================================================
# STATUS: Tests - Annotation-driven discovery
# PURPOSE: Verify admission, withdrawal and annotation fallbacks
# CREATED: 19 SEP 2026
# ============================================================================
"""
Discovery Tests

Covers:
1. Running annotated workloads are admitted with interval and labels
2. Bad interval / labels annotations fall back to defaults
3. Removed workloads (or removed annotations) are withdrawn
4. Targets owned by other sources are left alone
5. Inventory failures leave the registry untouched
6. Pods from the Kubernetes client are converted into workloads

Run with:
    pytest tests/test_discovery.py -v
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from core.config import DiscoveryDefaults
from core.contracts import TargetSource
from core.models import ProbeConfig, Workload
from discovery import (
    DiscoveryReconciler,
    KubernetesInventory,
    StaticInventory,
    parse_labels,
    parse_targets,
)
from orchestrator import TargetRegistry


def _pod(name="fake", targets="https://www.google.com", interval="6s",
         labels='{"mykey":"myvalue"}', phase="Running") -> Workload:
    annotations = {}
    if targets is not None:
        annotations["tcpprobe/targets"] = targets
    if interval is not None:
        annotations["tcpprobe/interval"] = interval
    if labels is not None:
        annotations["tcpprobe/labels"] = labels
    return Workload(name=name, namespace="default", phase=phase, annotations=annotations)


def _reconciler(workloads, registry=None):
    registry = registry if registry is not None else TargetRegistry()
    inventory = StaticInventory(workloads)
    reconciler = DiscoveryReconciler(
        registry,
        inventory,
        ProbeConfig(timeout=2.0),
        settings=DiscoveryDefaults(enabled=True, poll_interval=0.01),
        default_interval=10.0,
    )
    return reconciler, registry, inventory


class TestReconcile:

    def test_admits_annotated_pod(self):
        reconciler, registry, _ = _reconciler([_pod()])
        result = asyncio.run(reconciler.tick())

        assert result.admitted == ["https://www.google.com"]
        handle = registry.get("https://www.google.com")
        assert handle.config.interval == 6.0
        assert handle.config.labels == {"mykey": "myvalue"}
        assert handle.config.source == TargetSource.DISCOVERY
        assert handle.config.timeout == 2.0

    def test_bad_annotations_fall_back(self):
        reconciler, registry, _ = _reconciler([_pod(interval="soon", labels="{not json")])
        asyncio.run(reconciler.tick())

        handle = registry.get("https://www.google.com")
        assert handle.config.interval == 10.0
        assert handle.config.labels == {}

    def test_missing_optional_annotations(self):
        reconciler, registry, _ = _reconciler([_pod(interval=None, labels=None)])
        asyncio.run(reconciler.tick())
        assert registry.get("https://www.google.com").config.interval == 10.0

    def test_not_running_or_unannotated_ignored(self):
        reconciler, registry, _ = _reconciler([
            _pod(name="pending", phase="Pending"),
            _pod(name="plain", targets=None),
        ])
        asyncio.run(reconciler.tick())
        assert registry.snapshot() == frozenset()

    def test_multiple_targets_per_pod(self):
        reconciler, registry, _ = _reconciler([_pod(targets="https://a.example, https://b.example")])
        asyncio.run(reconciler.tick())
        assert registry.snapshot() == {"https://a.example", "https://b.example"}

    def test_removed_pod_withdrawn(self):
        reconciler, registry, inventory = _reconciler([_pod()])
        asyncio.run(reconciler.tick())

        inventory.set([])
        result = asyncio.run(reconciler.tick())

        assert result.withdrawn == ["https://www.google.com"]
        assert registry.snapshot() == frozenset()

    def test_removed_annotation_withdrawn(self):
        reconciler, registry, inventory = _reconciler([_pod()])
        asyncio.run(reconciler.tick())

        inventory.set([_pod(targets=None)])
        asyncio.run(reconciler.tick())
        assert registry.snapshot() == frozenset()

    def test_unchanged_pod_not_readmitted(self):
        reconciler, registry, _ = _reconciler([_pod()])
        asyncio.run(reconciler.tick())
        handle = registry.get("https://www.google.com")

        result = asyncio.run(reconciler.tick())

        assert result.admitted == []
        assert registry.get("https://www.google.com") is handle

    def test_changed_interval_readmitted(self):
        reconciler, registry, inventory = _reconciler([_pod()])
        asyncio.run(reconciler.tick())

        inventory.set([_pod(interval="30s")])
        asyncio.run(reconciler.tick())
        assert registry.get("https://www.google.com").config.interval == 30.0

    def test_static_target_left_alone(self):
        registry = TargetRegistry()
        registry.admit("https://www.google.com", ProbeConfig(source=TargetSource.CONFIG))
        reconciler, _, inventory = _reconciler([_pod()], registry=registry)

        result = asyncio.run(reconciler.tick())
        assert result.skipped == ["https://www.google.com"]

        inventory.set([])
        asyncio.run(reconciler.tick())
        assert registry.get("https://www.google.com").config.source == TargetSource.CONFIG

    def test_inventory_failure_keeps_registry(self):
        reconciler, registry, inventory = _reconciler([_pod()])
        asyncio.run(reconciler.tick())

        async def broken():
            raise ConnectionError("api server unreachable")

        inventory.list_workloads = broken
        with pytest.raises(ConnectionError):
            asyncio.run(reconciler.tick())
        assert registry.snapshot() == {"https://www.google.com"}

    def test_run_records_errors_and_stops(self):
        reconciler, registry, inventory = _reconciler([_pod()])

        async def scenario():
            stop = asyncio.Event()
            task = asyncio.create_task(reconciler.run(stop))
            await asyncio.sleep(0.05)
            stop.set()
            await asyncio.wait_for(task, 2)

        asyncio.run(scenario())
        assert reconciler.ticks >= 1
        assert reconciler.healthy
        assert reconciler.owned == ["https://www.google.com"]

    def test_removed_pod_cancels_loop(self):
        async def run_forever(handle):
            await asyncio.sleep(3600)

        async def scenario():
            registry = TargetRegistry(runner=run_forever)
            reconciler, _, inventory = _reconciler([_pod()], registry=registry)
            await reconciler.tick()
            handle = registry.get("https://www.google.com")
            await asyncio.sleep(0)
            assert handle.alive

            inventory.set([])
            await reconciler.tick()
            await asyncio.gather(handle.task, return_exceptions=True)
            return handle

        handle = asyncio.run(scenario())
        assert handle.cancelled
        assert handle.task.cancelled()

    def test_changed_pod_waits_for_old_loop(self):
        events = []

        async def loop(handle):
            events.append(("start", handle.config.interval))
            try:
                await asyncio.sleep(3600)
            finally:
                await asyncio.sleep(0.05)
                events.append(("stop", handle.config.interval))

        async def scenario():
            registry = TargetRegistry(runner=loop)
            reconciler, _, inventory = _reconciler([_pod()], registry=registry)
            await reconciler.tick()
            await asyncio.sleep(0)

            inventory.set([_pod(interval="30s")])
            await reconciler.tick()
            await asyncio.sleep(0)
            await registry.shutdown(timeout=1)

        asyncio.run(scenario())
        assert events[:3] == [("start", 6.0), ("stop", 6.0), ("start", 30.0)]

    def test_withdraw_all(self):
        reconciler, registry, _ = _reconciler([_pod()])
        asyncio.run(reconciler.tick())
        assert reconciler.withdraw_all() == ["https://www.google.com"]
        assert registry.snapshot() == frozenset()


class TestAnnotationParsing:

    def test_labels(self):
        assert parse_labels('{"key": "value"}') == {"key": "value"}
        assert parse_labels('{"n": 1}') == {"n": "1"}
        assert parse_labels("") == {}
        assert parse_labels(None) == {}
        assert parse_labels("[1, 2]") == {}
        assert parse_labels("nope") == {}

    def test_targets(self):
        assert parse_targets("a, b,,c ") == ["a", "b", "c"]
        assert parse_targets(None) == []


class TestKubernetesInventory:

    def test_lists_pods(self):
        pod = SimpleNamespace(
            metadata=SimpleNamespace(
                name="fake",
                namespace="default",
                annotations={"tcpprobe/targets": "https://www.google.com"},
            ),
            status=SimpleNamespace(phase="Running"),
        )
        api = MagicMock()
        api.list_namespaced_pod.return_value = SimpleNamespace(items=[pod])

        inventory = KubernetesInventory("default", api=api)
        workloads = asyncio.run(inventory.list_workloads())

        api.list_namespaced_pod.assert_called_once_with("default", label_selector="")
        assert workloads == [Workload(
            name="fake",
            namespace="default",
            phase="Running",
            annotations={"tcpprobe/targets": "https://www.google.com"},
        )]

    def test_pod_without_annotations(self):
        pod = SimpleNamespace(
            metadata=SimpleNamespace(name="bare", namespace=None, annotations=None),
            status=None,
        )
        api = MagicMock()
        api.list_namespaced_pod.return_value = SimpleNamespace(items=[pod])
        workloads = asyncio.run(KubernetesInventory(api=api).list_workloads())
        assert workloads[0].annotations == {}
        assert workloads[0].phase == ""
