# ============================================================================
# METRICS EXPORTER TESTS
# ============================================================================
# STATUS: Tests - Prometheus exposition
# PURPOSE: Verify series naming, labels and register-or-reuse semantics
# CREATED: 19 SEP 2026
# ============================================================================
"""
Metrics Exporter Tests

Run with:
    pytest tests/test_metrics_exporter.py -v
"""

from prometheus_client import CollectorRegistry, Gauge

from core.models import StatsModel
from core.models.stats import exported_fields
from metrics import MetricsExporter, sanitize_label_name


def _sample(registry, name, labels):
    return registry.get_sample_value(name, labels)


class TestMetricsExporter:

    def test_round_becomes_series(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)

        exporter.update("https://example.com", {"pop": "bur"}, StatsModel(State=1, Rtt=10345))

        labels = {"target": "https://example.com", "pop": "bur"}
        assert _sample(registry, "tp_state", labels) == 1.0
        assert _sample(registry, "tp_rtt", labels) == 10345.0

    def test_counters_have_total_suffix(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        exporter.update("a", {}, StatsModel(TCPConnectError=2))
        assert _sample(registry, "tp_tcp_connect_error_total", {"target": "a"}) == 2.0

    def test_unexported_fields_absent(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        exporter.update("a", {}, StatsModel(Rounds=5))
        text = exporter.render().decode()
        assert "tp_rounds" not in text
        assert "tp_fackets" not in text

    def test_every_exported_field_has_a_sample(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        exporter.update("a", {}, StatsModel())
        for stat_field in exported_fields():
            name = f"tp_{stat_field.metric}"
            if stat_field.kind == "counter":
                name += "_total"
            assert _sample(registry, name, {"target": "a"}) == 0.0, name

    def test_targets_with_different_label_sets(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        exporter.update("a", {"pop": "bur"}, StatsModel(State=1))
        exporter.update("b", {"zone": "z1", "team": "net"}, StatsModel(State=0))

        assert _sample(registry, "tp_state", {"target": "a", "pop": "bur"}) == 1.0
        assert _sample(registry, "tp_state", {"target": "b", "zone": "z1", "team": "net"}) == 0.0

    def test_register_twice_reuses_series(self):
        exporter = MetricsExporter(registry=CollectorRegistry())
        first = exporter.register("a", {"pop": "bur"})
        second = exporter.register("a", {"pop": "bur"})
        assert first is second

    def test_second_exporter_reuses_collector(self):
        registry = CollectorRegistry()
        first = MetricsExporter(registry=registry)
        second = MetricsExporter(registry=registry)
        assert first.collector is second.collector

        second.update("a", {}, StatsModel(State=1))
        assert _sample(registry, "tp_state", {"target": "a"}) == 1.0

    def test_reuse_is_per_prefix(self):
        registry = CollectorRegistry()
        first = MetricsExporter(registry=registry)
        other = MetricsExporter(registry=registry, prefix="other_")
        third = MetricsExporter(registry=registry)

        assert third.collector is first.collector
        assert other.collector is not first.collector

        third.update("a", {}, StatsModel(State=1))
        other.update("a", {}, StatsModel(State=0))
        assert _sample(registry, "tp_state", {"target": "a"}) == 1.0
        assert _sample(registry, "other_state", {"target": "a"}) == 0.0

    def test_conflicting_registration_tolerated(self):
        registry = CollectorRegistry()
        Gauge("tp_state", "already taken", registry=registry)
        exporter = MetricsExporter(registry=registry)
        exporter.update("a", {}, StatsModel(State=1))
        assert exporter.targets() == {"a"}

    def test_remove_drops_series(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        exporter.update("a", {}, StatsModel(State=1))
        exporter.remove("a")
        assert _sample(registry, "tp_state", {"target": "a"}) is None
        exporter.remove("a")

    def test_remove_by_owner_keeps_newer_series(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        old, new = object(), object()
        exporter.update("a", {"gen": "old"}, StatsModel(State=1), owner=old)
        exporter.update("a", {"gen": "new"}, StatsModel(State=1), owner=new)

        exporter.remove("a", owner=old)

        assert _sample(registry, "tp_state", {"target": "a", "gen": "old"}) is None
        assert _sample(registry, "tp_state", {"target": "a", "gen": "new"}) == 1.0

    def test_remove_by_owner_after_republish(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        old, new = object(), object()
        exporter.update("a", {}, StatsModel(State=0), owner=old)
        exporter.update("a", {}, StatsModel(State=1), owner=new)

        exporter.remove("a", owner=old)
        assert _sample(registry, "tp_state", {"target": "a"}) == 1.0

    def test_target_label_wins(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        exporter.update("a", {"target": "spoofed"}, StatsModel(State=1))
        assert _sample(registry, "tp_state", {"target": "a"}) == 1.0

    def test_custom_prefix(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry, prefix="probe_")
        exporter.update("a", {}, StatsModel(State=1))
        assert _sample(registry, "probe_state", {"target": "a"}) == 1.0


class TestLabelNames:

    def test_sanitize(self):
        assert sanitize_label_name("app.kubernetes.io/name") == "app_kubernetes_io_name"
        assert sanitize_label_name("1zone") == "_1zone"
        assert sanitize_label_name("pop") == "pop"
