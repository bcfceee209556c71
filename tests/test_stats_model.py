# ============================================================================
# STATS MODEL TESTS
# ============================================================================
# STATUS: Tests - Probe result schema
# PURPOSE: Verify the field table, round reset and filtering
# CREATED: 17 SEP 2026
# ============================================================================
"""
Stats Model Tests

Run with:
    pytest tests/test_stats_model.py -v
"""

from dataclasses import fields

import pytest

from core.models import STAT_FIELDS, ProbeConfig, StatsModel
from core.models.stats import FIELD_INDEX, exported_fields, normalize_filter


class TestFieldTable:

    def test_table_covers_every_field(self):
        names = [f.name for f in fields(StatsModel)]
        assert [f.name for f in STAT_FIELDS] == names

    def test_metric_names_unique(self):
        metrics = [f.metric for f in STAT_FIELDS]
        assert len(metrics) == len(set(metrics))

    def test_internal_tallies_not_exported(self):
        exported = {f.name for f in exported_fields()}
        assert "Rounds" not in exported
        assert "FailedRounds" not in exported
        assert "Fackets" not in exported
        assert {"State", "Rtt", "TLSHandshake", "TCPConnectError"} <= exported

    def test_error_counters_are_cumulative(self):
        assert FIELD_INDEX["TCPConnectError"].cumulative
        assert FIELD_INDEX["TCPConnectError"].kind == "counter"
        assert FIELD_INDEX["DNSResolveError"].cumulative
        assert not FIELD_INDEX["HTTPStatusCode"].cumulative


class TestStatsModel:

    def test_reset_round_keeps_counters(self):
        stats = StatsModel(State=1, HTTPStatusCode=200, Rtt=50, TCPConnectError=3, DNSResolveError=1)
        stats.reset_round()
        assert stats.State == 0
        assert stats.HTTPStatusCode == 0
        assert stats.Rtt == 0
        assert stats.TCPConnectError == 3
        assert stats.DNSResolveError == 1

    def test_update_rejects_unknown_field(self):
        stats = StatsModel()
        stats.update({"Rto": 204000})
        assert stats.Rto == 204000
        with pytest.raises(KeyError):
            stats.update({"NotAField": 1})

    def test_copy_is_independent(self):
        stats = StatsModel(Rtt=5)
        snapshot = stats.copy()
        stats.Rtt = 9
        assert snapshot.Rtt == 5

    def test_as_dict_filter_is_case_insensitive(self):
        stats = StatsModel(Rtt=5, HTTPStatusCode=200)
        assert stats.as_dict(filter=["RTT"]) == {"Rtt": 5}
        assert stats.as_dict(filter="rtt,httpstatuscode") == {"Rtt": 5, "HTTPStatusCode": 200}

    def test_as_dict_filter_accepts_metric_names(self):
        stats = StatsModel(HTTPStatusCode=200)
        assert stats.as_dict(filter="http_status_code") == {"HTTPStatusCode": 200}

    def test_as_dict_hides_internal_fields(self):
        stats = StatsModel(Rounds=4)
        assert "Rounds" not in stats.as_dict()
        assert stats.as_dict(exported_only=False)["Rounds"] == 4

    def test_normalize_filter(self):
        assert normalize_filter(None) is None
        assert normalize_filter("") is None
        assert normalize_filter(" Rtt , ,Lost") == {"rtt", "lost"}


class TestProbeConfig:

    def test_defaults(self):
        config = ProbeConfig()
        assert config.runs_forever
        assert config.interval == 1.0
        assert config.filter == []

    def test_filter_from_string(self):
        assert ProbeConfig(filter="Rtt,lost").filter == ["lost", "rtt"]

    def test_for_target_copies(self):
        base = ProbeConfig(timeout=2.0, labels={"a": "1"})
        config = base.for_target("https://example.com", interval=10.0, labels={"pop": "bur"})
        assert config.address == "https://example.com"
        assert config.interval == 10.0
        assert config.timeout == 2.0
        assert config.labels == {"pop": "bur"}
        assert base.address == ""

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            ProbeConfig(interval=0)
