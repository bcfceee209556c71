# ============================================================================
# CONFIGURATION TESTS
# ============================================================================
# STATUS: Tests - Config file, defaults and durations
# PURPOSE: Verify target file loading and duration parsing
# CREATED: 18 SEP 2026
# ============================================================================
"""
Configuration Tests

Run with:
    pytest tests/test_config.py -v
"""

import pytest

from core.config import ConfigError, get_defaults, load_config
from core.durations import format_duration, parse_duration, parse_duration_or
from core.models import TargetSpec

CONFIG = """
  targets:
    - addr: https://www.google.com
      interval: 10s
      labels:
        pop: bur
"""


class TestLoadConfig:

    def test_loads_targets(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(CONFIG)

        config = load_config(path)

        assert len(config.targets) == 1
        target = config.targets[0]
        assert target.addr == "https://www.google.com"
        assert target.interval == "10s"
        assert target.labels == {"pop": "bur"}
        assert target.interval_seconds(default=1.0) == 10.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "notfound")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("wrongyaml")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_record(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("targets:\n  - interval: 5s\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_config(path).targets == []

    def test_bad_interval_falls_back(self):
        spec = TargetSpec(addr="https://example.com", interval="soon")
        assert spec.interval_seconds(default=10.0) == 10.0


class TestDurations:

    @pytest.mark.parametrize("text,seconds", [
        ("10s", 10.0),
        ("1m30s", 90.0),
        ("500ms", 0.5),
        ("2h", 7200.0),
        ("1.5s", 1.5),
        ("90", 90.0),
    ])
    def test_parse(self, text, seconds):
        assert parse_duration(text) == pytest.approx(seconds)

    @pytest.mark.parametrize("text", ["", "abc", "10x", "-5s", "s10", "inf"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)

    def test_parse_or_default(self):
        assert parse_duration_or(None, 10.0) == 10.0
        assert parse_duration_or("bad", 10.0) == 10.0
        assert parse_duration_or("0s", 10.0) == 10.0
        assert parse_duration_or("6s", 10.0) == 6.0

    def test_format(self):
        assert format_duration(10.0) == "10s"
        assert format_duration(0.5) == "500ms"


class TestDefaults:

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("TP_TARGET_INTERVAL", "30")
        monkeypatch.setenv("TP_K8S", "true")
        monkeypatch.setenv("TP_NAMESPACE", "probes")
        defaults = get_defaults()
        assert defaults.probe.target_interval == 30.0
        assert defaults.discovery.enabled
        assert defaults.discovery.namespace == "probes"

    def test_builtin_defaults(self):
        defaults = get_defaults()
        assert defaults.probe.metric_prefix == "tp_"
        assert defaults.server.port == 8081
        assert defaults.discovery.targets_annotation == "tcpprobe/targets"
