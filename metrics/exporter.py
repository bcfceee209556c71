# ============================================================================
# METRICS EXPORTER
# ============================================================================
# STATUS: Core - Prometheus exposition
# PURPOSE: Publish each target's latest round as labelled Prometheus series
# CREATED: 08 SEP 2026
# ============================================================================
"""
Metrics Exporter

One gauge (or counter) family per exported StatsModel field, named
``<prefix><metric>`` (default prefix ``tp_``), with one series per target:

    tp_rtt{target="https://example.com",pop="bur"} 10345.0
    tp_tcp_connect_error_total{target="https://example.com",pop="bur"} 2.0

Targets carry arbitrary label sets, so the families are built at scrape
time by a custom collector rather than with fixed-label Gauge objects.

Registration is register-or-reuse at both levels:
    - register(identity, labels) on a known series returns it unchanged
    - a second exporter with the same prefix on the same CollectorRegistry
      attaches to the collector already registered there

Each series remembers the loop that last published it. A stopping loop
removes only its own series, so a re-admitted target keeps the new one.
"""

import re
import threading
import weakref
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from prometheus_client import REGISTRY, CollectorRegistry, generate_latest
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from core.config import get_defaults
from core.logging import ComponentType, get_logger
from core.models import StatsModel
from core.models.stats import exported_fields

logger = get_logger(__name__, ComponentType.METRICS)

TARGET_LABEL = "target"

_LABEL_NAME = re.compile(r"[^a-zA-Z0-9_]")

# CollectorRegistry -> prefix -> collector registered on it
_attached: "weakref.WeakKeyDictionary[CollectorRegistry, Dict[str, ProbeStatsCollector]]" = (
    weakref.WeakKeyDictionary()
)
_attached_lock = threading.Lock()


def sanitize_label_name(name: str) -> str:
    """Map an arbitrary label key onto the Prometheus label charset."""
    cleaned = _LABEL_NAME.sub("_", str(name))
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    if cleaned.startswith("__"):
        cleaned = cleaned.lstrip("_") or "label"
    return cleaned


def series_labels(identity: str, labels: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Target label plus sanitized extra labels. The target label wins."""
    result = {sanitize_label_name(k): str(v) for k, v in (labels or {}).items()}
    result[TARGET_LABEL] = identity
    return result


SeriesKey = Tuple[str, Tuple[Tuple[str, str], ...]]


@dataclass
class Series:
    identity: str
    labels: Dict[str, str]
    stats: Optional[StatsModel] = None
    # Whoever published the current values (a probe loop handle)
    owner: Optional[object] = None

    @property
    def key(self) -> SeriesKey:
        return (self.identity, tuple(sorted(self.labels.items())))


class ProbeStatsCollector(Collector):
    """Builds metric families from the current per-target series."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self._lock = threading.Lock()
        self._series: Dict[SeriesKey, Series] = {}

    def ensure(self, identity: str, labels: Optional[Dict[str, str]] = None) -> Series:
        series = Series(identity=identity, labels=series_labels(identity, labels))
        with self._lock:
            existing = self._series.get(series.key)
            if existing is not None:
                return existing
            self._series[series.key] = series
        logger.debug(f"Registered series for {identity}")
        return series

    def set(
        self,
        identity: str,
        labels: Optional[Dict[str, str]],
        stats: StatsModel,
        owner: Optional[object] = None,
    ) -> None:
        series = self.ensure(identity, labels)
        with self._lock:
            series.stats = stats
            series.owner = owner

    def remove(self, identity: str, owner: Optional[object] = None) -> int:
        """
        Drop an identity's series.

        With ``owner``, only series whose latest values came from that owner
        go; a newer loop for the same identity keeps its series.
        """
        with self._lock:
            keys = [
                k for k, s in self._series.items()
                if k[0] == identity and (owner is None or s.owner is owner)
            ]
            for key in keys:
                del self._series[key]
        return len(keys)

    def identities(self):
        with self._lock:
            return {k[0] for k in self._series}

    def _families(self, series) -> Iterator[Metric]:
        for stat_field in exported_fields():
            name = f"{self.prefix}{stat_field.metric}"
            family = Metric(name, stat_field.help, stat_field.kind)
            sample_name = f"{name}_total" if stat_field.kind == "counter" else name
            for s in series:
                if s.stats is not None:
                    family.add_sample(sample_name, dict(s.labels), float(stat_field.value(s.stats)))
            yield family

    def describe(self):
        return list(self._families([]))

    def collect(self):
        with self._lock:
            series = list(self._series.values())
        return self._families(series)


class MetricsExporter:
    """
    Facade the scheduler publishes rounds through.

    Args:
        registry: CollectorRegistry to expose on (default: the global one)
        prefix: Metric name prefix (default from ProbeDefaults)
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        prefix: Optional[str] = None,
    ):
        self.registry = registry if registry is not None else REGISTRY
        self.prefix = prefix if prefix is not None else get_defaults().probe.metric_prefix
        self.collector = self._attach()

    def _attach(self) -> ProbeStatsCollector:
        with _attached_lock:
            by_prefix = _attached.setdefault(self.registry, {})
            collector = by_prefix.get(self.prefix)
            if collector is not None:
                return collector

            collector = ProbeStatsCollector(self.prefix)
            try:
                self.registry.register(collector)
            except ValueError as e:
                # Family names taken by a collector this module did not create
                logger.warning(f"Metric families clash with another collector, series will not be exposed: {e}")
            else:
                by_prefix[self.prefix] = collector
            return collector

    def register(self, identity: str, labels: Optional[Dict[str, str]] = None) -> Series:
        """Create the target's series, or return the existing one."""
        return self.collector.ensure(identity, labels)

    def update(
        self,
        identity: str,
        labels: Optional[Dict[str, str]],
        stats: StatsModel,
        owner: Optional[object] = None,
    ) -> None:
        """Replace the target's series values with a round snapshot."""
        self.collector.set(identity, labels, stats, owner=owner)

    def remove(self, identity: str, owner: Optional[object] = None) -> None:
        """Drop a withdrawn target's series (only ``owner``'s, when given)."""
        removed = self.collector.remove(identity, owner=owner)
        if removed:
            logger.debug(f"Removed {removed} series for {identity}")

    def targets(self):
        return self.collector.identities()

    def render(self) -> bytes:
        """Prometheus text exposition of the exporter's registry."""
        return generate_latest(self.registry)


__all__ = [
    "TARGET_LABEL",
    "sanitize_label_name",
    "series_labels",
    "Series",
    "ProbeStatsCollector",
    "MetricsExporter",
]
