# ============================================================================
# METRICS MODULE
# ============================================================================
# STATUS: Core - Prometheus exposition
# PURPOSE: Export probe rounds as Prometheus series
# CREATED: 08 SEP 2026
# ============================================================================

from metrics.exporter import (
    TARGET_LABEL,
    MetricsExporter,
    ProbeStatsCollector,
    sanitize_label_name,
)

__all__ = [
    "TARGET_LABEL",
    "MetricsExporter",
    "ProbeStatsCollector",
    "sanitize_label_name",
]
