# ============================================================================
# CORE MODELS
# ============================================================================
# STATUS: Core - Data models
# PURPOSE: Export stats, probe config, and target models
# CREATED: 02 SEP 2026
# ============================================================================

from core.models.stats import (
    StatField,
    StatsModel,
    STAT_FIELDS,
    FIELD_INDEX,
    exported_fields,
    normalize_filter,
)
from core.models.probe_config import ProbeConfig
from core.models.target import TargetSpec, Workload

__all__ = [
    "StatField",
    "StatsModel",
    "STAT_FIELDS",
    "FIELD_INDEX",
    "exported_fields",
    "normalize_filter",
    "ProbeConfig",
    "TargetSpec",
    "Workload",
]
