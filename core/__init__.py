# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export core contracts and models
# CREATED: 02 SEP 2026
# ============================================================================

from core.contracts import ProbeState, ProbeStage, OutputFormat, TargetSource
from core.models import (
    StatField,
    StatsModel,
    STAT_FIELDS,
    ProbeConfig,
    TargetSpec,
    Workload,
)

__all__ = [
    # Enums
    "ProbeState",
    "ProbeStage",
    "OutputFormat",
    "TargetSource",
    # Models
    "StatField",
    "StatsModel",
    "STAT_FIELDS",
    "ProbeConfig",
    "TargetSpec",
    "Workload",
]
