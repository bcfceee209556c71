# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# STATUS: Core - Target lifecycle
# PURPOSE: Admit, run and withdraw per-target probe loops
# CREATED: 05 SEP 2026
# ============================================================================
"""
Orchestrator Module

The registry owns which targets are probed; the scheduler runs their loops.

Usage:
    from orchestrator import ProbeScheduler, TargetRegistry

    scheduler = ProbeScheduler(exporter=exporter, sink=sink)
    registry = TargetRegistry(runner=scheduler.run)
    registry.admit(config.address, config)
"""

from .loop import ProbeScheduler, run_probe_loop
from .registry import (
    AdmissionError,
    DuplicateTargetError,
    ProbeHandle,
    TargetRegistry,
)

__all__ = [
    "ProbeScheduler",
    "run_probe_loop",
    "AdmissionError",
    "DuplicateTargetError",
    "ProbeHandle",
    "TargetRegistry",
]
