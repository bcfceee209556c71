# ============================================================================
# DISCOVERY MODULE
# ============================================================================
# STATUS: Core - Workload discovery
# PURPOSE: Admit and withdraw targets from annotated workloads
# CREATED: 10 SEP 2026
# ============================================================================
"""
Discovery Module

Usage:
    from discovery import DiscoveryReconciler, KubernetesInventory

    reconciler = DiscoveryReconciler(registry, KubernetesInventory("default"), base_config)
    await reconciler.run(stop_event)
"""

from discovery.inventory import (
    KubernetesInventory,
    StaticInventory,
    WorkloadInventory,
    pod_to_workload,
)
from discovery.reconciler import (
    DiscoveredTarget,
    DiscoveryReconciler,
    ReconcileResult,
    parse_labels,
    parse_targets,
)

__all__ = [
    "WorkloadInventory",
    "StaticInventory",
    "KubernetesInventory",
    "pod_to_workload",
    "DiscoveredTarget",
    "DiscoveryReconciler",
    "ReconcileResult",
    "parse_labels",
    "parse_targets",
]
