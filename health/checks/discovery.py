# ============================================================================
# DISCOVERY HEALTH CHECK
# ============================================================================
# STATUS: Infrastructure - Discovery state check
# PURPOSE: Report whether workload reconciliation is keeping up
# CREATED: 12 SEP 2026
# ============================================================================
"""
Discovery Health Check

Healthy when discovery is disabled or its last tick succeeded; degraded
when the last inventory listing failed or no tick has completed yet.
"""

from health.checks.runtime import get_runtime
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check


@register_check(category="discovery", required_for_ready=False)
class DiscoveryCheck(HealthCheckPlugin):
    """Workload discovery reconciliation status."""

    name = "discovery"
    timeout_seconds = 2.0

    async def check(self) -> HealthCheckResult:
        runtime = get_runtime()
        if not runtime.discovery_enabled:
            return HealthCheckResult.healthy(message="Discovery disabled")

        reconciler = runtime.reconciler
        if reconciler is None:
            return HealthCheckResult.unhealthy(message="Discovery enabled but not running")

        details = {
            "ticks": reconciler.ticks,
            "errors": reconciler.errors,
            "discovered_targets": len(reconciler.owned),
            "last_tick_at": reconciler.last_tick_at.isoformat() if reconciler.last_tick_at else None,
        }
        if reconciler.last_error:
            return HealthCheckResult.degraded(
                message=f"Last discovery tick failed: {reconciler.last_error}",
                **details,
            )
        if reconciler.last_tick_at is None:
            return HealthCheckResult.degraded(message="Waiting for first discovery tick", **details)
        return HealthCheckResult.healthy(message="Discovery up to date", **details)


__all__ = ["DiscoveryCheck"]
