# ============================================================================
# TARGET HEALTH CHECKS
# ============================================================================
# STATUS: Infrastructure - Probe state checks
# PURPOSE: Registry population and latest round outcome per target
# CREATED: 12 SEP 2026
# ============================================================================
"""
Target Health Checks

- RegistryCheck (orchestration): there is something to probe. With
  discovery enabled an empty registry is fine, targets may appear later.
- TargetsCheck (probes): degraded while any target's latest round failed.
  Not required for readiness; a failing target is what the daemon reports,
  not a reason to stop serving /metrics.
"""

from health.checks.runtime import get_runtime
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check


@register_check(category="orchestration")
class RegistryCheck(HealthCheckPlugin):
    """Target registry exists and holds targets (or discovery will add them)."""

    name = "registry"
    timeout_seconds = 2.0

    async def check(self) -> HealthCheckResult:
        runtime = get_runtime()
        if runtime.registry is None:
            return HealthCheckResult.unhealthy(
                message="Target registry not initialized",
            )

        active = runtime.registry.snapshot()
        if not active and not runtime.discovery_enabled:
            return HealthCheckResult.unhealthy(
                message="No targets to probe",
                active_targets=0,
            )

        return HealthCheckResult.healthy(
            message=f"{len(active)} active targets",
            active_targets=len(active),
            discovery_enabled=runtime.discovery_enabled,
        )


@register_check(category="probes", required_for_ready=False)
class TargetsCheck(HealthCheckPlugin):
    """Latest round of every target."""

    name = "targets"
    timeout_seconds = 2.0

    async def check(self) -> HealthCheckResult:
        runtime = get_runtime()
        if runtime.registry is None:
            return HealthCheckResult.healthy(message="No registry bound (skipped)")

        failing = []
        pending = []
        succeeded = 0
        for handle in runtime.registry.handles():
            if handle.last_stats is None:
                pending.append(handle.identity)
            elif handle.last_stats.State == 0:
                failing.append(handle.identity)
            else:
                succeeded += 1

        details = {
            "succeeded": succeeded,
            "failing": sorted(failing),
            "pending": sorted(pending),
        }
        if failing:
            return HealthCheckResult.degraded(
                message=f"{len(failing)} targets failing their latest round",
                **details,
            )
        return HealthCheckResult.healthy(message="All probed targets succeeded", **details)


__all__ = ["RegistryCheck", "TargetsCheck"]
