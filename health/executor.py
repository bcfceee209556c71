# ============================================================================
# HEALTH CHECK EXECUTOR
# ============================================================================
# STATUS: Infrastructure - Health check execution
# PURPOSE: Run health checks with timeouts and aggregate the results
# CREATED: 12 SEP 2026
# ============================================================================
"""
Health Check Executor

Checks are grouped into priority tiers. Tiers run one after another so a
startup failure shows up before the checks that depend on it; checks inside
a tier run concurrently. Each check has its own timeout, and the whole run
is bounded by ``overall_timeout``.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from health.core import (
    AggregatedHealthResult,
    HealthCheckPlugin,
    HealthCheckResult,
    HealthStatus,
)
from health.registry import HealthCheckRegistry, get_registry

logger = logging.getLogger(__name__)


class HealthCheckExecutor:
    """
    Runs registered checks.

    Args:
        registry: Health check registry (global one if None)
        overall_timeout: Seconds allowed for a full run
    """

    TIER_BOUNDARIES = [15, 25, 35, 45, 100]

    def __init__(
        self,
        registry: Optional[HealthCheckRegistry] = None,
        overall_timeout: float = 30.0,
    ):
        self.registry = registry or get_registry()
        self.overall_timeout = overall_timeout

    async def execute_all(self, early_terminate: bool = False) -> AggregatedHealthResult:
        """
        Run every registered check, tier by tier.

        Args:
            early_terminate: Stop after the first tier with an unhealthy check
        """
        start_time = time.monotonic()
        results: Dict[str, HealthCheckResult] = {}

        for _, tier_checks in sorted(self._group_by_tier(self.registry.get_checks_by_priority()).items()):
            remaining = self.overall_timeout - (time.monotonic() - start_time)
            if remaining <= 0:
                logger.warning(f"Health check overall timeout ({self.overall_timeout}s) exceeded")
                for check in tier_checks:
                    results[check.name] = HealthCheckResult.unhealthy("Skipped: overall timeout exceeded")
                continue

            tier_results = await self._execute_tier(tier_checks)
            results.update(tier_results)

            if early_terminate and any(
                r.status == HealthStatus.UNHEALTHY for r in tier_results.values()
            ):
                logger.info("Early termination: unhealthy check detected")
                break

        return self._aggregate(results, start_time)

    async def execute_required(self) -> AggregatedHealthResult:
        """Run only the checks that gate /readyz, all at once."""
        start_time = time.monotonic()
        results = await self._execute_tier(self.registry.get_required_checks())
        return self._aggregate(results, start_time)

    async def execute_single(self, name: str) -> Optional[HealthCheckResult]:
        check = self.registry.get(name)
        if check is None:
            return None
        return await self._execute_check(check)

    def _aggregate(self, results: Dict[str, HealthCheckResult], start_time: float) -> AggregatedHealthResult:
        return AggregatedHealthResult(
            status=HealthStatus.aggregate([r.status for r in results.values()]),
            checks=results,
            total_duration_ms=(time.monotonic() - start_time) * 1000,
        )

    async def _execute_tier(self, checks: List[HealthCheckPlugin]) -> Dict[str, HealthCheckResult]:
        if not checks:
            return {}
        outcomes = await asyncio.gather(*(self._execute_check(c) for c in checks))
        return {check.name: result for check, result in zip(checks, outcomes)}

    async def _execute_check(self, check: HealthCheckPlugin) -> HealthCheckResult:
        """Run one check; timeouts and exceptions become unhealthy results."""
        start_time = time.monotonic()
        try:
            result = await asyncio.wait_for(check.check(), timeout=check.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Health check {check.name} timed out after {check.timeout_seconds}s")
            result = HealthCheckResult.unhealthy(f"Timeout after {check.timeout_seconds}s")
        except Exception as e:
            logger.error(f"Health check {check.name} failed: {e}")
            result = HealthCheckResult.from_exception(e)

        result.duration_ms = (time.monotonic() - start_time) * 1000
        logger.debug(f"Health check {check.name}: {result.status.value} ({result.duration_ms:.1f}ms)")
        return result

    def _group_by_tier(self, checks: List[HealthCheckPlugin]) -> Dict[int, List[HealthCheckPlugin]]:
        tiers: Dict[int, List[HealthCheckPlugin]] = {}
        for check in checks:
            tier = next((b for b in self.TIER_BOUNDARIES if check.priority <= b), self.TIER_BOUNDARIES[-1])
            tiers.setdefault(tier, []).append(check)
        return tiers


__all__ = ["HealthCheckExecutor"]
