# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# STATUS: Infrastructure - Health check plugin system
# PURPOSE: Kubernetes probes and daemon health monitoring
# CREATED: 12 SEP 2026
# ============================================================================
"""
Health Check Module

- /livez: process alive (instant)
- /readyz: required checks pass
- /health: every check, with a per-category summary

Usage:
    from health import health_router, register_check

    @register_check(category="probes")
    class MyCheck(HealthCheckPlugin):
        name = "mine"

        async def check(self) -> HealthCheckResult:
            return HealthCheckResult.healthy()

    app.include_router(health_router)
"""

from health.core import (
    HealthStatus,
    HealthCheckResult,
    HealthCheckPlugin,
    HealthCheckCategory,
)
from health.registry import (
    HealthCheckRegistry,
    register_check,
    get_registry,
)
from health.executor import HealthCheckExecutor
from health.router import health_router

__all__ = [
    "HealthStatus",
    "HealthCheckResult",
    "HealthCheckPlugin",
    "HealthCheckCategory",
    "HealthCheckRegistry",
    "register_check",
    "get_registry",
    "HealthCheckExecutor",
    "health_router",
]
