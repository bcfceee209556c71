# ============================================================================
# STARTUP HEALTH CHECKS
# ============================================================================
# STATUS: Infrastructure - Startup health checks
# PURPOSE: Basic process check
# CREATED: 12 SEP 2026
# ============================================================================
"""
Startup Health Checks

- ProcessCheck: always healthy if it runs; reports the platform and whether
  kernel TCP statistics are available here
"""

import os
import platform
import sys
from datetime import datetime, timezone

from health.checks.runtime import get_runtime
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check
from probe.tcpinfo import supported as tcp_info_supported


@register_check(category="startup")
class ProcessCheck(HealthCheckPlugin):
    """Proves the process answers."""

    name = "process"
    timeout_seconds = 1.0

    async def check(self) -> HealthCheckResult:
        uptime = datetime.now(timezone.utc) - get_runtime().started_at
        return HealthCheckResult.healthy(
            message="Process running",
            python_version=sys.version.split()[0],
            platform=platform.platform(),
            pid=os.getpid(),
            uptime_seconds=round(uptime.total_seconds(), 1),
            kernel_tcp_info=tcp_info_supported(),
        )


__all__ = ["ProcessCheck"]
