# ============================================================================
# HEALTH CHECK PLUGINS
# ============================================================================
# STATUS: Infrastructure - Health check implementations
# PURPOSE: Checks for the probe daemon's components
# CREATED: 12 SEP 2026
# ============================================================================
"""
Health Check Plugins

Startup (priority 10):
- process: process alive, platform, kernel stats availability

Orchestration (priority 20):
- registry: targets admitted (or discovery enabled)

Probes (priority 30):
- targets: latest round per target

Discovery (priority 40):
- discovery: last reconciliation tick

Import this module to register all checks:
    import health.checks
"""

from health.checks.runtime import bind_runtime, get_runtime, reset_runtime
from health.checks.startup import ProcessCheck
from health.checks.targets import RegistryCheck, TargetsCheck
from health.checks.discovery import DiscoveryCheck

__all__ = [
    "bind_runtime",
    "get_runtime",
    "reset_runtime",
    "ProcessCheck",
    "RegistryCheck",
    "TargetsCheck",
    "DiscoveryCheck",
]
