# ============================================================================
# HEALTH CHECK RUNTIME BINDING
# ============================================================================
# STATUS: Infrastructure - Live objects seen by health checks
# PURPOSE: Hand the daemon's registry and reconciler to the checks
# CREATED: 12 SEP 2026
# ============================================================================
"""
Health Check Runtime Binding

Checks are registered at import time, before the daemon has built anything.
The application lifespan binds the live objects once they exist:

    bind_runtime(registry=registry, reconciler=reconciler, discovery_enabled=True)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass
class HealthRuntime:
    registry: Optional[object] = None
    reconciler: Optional[object] = None
    discovery_enabled: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


_runtime = HealthRuntime()


def bind_runtime(registry=None, reconciler=None, discovery_enabled: bool = False) -> HealthRuntime:
    global _runtime
    _runtime = HealthRuntime(
        registry=registry,
        reconciler=reconciler,
        discovery_enabled=discovery_enabled,
    )
    return _runtime


def get_runtime() -> HealthRuntime:
    return _runtime


def reset_runtime() -> None:
    bind_runtime()


__all__ = ["HealthRuntime", "bind_runtime", "get_runtime", "reset_runtime"]
