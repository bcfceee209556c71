# ============================================================================
# HEALTH CHECK REGISTRY
# ============================================================================
# STATUS: Infrastructure - Health check plugin registration
# PURPOSE: Register and look up health check plugins
# CREATED: 12 SEP 2026
# ============================================================================
"""
Health Check Registry

    @register_check(category="probes")
    class TargetsCheck(HealthCheckPlugin):
        ...

    checks = get_registry().get_checks_by_priority()
"""

import logging
from typing import Dict, List, Optional, Type, Union

from health.core import HealthCheckCategory, HealthCheckPlugin

logger = logging.getLogger(__name__)


class HealthCheckRegistry:
    """Name -> plugin instance map, ordered by priority on request."""

    def __init__(self):
        self._checks: Dict[str, HealthCheckPlugin] = {}

    def register(self, check: HealthCheckPlugin) -> None:
        """Register a plugin instance. A same-named check is replaced."""
        if check.name in self._checks:
            logger.warning(f"Overwriting health check: {check.name}")
        self._checks[check.name] = check
        logger.debug(
            f"Registered health check: {check.name} "
            f"(category={check.category.value}, priority={check.priority})"
        )

    def register_class(self, check_class: Type[HealthCheckPlugin], **kwargs) -> HealthCheckPlugin:
        instance = check_class(**kwargs)
        self.register(instance)
        return instance

    def unregister(self, name: str) -> bool:
        return self._checks.pop(name, None) is not None

    def get(self, name: str) -> Optional[HealthCheckPlugin]:
        return self._checks.get(name)

    def get_all(self) -> List[HealthCheckPlugin]:
        return list(self._checks.values())

    def get_checks_by_priority(self) -> List[HealthCheckPlugin]:
        return sorted(self._checks.values(), key=lambda c: c.priority)

    def get_checks_by_category(self, category: HealthCheckCategory) -> List[HealthCheckPlugin]:
        return [c for c in self._checks.values() if c.category == category]

    def get_required_checks(self) -> List[HealthCheckPlugin]:
        """Checks that gate /readyz."""
        return [c for c in self.get_checks_by_priority() if c.required_for_ready]

    def clear(self) -> None:
        self._checks.clear()

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, name: str) -> bool:
        return name in self._checks


_registry: Optional[HealthCheckRegistry] = None


def get_registry() -> HealthCheckRegistry:
    """Get the global health check registry."""
    global _registry
    if _registry is None:
        _registry = HealthCheckRegistry()
    return _registry


def register_check(
    category: Union[str, HealthCheckCategory, None] = None,
    priority: Optional[int] = None,
    timeout_seconds: Optional[float] = None,
    required_for_ready: Optional[bool] = None,
):
    """
    Class decorator that registers one instance in the global registry.

    Args:
        category: Override category (string or HealthCheckCategory)
        priority: Override priority (lower runs first)
        timeout_seconds: Override timeout
        required_for_ready: Override whether the check gates /readyz
    """
    def decorator(cls: Type[HealthCheckPlugin]) -> Type[HealthCheckPlugin]:
        if category is not None:
            cls.category = HealthCheckCategory(category)

        if priority is not None:
            cls.priority = priority
        else:
            cls.priority = cls.category.default_priority

        if timeout_seconds is not None:
            cls.timeout_seconds = timeout_seconds

        if required_for_ready is not None:
            cls.required_for_ready = required_for_ready

        get_registry().register_class(cls)
        return cls

    return decorator


__all__ = [
    "HealthCheckRegistry",
    "get_registry",
    "register_check",
]
