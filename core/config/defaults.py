# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for probing, discovery, and the daemon server
# CREATED: 02 SEP 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for probe loops, workload discovery and the
metrics/health HTTP server. All of them can be overridden through
``TP_*`` environment variables; CLI flags override those in turn.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ProbeDefaults:
    """
    Defaults for a single target's probe loop.

    Durations are seconds.
    """
    # Cadence between rounds for targets given on the command line
    interval: float = 1.0

    # Cadence for config-file and discovered targets without an interval
    target_interval: float = 10.0

    # Per-round network timeout (dial, TLS handshake, HTTP read)
    timeout: float = 5.0

    # 0 or negative = run forever
    count: int = 0

    # Metric name prefix
    metric_prefix: str = "tp_"

    @classmethod
    def from_env(cls) -> "ProbeDefaults":
        """Create from environment variables."""
        return cls(
            interval=float(os.getenv("TP_INTERVAL", 1.0)),
            target_interval=float(os.getenv("TP_TARGET_INTERVAL", 10.0)),
            timeout=float(os.getenv("TP_TIMEOUT", 5.0)),
            count=int(os.getenv("TP_COUNT", 0)),
            metric_prefix=os.getenv("TP_METRIC_PREFIX", "tp_"),
        )


@dataclass(frozen=True)
class DiscoveryDefaults:
    """
    Defaults for workload discovery.

    Controls which namespace is polled and which annotations are read.
    """
    enabled: bool = False
    namespace: str = "default"

    # Seconds between inventory polls
    poll_interval: float = 15.0

    # Annotation keys
    targets_annotation: str = "tcpprobe/targets"
    interval_annotation: str = "tcpprobe/interval"
    labels_annotation: str = "tcpprobe/labels"

    # Pod phases considered ready to probe
    ready_phases: tuple = ("Running",)

    @classmethod
    def from_env(cls) -> "DiscoveryDefaults":
        """Create from environment variables."""
        return cls(
            enabled=_env_bool("TP_K8S", False),
            namespace=os.getenv("TP_NAMESPACE", "default"),
            poll_interval=float(os.getenv("TP_DISCOVERY_INTERVAL", 15.0)),
        )


@dataclass(frozen=True)
class ServerDefaults:
    """Defaults for the daemon's HTTP surface (/metrics, health probes)."""
    host: str = "0.0.0.0"
    port: int = 8081

    # Seconds to wait for loops to wind down on shutdown
    shutdown_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "ServerDefaults":
        """Create from environment variables."""
        return cls(
            host=os.getenv("TP_HOST", "0.0.0.0"),
            port=int(os.getenv("TP_PORT", 8081)),
            shutdown_timeout=float(os.getenv("TP_SHUTDOWN_TIMEOUT", 10.0)),
        )


@dataclass(frozen=True)
class Defaults:
    """Container for all default configurations."""
    probe: ProbeDefaults = field(default_factory=ProbeDefaults)
    discovery: DiscoveryDefaults = field(default_factory=DiscoveryDefaults)
    server: ServerDefaults = field(default_factory=ServerDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            probe=ProbeDefaults.from_env(),
            discovery=DiscoveryDefaults.from_env(),
            server=ServerDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ProbeDefaults",
    "DiscoveryDefaults",
    "ServerDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
