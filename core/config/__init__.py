# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 02 SEP 2026
# ============================================================================
"""
Configuration Module

Provides centralized defaults and the YAML target-file loader.
"""

from core.config.defaults import (
    ProbeDefaults,
    DiscoveryDefaults,
    ServerDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)
from core.config.loader import ConfigError, ProbeFileConfig, load_config

__all__ = [
    "ProbeDefaults",
    "DiscoveryDefaults",
    "ServerDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
    "ConfigError",
    "ProbeFileConfig",
    "load_config",
]
