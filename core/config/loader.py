# ============================================================================
# CONFIG FILE LOADER
# ============================================================================
# STATUS: Core - Static target configuration
# PURPOSE: Load the YAML target list into TargetSpec records
# CREATED: 02 SEP 2026
# ============================================================================
"""
Config File Loader

Reads the static target file:

    targets:
      - addr: https://www.google.com
        interval: 10s
        labels:
          pop: bur

Errors are raised as ConfigError so the startup sequence can report them
without a traceback.
"""

import logging
from pathlib import Path
from typing import List, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from core.models.target import TargetSpec

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Static configuration could not be loaded."""


class ProbeFileConfig(BaseModel):
    """Parsed static configuration file."""

    targets: List[TargetSpec] = Field(default_factory=list)


def load_config(path: Union[str, Path]) -> ProbeFileConfig:
    """
    Load a static target file.

    Args:
        path: Path to the YAML file

    Returns:
        ProbeFileConfig

    Raises:
        ConfigError: File missing, unreadable, not YAML, or invalid records
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Invalid config in {path}: expected a mapping, got {type(data).__name__}"
        )

    try:
        config = ProbeFileConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e

    logger.info(f"Loaded {len(config.targets)} targets from {path}")
    return config


__all__ = ["ConfigError", "ProbeFileConfig", "load_config"]
