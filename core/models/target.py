# ============================================================================
# TARGET MODELS
# ============================================================================
# STATUS: Core - Target specifications from config and discovery
# PURPOSE: Static target records and workload inventory snapshots
# CREATED: 02 SEP 2026
# ============================================================================
"""
Target Models

TargetSpec is one record of the static configuration file:

    targets:
      - addr: https://www.google.com
        interval: 10s
        labels:
          pop: bur

Workload is one entry of the discovery inventory (a pod, for Kubernetes):
its identity, readiness phase, and annotation map.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from core.durations import parse_duration_or


class TargetSpec(BaseModel):
    """A statically configured target."""

    addr: str = Field(..., min_length=1, description="Target address")
    interval: Optional[str] = Field(default=None, description="Duration string, e.g. 10s")
    labels: Dict[str, str] = Field(default_factory=dict)

    @field_validator("interval", mode="before")
    @classmethod
    def _interval_as_str(cls, value):
        if value is None:
            return None
        return str(value)

    @field_validator("labels", mode="before")
    @classmethod
    def _labels_as_str(cls, value):
        if value is None:
            return {}
        return {str(k): str(v) for k, v in dict(value).items()}

    def interval_seconds(self, default: float) -> float:
        return parse_duration_or(self.interval, default)


class Workload(BaseModel):
    """A workload as reported by the inventory on one reconciliation tick."""

    name: str
    namespace: str = "default"
    phase: str = ""
    annotations: Dict[str, str] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


__all__ = ["TargetSpec", "Workload"]
