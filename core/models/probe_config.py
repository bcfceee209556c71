# ============================================================================
# PROBE CONFIG MODEL
# ============================================================================
# STATUS: Core - Per-target probe configuration
# PURPOSE: Immutable settings a probe loop runs with
# CREATED: 02 SEP 2026
# ============================================================================
"""
Probe Config

Settings for one target's probe loop. A ProbeConfig is frozen: once a loop
is running its config never changes. A configuration change means the
target is withdrawn and admitted again with a new ProbeConfig.

Typical flow:
    base = ProbeConfig(timeout=2.0, insecure=True)
    cfg = base.for_target("https://10.0.0.1", interval=10.0, labels={"pop": "bur"})
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from core.contracts import OutputFormat, TargetSource
from core.models.stats import normalize_filter


class ProbeConfig(BaseModel):
    """Immutable configuration of one probe loop."""

    model_config = {"frozen": True}

    # Target
    address: str = Field(default="", description="URL or host:port")

    # Loop
    count: int = Field(default=0, description="Rounds to run; <= 0 runs forever")
    interval: float = Field(default=1.0, gt=0, description="Seconds between rounds")

    # Round
    timeout: float = Field(default=5.0, gt=0, description="Per-stage network timeout (s)")
    insecure: bool = Field(default=False, description="Skip TLS certificate verification")
    server_name: str = Field(default="", description="TLS SNI / Host override")
    source_addr: str = Field(default="", description="Local address to bind before dialing")

    # Output
    quiet: bool = Field(default=False, description="Suppress per-round output")
    filter: List[str] = Field(default_factory=list, description="StatsModel fields to print")
    output_format: OutputFormat = Field(default=OutputFormat.TEXT)

    # Scope and labels
    namespace: str = Field(default="", description="Discovery scope the target came from")
    labels: Dict[str, str] = Field(default_factory=dict)
    source: TargetSource = Field(default=TargetSource.CLI)

    @field_validator("filter", mode="before")
    @classmethod
    def _split_filter(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return sorted(normalize_filter(value) or [])
        return list(value)

    @field_validator("labels", mode="before")
    @classmethod
    def _stringify_labels(cls, value):
        if value is None:
            return {}
        return {str(k): str(v) for k, v in dict(value).items()}

    @property
    def runs_forever(self) -> bool:
        return self.count <= 0

    def for_target(
        self,
        address: str,
        interval: Optional[float] = None,
        labels: Optional[Dict[str, str]] = None,
        source: Optional[TargetSource] = None,
        namespace: Optional[str] = None,
    ) -> "ProbeConfig":
        """Copy this config for a specific target."""
        update = {"address": address}
        if interval is not None:
            update["interval"] = interval
        if labels is not None:
            update["labels"] = {str(k): str(v) for k, v in labels.items()}
        if source is not None:
            update["source"] = source
        if namespace is not None:
            update["namespace"] = namespace
        return self.model_copy(update=update)

    def summary(self) -> Dict[str, object]:
        """Compact view for logs and the /targets endpoint."""
        return {
            "address": self.address,
            "interval": self.interval,
            "count": self.count,
            "timeout": self.timeout,
            "source": self.source.value,
            "labels": dict(self.labels),
        }


__all__ = ["ProbeConfig"]
