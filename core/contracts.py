# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Core enums shared across packages
# PURPOSE: Round state, probe stages, output formats, target sources
# CREATED: 02 SEP 2026
# EXPORTS: ProbeState, ProbeStage, OutputFormat, TargetSource
# ============================================================================
"""
Base contracts for the probe daemon.

These values cross package boundaries:
- probe (state machine stages)
- orchestrator (where a target came from)
- output (how a round is rendered)
"""

from enum import Enum, IntEnum


class ProbeState(IntEnum):
    """Outcome of one round, exported as the ``State`` field."""
    FAILED = 0
    SUCCEEDED = 1


class ProbeStage(str, Enum):
    """
    Stages of the per-round connection state machine.

    State transitions:
        IDLE -> RESOLVING -> CONNECTING -> (TLS_HANDSHAKING) -> REQUEST_SENT
             -> INFO_EXTRACTED -> CLOSED

    Any stage may abort; an aborted round still ends in CLOSED.
    """
    IDLE = "idle"
    RESOLVING = "resolving"
    CONNECTING = "connecting"
    TLS_HANDSHAKING = "tls_handshaking"
    REQUEST_SENT = "request_sent"
    INFO_EXTRACTED = "info_extracted"
    CLOSED = "closed"

    def is_terminal(self) -> bool:
        return self is ProbeStage.CLOSED


class OutputFormat(str, Enum):
    """How a round's result is rendered by the result sink."""
    TEXT = "text"
    JSON = "json"
    JSON_PRETTY = "json_pretty"


class TargetSource(str, Enum):
    """Which reconciliation source admitted a target."""
    CLI = "cli"
    CONFIG = "config"
    DISCOVERY = "discovery"


__all__ = [
    "ProbeState",
    "ProbeStage",
    "OutputFormat",
    "TargetSource",
]
