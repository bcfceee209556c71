# ============================================================================
# PROBE ERRORS
# ============================================================================
# STATUS: Core - Probe error taxonomy
# PURPOSE: Typed failures for each stage of a probe round
# CREATED: 03 SEP 2026
# ============================================================================
"""
Probe Errors

One exception type per stage of the round state machine:

    ResolutionError  - DNS lookup failed or timed out
    ConnectError     - TCP dial failed (unreachable, refused, malformed address)
    TLSError         - TLS handshake failed
    RequestError     - HTTP exchange failed
    ExtractionError  - kernel TCP statistics unavailable (non-fatal)

All but ExtractionError abort the current round only. The scheduler loop
folds them into the round's StatsModel and carries on.
"""

from typing import Optional

from core.contracts import ProbeStage


class ProbeError(Exception):
    """Base class for probe round failures."""

    stage: ProbeStage = ProbeStage.IDLE

    def __init__(self, message: str, target: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.target = target


class ResolutionError(ProbeError):
    """DNS resolution failed."""
    stage = ProbeStage.RESOLVING


class ConnectError(ProbeError):
    """TCP connection could not be established."""
    stage = ProbeStage.CONNECTING


class TLSError(ProbeError):
    """TLS handshake failed."""
    stage = ProbeStage.TLS_HANDSHAKING


class RequestError(ProbeError):
    """HTTP request or response failed."""
    stage = ProbeStage.REQUEST_SENT


class ExtractionError(ProbeError):
    """Kernel connection statistics could not be read."""
    stage = ProbeStage.INFO_EXTRACTED


__all__ = [
    "ProbeError",
    "ResolutionError",
    "ConnectError",
    "TLSError",
    "RequestError",
    "ExtractionError",
]
