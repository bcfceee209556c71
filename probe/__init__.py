# ============================================================================
# PROBE MODULE
# ============================================================================
# STATUS: Core - Single-round network probe
# PURPOSE: DNS, TCP, TLS, HTTP GET and kernel statistics for one target
# CREATED: 03 SEP 2026
# ============================================================================
"""
Probe Module

Usage:
    from probe import ProbeClient

    client = ProbeClient(config)
    stats = await client.probe()
"""

from probe.client import (
    ParsedTarget,
    ProbeClient,
    is_ip_address,
    parse_target,
    source_address,
)
from probe.errors import (
    ConnectError,
    ExtractionError,
    ProbeError,
    RequestError,
    ResolutionError,
    TLSError,
)
from probe.tcpinfo import decode_tcp_info, extract_connection_stats, supported

__all__ = [
    "ParsedTarget",
    "ProbeClient",
    "is_ip_address",
    "parse_target",
    "source_address",
    "ProbeError",
    "ResolutionError",
    "ConnectError",
    "TLSError",
    "RequestError",
    "ExtractionError",
    "decode_tcp_info",
    "extract_connection_stats",
    "supported",
]
