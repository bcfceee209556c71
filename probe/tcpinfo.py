# ============================================================================
# KERNEL TCP STATISTICS
# ============================================================================
# STATUS: Core - Kernel socket introspection
# PURPOSE: Read struct tcp_info from an established connection
# CREATED: 03 SEP 2026
# ============================================================================
"""
Kernel TCP Statistics

extract_connection_stats(sock) returns a StatsModel field name -> value map
read from the kernel's view of the connection.

Linux: getsockopt(IPPROTO_TCP, TCP_INFO). The struct grew over kernel
releases; the buffer is decoded section by section and whatever a shorter
struct does not carry is left out (the caller keeps those fields at zero).

Other platforms: no statistics, an empty map. That is a valid result, not an
error.
"""

import socket
import struct
import sys
from typing import Callable, Dict, List, Tuple

from probe.errors import ExtractionError

# Sections of struct tcp_info (include/uapi/linux/tcp.h), native byte order.
# The first byte (tcpi_state) and the two bitfield bytes are skipped.
_TCP_INFO_LAYOUT: List[Tuple[str, Tuple[str, ...]]] = [
    ("=x5B2x", ("CaState", "Retransmits", "Probes", "Backoff", "Options")),
    ("=24I", (
        "Rto", "Ato", "SndMss", "RcvMss",
        "Unacked", "Sacked", "Lost", "Retrans", "Fackets",
        "LastDataSent", "LastAckSent", "LastDataRecv", "LastAckRecv",
        "Pmtu", "RcvSsthresh", "Rtt", "Rttvar", "SndSsthresh", "SndCwnd",
        "Advmss", "Reordering", "RcvRtt", "RcvSpace", "TotalRetrans",
    )),
    ("=4Q", ("PacingRate", "MaxPacingRate", "BytesAcked", "BytesReceived")),
    ("=6I", ("SegsOut", "SegsIn", "NotsentBytes", "MinRtt", "DataSegsIn", "DataSegsOut")),
    ("=4Q", ("DeliveryRate", "BusyTime", "RwndLimited", "SndbufLimited")),
    ("=2I", ("Delivered", "DeliveredCe")),
    ("=2Q", ("BytesSent", "BytesRetrans")),
    ("=2I", ("DsackDups", "ReordSeen")),
]

TCP_INFO_SIZE = sum(struct.calcsize(fmt) for fmt, _ in _TCP_INFO_LAYOUT)


def decode_tcp_info(buf: bytes) -> Dict[str, int]:
    """Decode as many tcp_info sections as ``buf`` holds."""
    values: Dict[str, int] = {}
    offset = 0
    for fmt, names in _TCP_INFO_LAYOUT:
        size = struct.calcsize(fmt)
        if offset + size > len(buf):
            break
        values.update(zip(names, struct.unpack_from(fmt, buf, offset)))
        offset += size
    return values


def _linux_tcp_info(sock: socket.socket) -> Dict[str, int]:
    if sock is None or sock.fileno() < 0:
        raise ExtractionError("connection socket is closed")
    try:
        buf = sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_INFO, TCP_INFO_SIZE)
    except OSError as e:
        raise ExtractionError(f"getsockopt(TCP_INFO) failed: {e}") from e
    return decode_tcp_info(buf)


def _unsupported(sock: socket.socket) -> Dict[str, int]:
    return {}


def _select_extractor() -> Callable[[socket.socket], Dict[str, int]]:
    if sys.platform.startswith("linux") and hasattr(socket, "TCP_INFO"):
        return _linux_tcp_info
    return _unsupported


_extractor = _select_extractor()


def extract_connection_stats(sock: socket.socket) -> Dict[str, int]:
    """
    Read kernel statistics for ``sock``.

    Returns:
        StatsModel field name -> value; empty on unsupported platforms

    Raises:
        ExtractionError: The platform supports the query but it failed
    """
    return _extractor(sock)


def supported() -> bool:
    return _extractor is not _unsupported


__all__ = [
    "TCP_INFO_SIZE",
    "decode_tcp_info",
    "extract_connection_stats",
    "supported",
]
