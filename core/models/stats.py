# ============================================================================
# STATS MODEL
# ============================================================================
# STATUS: Core - Result of one probe round
# PURPOSE: Flat record of round measurements plus its export metadata table
# CREATED: 02 SEP 2026
# ============================================================================
"""
Stats Model

One probe round produces one StatsModel. Every field is an integer.

Export metadata lives in STAT_FIELDS, a table declared once at import time:
(field name, metric name, help text, exported, metric kind, cumulative).
The metrics exporter and the result sinks both iterate this table instead of
inspecting the dataclass.

Field groups:
- State: 1 when every stage of the round completed, else 0
- Kernel tcp_info: Rto, Ato, Unacked, Lost, Rtt, ... (Linux units, mostly us)
- Probe timings: DNSResolve, TCPConnect, TLSHandshake, HTTPResponse (us)
- HTTP: HTTPStatusCode, HTTPRcvdBytes
- Cumulative error counters: TCPConnectError, DNSResolveError
- Internal tallies (not exported): Rounds, FailedRounds

Cumulative fields survive reset_round(); everything else is point-in-time
and is zeroed at the start of each round.
"""

from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class StatField:
    """Export metadata for one StatsModel field."""
    name: str
    metric: str
    help: str
    exported: bool = True
    kind: str = "gauge"
    cumulative: bool = False

    def value(self, stats: "StatsModel") -> int:
        return getattr(stats, self.name)


@dataclass
class StatsModel:
    """Measurements of one probe round."""

    State: int = 0

    # Linux struct tcp_info, in kernel order
    CaState: int = 0
    Retransmits: int = 0
    Probes: int = 0
    Backoff: int = 0
    Options: int = 0
    Rto: int = 0
    Ato: int = 0
    SndMss: int = 0
    RcvMss: int = 0
    Unacked: int = 0
    Sacked: int = 0
    Lost: int = 0
    Retrans: int = 0
    Fackets: int = 0
    LastDataSent: int = 0
    LastAckSent: int = 0
    LastDataRecv: int = 0
    LastAckRecv: int = 0
    Pmtu: int = 0
    RcvSsthresh: int = 0
    Rtt: int = 0
    Rttvar: int = 0
    SndSsthresh: int = 0
    SndCwnd: int = 0
    Advmss: int = 0
    Reordering: int = 0
    RcvRtt: int = 0
    RcvSpace: int = 0
    TotalRetrans: int = 0
    PacingRate: int = 0
    MaxPacingRate: int = 0
    BytesAcked: int = 0
    BytesReceived: int = 0
    SegsOut: int = 0
    SegsIn: int = 0
    NotsentBytes: int = 0
    MinRtt: int = 0
    DataSegsIn: int = 0
    DataSegsOut: int = 0
    DeliveryRate: int = 0
    BusyTime: int = 0
    RwndLimited: int = 0
    SndbufLimited: int = 0
    Delivered: int = 0
    DeliveredCe: int = 0
    BytesSent: int = 0
    BytesRetrans: int = 0
    DsackDups: int = 0
    ReordSeen: int = 0

    # Probe timings (microseconds)
    DNSResolve: int = 0
    TCPConnect: int = 0
    TLSHandshake: int = 0
    HTTPResponse: int = 0

    # HTTP exchange
    HTTPStatusCode: int = 0
    HTTPRcvdBytes: int = 0

    # Cumulative across rounds
    TCPConnectError: int = 0
    DNSResolveError: int = 0
    Rounds: int = 0
    FailedRounds: int = 0

    def reset_round(self) -> None:
        """Zero point-in-time fields, keep cumulative counters."""
        for stat_field in STAT_FIELDS:
            if not stat_field.cumulative:
                setattr(self, stat_field.name, 0)

    def update(self, values: Dict[str, int]) -> None:
        """Overwrite fields from a name -> value mapping."""
        for name, value in values.items():
            if name not in FIELD_INDEX:
                raise KeyError(f"Unknown stats field: {name}")
            setattr(self, name, int(value))

    def copy(self) -> "StatsModel":
        return StatsModel(**{f.name: getattr(self, f.name) for f in dataclass_fields(self)})

    def as_dict(
        self,
        filter: Optional[Iterable[str]] = None,
        exported_only: bool = True,
    ) -> Dict[str, int]:
        """
        Field name -> value, in declaration order.

        Args:
            filter: Optional field names or metric names (case-insensitive) to keep
            exported_only: Drop internal tallies
        """
        wanted = normalize_filter(filter)
        result: Dict[str, int] = {}
        for stat_field in STAT_FIELDS:
            if exported_only and not stat_field.exported:
                continue
            if wanted and not wanted & {stat_field.name.lower(), stat_field.metric}:
                continue
            result[stat_field.name] = stat_field.value(self)
        return result


def _f(name: str, metric: str, help: str, **kwargs: Any) -> StatField:
    return StatField(name=name, metric=metric, help=help, **kwargs)


STAT_FIELDS: Tuple[StatField, ...] = (
    _f("State", "state", "TCP probe state: 1 succeeded, 0 failed"),
    _f("CaState", "ca_state", "Congestion avoidance state"),
    _f("Retransmits", "retransmits", "Number of unrecovered RTO timeouts"),
    _f("Probes", "probes", "Unanswered zero window probes"),
    _f("Backoff", "backoff", "Exponential backoff"),
    _f("Options", "options", "TCP options negotiated on the connection"),
    _f("Rto", "rto", "Retransmission timeout (us)"),
    _f("Ato", "ato", "Delayed ACK timeout (us)"),
    _f("SndMss", "snd_mss", "Current maximum segment size for sending"),
    _f("RcvMss", "rcv_mss", "Maximum observed segment size from the peer"),
    _f("Unacked", "unacked", "Number of unacknowledged segments"),
    _f("Sacked", "sacked", "Number of SACKed segments"),
    _f("Lost", "lost", "Number of segments considered lost"),
    _f("Retrans", "retrans", "Number of retransmitted segments in flight"),
    _f("Fackets", "fackets", "Forward acknowledged segments (obsolete)", exported=False),
    _f("LastDataSent", "last_data_sent", "Time since last data segment was sent (ms)"),
    _f("LastAckSent", "last_ack_sent", "Time since last ACK was sent (ms)"),
    _f("LastDataRecv", "last_data_recv", "Time since last data segment was received (ms)"),
    _f("LastAckRecv", "last_ack_recv", "Time since last ACK was received (ms)"),
    _f("Pmtu", "pmtu", "Path MTU"),
    _f("RcvSsthresh", "rcv_ssthresh", "Slow start size threshold for receiving"),
    _f("Rtt", "rtt", "Smoothed round trip time (us)"),
    _f("Rttvar", "rttvar", "Round trip time variation (us)"),
    _f("SndSsthresh", "snd_ssthresh", "Slow start size threshold for sending"),
    _f("SndCwnd", "snd_cwnd", "Send congestion window"),
    _f("Advmss", "advmss", "Advertised maximum segment size"),
    _f("Reordering", "reordering", "Segment reordering metric"),
    _f("RcvRtt", "rcv_rtt", "Receiver side round trip time estimate (us)"),
    _f("RcvSpace", "rcv_space", "Receiver queue space"),
    _f("TotalRetrans", "total_retrans", "Total retransmitted segments"),
    _f("PacingRate", "pacing_rate", "Pacing rate (bytes/s)"),
    _f("MaxPacingRate", "max_pacing_rate", "Maximum pacing rate (bytes/s)"),
    _f("BytesAcked", "bytes_acked", "Bytes acknowledged by the peer"),
    _f("BytesReceived", "bytes_received", "Bytes received from the peer"),
    _f("SegsOut", "segs_out", "Segments sent"),
    _f("SegsIn", "segs_in", "Segments received"),
    _f("NotsentBytes", "notsent_bytes", "Bytes queued but not yet sent"),
    _f("MinRtt", "min_rtt", "Minimum round trip time observed (us)"),
    _f("DataSegsIn", "data_segs_in", "Data segments received"),
    _f("DataSegsOut", "data_segs_out", "Data segments sent"),
    _f("DeliveryRate", "delivery_rate", "Delivery rate (bytes/s)"),
    _f("BusyTime", "busy_time", "Time with outstanding data (us)"),
    _f("RwndLimited", "rwnd_limited", "Time limited by the receive window (us)"),
    _f("SndbufLimited", "sndbuf_limited", "Time limited by the send buffer (us)"),
    _f("Delivered", "delivered", "Data segments delivered"),
    _f("DeliveredCe", "delivered_ce", "Data segments delivered with CE marks"),
    _f("BytesSent", "bytes_sent", "Bytes sent including retransmissions"),
    _f("BytesRetrans", "bytes_retrans", "Bytes retransmitted"),
    _f("DsackDups", "dsack_dups", "Duplicate segments reported by DSACK"),
    _f("ReordSeen", "reord_seen", "Reordering events seen"),
    _f("DNSResolve", "dns_resolve", "DNS resolve time (us)"),
    _f("TCPConnect", "tcp_connect", "TCP connect time (us)"),
    _f("TLSHandshake", "tls_handshake", "TLS handshake time (us)"),
    _f("HTTPResponse", "http_response", "HTTP response time (us)"),
    _f("HTTPStatusCode", "http_status_code", "HTTP status code"),
    _f("HTTPRcvdBytes", "http_rcvd_bytes", "HTTP bytes received"),
    _f("TCPConnectError", "tcp_connect_error", "Total TCP connect errors",
       kind="counter", cumulative=True),
    _f("DNSResolveError", "dns_resolve_error", "Total DNS resolve errors",
       kind="counter", cumulative=True),
    _f("Rounds", "rounds", "Rounds completed by this client",
       exported=False, kind="counter", cumulative=True),
    _f("FailedRounds", "failed_rounds", "Rounds that ended with State 0",
       exported=False, kind="counter", cumulative=True),
)

FIELD_INDEX: Dict[str, StatField] = {f.name: f for f in STAT_FIELDS}


def exported_fields() -> List[StatField]:
    """Fields surfaced as metrics and default output columns."""
    return [f for f in STAT_FIELDS if f.exported]


def normalize_filter(filter: Optional[Iterable[str]]) -> Optional[set]:
    """
    Lower-case filter names; accepts an iterable or a comma separated string.

    Returns None when nothing is filtered.
    """
    if not filter:
        return None
    if isinstance(filter, str):
        filter = filter.split(",")
    names = {name.strip().lower() for name in filter if name and name.strip()}
    return names or None


__all__ = [
    "StatField",
    "StatsModel",
    "STAT_FIELDS",
    "FIELD_INDEX",
    "exported_fields",
    "normalize_filter",
]
