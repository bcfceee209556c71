# ============================================================================
# PROBE CLIENT
# ============================================================================
# STATUS: Core - Per-target connection/measurement state machine
# PURPOSE: Resolve, dial, TLS, one HTTP GET, kernel stats, teardown
# CREATED: 03 SEP 2026
# ============================================================================
"""
Probe Client

One ProbeClient belongs to one target's scheduler loop for the loop's whole
lifetime. Each call to probe() runs one round:

    IDLE -> RESOLVING -> CONNECTING -> (TLS_HANDSHAKING) -> REQUEST_SENT
         -> INFO_EXTRACTED -> CLOSED

Every stage can fail on its own. A failed stage records what it can
(error counters, partial timings), leaves State = 0 and the round still ends
in CLOSED with the connection released.

The network stack is httpx's transport layer: httpcore over anyio streams.
The client dials the TCP connection and negotiates TLS itself so each stage
is timed separately, then hands the established stream to an HTTP/1.1
connection for exactly one GET. httpcore never follows redirects, so a 3xx
is reported as the round's status code.

The stream is held open after the exchange until close(), so the kernel
statistics read after the response describe the same connection.

Usage:
    client = ProbeClient(ProbeConfig(address="https://example.com", insecure=True))
    stats = await client.probe()
    print(stats.State, stats.HTTPStatusCode, stats.TLSHandshake)
"""

import asyncio
import ipaddress
import socket
import ssl
import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpcore
import httpx

from __version__ import USER_AGENT
from core.contracts import ProbeStage, ProbeState
from core.logging import get_logger
from core.models import ProbeConfig, StatsModel
from probe.errors import (
    ProbeError,
    ResolutionError,
    ConnectError,
    TLSError,
    RequestError,
    ExtractionError,
)
from probe.tcpinfo import extract_connection_stats

logger = get_logger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


# ============================================================================
# TARGET PARSING
# ============================================================================

@dataclass(frozen=True)
class ParsedTarget:
    """A target split into the parts the state machine needs."""
    scheme: str
    host: str
    port: int
    path: bytes
    # ASCII form of host (IDNA for internationalized names)
    raw_host: bytes = b""

    @property
    def secure(self) -> bool:
        return self.scheme == "https"

    @property
    def default_port(self) -> bool:
        return self.port == _DEFAULT_PORTS[self.scheme]


def parse_target(target: str) -> ParsedTarget:
    """
    Parse ``target`` into scheme, host, port and request path.

    Without a scheme the target is plain HTTP, unless its port is 443.
    Without a port the scheme's default port is used.

    Raises:
        ValueError: Malformed target
    """
    raw = (target or "").strip()
    if not raw:
        raise ValueError("empty target")

    explicit_scheme = "://" in raw
    if not explicit_scheme:
        raw = f"http://{raw}"

    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as e:
        raise ValueError(f"invalid target {target!r}: {e}") from e

    scheme = url.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise ValueError(f"unsupported scheme {scheme!r} in {target!r}")

    host = url.host
    if not host:
        raise ValueError(f"missing host in {target!r}")

    port = url.port
    if not explicit_scheme and port == 443:
        scheme = "https"
    if port is None:
        port = _DEFAULT_PORTS[scheme]

    return ParsedTarget(
        scheme=scheme,
        host=host,
        port=port,
        path=url.raw_path or b"/",
        raw_host=url.raw_host,
    )


def is_ip_address(host: str) -> bool:
    """True for IPv4/IPv6 literals, which need no DNS lookup."""
    try:
        ipaddress.ip_address(host.split("%", 1)[0].strip("[]"))
    except ValueError:
        return False
    return True


def source_address(addr: str) -> Optional[str]:
    """
    Local address to bind before dialing, or None when unset.

    Raises:
        ValueError: ``addr`` is not an IP address
    """
    if not addr:
        return None
    return str(ipaddress.ip_address(addr))


def _elapsed_us(start: float) -> int:
    return int((time.perf_counter() - start) * 1_000_000)


# ============================================================================
# HELD STREAM
# ============================================================================

class _HeldStream(httpcore.AsyncNetworkStream):
    """
    Network stream whose close is deferred to the owning ProbeClient.

    The HTTP/1.1 connection closes its stream when the exchange ends; the
    probe still needs the socket for kernel statistics at that point.
    """

    def __init__(self, stream: httpcore.AsyncNetworkStream):
        self._stream = stream

    async def read(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        return await self._stream.read(max_bytes, timeout=timeout)

    async def write(self, buffer: bytes, timeout: Optional[float] = None) -> None:
        await self._stream.write(buffer, timeout=timeout)

    async def aclose(self) -> None:
        pass

    async def start_tls(self, ssl_context, server_hostname=None, timeout=None):
        return await self._stream.start_tls(
            ssl_context, server_hostname=server_hostname, timeout=timeout
        )

    def get_extra_info(self, info: str):
        return self._stream.get_extra_info(info)


# ============================================================================
# CLIENT
# ============================================================================

class ProbeClient:
    """
    Connection/measurement state machine for one target.

    Cumulative counters (TCPConnectError, DNSResolveError) accumulate on
    ``stats`` across rounds; every other field is overwritten each round.
    """

    def __init__(
        self,
        config: ProbeConfig,
        target: Optional[str] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
        network_backend: Optional[httpcore.AsyncNetworkBackend] = None,
    ):
        """
        Args:
            config: Probe configuration
            target: Target address (defaults to config.address)
            ssl_context: TLS context to use instead of one built from config
            network_backend: httpcore backend used to dial
        """
        self.config = config
        self.target = target if target is not None else config.address
        self.stats = StatsModel()
        self.stage = ProbeStage.IDLE
        self.last_error: Optional[ProbeError] = None

        self._ssl_context = ssl_context
        self._backend = network_backend or httpcore.AnyIOBackend()
        self._parsed: Optional[ParsedTarget] = None
        self._stream: Optional[httpcore.AsyncNetworkStream] = None
        self._socket: Optional[socket.socket] = None

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def server_name(self) -> str:
        """Explicit server name if configured, else the bare target host."""
        if self.config.server_name:
            return self.config.server_name
        try:
            return parse_target(self.target).host
        except ValueError:
            return self.target

    def _host_header(self, parsed: ParsedTarget) -> bytes:
        host = self.server_name()
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        if not parsed.default_port:
            host = f"{host}:{parsed.port}"
        return host.encode("idna") if not host.isascii() else host.encode("ascii")

    def _tls_context(self) -> ssl.SSLContext:
        if self._ssl_context is not None:
            return self._ssl_context
        context = ssl.create_default_context()
        if self.config.insecure:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        context.set_alpn_protocols(["http/1.1"])
        self._ssl_context = context
        return context

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Resolve the target, dial TCP and, for https, negotiate TLS.

        Raises:
            ResolutionError: DNS lookup failed (DNSResolveError incremented)
            ConnectError: Malformed target or dial failed (TCPConnectError incremented)
            TLSError: Handshake failed (TCPConnectError incremented)
        """
        timeout = self.config.timeout

        try:
            parsed = parse_target(self.target)
            local_address = source_address(self.config.source_addr)
        except ValueError as e:
            self.stats.TCPConnectError += 1
            raise ConnectError(str(e), target=self.target) from e
        self._parsed = parsed

        # Resolving
        self.stage = ProbeStage.RESOLVING
        if is_ip_address(parsed.host):
            address = parsed.host
        else:
            address = await self._resolve(parsed, timeout)

        # Connecting
        self.stage = ProbeStage.CONNECTING
        start = time.perf_counter()
        try:
            stream = await self._backend.connect_tcp(
                address,
                parsed.port,
                timeout=timeout,
                local_address=local_address,
            )
        except (httpcore.ConnectError, httpcore.ConnectTimeout, OSError, ValueError) as e:
            self.stats.TCPConnectError += 1
            raise ConnectError(
                f"dial {address}:{parsed.port} failed: {e or type(e).__name__}",
                target=self.target,
            ) from e
        self.stats.TCPConnect = _elapsed_us(start)

        # TLS
        if parsed.secure:
            self.stage = ProbeStage.TLS_HANDSHAKING
            start = time.perf_counter()
            try:
                stream = await stream.start_tls(
                    self._tls_context(),
                    server_hostname=self.server_name(),
                    timeout=timeout,
                )
            except (httpcore.ConnectError, httpcore.ConnectTimeout, OSError, ssl.SSLError) as e:
                self.stats.TCPConnectError += 1
                raise TLSError(
                    f"TLS handshake with {self.server_name()} failed: {e or type(e).__name__}",
                    target=self.target,
                ) from e
            self.stats.TLSHandshake = _elapsed_us(start)

        self._stream = stream
        self._socket = stream.get_extra_info("socket")

    async def _resolve(self, parsed: ParsedTarget, timeout: float) -> str:
        loop = asyncio.get_running_loop()
        start = time.perf_counter()
        try:
            infos = await asyncio.wait_for(
                loop.getaddrinfo(parsed.host, parsed.port, type=socket.SOCK_STREAM),
                timeout=timeout,
            )
        except (OSError, asyncio.TimeoutError, UnicodeError) as e:
            self.stats.DNSResolveError += 1
            raise ResolutionError(
                f"resolve {parsed.host} failed: {e or type(e).__name__}",
                target=self.target,
            ) from e
        self.stats.DNSResolve = _elapsed_us(start)

        if not infos:
            self.stats.DNSResolveError += 1
            raise ResolutionError(f"no addresses for {parsed.host}", target=self.target)
        return infos[0][4][0]

    async def http_get(self) -> None:
        """
        Issue one GET over the established connection.

        Raises:
            RequestError: Not connected, or the exchange failed
        """
        if self._stream is None or self._parsed is None:
            raise RequestError("not connected", target=self.target)

        parsed = self._parsed
        timeout = self.config.timeout
        scheme = parsed.scheme.encode("ascii")
        host = parsed.raw_host or parsed.host.encode("idna")

        connection = httpcore.AsyncHTTP11Connection(
            origin=httpcore.Origin(scheme=scheme, host=host, port=parsed.port),
            stream=_HeldStream(self._stream),
        )
        url = httpcore.URL(scheme=scheme, host=host, port=parsed.port, target=parsed.path)
        headers = [
            (b"Host", self._host_header(parsed)),
            (b"User-Agent", USER_AGENT.encode("ascii")),
            (b"Accept", b"*/*"),
        ]
        extensions = {
            "timeout": {"connect": timeout, "read": timeout, "write": timeout, "pool": timeout},
        }

        self.stage = ProbeStage.REQUEST_SENT
        start = time.perf_counter()
        try:
            response = await connection.request("GET", url, headers=headers, extensions=extensions)
        except (httpcore.TimeoutException, httpcore.NetworkError, httpcore.ProtocolError) as e:
            raise RequestError(
                f"GET {parsed.path.decode('ascii', 'replace')} failed: {e or type(e).__name__}",
                target=self.target,
            ) from e
        finally:
            await connection.aclose()

        self.stats.HTTPResponse = _elapsed_us(start)
        self.stats.HTTPStatusCode = response.status
        self.stats.HTTPRcvdBytes = len(response.content)

    def get_tcp_info(self) -> Dict[str, int]:
        """
        Copy kernel TCP statistics of the live connection into ``stats``.

        Raises:
            ExtractionError: Not connected, or the kernel query failed
        """
        if self._socket is None:
            raise ExtractionError("no connection socket", target=self.target)
        values = extract_connection_stats(self._socket)
        self.stats.update(values)
        self.stage = ProbeStage.INFO_EXTRACTED
        return values

    async def close(self) -> None:
        """Release the connection. Safe to call on every exit path."""
        stream, self._stream, self._socket = self._stream, None, None
        if stream is not None:
            try:
                await stream.aclose()
            except Exception as e:
                logger.debug(f"Error closing connection to {self.target}: {e}")
        self.stage = ProbeStage.CLOSED

    # ------------------------------------------------------------------
    # Round
    # ------------------------------------------------------------------

    async def probe(self) -> StatsModel:
        """
        Run one full round and return the client's StatsModel.

        Probe failures never escape: they are folded into ``stats``
        (State = 0, counters) and kept on ``last_error``.
        """
        self.stats.reset_round()
        self.stage = ProbeStage.IDLE
        self.last_error = None
        succeeded = False

        try:
            await self.connect()
            await self.http_get()
            try:
                self.get_tcp_info()
            except ExtractionError as e:
                logger.debug(f"Kernel stats unavailable for {self.target}: {e}")
            succeeded = True
        except ProbeError as e:
            self.last_error = e
            logger.debug(f"Round failed at {e.stage.value}: {e}")
        finally:
            await self.close()

        self.stats.State = int(ProbeState.SUCCEEDED if succeeded else ProbeState.FAILED)
        self.stats.Rounds += 1
        if not succeeded:
            self.stats.FailedRounds += 1
        return self.stats


__all__ = [
    "ParsedTarget",
    "parse_target",
    "is_ip_address",
    "source_address",
    "ProbeClient",
]
