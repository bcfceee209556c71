#!/usr/bin/env python3
# ============================================================================
# TCP PROBE - COMMAND LINE
# ============================================================================
# STATUS: Tool - tcpprobe command
# PURPOSE: One-shot probing, daemon mode and metric listing
# CREATED: 16 SEP 2026
# ============================================================================
"""
tcpprobe command line.

Usage:
    # Probe until interrupted, one round per second
    tcpprobe https://www.example.com

    # Three rounds, JSON output, only a few fields
    tcpprobe -c 3 --json --filter rtt,http_status_code https://www.example.com

    # Daemon: Prometheus /metrics and health routes on :8081
    tcpprobe --prometheus https://www.example.com
    tcpprobe --config targets.yml
    tcpprobe --k8s --namespace probes

    # List exported metrics
    tcpprobe --metrics

Logs go to stderr (TP_LOG_LEVEL, TP_LOG_FORMAT); results go to stdout.
"""

import argparse
import asyncio
import json
import os
import sys
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from __version__ import __version__
from core.config import ConfigError, get_defaults
from core.contracts import OutputFormat, TargetSource
from core.durations import parse_duration
from core.logging import configure_logging, get_logger
from core.models import ProbeConfig
from core.models.stats import exported_fields
from orchestrator import AdmissionError, ProbeHandle, ProbeScheduler, TargetRegistry
from output import make_sink
from probe import source_address

logger = get_logger(__name__)


class CliError(Exception):
    """The command line cannot be acted on."""


@dataclass
class CliOptions:
    """Parsed command line, before it becomes a ProbeConfig."""
    count: int = 0
    interval: float = 1.0
    timeout: float = 5.0
    quiet: bool = False
    insecure: bool = False
    server_name: str = ""
    src_addr: str = ""
    filter: str = ""
    json: bool = False
    json_pretty: bool = False
    labels: Dict[str, str] = field(default_factory=dict)
    config: Optional[str] = None
    k8s: bool = False
    namespace: str = "default"
    prometheus: bool = False
    addr: str = ":8081"
    metrics: bool = False

    @property
    def daemon(self) -> bool:
        return self.prometheus or self.k8s or bool(self.config)

    @property
    def output_format(self) -> OutputFormat:
        if self.json_pretty:
            return OutputFormat.JSON_PRETTY
        if self.json:
            return OutputFormat.JSON
        return OutputFormat.TEXT

    def probe_config(self) -> ProbeConfig:
        return ProbeConfig(
            count=self.count,
            interval=self.interval,
            timeout=self.timeout,
            insecure=self.insecure,
            server_name=self.server_name,
            source_addr=self.src_addr,
            quiet=self.quiet,
            filter=self.filter,
            output_format=self.output_format,
            namespace=self.namespace,
            labels=self.labels,
            source=TargetSource.CLI,
        )

    def listen_address(self) -> Tuple[str, int]:
        """Split ``--addr`` ("host:port" or ":port")."""
        host, sep, port = self.addr.rpartition(":")
        if not sep:
            host, port = "", self.addr
        try:
            port_number = int(port)
        except ValueError:
            raise CliError(f"invalid listen address: {self.addr}")
        return host.strip("[]") or get_defaults().server.host, port_number


def _duration(value: str) -> float:
    try:
        seconds = parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"duration must be positive: {value}")
    return seconds


def _labels(value: str) -> Dict[str, str]:
    try:
        labels = json.loads(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"labels must be a JSON object: {e}")
    if not isinstance(labels, dict):
        raise argparse.ArgumentTypeError("labels must be a JSON object")
    return {str(k): str(v) for k, v in labels.items()}


def _source_addr(value: str) -> str:
    try:
        return source_address(value) or ""
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    defaults = get_defaults()
    parser = argparse.ArgumentParser(
        prog="tcpprobe",
        description="Measure DNS, TCP, TLS and HTTP timings plus kernel TCP statistics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("targets", nargs="*", help="Target URLs or host:port")
    parser.add_argument("-c", "--count", type=int, default=defaults.probe.count,
                        help="Rounds per target; 0 runs forever")
    parser.add_argument("-i", "--interval", type=_duration, default=defaults.probe.interval,
                        help="Wait between rounds, e.g. 1s, 500ms")
    parser.add_argument("-t", "--timeout", type=_duration, default=defaults.probe.timeout,
                        help="Per-stage network timeout")
    parser.add_argument("-q", "--quiet", action="store_true", help="Print no results")
    parser.add_argument("--insecure", action="store_true",
                        help="Skip TLS certificate and hostname verification")
    parser.add_argument("--server-name", default="", help="TLS server name override")
    parser.add_argument("--src-addr", type=_source_addr, default="",
                        help="Local IP address to bind")
    parser.add_argument("--filter", default="",
                        help="Comma-separated fields to print, e.g. rtt,http_status_code")
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", help="Print compact JSON")
    output.add_argument("--json-pretty", action="store_true", help="Print indented JSON")
    parser.add_argument("--labels", type=_labels, default={},
                        help='Extra metric labels as JSON, e.g. \'{"pop":"bur"}\'')
    parser.add_argument("--config", default=None, help="YAML target file (daemon mode)")
    parser.add_argument("--k8s", action="store_true", default=defaults.discovery.enabled,
                        help="Discover targets from pod annotations (daemon mode)")
    parser.add_argument("--namespace", default=defaults.discovery.namespace,
                        help="Namespace for discovery")
    parser.add_argument("--prometheus", action="store_true",
                        help="Serve Prometheus metrics (daemon mode)")
    parser.add_argument("--addr", default=f":{defaults.server.port}",
                        help="Daemon listen address")
    parser.add_argument("--metrics", action="store_true",
                        help="List exported metrics and exit")
    parser.add_argument("--version", action="version", version=f"tcpprobe {__version__}")
    return parser


def print_metrics(prefix: Optional[str] = None, file=None) -> None:
    """Write the exported metric names and help text."""
    file = file or sys.stdout
    prefix = prefix if prefix is not None else get_defaults().probe.metric_prefix
    fields = exported_fields()
    width = max(len(prefix + f.metric) for f in fields)
    print("metrics:", file=file)
    for stat_field in fields:
        name = prefix + stat_field.metric
        print(f"  {name.ljust(width)}  {stat_field.kind.ljust(7)}  {stat_field.help}", file=file)


def parse_cli(argv: Optional[Sequence[str]] = None) -> Tuple[CliOptions, List[str]]:
    """
    Parse the command line.

    ``--metrics`` prints the metric list and returns with no targets.

    Returns:
        (options, targets)

    Raises:
        CliError: Nothing to probe; usage has been printed to stdout
        SystemExit: Invalid flag values (argparse)
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    targets = list(args.targets)
    options = CliOptions(**{k: v for k, v in vars(args).items() if k != "targets"})

    if options.metrics:
        print_metrics()
        return options, []

    if not targets and not options.config and not options.k8s:
        parser.print_usage(sys.stdout)
        raise CliError("no targets given")

    return options, targets


async def run_targets(config: ProbeConfig, targets: Sequence[str], sink=None) -> List[ProbeHandle]:
    """
    Probe targets in-process until their counts run out.

    Cancelling the calling task withdraws every target.
    """
    scheduler = ProbeScheduler(sink=sink if sink is not None else make_sink(config))
    registry = TargetRegistry(runner=scheduler.run)
    handles = []
    for target in targets:
        try:
            handles.append(registry.admit(target, config.for_target(target)))
        except AdmissionError as e:
            logger.warning(f"Skipping target: {e}")
    try:
        await registry.wait()
    finally:
        await registry.shutdown(timeout=get_defaults().server.shutdown_timeout)
    return handles


def run_daemon(options: CliOptions, targets: Sequence[str]) -> int:
    import uvicorn

    from main import DaemonSettings, create_app

    defaults = get_defaults()
    host, port = options.listen_address()
    settings = DaemonSettings(
        base=options.probe_config(),
        targets=list(targets),
        config_path=options.config,
        discovery=replace(defaults.discovery, enabled=options.k8s, namespace=options.namespace),
        server=replace(defaults.server, host=host, port=port),
    )
    try:
        app = create_app(settings)
    except ConfigError as e:
        print(f"tcpprobe: {e}", file=sys.stderr)
        return 1

    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        options, targets = parse_cli(argv)
    except CliError:
        return 2

    if options.metrics:
        return 0

    configure_logging(
        level=os.environ.get("TP_LOG_LEVEL", "INFO" if options.daemon else "WARNING"),
        json_output=os.environ.get("TP_LOG_FORMAT", "").lower() == "json",
    )

    try:
        options.listen_address()
    except CliError as e:
        print(f"tcpprobe: {e}", file=sys.stderr)
        return 2

    if options.daemon:
        return run_daemon(options, targets)

    try:
        asyncio.run(run_targets(options.probe_config(), targets))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
