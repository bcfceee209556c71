# ============================================================================
# RESULT SINKS
# ============================================================================
# STATUS: Core - Per-round result output
# PURPOSE: Render probe rounds as text, JSON or pretty JSON
# CREATED: 09 SEP 2026
# ============================================================================
"""
Result Sinks

The scheduler hands every finished round to a sink:

    sink.emit(target, stats)

Formats (one record per round, newline terminated):

    text         2026/09/09 10:00:01 target: https://example.com State:1 Rtt:10345 ...
    json         {"State":1,"Rtt":10345}
    json_pretty  {
                  "State": 1,
                  "Rtt": 10345
                 }

The field filter (case-insensitive field names) applies to every format.
"""

import json
import sys
import threading
from datetime import datetime
from typing import IO, Dict, Iterable, Optional

from core.contracts import OutputFormat
from core.models import ProbeConfig, StatsModel


class ResultSink:
    """Receives one StatsModel per completed round."""

    def emit(self, target: str, stats: StatsModel) -> None:
        raise NotImplementedError


class NullSink(ResultSink):
    """Discards rounds (quiet mode)."""

    def emit(self, target: str, stats: StatsModel) -> None:
        return None


class _StreamSink(ResultSink):
    def __init__(
        self,
        stream: Optional[IO[str]] = None,
        filter: Optional[Iterable[str]] = None,
    ):
        self._stream = stream
        self.filter = list(filter or [])
        # Loops for different targets share the stream
        self._lock = threading.Lock()

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def fields(self, stats: StatsModel) -> Dict[str, int]:
        return stats.as_dict(filter=self.filter or None)

    def render(self, target: str, stats: StatsModel) -> str:
        raise NotImplementedError

    def emit(self, target: str, stats: StatsModel) -> None:
        text = self.render(target, stats)
        with self._lock:
            self.stream.write(text + "\n")
            self.stream.flush()


class TextSink(_StreamSink):
    """``<timestamp> target: <addr> Field:Value ...``"""

    def render(self, target: str, stats: StatsModel) -> str:
        timestamp = datetime.now().strftime("%Y/%m/%d %H:%M:%S")
        values = " ".join(f"{name}:{value}" for name, value in self.fields(stats).items())
        return f"{timestamp} target: {target} {values}"


class JSONSink(_StreamSink):
    """Compact JSON, or one-space indented when ``pretty``."""

    def __init__(self, stream=None, filter=None, pretty: bool = False):
        super().__init__(stream=stream, filter=filter)
        self.pretty = pretty

    def render(self, target: str, stats: StatsModel) -> str:
        if self.pretty:
            return json.dumps(self.fields(stats), indent=1)
        return json.dumps(self.fields(stats), separators=(",", ":"))


def make_sink(config: ProbeConfig, stream: Optional[IO[str]] = None) -> ResultSink:
    """Pick the sink for a config's output format and quiet flag."""
    if config.quiet:
        return NullSink()
    if config.output_format == OutputFormat.JSON:
        return JSONSink(stream=stream, filter=config.filter)
    if config.output_format == OutputFormat.JSON_PRETTY:
        return JSONSink(stream=stream, filter=config.filter, pretty=True)
    return TextSink(stream=stream, filter=config.filter)


__all__ = ["ResultSink", "NullSink", "TextSink", "JSONSink", "make_sink"]
