# ============================================================================
# DURATION PARSING
# ============================================================================
# STATUS: Core - Interval and timeout parsing
# PURPOSE: Parse "10s" / "1m30s" / "500ms" style durations into seconds
# CREATED: 02 SEP 2026
# ============================================================================
"""
Duration Parsing

Probe intervals arrive as short duration strings, from the config file
(``interval: 10s``) and from workload annotations (``tcpprobe/interval: 6s``).

Accepted forms:
    "10s", "1.5s", "500ms", "1m30s", "2h", "250us", "90"

A bare number is seconds. A leading sign is rejected, so is an empty string.
"""

import re
from typing import Optional

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """
    Parse a duration string into seconds.

    Raises:
        ValueError: If the string is not a valid duration
    """
    if value is None:
        raise ValueError("duration is required")

    text = str(value).strip()
    if not text:
        raise ValueError("empty duration")

    if re.fullmatch(r"\d+(?:\.\d*)?|\.\d+", text):
        return float(text)

    total = 0.0
    pos = 0
    for match in _PART.finditer(text):
        if match.start() != pos:
            _invalid(value)
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        _invalid(value)

    return total


def parse_duration_or(value: Optional[str], default: float) -> float:
    """Parse a duration, falling back to ``default`` when absent or invalid."""
    if value is None or not str(value).strip():
        return default
    try:
        seconds = parse_duration(value)
    except ValueError:
        return default
    return seconds if seconds > 0 else default


def format_duration(seconds: float) -> str:
    """Render seconds back into the short form used in logs."""
    if seconds >= 1 and float(seconds).is_integer():
        return f"{int(seconds)}s"
    if seconds >= 1:
        return f"{seconds:g}s"
    return f"{seconds * 1000:g}ms"


def _invalid(value) -> float:
    raise ValueError(f"invalid duration: {value!r}")
