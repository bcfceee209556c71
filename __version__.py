# ============================================================================
# VERSION - TCP PROBE
# ============================================================================
"""
Version information for the TCP probe daemon.

This is the single source of truth for the application version.
Updated manually for each release.
"""
__version__ = "0.4.1"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-10-19"

CODENAME = "TCP Probe"
USER_AGENT = f"tcpprobe/{__version__}"
