# ============================================================================
# OUTPUT MODULE
# ============================================================================
# STATUS: Core - Result rendering
# PURPOSE: Result sinks for completed probe rounds
# CREATED: 09 SEP 2026
# ============================================================================

from output.formatter import JSONSink, NullSink, ResultSink, TextSink, make_sink

__all__ = ["ResultSink", "NullSink", "TextSink", "JSONSink", "make_sink"]
