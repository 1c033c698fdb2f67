"""Logging and HTTP tracing utilities."""

from utils.http_trace import dump_response
from utils.logging_helpers import error_messages, log_error_section, log_scan_outcome

__all__ = [
    "dump_response",
    "error_messages",
    "log_error_section",
    "log_scan_outcome",
]
