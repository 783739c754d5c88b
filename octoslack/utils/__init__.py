"""
Utility modules for the OctoSlack relay.
"""

from octoslack.utils.logging import (
    ContextLoggerAdapter,
    JSONFormatter,
    get_logger,
    setup_logging,
    log_pr_event,
    log_api_call,
    log_error_with_context,
)

__all__ = [
    "ContextLoggerAdapter",
    "JSONFormatter",
    "get_logger",
    "setup_logging",
    "log_pr_event",
    "log_api_call",
    "log_error_with_context",
]
