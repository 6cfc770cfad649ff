"""Utility modules."""

from graph_tutorial.utils.logger import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    redact_secrets,
    unbind_context,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "redact_secrets",
    "bind_context",
    "unbind_context",
    "clear_context",
]
