"""Observability infrastructure for vodchat.

This module provides logging setup and Pydantic Logfire spans and events.
"""

from .logfire_setup import configure_logfire, configure_logging, create_span, log_event

__all__ = [
    "configure_logfire",
    "configure_logging",
    "create_span",
    "log_event",
]
