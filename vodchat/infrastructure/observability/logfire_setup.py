"""Logging and Logfire configuration for vodchat.

This module handles the initialization of standard library logging and of
Pydantic Logfire, which records spans around session starts, offset changes
and chat log fetches.
"""

import logging
from typing import Optional, Dict, Any

import logfire
from logfire import LogfireSpan

from vodchat.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings.

    Args:
        settings: Application settings, defaults to the cached settings
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("vodchat").setLevel(level)


def configure_logfire(
    settings: Optional[Settings] = None,
    additional_config: Optional[Dict[str, Any]] = None,
) -> None:
    """Configure and initialize Logfire with application settings.

    Args:
        settings: Application settings, defaults to the cached settings
        additional_config: Additional configuration to merge with defaults
    """
    settings = settings or get_settings()

    if not settings.logfire_enabled:
        logger.info("Logfire is disabled in configuration")
        return

    config: Dict[str, Any] = {
        "service_name": settings.logfire_service_name,
        "service_version": settings.app_version,
        "environment": settings.environment,
        "console": None if settings.logfire_console_enabled else False,
        "send_to_logfire": "if-token-present",
    }

    if settings.logfire_api_key:
        config["token"] = settings.logfire_api_key.get_secret_value()

    if additional_config:
        config.update(additional_config)

    try:
        logfire.configure(**config)
        logger.info(f"Logfire configured successfully for {settings.logfire_service_name}")

        logfire.info(
            "vodchat started",
            environment=settings.environment,
            version=settings.app_version,
        )

    except Exception as e:
        logger.error(f"Failed to configure Logfire: {e}")
        # Observability must never take the replay down outside production
        if settings.is_development:
            logger.warning("Continuing without Logfire in development mode")
        else:
            raise


def create_span(name: str, **attributes: Any) -> LogfireSpan:
    """Create a new Logfire span with attributes.

    Args:
        name: Span name
        **attributes: Additional attributes for the span

    Returns:
        LogfireSpan: The created span
    """
    return logfire.span(name, **attributes)


def log_event(event_name: str, event_type: str, **attributes: Any) -> None:
    """Log a replay event to Logfire.

    Args:
        event_name: Name of the event
        event_type: Type of event (e.g., 'session', 'offset', 'source')
        **attributes: Event attributes
    """
    logfire.info(
        f"event.{event_type}.{event_name}",
        event_type=event_type,
        event_name=event_name,
        **attributes,
    )
