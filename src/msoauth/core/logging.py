"""Structured logging configuration for msoauth.

Uses structlog on top of the standard library. Logs always go to stderr:
stdout is reserved for the access token so that other tools can capture it.

Usage:
    from msoauth.core.logging import bind_profile, get_logger

    logger = get_logger(__name__)

    bind_profile("work")
    logger.info("token_refreshed", expires_at=1700000000)
"""

import logging
import sys
from typing import Any, TextIO

import structlog


def bind_profile(profile: str | None) -> None:
    """Attach the active profile name to every subsequent log entry.

    Args:
        profile: Profile name, or None to remove it from the context
    """
    if profile is None:
        structlog.contextvars.unbind_contextvars("profile")
    else:
        structlog.contextvars.bind_contextvars(profile=profile)


def redact(value: str | None, keep: int = 8) -> str | None:
    """Shorten an identifier for logging (e.g. client IDs)."""
    if not value:
        return value
    if len(value) <= keep:
        return value
    return value[:keep] + "..."


def drop_secrets(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that masks token-bearing keys."""
    for key in ("access_token", "refresh_token", "client_secret", "device_code"):
        if key in event_dict:
            event_dict[key] = "***"
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output JSON; if False, output human-readable format
        stream: Destination stream (default: sys.stderr)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        drop_secrets,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        A structlog BoundLogger instance
    """
    return structlog.get_logger(name)
