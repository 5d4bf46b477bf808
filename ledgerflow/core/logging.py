"""
Structured logging setup.

Configures structlog on top of the standard library logger, redacts
credentials from every event and provides correlation id binding for
ingestion and sync runs.
"""
import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import structlog

# Keys whose values must never reach a log sink
SENSITIVE_FIELDS = {
    "password", "credentials", "token", "access_token", "public_token",
    "link_token", "authorization", "api_key", "secret", "client_secret",
}


def redact_sensitive_data(data: Dict[str, Any], depth: int = 0) -> Dict[str, Any]:
    """
    Recursively redact sensitive fields from a dictionary.

    Args:
        data: Dictionary to redact
        depth: Current recursion depth (to prevent infinite loops)

    Returns:
        Dictionary with sensitive values replaced with "[REDACTED]"
    """
    if depth > 5 or not isinstance(data, dict):
        return data

    redacted = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
            redacted[key] = "[REDACTED]"
        elif isinstance(value, dict):
            redacted[key] = redact_sensitive_data(value, depth + 1)
        elif isinstance(value, list):
            redacted[key] = [
                redact_sensitive_data(item, depth + 1) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            redacted[key] = value

    return redacted


def redact_sensitive_processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor wrapping redact_sensitive_data."""
    return redact_sensitive_data(event_dict)


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Minimum log level name.
        json_logs: Render JSON lines when True, console output otherwise.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            redact_sensitive_processor,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def ingestion_context(correlation_id: Optional[str] = None, **values: Any) -> Iterator[str]:
    """
    Bind a correlation id (and extra values) for the duration of a run.

    Previously bound values are restored on exit.

    Yields:
        The correlation id in effect.
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    with structlog.contextvars.bound_contextvars(correlation_id=correlation_id, **values):
        yield correlation_id
