"""
Structured Logging Configuration with structlog

Outputs JSON logs that are searchable in ELK, Loki or CloudWatch.
Every log includes: request_id, version, action, timestamp, and other context.
"""

import sys
import logging
import structlog
from typing import Optional, Any, Dict
from datetime import datetime, timezone
from contextvars import ContextVar

# Context variables for request-scoped logging
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
action_var: ContextVar[Optional[str]] = ContextVar("action", default=None)

# Application version
APP_VERSION = "1.0.0"


def add_app_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add application context to every log entry."""
    event_dict["version"] = APP_VERSION

    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    # Explicit action= keyword wins over the bound one
    action = action_var.get()
    if action and "action" not in event_dict:
        event_dict["action"] = action

    return event_dict


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601 with a Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def add_timestamp(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add ISO format timestamp."""
    event_dict["timestamp"] = utc_timestamp()
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = True
):
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON; if False, output colored console logs
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Silence noisy loggers
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            add_timestamp,
            add_app_context,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.UnicodeDecoder(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class LogContext:
    """
    Context manager for setting logging context.

    Usage:
        with LogContext(request_id="abc123", action="crop"):
            logger.info("action_started")
    """

    def __init__(self, request_id: Optional[str] = None, action: Optional[str] = None):
        self.request_id = request_id
        self.action = action
        self._request_id_token = None
        self._action_token = None

    def __enter__(self):
        if self.request_id:
            self._request_id_token = request_id_var.set(self.request_id)
        if self.action:
            self._action_token = action_var.set(self.action)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._action_token:
            action_var.reset(self._action_token)
        if self._request_id_token:
            request_id_var.reset(self._request_id_token)
        return False


# Example log output structure:
# {
#   "timestamp": "2026-05-20T10:00:00Z",
#   "level": "info",
#   "event": "action_completed",
#   "action": "resize",
#   "index": 1,
#   "request_id": "550e8400e29b41d4a716446655440000",
#   "version": "1.0.0",
#   "duration_ms": 12
# }
