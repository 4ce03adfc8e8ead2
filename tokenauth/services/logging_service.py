"""Structured logging configuration with credential redaction."""

import logging
import re
import sys
from typing import Any, Dict

import structlog

REDACTED = "REDACTED"

# Any key containing one of these is redacted, whatever its value
SENSITIVE_KEYS = (
    "authorization",
    "secret",
    "password",
    "api_key",
    "access_token",
    "refresh_token",
    "raw_token",
)

# Values that look like credentials even under an innocent key
_BEARER_VALUE = re.compile(r"^\s*bearer\s+\S+", re.IGNORECASE)
_JWT_VALUE = re.compile(r"^[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]*$")


def _is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)


def _looks_like_credential(value: Any) -> bool:
    return isinstance(value, str) and bool(
        _BEARER_VALUE.match(value) or _JWT_VALUE.match(value)
    )


def redact_sensitive(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Redact passwords, secrets and raw tokens from a log entry.

    Keys are matched case-insensitively against ``SENSITIVE_KEYS``. Values
    shaped like a bearer header or a compact JWT are redacted under any key.
    The ``event`` name itself is never touched.
    """
    for key, value in list(event_dict.items()):
        if key == "event":
            continue
        if _is_sensitive_key(key) or _looks_like_credential(value):
            event_dict[key] = REDACTED

    return event_dict


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON lines on stdout.

    Context bound with ``structlog.contextvars`` (the request correlation ID)
    is merged into every entry.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, bound to ``logger_name`` when given."""
    logger = structlog.get_logger()
    return logger.bind(logger_name=name) if name else logger
