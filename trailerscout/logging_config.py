"""
Structured logging configuration for trailerscout.

This module sets up structured logging using structlog with:
- JSON formatting for production
- Console formatting for development
- Log scrubbing for provider credentials (API keys, bearer tokens)
- Configurable log levels via environment variables
"""

import os
import logging
import structlog
from typing import Any, Dict, Optional
import re

# Log level configuration via environment variable
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Sensitive data patterns for scrubbing
SENSITIVE_PATTERNS = {
    "api_key": re.compile(r'(api[_\-]?key["\s:=]+)([a-zA-Z0-9_\-]{8,})', re.IGNORECASE),
    "kinocheck_key": re.compile(r'(kinocheck[_\-]?api[_\-]?key["\s:=]+)([a-zA-Z0-9_\-]{8,})', re.IGNORECASE),
    "omdb_key": re.compile(r'(omdb[_\-]?api[_\-]?key["\s:=]+)([a-zA-Z0-9_\-]{8,})', re.IGNORECASE),
    "tmdb_key": re.compile(r'(tmdb[_\-]?api[_\-]?key["\s:=]+)([a-zA-Z0-9_\-]{8,})', re.IGNORECASE),
    "authorization": re.compile(r'(authorization["\s:=]+)([a-zA-Z0-9_\-]{20,})', re.IGNORECASE),
}

# Sensitive field names that should be fully redacted
SENSITIVE_FIELD_NAMES = {
    "api_key", "apikey", "api-key", "x-api-key",
    "kinocheck_api_key", "kinocheck-api-key", "kinocheck_key",
    "omdb_api_key", "omdb-api-key", "omdb_key",
    "tmdb_api_key", "tmdb-api-key", "tmdb_key",
    "secret", "token", "auth", "authorization",
    "bearer", "access_token",
}

# Fields that should never be scrubbed
SAFE_FIELD_NAMES = {
    "event", "timestamp", "level", "service", "environment",
    "duration_ms", "status_code", "cache_key", "key", "title",
}


def scrub_sensitive_data(value: Any, parent_key: str = None) -> Any:
    """
    Recursively scrub sensitive data from log entries.

    Args:
        value: Value to scrub (can be dict, list, str, or other)
        parent_key: Parent key name for field-level redaction

    Returns:
        Scrubbed value with sensitive data replaced with [REDACTED]
    """
    if isinstance(value, dict):
        return {k: scrub_sensitive_data(v, k) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [scrub_sensitive_data(item, parent_key) for item in value]

    if parent_key and parent_key.lower() in SAFE_FIELD_NAMES:
        return value
    if parent_key and parent_key.lower() in SENSITIVE_FIELD_NAMES:
        return "[REDACTED]"
    if not isinstance(value, str):
        return value

    scrubbed = re.sub(r'Bearer\s+[A-Za-z0-9_\-\.]+', 'Bearer [REDACTED]', value, flags=re.IGNORECASE)
    for pattern in SENSITIVE_PATTERNS.values():
        scrubbed = pattern.sub(r'\1[REDACTED]', scrubbed)

    # Query-string credentials, e.g. ?api_key=... in logged URLs
    scrubbed = re.sub(r'((?:api_?key|apikey)=)[^&\s]+', r'\1[REDACTED]', scrubbed, flags=re.IGNORECASE)

    return scrubbed


def add_app_context(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """
    Add application context to log entries.

    Args:
        logger: Logger instance
        method_name: Logging method name
        event_dict: Event dictionary to enhance

    Returns:
        Enhanced event dictionary
    """
    event_dict["service"] = "trailerscout"
    event_dict["environment"] = os.getenv("TRAILERSCOUT_ENV", "local")
    return event_dict


def add_scrubbing(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """Processor to scrub sensitive data from log entries."""
    return scrub_sensitive_data(event_dict)


def configure_structlog():
    """
    Configure structlog for the application.

    Sets up processors, formatters, and output based on environment.
    """
    is_dev = os.getenv("DEBUG") == "1"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
        add_scrubbing,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a configured structlog logger.

    Args:
        name: Optional logger name (defaults to calling module)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_event(logger: Any, level: str, event: str, **fields: Any) -> None:
    """
    Emit a structured event without letting the log sink fail the caller.

    Used on the resolution path, where a closed stdout or a broken
    processor must not turn a found trailer into a failure.
    """
    try:
        getattr(logger, level)(event, **fields)
    except Exception:
        pass


# Configure logging on module import
configure_structlog()
