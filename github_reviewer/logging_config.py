"""
Structured Logging Configuration

This module sets up structured logging using structlog.
Logs are formatted as JSON in production for easy parsing by log aggregators.

Components never reach for a module-level singleton: each one receives a
logger at construction and falls back to ``get_logger(__name__)``.
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.types import EventDict, WrappedLogger

from github_reviewer import __version__
from github_reviewer.config import Settings, get_settings

SENSITIVE_KEYS = {
    "token", "access_token", "api_key", "apikey", "secret",
    "password", "private_key", "authorization", "auth",
    "credential", "jwt", "bearer", "signature"
}

SENSITIVE_SUFFIXES = ("_token", "_key", "_secret", "_password")

SENSITIVE_PREFIXES = ("sk-", "sk-ant-", "ghp_", "ghs_", "github_pat_", "AIza")

_handler: Optional[logging.Handler] = None


def filter_sensitive_data(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Processor to filter out sensitive data from logs.

    Redacts values under secret-looking keys and strings that look like
    provider or GitHub credentials. Token counts such as ``input_tokens``
    are kept.
    """

    def redact_dict(d: Dict[str, Any]) -> Dict[str, Any]:
        result = {}
        for key, value in d.items():
            key_lower = str(key).lower()
            if key_lower in SENSITIVE_KEYS or key_lower.endswith(SENSITIVE_SUFFIXES):
                result[key] = "[REDACTED]"
            elif isinstance(value, dict):
                result[key] = redact_dict(value)
            elif isinstance(value, str) and len(value) > 20 and value.startswith(SENSITIVE_PREFIXES):
                result[key] = "[REDACTED]"
            else:
                result[key] = value
        return result

    return redact_dict(event_dict)


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to every log entry."""
    event_dict["app"] = "github-reviewer"
    event_dict["version"] = __version__
    return event_dict


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging for the application.

    Safe to call more than once: the stdout handler is replaced, not stacked.
    """
    global _handler

    settings = settings or get_settings()

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_app_context,
        filter_sensitive_data,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if settings.log_json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    if _handler is not None:
        root_logger.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(formatter)
    root_logger.addHandler(_handler)
    root_logger.setLevel(getattr(logging, settings.log_level))

    # Suppress noisy loggers
    for noisy in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance with the given name.

    Usage:
        logger = get_logger(__name__)
        logger.info("Processing PR", pr_number=123, repo="owner/repo")
    """
    return structlog.get_logger(name)


def log_api_call(
    logger: structlog.stdlib.BoundLogger,
    service: str,
    method: str,
    duration_ms: float,
    status: str,
    **metadata: Any
) -> None:
    """
    Emit the standard entry for an outbound API call.

    Args:
        logger: Logger owned by the calling component
        service: Calling service name, e.g. ``OpenAIProvider``
        method: Operation name, e.g. ``request-gpt-4o-mini``
        duration_ms: Wall-clock latency in milliseconds
        status: ``SUCCESS`` or ``ERROR``
        **metadata: Extra structured fields
    """
    logger.info(
        "API call",
        service=service,
        method=method,
        duration_ms=round(duration_ms, 2),
        status=status,
        **metadata
    )
