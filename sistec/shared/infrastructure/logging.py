"""
Logging
=======

Everything the service logs goes to stdout as one JSON object per line.
Records get a UTC timestamp, the environment name and, inside a request,
its correlation ID. Credential-looking fields never reach the output.

    logger = get_logger(__name__)
    logger.info("Ticket approved", extra={"ticket_id": 42})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

REDACTED = "***REDACTED***"
_SENSITIVE_KEYS = ("password", "senha", "api_key", "authorization")
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.ERROR,
    "sqlalchemy.engine": logging.WARNING,
    "apscheduler": logging.WARNING,
    "httpx": logging.WARNING,
}

_environment = "unknown"


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    if any(marker in lowered for marker in _SENSITIVE_KEYS):
        return True
    # access_token is a secret, prompt_tokens is a count
    return "token" in lowered and "tokens" not in lowered


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with timestamp, environment, correlation ID and redaction."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["environment"] = getattr(record, "environment", _environment)

        correlation_id = getattr(record, "correlation_id", message_dict.get("correlation_id"))
        if correlation_id is not None:
            log_record["correlation_id"] = correlation_id

        for key, value in log_record.items():
            if isinstance(value, str) and _is_sensitive(key):
                log_record[key] = REDACTED


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """Route the root logger to a single JSON stdout handler."""
    global _environment
    _environment = environment

    numeric_level = getattr(logging, level.upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    root.addHandler(handler)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class _ContextAdapter(logging.LoggerAdapter):
    """Merges fixed context into each call's ``extra`` instead of replacing it."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_context_logger(name: str, correlation_id: str | None = None) -> logging.Logger:
    """
    Logger that stamps ``correlation_id`` on every record.

    Without an ID this is just ``get_logger(name)``.
    """
    logger = get_logger(name)
    if correlation_id:
        logger = _ContextAdapter(logger, {"correlation_id": correlation_id})
    return logger


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any):
    """
    Log how long the wrapped block took, whether it raised or not.

        with log_latency(logger, "triage_classification", ticket_id=7):
            verdict = await classifier.classify(context)
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.info(
            f"{operation} finished",
            extra={
                "operation": operation,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                **extra_context,
            },
        )
