"""
Structured logging for Tubely.

Features:
- JSONFormatter: one JSON object per line, with ``extra`` fields nested
- StandardFormatter: readable console output for development
- setup_logging: root, uvicorn and third-party logger configuration
- request_id_var / RequestContextFilter: stamps the current request id on
  every record emitted while a request is being served
- add_log_context: LoggerAdapter carrying per-upload fields such as
  ``video_id`` and ``user_id``

Usage:
    from tubely.utils.logger import add_log_context, setup_logging

    setup_logging(log_level="INFO", json_logs=True)

    ctx_logger = add_log_context(logger, video_id=video_id, user_id=user_id)
    ctx_logger.info("Remux complete")
"""

import json
import logging
import sys
import traceback

from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any


# =============================================================================
# Constants
# =============================================================================

LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

THIRD_PARTY_LOGGERS: tuple[str, ...] = (
    "motor",
    "pymongo",
    "boto3",
    "botocore",
    "s3transfer",
    "urllib3",
    "httpx",
    "httpcore",
    "multipart",
    "asyncio",
)

UVICORN_LOGGERS: tuple[str, ...] = ("uvicorn", "uvicorn.access", "uvicorn.error")

# Set by the request middleware, read by RequestContextFilter
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


# =============================================================================
# Formatters
# =============================================================================


class LogJSONEncoder(json.JSONEncoder):
    """Falls back to ``str`` for anything the stock encoder rejects."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, bytes):
            return obj.decode("utf-8", errors="replace")
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        return str(obj)


class JSONFormatter(logging.Formatter):
    """
    Formats records as compact JSON.

    Example output:
        {"timestamp":"2026-01-15T10:30:45.123456+00:00","level":"INFO",
         "logger":"tubely.services.video_upload_service","message":"Upload complete",
         "request_id":"9f1c...","extra":{"video_id":"5b0c...","orientation":"portrait"}}
    """

    # Standard LogRecord attributes; everything else came in through ``extra``
    RESERVED_ATTRS: frozenset[str] = frozenset(
        {
            "args",
            "asctime",
            "created",
            "exc_info",
            "exc_text",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "message",
            "module",
            "msecs",
            "msg",
            "name",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "thread",
            "threadName",
            "taskName",
            "request_id",
        }
    )

    def __init__(self, include_source_location: bool = False) -> None:
        super().__init__()
        self.include_source_location = include_source_location

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="microseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            log_entry["request_id"] = request_id

        if self.include_source_location:
            log_entry["source"] = {
                "filename": record.filename,
                "lineno": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value) if exc_value else "",
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in self.RESERVED_ATTRS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, cls=LogJSONEncoder, ensure_ascii=False, separators=(",", ":"))


class StandardFormatter(logging.Formatter):
    """Plain text: ``[TIMESTAMP] LEVEL logger [request_id]: message``."""

    DEFAULT_FORMAT: str = "[%(asctime)s] %(levelname)-8s %(name)s [%(request_id)s]: %(message)s"
    DEFAULT_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt or self.DEFAULT_FORMAT, datefmt=datefmt or self.DEFAULT_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return super().format(record)


class RequestContextFilter(logging.Filter):
    """Copies the active request id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get() or "-"
        return True


# =============================================================================
# Application Logging Setup
# =============================================================================


def _build_handler(stream: Any, formatter: logging.Formatter, level: int) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    third_party_level: str = "WARNING",
) -> None:
    """
    Configure application-wide logging once at startup.

    Replaces any handlers already on the root and uvicorn loggers so repeated
    calls (tests, reloads) do not duplicate output.

    Args:
        log_level: Application log level name
        json_logs: JSON lines if True, plain text otherwise
        third_party_level: Level applied to noisy library loggers
    """
    level = LOG_LEVEL_MAP.get(log_level.upper(), logging.INFO)

    formatter: logging.Formatter
    if json_logs:
        formatter = JSONFormatter(include_source_location=level <= logging.DEBUG)
    else:
        formatter = StandardFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler(sys.stdout, formatter, level))

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False
        uvicorn_logger.handlers.clear()
        stream = sys.stderr if name == "uvicorn.error" else sys.stdout
        uvicorn_logger.addHandler(_build_handler(stream, formatter, level))

    third_party_log_level = LOG_LEVEL_MAP.get(third_party_level.upper(), logging.WARNING)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_log_level)

    logging.getLogger(__name__).info("Logging configured: level=%s json=%s", log_level.upper(), json_logs)


# =============================================================================
# Context Enrichment
# =============================================================================


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its context into per-call ``extra``."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


def add_log_context(logger: logging.Logger, **context: Any) -> ContextLoggerAdapter:
    """
    Wrap ``logger`` so every message carries ``context``.

    Example:
        ctx_logger = add_log_context(logger, video_id="5b0c...", user_id="user123")
        ctx_logger.info("Staged upload", extra={"size": 52428800})
    """
    return ContextLoggerAdapter(logger, context)


__all__ = [
    "LOG_LEVEL_MAP",
    "ContextLoggerAdapter",
    "JSONFormatter",
    "RequestContextFilter",
    "StandardFormatter",
    "add_log_context",
    "request_id_var",
    "setup_logging",
]
