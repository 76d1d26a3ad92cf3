"""Logging configuration for the workflow designer.

Every record passes through ``DesignerContextFilter``, which attaches the
fields bound for the current request (request id, HTTP method and path) and
the fields passed to ``log_with_context`` for that one record (node id, edge
id, simulation backend, ...). The JSON formatter lifts the designer fields to
the top level so log pipelines can index them directly.
"""

import logging
import sys
import json
import traceback
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict, Any
from pathlib import Path


SERVICE_NAME = "hr-workflow-designer"

# Fields promoted to the top level of a JSON log line
DESIGNER_FIELDS = (
    "request_id",
    "node_id",
    "edge_id",
    "node_kind",
    "simulation_backend",
)

_request_context: ContextVar[Dict[str, Any]] = ContextVar("designer_log_context", default={})


class StructuredFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def __init__(self, service: str = SERVICE_NAME):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        fields = dict(getattr(record, "extra_fields", {}))

        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in DESIGNER_FIELDS:
            if key in fields:
                log_entry[key] = fields.pop(key)
        if fields:
            log_entry["context"] = fields

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_entry, default=str)


class DesignerContextFilter(logging.Filter):
    """Merges the request-scoped context into each record.

    Fields given for a single record win over the request context. The
    request id is also exposed as ``record.request_id`` so plain text
    formats can reference ``%(request_id)s``.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record_fields = getattr(record, "extra_fields", {})
        record.extra_fields = {**_request_context.get(), **record_fields}
        record.request_id = record.extra_fields.get("request_id", "-")
        return True


_context_filter = DesignerContextFilter()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    structured: bool = False,
    max_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure logging for the workflow designer.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        log_format: Custom log format string
        structured: Whether to use structured JSON logging
        max_size: Maximum log file size in bytes before rotation
        backup_count: Number of backup files to keep

    Returns:
        Root logger instance
    """
    # Create formatter
    if structured:
        formatter = StructuredFormatter()
    else:
        if log_format is None:
            log_format = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s"
        formatter = logging.Formatter(fmt=log_format, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Replace whatever an earlier call installed
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(log_file, maxBytes=max_size, backupCount=backup_count))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(_context_filter)
        root_logger.addHandler(handler)

    # Quiet third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return logging.getLogger(name)


def set_logging_context(**fields) -> Token:
    """Bind fields to every record logged in the current request.

    Returns a token for ``clear_logging_context``.
    """
    return _request_context.set({**_request_context.get(), **fields})


def clear_logging_context(token: Optional[Token] = None):
    if token is not None:
        _request_context.reset(token)
    else:
        _request_context.set({})


def get_logging_context() -> Dict[str, Any]:
    return dict(_request_context.get())


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log a message with fields that apply to this record only."""
    logger.log(level, message, extra={"extra_fields": context})
