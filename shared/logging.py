"""
Shared logging configuration for the catalog cache.
"""

import sys
import structlog
import logging
import uuid
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from contextvars import ContextVar

# Correlates every log line emitted while one cache operation is running
operation_id_var: ContextVar[Optional[str]] = ContextVar('operation_id', default=None)
cache_key_var: ContextVar[Optional[str]] = ContextVar('cache_key', default=None)


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structured logging for the cache process."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _service_context(service_name),
            add_operation_context,
            add_timestamp,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def _service_context(service_name: str):
    def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Add service name and component to log events."""
        event_dict.setdefault("service", service_name)
        logger_name = event_dict.get("logger", "")
        if "." in logger_name:
            event_dict["component"] = logger_name.rsplit(".", 1)[-1]
        return event_dict

    return add_service_context


def add_operation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the current operation id and cache key to log events."""
    operation_id = operation_id_var.get()
    if operation_id:
        event_dict["operation_id"] = operation_id

    cache_key = cache_key_var.get()
    if cache_key and "cache_key" not in event_dict:
        event_dict["cache_key"] = cache_key

    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add high-precision timestamp to log events."""
    event_dict["timestamp"] = time.time()
    return event_dict


@contextmanager
def operation_context(cache_key: Optional[str] = None, operation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a cache key and a fresh operation id for the duration of the block."""
    if operation_id is None:
        operation_id = uuid.uuid4().hex[:12]
    op_token = operation_id_var.set(operation_id)
    key_token = cache_key_var.set(cache_key) if cache_key else None
    try:
        yield operation_id
    finally:
        operation_id_var.reset(op_token)
        if key_token is not None:
            cache_key_var.reset(key_token)


def current_operation_id() -> Optional[str]:
    return operation_id_var.get()


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
