"""
BlankArt Observability

Structured logging for issuance monitoring. Every log line carries the
component layer, the operation name, an optional error code and a
correlation id so that one redemption can be followed across the codec,
the ledgers and the engine.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    Application Code                      │
    │  logger.info("minted", token_id=7)                       │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                    BlankArtLogger                        │
    │  correlation ids, layer tagging, structured context      │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │            StructuredHandler (JSON) / text handler       │
    └─────────────────────────────────────────────────────────┘

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


class LogLevel(Enum):
    """Log severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Layer(Enum):
    """Components, for log categorization."""
    CODEC = "codec"
    CLAIMS = "claims"
    SUPPLY = "supply"
    ESCROW = "escrow"
    METADATA = "metadata"
    ENGINE = "engine"
    CONFIG = "config"
    CLI = "cli"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs structured JSON."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                correlation_id=correlation_id_var.get(),
                layer=getattr(record, "layer", ""),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            self.stream.write(event.to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


def _make_handler(log_format: str) -> logging.Handler:
    if log_format == "text":
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        ))
        return handler
    return StructuredHandler()


class BlankArtLogger:
    """
    Structured logger for BlankArt components.

    Includes the correlation id and layer in every record. Handlers are
    attached to the shared ``blankart`` parent logger once, so records
    also propagate to pytest's caplog and to any host application.
    """

    def __init__(self, name: str, layer: Layer, level: Optional[LogLevel] = None):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"blankart.{layer.value}.{name}")
        if level is not None:
            self._logger.setLevel(getattr(logging, level.value.upper()))

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def rejected(self, operation: str, error: Exception, **context: Any) -> None:
        """Log a rejected operation with its stable error code."""
        self._log(
            logging.WARNING,
            f"Operation {operation} rejected: {error}",
            operation=operation,
            error_code=getattr(error, "code", type(error).__name__),
            **context,
        )

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.DEBUG if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


def configure_logging(level: str = "info", log_format: str = "json") -> logging.Logger:
    """Attach a single handler to the ``blankart`` root logger."""
    root = logging.getLogger("blankart")
    root.setLevel(getattr(logging, level.upper()))
    for handler in list(root.handlers):
        if getattr(handler, "_blankart", False):
            root.removeHandler(handler)
    handler = _make_handler(log_format)
    handler._blankart = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if unset."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, layer: Layer) -> BlankArtLogger:
    """Get a logger for a BlankArt component."""
    return BlankArtLogger(name, layer)


T = TypeVar("T")


def timed_operation(
    logger: BlankArtLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator
