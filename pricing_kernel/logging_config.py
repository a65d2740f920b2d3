"""
pricing_kernel.logging_config -- JSON log lines for order editing.

Every record under the ``pricing_kernel`` logger becomes one JSON object:
``ts``, ``level``, ``logger``, ``message`` (a snake_case event name such as
``rate_resolved`` or ``override_approved``), the fields of the edit being
processed (``order_id``, ``material_id``, ``actor_id``) and any ``extra``
passed at the call site.

When a ``PricingEngineError`` is logged with ``exc_info`` its ``code`` and
structured attributes are lifted into ``exc_code`` and ``exc_fields`` so a
log query can filter on them without parsing the message.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, TextIO
from uuid import UUID

from pricing_kernel.exceptions import PricingEngineError

_ROOT = "pricing_kernel"

CONTEXT_FIELDS = ("order_id", "material_id", "actor_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("pricing_log_context", default=_EMPTY)


class LogContext:
    """Fields of the edit in progress, copied onto every log record.

    Backed by a single ``ContextVar`` so nested ``bind()`` blocks, threads
    and asyncio tasks each see their own values.
    """

    @staticmethod
    def _merged(fields: dict[str, str | None]) -> Mapping[str, str]:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields for the rest of the current context; None is ignored."""
        _context.set(cls._merged(fields))

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block."""
        token = _context.set(cls._merged(fields))
        try:
            yield
        finally:
            _context.reset(token)

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (frozenset, set)):
        return sorted(value, key=str)
    if isinstance(value, UUID):
        return str(value)
    return str(value)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Render a log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        if isinstance(exc, PricingEngineError):
            fields["exc_code"] = exc.code
            fields["exc_fields"] = {
                k: v for k, v in vars(exc).items() if not k.startswith("_")
            }
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` under the ``pricing_kernel`` hierarchy."""
    return logging.getLogger(f"{_ROOT}.{name}")


def _installed_handler(root: logging.Logger) -> logging.Handler | None:
    for handler in root.handlers:
        if getattr(handler, "_pricing_structured", False):
            return handler
    return None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``pricing_kernel`` logger.

    A second call while a handler is installed changes nothing.
    """
    root = logging.getLogger(_ROOT)
    if _installed_handler(root) is not None:
        return
    handler = handler or logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    handler._pricing_structured = True
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def reset_logging() -> None:
    """Remove the JSON handler and restore defaults. Used by tests."""
    root = logging.getLogger(_ROOT)
    handler = _installed_handler(root)
    if handler is not None:
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)
    root.propagate = True
