"""
voucher_kernel.logging_config -- One JSON object per log line.

Every logger lives under the ``voucher_kernel`` namespace.  A line carries
four fixed keys (ts, level, logger, message), then whatever workflow
context is bound for the current thread or task (correlation id, acting
user and role, voucher, workflow action), then the ``extra`` fields of
the call.  Kernel exceptions contribute their ``code`` and public
attributes as ``exc_*`` keys so a refused review can be searched by the
voucher and status it was refused on.

Usage::

    logger = get_logger("services.review")
    with LogContext.bind_actor(actor, voucher_id=voucher.id):
        logger.info("bac_review_recorded", extra={"approvals": 2})
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
    "installed_handlers",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

ROOT_LOGGER = "voucher_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "actor_role",
    "voucher_id",
    "action",
)

_context: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"voucher_log_{name}", default=None) for name in CONTEXT_FIELDS
}


def _as_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class LogContext:
    """Workflow fields attached to every line logged in the current context."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Set fields for the rest of the context.  ``None`` leaves a field alone."""
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
        for name, value in fields.items():
            if value is not None:
                _context[name].set(_as_text(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: var.get()
            for name, var in _context.items()
            if var.get() is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[type[LogContext]]:
        """Bind fields for the duration of a ``with`` block.

        Unknown names and ``None`` values are skipped, so a caller can
        forward a partial mapping without filtering it first.
        """
        tokens = [
            (_context[name], _context[name].set(_as_text(value)))
            for name, value in fields.items()
            if name in _context and value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    @staticmethod
    def bind_actor(actor: Any, **fields: Any):
        """``bind`` with ``actor_id`` and ``actor_role`` taken from an ActorContext."""
        return LogContext.bind(
            actor_id=getattr(actor, "user_id", None),
            actor_role=getattr(actor, "role", None),
            **fields,
        )


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(v) for v in value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RESERVED:
                line.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            line.update(_exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)

        return json.dumps(line, default=_jsonable)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


# ---------------------------------------------------------------------------
# Handler installation
# ---------------------------------------------------------------------------

_install_lock = threading.Lock()
_HANDLER_MARK = "_voucher_structured_handler"


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Install the JSON handler on the ``voucher_kernel`` logger.

    Only the first call installs anything; later calls return without
    touching the level or handlers, so library code may call this
    freely.
    """
    root = logging.getLogger(ROOT_LOGGER)
    with _install_lock:
        if installed_handlers():
            return
        installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        setattr(installed, _HANDLER_MARK, True)
        root.setLevel(level.upper() if isinstance(level, str) else level)
        root.propagate = False
        root.addHandler(installed)


def installed_handlers() -> list[logging.Handler]:
    """Handlers installed by ``configure_logging`` (not ones added by test tooling)."""
    return [h for h in logging.getLogger(ROOT_LOGGER).handlers if getattr(h, _HANDLER_MARK, False)]


def reset_logging() -> None:
    """Remove the handler ``configure_logging`` installed.  Tests only."""
    root = logging.getLogger(ROOT_LOGGER)
    with _install_lock:
        for h in installed_handlers():
            root.removeHandler(h)
        root.setLevel(logging.WARNING)
