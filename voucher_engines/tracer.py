"""
voucher_engines.tracer -- ``@traced_engine`` for the pure workflow engines.

Each call of a decorated engine logs one DEBUG line, ``VOUCHER_ENGINE_TRACE``,
naming the engine and its version, the voucher the decision was made for,
a fingerprint of the inputs and, when the engine supplies a summariser,
a short description of the decision.  Two calls with equal inputs get
equal fingerprints, so a trace can be matched against a later replay of
the same snapshot.

The tracer only logs.  It never touches inputs or results.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from voucher_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_MESSAGE = "VOUCHER_ENGINE_TRACE"


def canonical_form(value: Any) -> str:
    """Order-independent text form used for fingerprints."""
    if value is None:
        return "~"
    if isinstance(value, Enum):
        return str(value.value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        body = ",".join(
            f"{f.name}={canonical_form(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}({body})"
    if isinstance(value, Mapping):
        return "{" + ",".join(
            sorted(f"{canonical_form(k)}:{canonical_form(v)}" for k, v in value.items())
        ) + "}"
    if isinstance(value, (set, frozenset)):
        return "{" + ",".join(sorted(canonical_form(v) for v in value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(canonical_form(v) for v in value) + "]"
    return str(value)


def input_fingerprint(arguments: Mapping[str, Any], names: tuple[str, ...]) -> str:
    """First 16 hex chars of the SHA-256 of the named arguments."""
    text = ";".join(f"{name}={canonical_form(arguments.get(name))}" for name in names)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    summarize: Callable[[Any], Any] | None = None,
) -> Callable:
    """Wrap an engine function so each call is traced.

    ``fingerprint_fields`` names the parameters hashed into the
    fingerprint; arguments are bound by name, so positional and keyword
    calls hash alike.  A ``snapshot`` argument contributes its
    ``voucher_id`` and ``status`` to the line.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            started = time.monotonic()
            result = func(*args, **kwargs)

            fields: dict[str, Any] = {
                "trace_type": TRACE_MESSAGE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": input_fingerprint(bound.arguments, fingerprint_fields),
                "duration_ms": round((time.monotonic() - started) * 1000, 2),
            }
            snapshot = bound.arguments.get("snapshot")
            if snapshot is not None:
                fields["snapshot_voucher_id"] = getattr(snapshot, "voucher_id", None)
                fields["snapshot_status"] = getattr(snapshot, "status", None)
            if summarize is not None:
                fields["decision"] = summarize(result)
            _logger.debug(TRACE_MESSAGE, extra=fields)
            return result

        return wrapper

    return decorator
