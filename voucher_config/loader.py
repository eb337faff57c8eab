"""
Configuration Loader (``voucher_config.loader``).

Responsibility
--------------
Builds the ``KernelSettings`` a process runs with: the packaged
``defaults.yaml``, overlaid by an optional settings file, overlaid by
``VOUCHER_*`` environment variables.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on the kernel
services, engines or models.

Invariants enforced
-------------------
* Every value is type-checked after the overlays are applied; an invalid
  value raises ``ValueError`` naming its dotted key.
* The returned settings object is a frozen dataclass.

Failure modes
-------------
* Missing settings file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid value  -> ``ValueError``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

_logger = logging.getLogger("voucher_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

# Environment variable -> dotted settings key
ENV_OVERRIDES: dict[str, str] = {
    "VOUCHER_DATABASE_URL": "database.url",
    "VOUCHER_LOG_LEVEL": "logging.level",
    "VOUCHER_NOTIFICATION_TIMEOUT": "notifications.timeout_seconds",
    "VOUCHER_BAC_REQUIRED_APPROVALS": "workflow.bac_required_approvals",
}

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class KernelSettings:
    """Process-wide settings.  Immutable once loaded."""

    database_url: str
    log_level: str = "INFO"
    notification_timeout_seconds: float = 10.0
    bac_required_approvals: int = 3


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _merge(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _set_dotted(data: dict[str, Any], dotted: str, value: Any) -> None:
    section, _, key = dotted.partition(".")
    data.setdefault(section, {})[key] = value


def _get_dotted(data: Mapping[str, Any], dotted: str) -> Any:
    section, _, key = dotted.partition(".")
    block = data.get(section) or {}
    if not isinstance(block, Mapping):
        raise ValueError(f"{section}: must be a mapping")
    return block.get(key)


def _as_str(data: Mapping[str, Any], key: str) -> str:
    value = _get_dotted(data, key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key}: must be a non-empty string")
    return value.strip()


def _as_positive_float(data: Mapping[str, Any], key: str) -> float:
    value = _get_dotted(data, key)
    if isinstance(value, bool):
        raise ValueError(f"{key}: must be a positive number")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key}: must be a positive number, got {value!r}") from None
    if result <= 0:
        raise ValueError(f"{key}: must be a positive number, got {value!r}")
    return result


def _as_positive_int(data: Mapping[str, Any], key: str) -> int:
    value = _get_dotted(data, key)
    if isinstance(value, bool):
        raise ValueError(f"{key}: must be an integer >= 1")
    try:
        result = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"{key}: must be an integer >= 1, got {value!r}") from None
    if result < 1:
        raise ValueError(f"{key}: must be an integer >= 1, got {value!r}")
    return result


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelSettings:
    """
    Load settings from defaults, an optional file and the environment.

    Args:
        path: Optional YAML file overlaid on the packaged defaults.
        environ: Environment mapping; ``os.environ`` when omitted.

    Returns:
        Validated, frozen KernelSettings.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if path is not None:
        data = _merge(data, load_yaml_file(Path(path)))

    env = os.environ if environ is None else environ
    overridden = []
    for variable, dotted in ENV_OVERRIDES.items():
        if variable in env:
            _set_dotted(data, dotted, env[variable])
            overridden.append(variable)

    level = _as_str(data, "logging.level").upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level: unknown level {level!r}")

    settings = KernelSettings(
        database_url=_as_str(data, "database.url"),
        log_level=level,
        notification_timeout_seconds=_as_positive_float(data, "notifications.timeout_seconds"),
        bac_required_approvals=_as_positive_int(data, "workflow.bac_required_approvals"),
    )
    _logger.info(
        "VOUCHER_CONFIG_LOADED",
        extra={
            "settings_file": str(path) if path is not None else None,
            "env_overrides": overridden,
            "log_level": settings.log_level,
        },
    )
    return settings
