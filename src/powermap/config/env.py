"""Typed readers for ``POWERMAP_*`` and other environment settings."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import InvalidSettingError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def _setting(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return every named setting, or fail listing all that are missing or blank."""

    values = {name: _setting(name) for name in names}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise MissingConfigurationError(names=missing)
    return {name: value for name, value in values.items() if value is not None}


def positive_int_env(name: str, default: int) -> int:
    raw = _setting(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidSettingError(setting=name, value=raw, reason="must be an integer") from None
    if value < 1:
        raise InvalidSettingError(setting=name, value=raw, reason="must be at least 1")
    return value


def flag_env(name: str) -> bool:
    """``1``, ``true``, ``yes`` and ``on`` (any case) switch a flag on."""

    raw = _setting(name)
    return raw is not None and raw.lower() in {"1", "true", "yes", "on"}
