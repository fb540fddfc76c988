"""Environment-driven engine settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .scoring import DEFAULT_RULESET


logger = logging.getLogger(__name__)

_DB_PATH_ENV = "FPLSETTLE_DB_PATH"
_RULESET_ENV = "FPLSETTLE_RULESET"
_SNAPSHOT_ENV = "FPLSETTLE_SNAPSHOT"
_LOG_LEVEL_ENV = "FPLSETTLE_LOG_LEVEL"
_LOCK_TIMEOUT_ENV = "FPLSETTLE_LOCK_TIMEOUT"

_DB_PATH_DEFAULT = "fplsettle.sqlite"
_LOG_LEVEL_DEFAULT = "INFO"
_LOCK_TIMEOUT_DEFAULT = 30.0
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _env_float(name: str, default: float, *, clamp_min: float | None = None, clamp_max: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    if clamp_max is not None:
        value = min(clamp_max, value)
    return value


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_log_level(name: str, default: str) -> str:
    value = _env_str(name, default).upper()
    if value not in _LOG_LEVELS:
        logger.warning("Invalid log level for %s: %s; using %s", name, value, default)
        return default
    return value


@dataclass(frozen=True)
class EngineSettings:
    db_path: str = _DB_PATH_DEFAULT
    ruleset: str = DEFAULT_RULESET
    snapshot_path: Optional[Path] = None
    log_level: str = _LOG_LEVEL_DEFAULT
    lock_timeout: float = _LOCK_TIMEOUT_DEFAULT

    @classmethod
    def from_env(cls) -> "EngineSettings":
        snapshot = os.getenv(_SNAPSHOT_ENV)
        return cls(
            db_path=_env_str(_DB_PATH_ENV, _DB_PATH_DEFAULT),
            ruleset=_env_str(_RULESET_ENV, DEFAULT_RULESET).upper(),
            snapshot_path=Path(snapshot) if snapshot else None,
            log_level=_env_log_level(_LOG_LEVEL_ENV, _LOG_LEVEL_DEFAULT),
            lock_timeout=_env_float(_LOCK_TIMEOUT_ENV, _LOCK_TIMEOUT_DEFAULT, clamp_min=0.0),
        )
