# src/taskbell/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every value has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKBELL"

# Largest delay a single timer may be armed for (2**31 - 1 ms).
# Longer delays are left to the periodic sweep.
DEFAULT_MAX_TIMER_DELAY_SECONDS = (2**31 - 1) / 1000.0


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_file: str

    # ---- Local data (ignored by git) ----
    data_dir: Path
    storage_key: str

    # ---- Reminders ----
    sweep_interval_seconds: float
    max_timer_delay_seconds: float

    # ---- Notifications ----
    notifications_enabled: bool
    notification_timeout: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskbell").strip() or "taskbell"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        log_file = _env(_k("LOG_FILE"), "taskbell.log").strip() or "taskbell.log"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskbell"))
        storage_key = _env(_k("STORAGE_KEY"), "tasks").strip() or "tasks"

        sweep_interval_seconds = max(1.0, _env_float(_k("SWEEP_INTERVAL_SECONDS"), 60.0))
        max_timer_delay_seconds = max(
            1.0,
            _env_float(_k("MAX_TIMER_DELAY_SECONDS"), DEFAULT_MAX_TIMER_DELAY_SECONDS),
        )

        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        notification_timeout = _env_int(_k("NOTIFICATION_TIMEOUT"), 10)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_file=log_file,
            data_dir=data_dir,
            storage_key=storage_key,
            sweep_interval_seconds=sweep_interval_seconds,
            max_timer_delay_seconds=max_timer_delay_seconds,
            notifications_enabled=notifications_enabled,
            notification_timeout=notification_timeout,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
