# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is read at import time; .env and the environment are read on the first get_settings() call.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "TASKDECK"

STORAGE_BACKENDS = ("memory", "json", "sqlite")
DEFAULT_STORAGE_BACKEND = "json"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value not in choices:
        logger.warning("Unknown %s=%r, falling back to %r", name, raw, default)
        return default
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Storage ----
    storage_backend: str  # memory | json | sqlite

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_json_path: Path
    tasks_db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdeck").strip() or "taskdeck"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        storage_backend = _env_choice(_k("STORAGE"), STORAGE_BACKENDS, DEFAULT_STORAGE_BACKEND)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdeck"))
        tasks_json_path = _env_path(_k("TASKS_JSON_PATH"), data_dir / "tasks.json")
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            storage_backend=storage_backend,
            data_dir=data_dir,
            tasks_json_path=tasks_json_path,
            tasks_db_path=tasks_db_path,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
