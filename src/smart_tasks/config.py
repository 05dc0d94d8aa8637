# src/smart_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets or network access required at import time.
- Settings are injectable: bootstrap and tests pass their own object.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "SMART_TASKS"


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

    # ---- Local data (ignored by git) ----
    data_dir: Path
    storage_namespace: str
    tasks_storage_key: str
    session_storage_key: str

    # ---- Remote task source ----
    # Empty base URL -> in-memory mock source.
    remote_base_url: str
    remote_timeout_seconds: float
    remote_latency_seconds: float
    seed_demo_tasks: bool

    # ---- Sync policy ----
    quick_update_max_fields: int

    # ---- Features ----
    reminders_enabled: bool
    console_enabled: bool

    @property
    def storage_dir(self) -> Path:
        return self.data_dir / "storage"

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "smart-tasks").strip() or "smart-tasks"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/smart_tasks"))
        storage_namespace = _env(_k("STORAGE_NAMESPACE"), "smart_tasks").strip() or "smart_tasks"
        tasks_storage_key = _env(_k("TASKS_KEY"), "tasks").strip() or "tasks"
        session_storage_key = _env(_k("SESSION_KEY"), "taskmanager_user").strip() or "taskmanager_user"

        remote_base_url = _env(_k("REMOTE_BASE_URL"), "").strip().rstrip("/")
        remote_timeout_seconds = max(0.1, _env_float(_k("REMOTE_TIMEOUT_SECONDS"), 10.0))
        remote_latency_seconds = max(0.0, _env_float(_k("REMOTE_LATENCY_SECONDS"), 0.3))
        seed_demo_tasks = _env_bool(_k("SEED_DEMO_TASKS"), True)

        # How many changed fields still count as a "quick" update (no loading indicator).
        quick_update_max_fields = max(0, _env_int(_k("QUICK_UPDATE_MAX_FIELDS"), 2))

        reminders_enabled = _env_bool(_k("REMINDERS_ENABLED"), True)
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            storage_namespace=storage_namespace,
            tasks_storage_key=tasks_storage_key,
            session_storage_key=session_storage_key,
            remote_base_url=remote_base_url,
            remote_timeout_seconds=remote_timeout_seconds,
            remote_latency_seconds=remote_latency_seconds,
            seed_demo_tasks=seed_demo_tasks,
            quick_update_max_fields=quick_update_max_fields,
            reminders_enabled=reminders_enabled,
            console_enabled=console_enabled,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
