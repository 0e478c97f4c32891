from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

# Project root is one level up from this file: gamenight/config.py
PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes"}


def get_redis_url() -> str:
    return os.environ.get("REDIS_URL", "redis://localhost:6379/0")


def get_key_prefix() -> str:
    return os.environ.get("GAMENIGHT_KEY_PREFIX", "gamenight")


def get_events_path() -> Path:
    raw = os.environ.get("GAMENIGHT_EVENTS_PATH")
    if not raw:
        return PROJECT_ROOT / "config" / "events.json"
    path = Path(raw)
    return path if path.is_absolute() else PROJECT_ROOT / path


def use_relative_events() -> bool:
    """Events file uses "now" / "+5s" / "+2m" start times instead of absolute instants."""

    return _env_flag("GAMENIGHT_EVENTS_RELATIVE")


def strict_events() -> bool:
    """When set, a missing events file fails startup instead of running with no events."""

    return _env_flag("GAMENIGHT_STRICT_EVENTS")


def get_log_level() -> str:
    return os.environ.get("GAMENIGHT_LOG_LEVEL", "INFO").upper()


def get_active_window() -> timedelta:
    return timedelta(seconds=int(os.environ.get("GAMENIGHT_ACTIVE_WINDOW_SECONDS", "300")))
