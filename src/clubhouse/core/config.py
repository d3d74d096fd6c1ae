# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from argon2.profiles import RFC_9106_LOW_MEMORY
from dotenv import load_dotenv

# Anchor the default users.yml path to the project root (works well with editable installs).
BASE_DIR = Path(__file__).resolve().parents[3]
DEFAULT_USERS_PATH = BASE_DIR / "data" / "users.yml"


def _get_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer (got {raw!r})") from exc


@dataclass(frozen=True)
class Settings:
    secret_key: str
    session_salt: str = "clubhouse.session.v1"
    cookie_name: str = "clubhouse_session"
    session_max_age: int = 28800  # 8 hours
    cookie_secure: bool = False
    users_path: Path = DEFAULT_USERS_PATH
    hash_time_cost: int = RFC_9106_LOW_MEMORY.time_cost
    hash_memory_cost: int = RFC_9106_LOW_MEMORY.memory_cost
    hash_parallelism: int = RFC_9106_LOW_MEMORY.parallelism
    host: str = "0.0.0.0"
    port: int = 3333
    reload: bool = False
    log_level: str = "INFO"

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}


def load_settings() -> Settings:
    """Build settings from the environment (and a ``.env`` file, if present)."""
    load_dotenv()

    secret = os.getenv("CLUBHOUSE_SECRET_KEY") or os.getenv("SECRET_KEY")
    if not secret:
        raise RuntimeError("Missing CLUBHOUSE_SECRET_KEY (or SECRET_KEY) in environment")

    return Settings(
        secret_key=secret,
        session_salt=os.getenv("CLUBHOUSE_SESSION_SALT", "clubhouse.session.v1"),
        cookie_name=os.getenv("CLUBHOUSE_COOKIE_NAME", "clubhouse_session"),
        session_max_age=_get_int("CLUBHOUSE_SESSION_MAX_AGE", 28800),
        cookie_secure=_get_bool(os.getenv("CLUBHOUSE_COOKIE_SECURE")),
        users_path=Path(os.getenv("CLUBHOUSE_USERS_PATH", str(DEFAULT_USERS_PATH))).resolve(),
        hash_time_cost=_get_int("CLUBHOUSE_HASH_TIME_COST", RFC_9106_LOW_MEMORY.time_cost),
        hash_memory_cost=_get_int("CLUBHOUSE_HASH_MEMORY_COST", RFC_9106_LOW_MEMORY.memory_cost),
        hash_parallelism=_get_int("CLUBHOUSE_HASH_PARALLELISM", RFC_9106_LOW_MEMORY.parallelism),
        host=os.getenv("CLUBHOUSE_HOST", "0.0.0.0"),
        port=_get_int("CLUBHOUSE_PORT", 3333),
        reload=_get_bool(os.getenv("CLUBHOUSE_RELOAD")),
        log_level=os.getenv("CLUBHOUSE_LOG_LEVEL", "INFO").upper(),
    )
