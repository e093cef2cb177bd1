from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def env_str(name: str, default: str, *, strip: bool = True) -> str:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip() if strip else value


def env_optional_str(name: str, default: Optional[str] = None, *, strip: bool = True) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip() if strip else value
    return value or default


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in {"1", "true", "yes", "y", "on"}:
        return True
    if raw in {"0", "false", "no", "n", "off"}:
        return False
    return default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration for the task manager.

    DB selection:
    - TEAMTASKS_DATABASE_URL: app-specific DB URL (preferred)
    - DATABASE_URL: shared DB URL
    - If neither is set, defaults to local SQLite at data/teamtasks.db

    Storage:
    - TEAMTASKS_STORAGE_DIR: directory backing the attachments bucket (default: data/storage)
    - TEAMTASKS_STORAGE_PUBLIC_URL: URL prefix for public object links (default: /storage)

    Polling (seconds, minimum 1):
    - TEAMTASKS_PRESENCE_INTERVAL_SECONDS (default: 30)
    - TEAMTASKS_ROSTER_INTERVAL_SECONDS (default: 5)
    - TEAMTASKS_CHAT_INTERVAL_SECONDS (default: 3)

    Logging:
    - TEAMTASKS_LOG_LEVEL (default: INFO)
    - TEAMTASKS_LOG_DIR: when set, full logs are also written to <dir>/teamtasks.log
    - TEAMTASKS_SQL_ECHO: echo SQL statements (default: false)
    """

    database_url: str
    storage_dir: str
    storage_public_url: str

    presence_interval_seconds: int
    roster_interval_seconds: int
    chat_interval_seconds: int

    log_level: str
    log_dir: Optional[str]
    sql_echo: bool

    @classmethod
    def from_env(cls) -> "AppConfig":
        db_url = env_optional_str("TEAMTASKS_DATABASE_URL") or env_optional_str("DATABASE_URL")
        if not db_url:
            data_dir = _repo_root() / "data"
            data_dir.mkdir(parents=True, exist_ok=True)
            db_url = f"sqlite:///{(data_dir / 'teamtasks.db').as_posix()}"

        storage_dir = env_optional_str("TEAMTASKS_STORAGE_DIR") or str(_repo_root() / "data" / "storage")

        return cls(
            database_url=db_url,
            storage_dir=storage_dir,
            storage_public_url=env_str("TEAMTASKS_STORAGE_PUBLIC_URL", "/storage").rstrip("/"),
            presence_interval_seconds=max(1, env_int("TEAMTASKS_PRESENCE_INTERVAL_SECONDS", 30)),
            roster_interval_seconds=max(1, env_int("TEAMTASKS_ROSTER_INTERVAL_SECONDS", 5)),
            chat_interval_seconds=max(1, env_int("TEAMTASKS_CHAT_INTERVAL_SECONDS", 3)),
            log_level=env_str("TEAMTASKS_LOG_LEVEL", "INFO").upper(),
            log_dir=env_optional_str("TEAMTASKS_LOG_DIR"),
            sql_echo=env_bool("TEAMTASKS_SQL_ECHO", False),
        )


# Global config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() re-reads the environment."""
    global _config
    _config = None
