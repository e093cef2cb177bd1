from __future__ import annotations

import pytest

from teamtasks.config import AppConfig, get_config, reset_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "TEAMTASKS_DATABASE_URL",
        "DATABASE_URL",
        "TEAMTASKS_STORAGE_DIR",
        "TEAMTASKS_CHAT_INTERVAL_SECONDS",
        "TEAMTASKS_LOG_LEVEL",
        "TEAMTASKS_SQL_ECHO",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("TEAMTASKS_STORAGE_DIR", str(tmp_path / "blobs"))
    monkeypatch.setenv("DATABASE_URL", "sqlite:///" + (tmp_path / "x.db").as_posix())
    cfg = AppConfig.from_env()
    assert cfg.presence_interval_seconds == 30
    assert cfg.roster_interval_seconds == 5
    assert cfg.chat_interval_seconds == 3
    assert cfg.storage_dir == str(tmp_path / "blobs")
    assert cfg.storage_public_url == "/storage"
    assert cfg.log_level == "INFO"
    assert cfg.sql_echo is False


def test_app_specific_database_url_wins(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://shared/db")
    monkeypatch.setenv("TEAMTASKS_DATABASE_URL", "postgresql+psycopg2://app/db")
    assert AppConfig.from_env().database_url == "postgresql+psycopg2://app/db"


def test_intervals_have_a_floor_and_bad_values_fall_back(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("TEAMTASKS_CHAT_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("TEAMTASKS_SQL_ECHO", "yes")
    monkeypatch.setenv("TEAMTASKS_LOG_LEVEL", "debug")
    cfg = AppConfig.from_env()
    assert cfg.chat_interval_seconds == 1
    assert cfg.sql_echo is True
    assert cfg.log_level == "DEBUG"

    monkeypatch.setenv("TEAMTASKS_CHAT_INTERVAL_SECONDS", "soon")
    assert AppConfig.from_env().chat_interval_seconds == 3


def test_get_config_is_cached_until_reset(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///one.db")
    first = get_config()
    monkeypatch.setenv("DATABASE_URL", "sqlite:///two.db")
    assert get_config() is first
    reset_config()
    assert get_config().database_url == "sqlite:///two.db"
