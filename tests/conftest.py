from __future__ import annotations

from pathlib import Path
from typing import Dict

import pytest

from teamtasks.backend import BackendClient
from teamtasks.config import AppConfig
from teamtasks.db import dispose_engine
from teamtasks.runtime import Services, init_services

from .fakes import FakeClock


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    """Config pointing at a throwaway SQLite file and storage directory."""
    return AppConfig(
        database_url=f"sqlite:///{(tmp_path / 'teamtasks.db').as_posix()}",
        storage_dir=str(tmp_path / "storage"),
        storage_public_url="/storage",
        presence_interval_seconds=30,
        roster_interval_seconds=5,
        chat_interval_seconds=3,
        log_level="DEBUG",
        log_dir=None,
        sql_echo=False,
    )


@pytest.fixture()
def services(config: AppConfig) -> Services:
    svc = init_services(config)
    yield svc
    dispose_engine(config.database_url)


@pytest.fixture()
def users(services: Services) -> Dict[str, dict]:
    out = {}
    for name in ("alice", "bob", "carol"):
        res = services.auth.sign_up(f"{name}@example.com", "secret123", name.title())
        assert res.ok, res.error
        out[name] = res.data
    return out


@pytest.fixture()
def alice(services: Services, users) -> BackendClient:
    return services.client(users["alice"]["id"])


@pytest.fixture()
def bob(services: Services, users) -> BackendClient:
    return services.client(users["bob"]["id"])


@pytest.fixture()
def carol(services: Services, users) -> BackendClient:
    return services.client(users["carol"]["id"])


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
