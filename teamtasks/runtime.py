"""Process-wide service handle.

Created once from immutable configuration and shared by every browser
session; there is no teardown beyond process exit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from teamtasks.auth import AuthService
from teamtasks.backend import BackendClient
from teamtasks.config import AppConfig, get_config
from teamtasks.db import get_engine, get_sessionmaker
from teamtasks.models import Base
from teamtasks.storage import StorageBucket


logger = logging.getLogger(__name__)

ATTACHMENTS_BUCKET = "attachments"


@dataclass(frozen=True)
class Services:
    config: AppConfig
    sessionmaker: sessionmaker
    auth: AuthService
    storage: StorageBucket

    def client(self, user_id: Optional[str]) -> BackendClient:
        return BackendClient(self.sessionmaker, user_id)


_services: Optional[Services] = None


def init_services(config: Optional[AppConfig] = None) -> Services:
    """Create tables (idempotent) and wire the services for ``config``."""
    cfg = config or get_config()
    engine = get_engine(cfg.database_url, echo=cfg.sql_echo)
    Base.metadata.create_all(engine)
    sm = get_sessionmaker(cfg.database_url)
    services = Services(
        config=cfg,
        sessionmaker=sm,
        auth=AuthService(sm),
        storage=StorageBucket(ATTACHMENTS_BUCKET, cfg.storage_dir, cfg.storage_public_url),
    )
    logger.info("Services ready (db=%s)", engine.url.render_as_string(hide_password=True))
    return services


def get_services() -> Services:
    global _services
    if _services is None:
        _services = init_services()
    return _services


def reset_services() -> None:
    global _services
    _services = None
