from __future__ import annotations

from typing import Dict, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


_ENGINES: Dict[str, Engine] = {}
_SESSIONMAKERS: Dict[str, sessionmaker] = {}


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE / SET NULL unless enabled per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(database_url: str, *, echo: bool = False) -> Engine:
    engine = _ENGINES.get(database_url)
    if engine is not None:
        return engine

    # Streamlit serves each browser session from its own script thread,
    # so SQLite connections must be shareable across threads.
    connect_args = {}
    if database_url.startswith("sqlite:"):
        connect_args = {"check_same_thread": False}

    engine = create_engine(
        database_url,
        future=True,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    if database_url.startswith("sqlite:"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    _ENGINES[database_url] = engine
    _SESSIONMAKERS[database_url] = sessionmaker(
        bind=engine, autoflush=False, expire_on_commit=False, future=True
    )
    return engine


def get_sessionmaker(database_url: str) -> sessionmaker:
    if database_url not in _SESSIONMAKERS:
        get_engine(database_url)
    return _SESSIONMAKERS[database_url]


def dispose_engine(database_url: Optional[str] = None) -> None:
    """Dispose one engine (or all of them) and forget it."""
    urls = [database_url] if database_url else list(_ENGINES)
    for url in urls:
        engine = _ENGINES.pop(url, None)
        _SESSIONMAKERS.pop(url, None)
        if engine is not None:
            engine.dispose()
