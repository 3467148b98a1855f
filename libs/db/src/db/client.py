"""Engine and unit-of-work helpers for the ledger database.

Usage
-----
from db.client import session_scope

with session_scope() as s:       # commits on success, rolls back on error
    s.add(...)

One engine is shared per process and bound to the first URL it sees
(``DATABASE_URL`` unless an explicit ``database_url`` is passed). PostgreSQL
is the deployment target; SQLite files work too (local ledgers and tests):
for them every new connection gets ``PRAGMA foreign_keys = ON`` and a
``now()`` SQL function, so the schema's ``server_default=now()`` columns and
``func.now()`` updates behave the same on both dialects.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None
_DB_URL: str | None = None


def _database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def _sqlite_now() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")


def _install_sqlite_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):  # pragma: no cover - driver bridge
        dbapi_conn.execute("PRAGMA foreign_keys = ON")
        dbapi_conn.create_function("now", 0, _sqlite_now)


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the shared engine, creating it on first use.

    Asking for a different URL once the engine exists is a ``RuntimeError``;
    call :func:`dispose_engine` first to switch databases.
    """

    global _ENGINE, _SESSION_MAKER, _DB_URL
    url = _database_url(database_url)
    if _ENGINE is not None:
        if _DB_URL is not None and url != _DB_URL:
            raise RuntimeError(
                "get_engine() already initialized with a different DATABASE_URL; "
                "dispose_engine() first or avoid passing a different URL"
            )
        return _ENGINE

    engine = create_engine(url, pool_pre_ping=True)
    if make_url(url).get_backend_name() == "sqlite":
        _install_sqlite_hooks(engine)
    # Ledger results are returned as snapshots after commit; keep attributes loaded.
    _SESSION_MAKER = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)
    _ENGINE = engine
    _DB_URL = url
    return engine


def get_session(*, database_url: str | None = None) -> Session:
    get_engine(database_url=database_url)
    assert _SESSION_MAKER is not None  # bound by get_engine
    return _SESSION_MAKER()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """One unit of work: commit when the block succeeds, roll back and re-raise otherwise."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    """Dispose the shared engine and forget its URL.

    The next ``get_engine`` call may then bind to a different database (tests
    use this to give every case its own SQLite file).
    """

    global _ENGINE, _SESSION_MAKER, _DB_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
    _DB_URL = None


__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session",
    "session_scope",
]
