"""Pytest configuration for test isolation.

The database client keeps one process-wide engine bound to the first
``DATABASE_URL`` it sees, and logging configuration is process-wide too. To
keep tests hermetic, an autouse fixture clears the relevant environment and
resets both before and after every test. Ledger tests get their own
file-backed SQLite database through the ``db_url`` fixture.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from db.client import dispose_engine
from statement_recon.logging_setup import reset_logging

from tests.helpers.db import bootstrap_sqlite_db, seed_account


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("STATEMENT_RECON_LOG_LEVEL", raising=False)
    dispose_engine()
    yield
    dispose_engine()
    reset_logging()


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """A fresh SQLite ledger, also exported as ``DATABASE_URL``."""

    url = bootstrap_sqlite_db(tmp_path / "ledger.db")
    monkeypatch.setenv("DATABASE_URL", url)
    return url


@pytest.fixture
def account_id(db_url: str) -> int:
    return seed_account(db_url)
