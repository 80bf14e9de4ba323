"""Pytest configuration for test isolation.

The suite expects an editable install (``pip install -e ".[test]"``), which
maps ``pnl_rollup`` and ``pnl_db`` onto their source directories.

Each test gets a clean environment: ``DATABASE_URL`` and the worker-count
override are removed so nothing reaches a developer's real database, and
cached engines are disposed afterwards so per-test SQLite files are released.
"""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("PNL_FETCH_MAX_WORKERS", raising=False)
    monkeypatch.setenv("PNL_ROLLUP_LOG_LEVEL", "WARNING")
    yield

    from pnl_db.client import dispose_engines

    dispose_engines()
