"""DB helpers for tests: bootstrap a temporary SQLite DB and seed rows."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from pnl_db import Base
from pnl_db.client import get_engine, session_scope

from pnl_rollup.categories import replace_categories
from pnl_rollup.models import TaxonomyCategory


def bootstrap_sqlite_db(db_file: Path) -> str:
    """Create a SQLite database file with the full schema and return its URL.

    A file-backed database lets every SQLAlchemy connection see the same state
    (in-memory SQLite databases are per-connection).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=get_engine(database_url=url))
    return url


def seed_taxonomy(
    *, database_url: str, tenant_id: str, categories: Sequence[TaxonomyCategory]
) -> None:
    with session_scope(database_url=database_url) as session:
        replace_categories(session, tenant_id, categories)
