# ruff: noqa: I001
"""Persistence integration for pnl_rollup.

Canonical records are written to ``pnl_transformed_records`` in the shared
database owned by ``libs/db`` and read back for rollup queries.

Scope:
- Upsert a transformed batch keyed by ``(tenant_id, source, id)``; re-running
  an import overwrites the previous version of each record.
- Query records for a tenant, date window and data-type filter.

A whole import is written inside one ``session_scope`` so it commits or rolls
back as a unit.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import UTC
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from pnl_db.client import session_scope
from pnl_db.models.ledger import PnlTransformedRecord
from .canonical import CanonicalRecord
from .logging_setup import get_logger
from .models import DataType, DateRange, SourceType

_log = get_logger("pnl_rollup.persistence")

# Keeps multi-row VALUES under SQLite's bound-parameter limit.
_CHUNK_SIZE = 500

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

_UPDATED_COLUMNS = (
    "name",
    "date",
    "amount",
    "data_type",
    "category_path",
    "category_id",
    "created_by",
)


def _to_row(rec: CanonicalRecord) -> dict[str, Any]:
    return {
        "tenant_id": rec.tenant_id,
        "source": rec.source.value,
        "id": rec.id,
        "name": rec.name,
        "date": rec.date.astimezone(UTC),
        "amount": rec.amount,
        "data_type": rec.data_type.value,
        "category_path": list(rec.category_path),
        "category_id": rec.category_id,
        "created_by": rec.created_by,
    }


def _from_row(row: PnlTransformedRecord) -> CanonicalRecord:
    when = row.date
    # SQLite hands back naive datetimes; values are stored in UTC.
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return CanonicalRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        name=row.name,
        date=when,
        amount=row.amount,
        source=SourceType(row.source),
        data_type=DataType(row.data_type),
        category_path=tuple(row.category_path),
        created_by=row.created_by,
        category_id=row.category_id,
    )


def save_canonical_records(session: Session, records: Iterable[CanonicalRecord]) -> int:
    """Upsert ``records`` into ``pnl_transformed_records``; return the row count.

    Works on PostgreSQL and SQLite (both support ``ON CONFLICT DO UPDATE``).
    The caller owns the transaction. Raises ``ValueError`` when two records in
    ``records`` share a key, since one would silently overwrite the other.
    """

    dialect = session.get_bind().dialect.name
    make_insert = _INSERTS.get(dialect)
    if make_insert is None:
        raise ValueError(f"save_canonical_records does not support the {dialect!r} dialect")

    payloads = [_to_row(rec) for rec in records]
    keys = Counter((p["tenant_id"], p["source"], p["id"]) for p in payloads)
    duplicates = sorted(key for key, n in keys.items() if n > 1)
    if duplicates:
        raise ValueError(
            f"batch repeats {len(duplicates)} record key(s), e.g. {duplicates[0]!r}; "
            "every record in one batch needs a distinct (tenant_id, source, id)"
        )

    for start in range(0, len(payloads), _CHUNK_SIZE):
        chunk = payloads[start : start + _CHUNK_SIZE]
        stmt = make_insert(PnlTransformedRecord).values(chunk)
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                PnlTransformedRecord.tenant_id,
                PnlTransformedRecord.source,
                PnlTransformedRecord.id,
            ],
            set_={
                **{col: getattr(stmt.excluded, col) for col in _UPDATED_COLUMNS},
                "updated_at": func.now(),
            },
        )
        session.execute(stmt)

    _log.debug("upserted %d canonical records", len(payloads))
    return len(payloads)


def save_transformed_batch(
    records: Sequence[CanonicalRecord], *, database_url: str | None = None
) -> int:
    """Persist one import's records in a single transaction."""

    with session_scope(database_url=database_url) as session:
        return save_canonical_records(session, records)


def load_canonical_records(
    session: Session,
    *,
    tenant_id: str,
    date_range: DateRange | None = None,
    data_types: Iterable[DataType] | None = None,
) -> list[CanonicalRecord]:
    """Return ``tenant_id``'s records within ``date_range`` and ``data_types``.

    ``None`` filters are open. Results are ordered by date, then source and id.
    """

    stmt = select(PnlTransformedRecord).where(PnlTransformedRecord.tenant_id == tenant_id)
    if date_range is not None:
        if date_range.lower is not None:
            stmt = stmt.where(PnlTransformedRecord.date >= date_range.lower)
        if date_range.upper is not None:
            stmt = stmt.where(PnlTransformedRecord.date <= date_range.upper)
    if data_types is not None:
        stmt = stmt.where(
            PnlTransformedRecord.data_type.in_([DataType(t).value for t in data_types])
        )
    stmt = stmt.order_by(
        PnlTransformedRecord.date, PnlTransformedRecord.source, PnlTransformedRecord.id
    )
    return [_from_row(r) for r in session.execute(stmt).scalars().all()]


def fetch_records(
    tenant_id: str,
    *,
    date_range: DateRange | None = None,
    data_types: Iterable[DataType] | None = None,
    database_url: str | None = None,
) -> list[CanonicalRecord]:
    with session_scope(database_url=database_url) as session:
        return load_canonical_records(
            session, tenant_id=tenant_id, date_range=date_range, data_types=data_types
        )


__all__ = [
    "fetch_records",
    "load_canonical_records",
    "save_canonical_records",
    "save_transformed_batch",
]
