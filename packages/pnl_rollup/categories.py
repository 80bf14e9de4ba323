"""Tenant taxonomy loading and storage.

The taxonomy is an ordered list of :class:`~pnl_rollup.models.TaxonomyCategory`
where list order is match priority (see :func:`pnl_rollup.categorizer.categorize`).
It is read once per transformation run, from a JSON seed file or from the
``pnl_categories`` table.

Seed file shape
---------------
A JSON list of objects::

    [
      {"id": "consulting", "name": "Consulting", "section": "Revenue",
       "keywords": ["consulting", "advisory"]},
      ...
    ]

``name`` defaults to ``id``; ``section`` and ``keywords`` are optional.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from os import PathLike
from pathlib import Path
from typing import Any

from pnl_db.client import session_scope
from pnl_db.models.ledger import PnlCategory
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import UNCATEGORIZED, TaxonomyCategory

_log = get_logger("pnl_rollup.categories")


def normalize_label(label: str) -> str:
    """Return a trimmed, single-spaced ``label``; case is preserved."""

    return " ".join(label.strip().split())


def parse_taxonomy(data: Any) -> list[TaxonomyCategory]:
    """Validate decoded seed JSON into an ordered taxonomy.

    Raises ``ValueError`` for a non-list payload, an invalid entry, a duplicate
    id, or use of the reserved ``"uncategorized"`` id.
    """

    if not isinstance(data, list):
        raise ValueError("Taxonomy JSON must be a list of category objects")

    out: list[TaxonomyCategory] = []
    seen: set[str] = set()
    for pos, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"Taxonomy entry {pos} must be an object")
        raw = dict(entry)
        raw.setdefault("name", raw.get("id"))
        if isinstance(raw.get("name"), str):
            raw["name"] = normalize_label(raw["name"])
        try:
            category = TaxonomyCategory.model_validate(raw)
        except ValidationError as e:
            raise ValueError(f"Invalid taxonomy entry {pos}: {e}") from e
        if category.id == UNCATEGORIZED:
            raise ValueError(f"Taxonomy id {UNCATEGORIZED!r} is reserved")
        if category.id in seen:
            raise ValueError(f"Duplicate taxonomy id: {category.id!r}")
        seen.add(category.id)
        out.append(category)
    return out


def load_taxonomy_from_json(path: str | PathLike[str]) -> list[TaxonomyCategory]:
    with Path(path).open("r", encoding="utf-8") as f:
        return parse_taxonomy(json.load(f))


def _row_to_category(row: PnlCategory) -> TaxonomyCategory:
    return TaxonomyCategory(
        id=row.id,
        name=normalize_label(row.name or "") or row.id,
        keywords=tuple(row.keywords or ()),
        section=row.section,
    )


def list_categories(session: Session, tenant_id: str) -> list[TaxonomyCategory]:
    """Return ``tenant_id``'s taxonomy in priority order."""

    rows = (
        session.execute(
            select(PnlCategory)
            .where(PnlCategory.tenant_id == tenant_id)
            .order_by(PnlCategory.sort_order, PnlCategory.id)
        )
        .scalars()
        .all()
    )
    return [_row_to_category(r) for r in rows]


def replace_categories(
    session: Session, tenant_id: str, categories: Sequence[TaxonomyCategory]
) -> int:
    """Replace ``tenant_id``'s taxonomy; ``sort_order`` follows list order."""

    session.execute(delete(PnlCategory).where(PnlCategory.tenant_id == tenant_id))
    for order, category in enumerate(categories):
        session.add(
            PnlCategory(
                tenant_id=tenant_id,
                id=category.id,
                name=category.name,
                keywords=list(category.keywords),
                section=category.section,
                sort_order=order,
            )
        )
    session.flush()
    return len(categories)


def load_taxonomy_from_db(
    tenant_id: str, *, database_url: str | None = None
) -> list[TaxonomyCategory]:
    """Read a tenant's taxonomy; an empty taxonomy is valid (all uncategorized)."""

    with session_scope(database_url=database_url) as session:
        taxonomy = list_categories(session, tenant_id)
    _log.debug("tenant=%s: loaded %d taxonomy categories", tenant_id, len(taxonomy))
    return taxonomy


__all__ = [
    "list_categories",
    "load_taxonomy_from_db",
    "load_taxonomy_from_json",
    "normalize_label",
    "parse_taxonomy",
    "replace_categories",
]
