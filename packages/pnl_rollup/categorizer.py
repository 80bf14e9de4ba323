"""Keyword categorization and level-1 (section) resolution.

Two independent pieces live here:

- :func:`categorize` assigns a taxonomy category id by keyword substring match.
  Taxonomy order is priority order; the first category with any matching
  keyword wins, so results are deterministic for overlapping keyword sets.
- :func:`classify_section` maps a free-text column value onto the two P&L
  sections. :func:`resolve_section` picks the level-1 label for a row using
  exactly one strategy per run, chosen by ``TransformConfig.section_mapping_type``.
"""

from __future__ import annotations

from collections.abc import Sequence

from .fields import resolve_text
from .models import (
    EXPENSES,
    REVENUE,
    UNCATEGORIZED,
    UNRESOLVED_SECTION,
    RawRecord,
    TaxonomyCategory,
    TransformConfig,
)

# Checked in order: a value mentioning both (e.g. "cost of income") is Revenue.
SECTION_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (REVENUE, ("revenue", "income")),
    (EXPENSES, ("expense", "cost")),
)


def match_category(
    description: str, taxonomy: Sequence[TaxonomyCategory]
) -> TaxonomyCategory | None:
    """Return the first category whose keywords occur in ``description``."""

    desc = (description or "").lower()
    if not desc:
        return None
    for category in taxonomy:
        for keyword in category.keywords:
            if keyword.lower() in desc:
                return category
    return None


def categorize(description: str, taxonomy: Sequence[TaxonomyCategory]) -> str:
    """Return the matching category id, or ``"uncategorized"``."""

    category = match_category(description, taxonomy)
    return category.id if category is not None else UNCATEGORIZED


def classify_section(value: str | None, default: str | None) -> str | None:
    """Classify a section column value as Revenue/Expenses, else ``default``."""

    text = (value or "").lower()
    if text:
        for section, keywords in SECTION_KEYWORDS:
            if any(k in text for k in keywords):
                return section
    return default


def resolve_section(
    row: RawRecord,
    *,
    name: str,
    config: TransformConfig,
    taxonomy: Sequence[TaxonomyCategory],
) -> str:
    """Resolve the level-1 label for ``row`` according to ``config``.

    - ``static``: ``config.section``.
    - ``column``: :func:`classify_section` on ``config.section_column``.
    - ``taxonomy``: ``section`` of the category matched from ``name``.

    Every mode falls back to ``config.section``; when that is unset too the
    row gets ``"Uncategorized"`` and stays out of the rollup.
    """

    section: str | None
    mode = config.section_mapping_type
    if mode == "column":
        raw = resolve_text(row, [config.section_column]) if config.section_column else None
        section = classify_section(raw, config.section)
    elif mode == "taxonomy":
        category = match_category(name, taxonomy)
        section = (category.section if category is not None else None) or config.section
    else:
        section = config.section
    return section or UNRESOLVED_SECTION


__all__ = [
    "SECTION_KEYWORDS",
    "match_category",
    "categorize",
    "classify_section",
    "resolve_section",
]
