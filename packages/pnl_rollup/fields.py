"""Field lookup across inconsistent source schemas.

Sources disagree on column naming (``Amount`` vs ``amount`` vs ``AMOUNT``), so
every canonical field is resolved from an ordered list of candidate keys.
Absence is an expected outcome and is reported as ``None``, never raised.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .models import RawRecord


def is_blank(value: Any) -> bool:
    """True for ``None`` and for strings that are empty after trimming."""

    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def resolve_field(row: RawRecord, candidate_keys: Sequence[str]) -> Any | None:
    """Return the first present, non-empty value for ``candidate_keys``.

    Candidates are tried in order. For each one, an exact key match is tried
    first, then a case-insensitive scan of the row's keys (first matching key
    in row order). Candidate order always wins over row order: with row
    ``{"Amount": 5, "amount": 10}`` and candidates ``["amount", "Amount"]``
    the result is ``10``.

    Returns ``None`` when nothing matches.
    """

    for key in candidate_keys:
        if key in row and not is_blank(row[key]):
            return row[key]
        lowered = key.lower()
        for row_key, value in row.items():
            if isinstance(row_key, str) and row_key.lower() == lowered and not is_blank(value):
                return value
    return None


def resolve_text(row: RawRecord, candidate_keys: Sequence[str]) -> str | None:
    """Like :func:`resolve_field` but returns a trimmed string (or ``None``)."""

    value = resolve_field(row, candidate_keys)
    if value is None:
        return None
    s = str(value).strip()
    return s or None


__all__ = ["is_blank", "resolve_field", "resolve_text"]
