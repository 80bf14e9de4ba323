"""Canonical record model produced by the transformation pipeline.

A :class:`CanonicalRecord` is the source-agnostic unit the rollup consumes.
Field order (exact):
    - id: string (natural id from the source row, or a deterministic hash)
    - tenant_id: string
    - name: string (``"N/A"`` when the row had no description)
    - date: timezone-aware UTC ``datetime``; never ``None``
    - amount: ``Decimal``; sign preserved, never NaN/infinite
    - source: :class:`~pnl_rollup.models.SourceType`
    - data_type: :class:`~pnl_rollup.models.DataType`
    - category_path: tuple of labels, index 0 = section; deeper entries may be
      ``None`` when a hierarchy level was not mapped for the row
    - created_by: string | None
    - category_id: keyword category from the tenant taxonomy
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .hierarchy import contiguous_prefix
from .models import UNCATEGORIZED, DataType, SourceType


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """A single normalized financial record. Immutable once created."""

    id: str
    tenant_id: str
    name: str
    date: datetime
    amount: Decimal
    source: SourceType
    data_type: DataType
    category_path: tuple[str | None, ...]
    created_by: str | None = None
    category_id: str = UNCATEGORIZED

    def __post_init__(self) -> None:
        if not isinstance(self.date, datetime) or self.date.tzinfo is None:
            raise ValueError(f"CanonicalRecord {self.id!r}: date must be a timezone-aware datetime")
        if not isinstance(self.amount, Decimal) or not self.amount.is_finite():
            raise ValueError(f"CanonicalRecord {self.id!r}: amount must be a finite Decimal")
        if not self.category_path or not self.category_path[0]:
            raise ValueError(f"CanonicalRecord {self.id!r}: category_path needs a level-1 label")

    @property
    def section(self) -> str:
        """Level-1 label (``Revenue``/``Expenses`` in the P&L model)."""

        return self.category_path[0]  # type: ignore[return-value]

    @property
    def rollup_path(self) -> tuple[str, ...]:
        """Category path as the aggregator walks it (gap-free prefix)."""

        return contiguous_prefix(self.category_path)

    def category_levels(self) -> dict[str, str]:
        """Return ``{"categoryLevel1": ..., "categoryLevelN": ...}`` for set levels.

        Mirrors the per-level keys used by reporting exports; holes are omitted.
        """

        return {
            f"categoryLevel{i + 1}": label
            for i, label in enumerate(self.category_path)
            if label is not None
        }


__all__ = ["CanonicalRecord"]
