"""Category path construction from hierarchy mappings.

A path is a tuple of labels where index 0 is the section (level 1) and index
``n - 1`` is level ``n``. Mappings are applied by their explicit ``level``, not
by their position in the list, and a level with no value in the row is left as
a ``None`` hole. Holes are preserved on the record; consumers that need a
walkable path use :func:`contiguous_prefix`.
"""

from __future__ import annotations

from collections.abc import Sequence

from .fields import resolve_text
from .models import HierarchyMapping, RawRecord


def build_path(
    row: RawRecord, level1: str, mappings: Sequence[HierarchyMapping]
) -> tuple[str | None, ...]:
    """Return the category path for ``row``.

    When two mappings target the same level, the later one wins if the row has
    a value for it. Trailing holes are trimmed so the tuple always ends on a
    label.
    """

    slots: dict[int, str] = {}
    for mapping in mappings:
        value = resolve_text(row, [mapping.source_column])
        if value is not None:
            slots[mapping.level - 1] = value

    depth = max(slots, default=0) + 1
    path: list[str | None] = [None] * depth
    path[0] = level1
    for index, label in slots.items():
        path[index] = label
    return tuple(path)


def contiguous_prefix(path: Sequence[str | None]) -> tuple[str, ...]:
    """Return the longest leading run of non-empty labels in ``path``.

    ``("Expenses", None, "Cloud")`` collapses to ``("Expenses",)``: a label
    below a missing level is dropped, never promoted into the gap.
    """

    out: list[str] = []
    for label in path:
        if label is None or not label.strip():
            break
        out.append(label)
    return tuple(out)


__all__ = ["build_path", "contiguous_prefix"]
