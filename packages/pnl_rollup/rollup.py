"""Rollup aggregation of canonical records into a P&L tree.

The tree has two roots that always exist, ``Revenue`` and ``Expenses``. Each
record adds its amount to its section root and to every node along its
category path below it, so a parent's total is cumulative:

    node.total == node.direct + sum(child.total for child in node.children)

where ``direct`` holds amounts of records whose path ends at that node. Paths
with a missing intermediate level are collapsed to their contiguous prefix
before walking. Net income is always derived from the two roots.

Records whose section is neither ``Revenue`` nor ``Expenses`` do not
contribute to any total.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Context, Decimal

from .canonical import CanonicalRecord
from .logging_setup import get_logger
from .models import EXPENSES, REVENUE, DataType, DateRange
from .pmap import p_map, resolve_max_workers

_log = get_logger("pnl_rollup.rollup")

DEFAULT_DATA_TYPES: tuple[DataType, ...] = (DataType.ACTUAL,)

_CENT = Decimal("0.01")


def format_amount(value: Decimal) -> str:
    """Render ``value`` in fixed-point notation with at least two decimals.

    Trailing zeros beyond the cents are dropped, so ``Decimal("1500.0000")``
    and ``Decimal("1.5E+3")`` both render as ``"1500.00"`` while
    ``Decimal("-12.3456")`` keeps its precision.
    """

    d = value.normalize()
    exponent = d.as_tuple().exponent
    if isinstance(exponent, int) and exponent > -2:
        d = d.quantize(_CENT, context=Context(prec=max(28, d.adjusted() + 3)))
    return f"{d:f}"


@dataclass(slots=True)
class RollupNode:
    label: str
    total: Decimal = Decimal(0)
    direct: Decimal = Decimal(0)
    children: dict[str, RollupNode] = field(default_factory=dict)

    def child(self, label: str) -> RollupNode:
        node = self.children.get(label)
        if node is None:
            node = self.children[label] = RollupNode(label)
        return node

    def add(self, path: Iterable[str], amount: Decimal) -> None:
        """Add ``amount`` here and at every node along ``path`` below this one."""

        node = self
        node.total += amount
        for label in path:
            node = node.child(label)
            node.total += amount
        node.direct += amount

    def absorb(self, other: RollupNode) -> None:
        """Fold ``other`` (same label) into this node, summing node-wise."""

        self.total += other.total
        self.direct += other.direct
        for label, sub in other.children.items():
            self.child(label).absorb(sub)

    def walk(self, depth: int = 0) -> Iterable[tuple[int, RollupNode]]:
        """Yield ``(depth, node)`` pairs depth-first, children in label order."""

        yield depth, self
        for label in sorted(self.children):
            yield from self.children[label].walk(depth + 1)

    def to_dict(self) -> dict[str, object]:
        return {
            "total": format_amount(self.total),
            "breakdown": {
                label: self.children[label].to_dict() for label in sorted(self.children)
            },
        }


@dataclass(slots=True)
class PnLRollup:
    """Revenue and Expenses trees for one query; net income is derived."""

    revenue: RollupNode = field(default_factory=lambda: RollupNode(REVENUE))
    expenses: RollupNode = field(default_factory=lambda: RollupNode(EXPENSES))

    @property
    def net_income(self) -> Decimal:
        return self.revenue.total - self.expenses.total

    def section(self, label: str) -> RollupNode | None:
        if label == REVENUE:
            return self.revenue
        if label == EXPENSES:
            return self.expenses
        return None

    @classmethod
    def combine(cls, parts: Iterable[PnLRollup]) -> PnLRollup:
        """Merge partial rollups (e.g. per shard) into a fresh one."""

        out = cls()
        for part in parts:
            out.revenue.absorb(part.revenue)
            out.expenses.absorb(part.expenses)
        return out

    def to_dict(self) -> dict[str, object]:
        return {
            REVENUE: self.revenue.to_dict(),
            EXPENSES: self.expenses.to_dict(),
            "Net Income": format_amount(self.net_income),
        }

    def render_text(self) -> str:
        lines: list[str] = []
        for root in (self.revenue, self.expenses):
            for depth, node in root.walk():
                label = "  " * depth + node.label
                lines.append(f"{label:<40}{node.total:>16,.2f}")
        lines.append(f"{'Net Income':<40}{self.net_income:>16,.2f}")
        return "\n".join(lines)


def _ensure_records(records: Iterable[CanonicalRecord]) -> list[CanonicalRecord]:
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
        raise TypeError(
            "aggregate expects an iterable of CanonicalRecord, got " + type(records).__name__
        )
    out = list(records)
    for pos, rec in enumerate(out):
        if not isinstance(rec, CanonicalRecord):
            raise TypeError(f"item {pos} is {type(rec).__name__}, expected CanonicalRecord")
    return out


def aggregate(
    records: Iterable[CanonicalRecord],
    date_range: DateRange | None = None,
    data_types: Iterable[DataType] | None = DEFAULT_DATA_TYPES,
    *,
    tenant_id: str | None = None,
) -> PnLRollup:
    """Build a :class:`PnLRollup` from ``records``.

    Parameters
    ----------
    records:
        Canonical records; order does not affect the result.
    date_range:
        Inclusive bounds on ``record.date``. ``None`` keeps every date.
    data_types:
        Data types to keep; defaults to actuals only. ``None`` keeps all.
    tenant_id:
        When given, records of other tenants are ignored.
    """

    items = _ensure_records(records)
    wanted = None if data_types is None else frozenset(DataType(t) for t in data_types)

    rollup = PnLRollup()
    used = 0
    for rec in items:
        if tenant_id is not None and rec.tenant_id != tenant_id:
            continue
        if wanted is not None and rec.data_type not in wanted:
            continue
        if date_range is not None and not date_range.contains(rec.date):
            continue
        root = rollup.section(rec.section)
        if root is None:
            continue
        root.add(rec.rollup_path[1:], rec.amount)
        used += 1

    _log.debug("aggregated %d of %d records", used, len(items))
    return rollup


def aggregate_sharded(
    shards: Iterable[Iterable[CanonicalRecord]],
    date_range: DateRange | None = None,
    data_types: Iterable[DataType] | None = DEFAULT_DATA_TYPES,
    *,
    tenant_id: str | None = None,
    concurrency: int | None = None,
) -> PnLRollup:
    """Aggregate shards concurrently and combine the partial trees."""

    types = None if data_types is None else tuple(data_types)
    parts = p_map(
        list(shards),
        lambda shard: aggregate(shard, date_range, types, tenant_id=tenant_id),
        concurrency=resolve_max_workers(concurrency),
    )
    return PnLRollup.combine(parts)


__all__ = [
    "DEFAULT_DATA_TYPES",
    "PnLRollup",
    "RollupNode",
    "aggregate",
    "aggregate_sharded",
    "format_amount",
]
