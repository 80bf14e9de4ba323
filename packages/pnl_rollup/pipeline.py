"""Raw rows → canonical records.

:func:`transform` runs every row of one import batch through field
resolution, normalization, categorization and hierarchy mapping, and returns
the canonical records that pass the validity gate. It does no I/O: callers hand
the complete result to persistence in one transaction, so a failure mid-batch
never leaves half an import behind.

Validity gate
-------------
A row becomes a :class:`~pnl_rollup.canonical.CanonicalRecord` only when its
date parsed (no fallback) and its amount either parsed or was absent (absent
means ``0``). An amount that was present but unparseable drops the row. A row
whose natural id repeats an earlier record of the same batch is dropped as
``duplicate_id``. Dropped rows are reported through
:func:`transform_with_diagnostics`.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from .canonical import CanonicalRecord
from .categorizer import categorize, resolve_section
from .fields import resolve_field
from .hierarchy import build_path
from .ingest.sources import DATA_TYPE_KEYS, SourceProfile, profile_for
from .logging_setup import get_logger
from .models import (
    DataType,
    ImportMetadata,
    RawRecord,
    SkippedRow,
    SkipReason,
    TaxonomyCategory,
    TransformConfig,
)
from .normalizers import normalize_amount, normalize_date, normalize_name

_log = get_logger("pnl_rollup.pipeline")


@dataclass(frozen=True, slots=True)
class TransformResult:
    """Canonical records plus the rows the validity gate dropped."""

    records: list[CanonicalRecord] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)


def _ensure_rows(raw_rows: Iterable[RawRecord]) -> list[RawRecord]:
    if isinstance(raw_rows, (str, bytes, Mapping)) or not isinstance(raw_rows, Iterable):
        raise TypeError(
            "transform expects an iterable of row mappings, got " + type(raw_rows).__name__
        )
    rows = list(raw_rows)
    for pos, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise TypeError(f"row {pos} is {type(row).__name__}, expected a mapping")
    return rows


def compute_record_id(row: RawRecord, *, index: int, metadata: ImportMetadata) -> str:
    """Deterministic id for rows without a natural id.

    Hashes tenant, source, the row's position in the batch and its content, so
    re-transforming the same import reproduces the same ids while identical
    rows at different positions stay distinct.
    """

    payload = {
        "tenant": metadata.tenant_id,
        "source": metadata.source.value,
        "pos": index,
        "row": {str(k): v for k, v in row.items()},
    }
    data = json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )
    digest = hashlib.sha256(data.encode("utf-8")).hexdigest()[:32]
    return f"{metadata.source.value.lower()}-{digest}"


def _row_data_type(row: RawRecord, default: DataType) -> DataType:
    return DataType.parse(resolve_field(row, DATA_TYPE_KEYS)) or default


def _transform_row(
    index: int,
    row: RawRecord,
    *,
    config: TransformConfig,
    taxonomy: Sequence[TaxonomyCategory],
    metadata: ImportMetadata,
    profile: SourceProfile,
) -> CanonicalRecord | SkippedRow:
    name = normalize_name(resolve_field(row, profile.name_keys))
    level1 = resolve_section(row, name=name, config=config, taxonomy=taxonomy)
    path = build_path(row, level1, config.hierarchy_mappings)

    raw_date = resolve_field(row, profile.date_keys)
    date = normalize_date(raw_date)
    if date.was_fallback:
        return SkippedRow(index=index, reason=SkipReason.UNPARSEABLE_DATE, raw_value=raw_date)

    raw_amount = resolve_field(row, profile.amount_keys)
    if raw_amount is None:
        amount = Decimal(0)
    else:
        normalized = normalize_amount(raw_amount)
        if normalized.was_fallback:
            return SkippedRow(
                index=index, reason=SkipReason.UNPARSEABLE_AMOUNT, raw_value=raw_amount
            )
        amount = normalized.value

    natural_id = resolve_field(row, profile.id_keys)
    record_id = (
        str(natural_id).strip()
        if natural_id is not None
        else compute_record_id(row, index=index, metadata=metadata)
    )

    return CanonicalRecord(
        id=record_id,
        tenant_id=metadata.tenant_id,
        name=name,
        date=date.value,
        amount=amount,
        source=metadata.source,
        data_type=_row_data_type(row, config.data_type),
        category_path=path,
        created_by=metadata.created_by,
        category_id=categorize(name, taxonomy),
    )


def transform_with_diagnostics(
    raw_rows: Iterable[RawRecord],
    config: TransformConfig,
    taxonomy: Iterable[TaxonomyCategory],
    *,
    metadata: ImportMetadata,
) -> TransformResult:
    """Transform a raw batch and report the rows that were dropped."""

    rows = _ensure_rows(raw_rows)
    categories = tuple(taxonomy)
    profile = profile_for(metadata.source, config)

    result = TransformResult()
    seen_ids: set[str] = set()
    for index, row in enumerate(rows):
        outcome = _transform_row(
            index,
            row,
            config=config,
            taxonomy=categories,
            metadata=metadata,
            profile=profile,
        )
        if isinstance(outcome, CanonicalRecord) and outcome.id in seen_ids:
            outcome = SkippedRow(index=index, reason=SkipReason.DUPLICATE_ID, raw_value=outcome.id)
        if isinstance(outcome, SkippedRow):
            _log.debug("row %d dropped: %s (%r)", index, outcome.reason, outcome.raw_value)
            result.skipped.append(outcome)
        else:
            seen_ids.add(outcome.id)
            result.records.append(outcome)

    _log.info(
        "tenant=%s source=%s: %d rows in, %d records out, %d dropped",
        metadata.tenant_id,
        metadata.source.value,
        len(rows),
        len(result.records),
        len(result.skipped),
    )
    return result


def transform(
    raw_rows: Iterable[RawRecord],
    config: TransformConfig,
    taxonomy: Iterable[TaxonomyCategory],
    *,
    metadata: ImportMetadata,
) -> list[CanonicalRecord]:
    """Transform a raw batch into canonical records (dropped rows omitted)."""

    return transform_with_diagnostics(raw_rows, config, taxonomy, metadata=metadata).records


__all__ = [
    "TransformResult",
    "compute_record_id",
    "transform",
    "transform_with_diagnostics",
]
