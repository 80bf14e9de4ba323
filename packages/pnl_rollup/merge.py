"""Multi-source merge.

Each connected integration (file upload, scheduling, banking, spreadsheet)
produces its own batch of canonical records. Merging is plain concatenation:
sources are treated as disjoint ledgers, so nothing is de-duplicated across
them. Because rollup sums are commutative, the merged order never changes a
rollup, which also makes it safe to fetch sources concurrently.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from .canonical import CanonicalRecord
from .logging_setup import get_logger
from .models import ImportMetadata, RawRecord, SourceType, TaxonomyCategory, TransformConfig
from .pipeline import TransformResult, transform_with_diagnostics
from .pmap import p_map, resolve_max_workers

_log = get_logger("pnl_rollup.merge")


@dataclass(frozen=True, slots=True)
class SourceBatch:
    """Raw rows fetched from one integration, with their import metadata."""

    metadata: ImportMetadata
    rows: Sequence[RawRecord]


@dataclass(frozen=True, slots=True)
class SourceResult:
    source: SourceType
    records: Sequence[CanonicalRecord]


def merge_sources(results: Iterable[SourceResult]) -> list[CanonicalRecord]:
    """Concatenate per-source record sets into one rollup input."""

    merged: list[CanonicalRecord] = []
    for result in results:
        _log.debug("merging %d records from %s", len(result.records), result.source.value)
        merged.extend(result.records)
    return merged


def transform_source(
    batch: SourceBatch,
    config: TransformConfig,
    taxonomy: Iterable[TaxonomyCategory],
) -> tuple[SourceResult, TransformResult]:
    """Run one source's raw rows through the pipeline using its field profile."""

    outcome = transform_with_diagnostics(batch.rows, config, taxonomy, metadata=batch.metadata)
    return SourceResult(batch.metadata.source, tuple(outcome.records)), outcome


def fetch_and_merge(
    fetchers: Iterable[Callable[[], SourceResult]],
    *,
    concurrency: int | None = None,
) -> list[CanonicalRecord]:
    """Call every fetcher on a bounded thread pool and merge the results.

    Fetchers are zero-argument callables doing the I/O for one integration.
    The first failing fetcher aborts the merge; a partial rollup is never
    produced.
    """

    results = p_map(
        list(fetchers),
        lambda fetch: fetch(),
        concurrency=resolve_max_workers(concurrency),
    )
    for result in results:
        _log.info("source %s: %d records", result.source.value, len(result.records))
    return merge_sources(results)


__all__ = [
    "SourceBatch",
    "SourceResult",
    "fetch_and_merge",
    "merge_sources",
    "transform_source",
]
