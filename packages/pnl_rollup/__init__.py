"""Public interface for the ``pnl_rollup`` package.

This module re-exports the transformation and rollup API and the public
models as the stable import surface. There is no runtime logic here, only
symbol re-exports. Database helpers live in ``pnl_rollup.persistence`` and
``pnl_rollup.categories`` and are not imported eagerly.
"""

from .canonical import CanonicalRecord
from .categorizer import categorize, classify_section, resolve_section
from .fields import resolve_field
from .hierarchy import build_path, contiguous_prefix
from .merge import SourceBatch, SourceResult, fetch_and_merge, merge_sources, transform_source
from .models import (
    DataType,
    DateRange,
    HierarchyMapping,
    ImportMetadata,
    RawRecord,
    SkippedRow,
    SkipReason,
    SourceType,
    TaxonomyCategory,
    TransformConfig,
)
from .normalizers import normalize_amount, normalize_date, normalize_name
from .pipeline import TransformResult, transform, transform_with_diagnostics
from .rollup import PnLRollup, RollupNode, aggregate, aggregate_sharded

__all__ = [
    # Pipeline
    "resolve_field",
    "normalize_date",
    "normalize_amount",
    "normalize_name",
    "categorize",
    "classify_section",
    "resolve_section",
    "build_path",
    "contiguous_prefix",
    "transform",
    "transform_with_diagnostics",
    "TransformResult",
    # Rollup / merge
    "aggregate",
    "aggregate_sharded",
    "PnLRollup",
    "RollupNode",
    "merge_sources",
    "fetch_and_merge",
    "transform_source",
    "SourceBatch",
    "SourceResult",
    # Models / types
    "CanonicalRecord",
    "RawRecord",
    "SourceType",
    "DataType",
    "SkipReason",
    "SkippedRow",
    "TaxonomyCategory",
    "HierarchyMapping",
    "TransformConfig",
    "ImportMetadata",
    "DateRange",
]
