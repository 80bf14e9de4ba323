"""Data models and type aliases for ``pnl_rollup``.

Raw rows are kept opaque: keys vary per source (and sometimes per row), so a
:data:`RawRecord` is just a string-keyed mapping of scalar values. Everything
past the transformation boundary is strongly typed.

Configuration objects (:class:`TransformConfig`, :class:`HierarchyMapping`,
:class:`TaxonomyCategory`, :class:`ImportMetadata`) are Pydantic models so that
tenant settings loaded from JSON are validated once, up front. They are frozen
and passed explicitly into every call; nothing here is module-level state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from enum import StrEnum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------

# An opaque, mapping-like row as read from a CSV file or an integration API.
# Values are untyped scalars (str, int, float, None); nested values from API
# payloads are tolerated but never interpreted.
type RawRecord = Mapping[str, Any]
"""A single raw row with arbitrary, source-defined columns."""

type RawRecords = Iterable[RawRecord]


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SourceType(StrEnum):
    """Origin of a canonical record.

    ``ACUITY`` is the scheduling system, ``PLAID`` the banking aggregator and
    ``GOOGLE_SHEETS`` the spreadsheet integration; ``CSV`` covers file uploads.
    """

    CSV = "CSV"
    ACUITY = "ACUITY"
    PLAID = "PLAID"
    GOOGLE_SHEETS = "GOOGLE_SHEETS"


class DataType(StrEnum):
    ACTUAL = "ACTUAL"
    BUDGET = "BUDGET"
    FORECAST = "FORECAST"

    @classmethod
    def parse(cls, raw: Any) -> DataType | None:
        """Return the member matching ``raw`` case-insensitively, else ``None``."""

        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return None


class SkipReason(StrEnum):
    UNPARSEABLE_DATE = "unparseable_date"
    UNPARSEABLE_AMOUNT = "unparseable_amount"
    DUPLICATE_ID = "duplicate_id"


REVENUE = "Revenue"
EXPENSES = "Expenses"
UNCATEGORIZED = "uncategorized"
# Level-1 label used when no section could be resolved for a row.
UNRESOLVED_SECTION = "Uncategorized"

SectionMappingType = Literal["static", "column", "taxonomy"]


def canonical_section(label: str) -> str:
    """Return ``Revenue``/``Expenses`` for case-insensitive matches, else ``label``."""

    folded = label.strip().lower()
    for known in (REVENUE, EXPENSES):
        if folded == known.lower():
            return known
    return label.strip()


# ---------------------------------------------------------------------------
# Taxonomy and hierarchy configuration
# ---------------------------------------------------------------------------


class TaxonomyCategory(BaseModel):
    """A tenant category with the keywords used for default categorization.

    ``section`` optionally pins the category to ``Revenue`` or ``Expenses``;
    it is only consulted when a transformation runs in ``taxonomy`` mode.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    id: str = Field(min_length=1)
    name: str
    keywords: tuple[str, ...] = ()
    section: str | None = None

    @field_validator("keywords", mode="before")
    @classmethod
    def _drop_blank_keywords(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(k.strip() for k in v if isinstance(k, str) and k.strip())

    @field_validator("section", mode="before")
    @classmethod
    def _canonical_section(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if isinstance(v, str):
            label = canonical_section(v)
            if label not in (REVENUE, EXPENSES):
                raise ValueError(f"section must be {REVENUE!r} or {EXPENSES!r}, got {v!r}")
            return label
        return v


class HierarchyMapping(BaseModel):
    """Map a raw column onto a depth of the category path (``level >= 2``).

    Level 1 is always the section. Accepts ``sourceColumn`` and the legacy
    ``csvColumn`` key when loaded from JSON.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    source_column: str = Field(
        min_length=1,
        validation_alias=AliasChoices("source_column", "sourceColumn", "csvColumn"),
    )
    level: int = Field(ge=2)


class TransformConfig(BaseModel):
    """Per-run transformation settings, usually tenant-scoped.

    Attributes
    ----------
    section:
        Static level-1 label and the default for the ``column``/``taxonomy``
        modes when nothing matches.
    section_column:
        Raw column classified into Revenue/Expenses in ``column`` mode.
    section_mapping_type:
        ``static`` (default), ``column`` or ``taxonomy``.
    hierarchy_mappings:
        Level assignments for deeper category path entries.
    data_type:
        Default classification for rows that don't carry their own.
    name_keys / date_keys / amount_keys / id_keys:
        Optional candidate-key overrides; ``None`` defers to the source
        profile (see :mod:`pnl_rollup.ingest.sources`).
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    section: str | None = None
    section_column: str | None = Field(default=None, alias="sectionColumn")
    section_mapping_type: SectionMappingType = Field(default="static", alias="sectionMappingType")
    hierarchy_mappings: tuple[HierarchyMapping, ...] = Field(
        default=(), alias="hierarchyMappings"
    )
    data_type: DataType = Field(default=DataType.ACTUAL, alias="dataType")
    name_keys: tuple[str, ...] | None = Field(default=None, alias="nameKeys")
    date_keys: tuple[str, ...] | None = Field(default=None, alias="dateKeys")
    amount_keys: tuple[str, ...] | None = Field(default=None, alias="amountKeys")
    id_keys: tuple[str, ...] | None = Field(default=None, alias="idKeys")

    @field_validator("section", "section_column", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("section")
    @classmethod
    def _canonical_static_section(cls, v: str | None) -> str | None:
        return canonical_section(v) if v is not None else None

    @field_validator("hierarchy_mappings", mode="before")
    @classmethod
    def _drop_unfilled_mappings(cls, v: Any) -> Any:
        # Editors send placeholder rows with an empty column name.
        if not isinstance(v, (list, tuple)):
            return v
        return [
            m
            for m in v
            if not (
                isinstance(m, Mapping)
                and not str(
                    m.get("source_column") or m.get("sourceColumn") or m.get("csvColumn") or ""
                ).strip()
            )
        ]

    @field_validator("data_type", mode="before")
    @classmethod
    def _parse_data_type(cls, v: Any) -> Any:
        parsed = DataType.parse(v)
        return parsed if parsed is not None else v

    @model_validator(mode="after")
    def _column_mode_needs_column(self) -> TransformConfig:
        if self.section_mapping_type == "column" and not self.section_column:
            raise ValueError("section_column is required when section_mapping_type='column'")
        return self


class ImportMetadata(BaseModel):
    """Metadata of the import a raw batch belongs to."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    tenant_id: str = Field(min_length=1, alias="tenantId")
    source: SourceType = SourceType.CSV
    created_by: str | None = Field(default=None, alias="createdBy")


# ---------------------------------------------------------------------------
# Query parameters
# ---------------------------------------------------------------------------


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class DateRange:
    """An inclusive date window for rollup queries.

    Either bound may be ``None`` (open-ended). ``date`` bounds cover whole
    days: ``end=date(2024, 1, 31)`` includes everything on January 31st (UTC).
    ``datetime`` bounds are compared exactly; naive values are taken as UTC.
    """

    start: date | datetime | None = None
    end: date | datetime | None = None

    def __post_init__(self) -> None:
        for name in ("start", "end"):
            val = getattr(self, name)
            if val is not None and not isinstance(val, date):
                raise TypeError(f"DateRange.{name} must be a date/datetime or None")
        lo, hi = self.lower, self.upper
        if lo is not None and hi is not None and lo > hi:
            raise ValueError("DateRange.start must not be after DateRange.end")

    @property
    def lower(self) -> datetime | None:
        if self.start is None:
            return None
        if isinstance(self.start, datetime):
            return _as_utc(self.start)
        return datetime.combine(self.start, time.min, tzinfo=UTC)

    @property
    def upper(self) -> datetime | None:
        if self.end is None:
            return None
        if isinstance(self.end, datetime):
            return _as_utc(self.end)
        return datetime.combine(self.end, time.max, tzinfo=UTC)

    def contains(self, moment: datetime) -> bool:
        m = _as_utc(moment)
        lo, hi = self.lower, self.upper
        return (lo is None or m >= lo) and (hi is None or m <= hi)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SkippedRow:
    """A raw row excluded by the validity gate.

    ``index`` is the 0-based position in the input batch; ``raw_value`` is the
    value that failed to normalize (``None`` when the field was absent).
    """

    index: int
    reason: SkipReason
    raw_value: Any = None


__all__ = [
    "RawRecord",
    "RawRecords",
    "SourceType",
    "DataType",
    "SkipReason",
    "REVENUE",
    "EXPENSES",
    "UNCATEGORIZED",
    "UNRESOLVED_SECTION",
    "SectionMappingType",
    "canonical_section",
    "TaxonomyCategory",
    "HierarchyMapping",
    "TransformConfig",
    "ImportMetadata",
    "DateRange",
    "SkippedRow",
]
