from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# Kept in sync with pnl_rollup.models.SourceType / DataType.
SOURCE_VALUES: tuple[str, ...] = ("CSV", "ACUITY", "PLAID", "GOOGLE_SHEETS")
DATA_TYPE_VALUES: tuple[str, ...] = ("ACTUAL", "BUDGET", "FORECAST")
SECTION_VALUES: tuple[str, ...] = ("Revenue", "Expenses")


def _in_list(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


SOURCE_CHECK_SQL = _in_list("source", SOURCE_VALUES)
DATA_TYPE_CHECK_SQL = _in_list("data_type", DATA_TYPE_VALUES)
SECTION_CHECK_SQL = "section IS NULL OR " + _in_list("section", SECTION_VALUES)


# ---------------------------
# Reference: pnl_categories
# ---------------------------


class PnlCategory(Base):
    """Tenant taxonomy entry used for keyword categorization."""

    __tablename__ = "pnl_categories"

    tenant_id: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Keyword substrings, matched case-insensitively
    keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    section: Mapped[str | None] = mapped_column(String, nullable=True)
    # Taxonomy order is match priority
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (CheckConstraint(SECTION_CHECK_SQL, name="ck_pnl_categories_section"),)


# ---------------------------
# Core: pnl_transformed_records
# ---------------------------


class PnlTransformedRecord(Base):
    """A canonical record as produced by the transformation pipeline.

    Natural ids are only unique within a source, so the key includes it.
    """

    __tablename__ = "pnl_transformed_records"

    tenant_id: Mapped[str] = mapped_column(String, primary_key=True)
    source: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    data_type: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'ACTUAL'")
    )
    # Labels from level 1 down; JSON null marks an unmapped level
    category_path: Mapped[list[Any]] = mapped_column(JSON, nullable=False)
    category_id: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'uncategorized'")
    )
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        CheckConstraint(SOURCE_CHECK_SQL, name="ck_pnl_records_source"),
        CheckConstraint(DATA_TYPE_CHECK_SQL, name="ck_pnl_records_data_type"),
        Index("ix_pnl_records_tenant_date", "tenant_id", "date"),
    )
