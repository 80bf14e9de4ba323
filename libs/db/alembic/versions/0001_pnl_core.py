# ruff: noqa: I001
"""P&L core tables: tenant taxonomy and transformed records.

Revision ID: 0001_pnl_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_pnl_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "pnl_categories",
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("section", sa.String(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("tenant_id", "id", name="pk_pnl_categories"),
        sa.CheckConstraint(
            "section IS NULL OR section IN ('Revenue', 'Expenses')",
            name="ck_pnl_categories_section",
        ),
    )

    op.create_table(
        "pnl_transformed_records",
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("amount", sa.Numeric(18, 4), nullable=False),
        sa.Column("data_type", sa.String(), nullable=False, server_default=sa.text("'ACTUAL'")),
        sa.Column("category_path", sa.JSON(), nullable=False),
        sa.Column(
            "category_id", sa.String(), nullable=False, server_default=sa.text("'uncategorized'")
        ),
        sa.Column("created_by", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("tenant_id", "source", "id", name="pk_pnl_transformed_records"),
        sa.CheckConstraint(
            "source IN ('CSV', 'ACUITY', 'PLAID', 'GOOGLE_SHEETS')",
            name="ck_pnl_records_source",
        ),
        sa.CheckConstraint(
            "data_type IN ('ACTUAL', 'BUDGET', 'FORECAST')",
            name="ck_pnl_records_data_type",
        ),
    )
    op.create_index(
        "ix_pnl_records_tenant_date",
        "pnl_transformed_records",
        ["tenant_id", "date"],
    )


def downgrade() -> None:
    op.drop_index("ix_pnl_records_tenant_date", table_name="pnl_transformed_records")
    op.drop_table("pnl_transformed_records")
    op.drop_table("pnl_categories")
