from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from pnl_rollup.models import (
    DataType,
    HierarchyMapping,
    ImportMetadata,
    SkipReason,
    SourceType,
    TaxonomyCategory,
    TransformConfig,
)
from pnl_rollup.pipeline import compute_record_id, transform, transform_with_diagnostics
from pnl_rollup.rollup import aggregate

META = ImportMetadata(tenant_id="org_1", created_by="user_7")
TAXONOMY = [
    TaxonomyCategory(id="consulting", name="Consulting", keywords=["consulting"]),
    TaxonomyCategory(id="software", name="Software", keywords=["github", "software"]),
]


def test_static_revenue_row_end_to_end():
    rows = [{"Date": "2024-01-05", "Description": "Consulting Fee", "Amount": "1500"}]
    records = transform(rows, TransformConfig(section="Revenue"), TAXONOMY, metadata=META)

    assert len(records) == 1
    rec = records[0]
    assert rec.category_path == ("Revenue",)
    assert rec.amount == Decimal("1500")
    assert rec.name == "Consulting Fee"
    assert rec.date == datetime(2024, 1, 5, tzinfo=UTC)
    assert rec.tenant_id == "org_1"
    assert rec.created_by == "user_7"
    assert rec.source is SourceType.CSV
    assert rec.data_type is DataType.ACTUAL
    assert rec.category_id == "consulting"

    rollup = aggregate(records)
    assert rollup.revenue.total == Decimal("1500")
    assert rollup.expenses.total == Decimal("0")
    assert rollup.net_income == Decimal("1500")


def test_column_mode_with_hierarchy_end_to_end():
    config = TransformConfig(
        section_mapping_type="column",
        section_column="Type",
        hierarchy_mappings=[HierarchyMapping.model_validate({"csvColumn": "Category", "level": 2})],
    )
    rows = [{"Type": "expense", "Date": "2024-02-01", "Amount": "200", "Category": "Software"}]
    records = transform(rows, config, [], metadata=META)

    assert [r.category_path for r in records] == [("Expenses", "Software")]
    rollup = aggregate(records)
    assert rollup.expenses.total == Decimal("200")
    assert rollup.expenses.children["Software"].total == Decimal("200")
    assert rollup.revenue.total == Decimal("0")
    assert rollup.net_income == Decimal("-200")


def test_gap_in_hierarchy_collapses_to_section():
    config = TransformConfig(
        section="Expenses",
        hierarchy_mappings=[
            HierarchyMapping(source_column="categoryLevel2", level=2),
            HierarchyMapping(source_column="categoryLevel3", level=3),
        ],
    )
    rows = [{"Date": "2024-02-01", "Amount": "80", "categoryLevel3": "Cloud"}]
    records = transform(rows, config, [], metadata=META)

    assert records[0].category_path == ("Expenses", None, "Cloud")
    rollup = aggregate(records)
    assert rollup.expenses.total == Decimal("80")
    assert rollup.expenses.children == {}
    assert rollup.expenses.direct == Decimal("80")


def test_validity_gate_drops_bad_dates_and_amounts_with_reasons():
    rows = [
        {"Date": "not a date", "Amount": "10"},
        {"Date": "2024-01-02", "Amount": "abc"},
        {"Date": "2024-01-03", "Amount": "0"},
        {"Date": "2024-01-04"},
        {"Amount": "5"},
    ]
    result = transform_with_diagnostics(rows, TransformConfig(section="Expenses"), [], metadata=META)

    assert [r.amount for r in result.records] == [Decimal("0"), Decimal("0")]
    assert [r.date.day for r in result.records] == [3, 4]
    assert [(s.index, s.reason) for s in result.skipped] == [
        (0, SkipReason.UNPARSEABLE_DATE),
        (1, SkipReason.UNPARSEABLE_AMOUNT),
        (4, SkipReason.UNPARSEABLE_DATE),
    ]
    assert result.skipped[1].raw_value == "abc"
    assert result.skipped[2].raw_value is None


def test_transform_and_diagnostics_agree():
    rows = [{"Date": "2024-01-05", "Amount": "1"}, {"Date": "x", "Amount": "1"}]
    config = TransformConfig(section="Revenue")
    assert transform(rows, config, [], metadata=META) == transform_with_diagnostics(
        rows, config, [], metadata=META
    ).records


def test_name_fallback_and_case_insensitive_keys():
    rows = [{"DATE": "2024-01-05", "amount": "$12.00", "NAME": "  "}]
    [rec] = transform(rows, TransformConfig(section="Expenses"), [], metadata=META)
    assert rec.name == "N/A"
    assert rec.amount == Decimal("12.00")
    assert rec.category_id == "uncategorized"


def test_natural_id_is_kept_and_generated_ids_are_stable():
    rows = [
        {"id": "txn-42", "Date": "2024-01-05", "Amount": "1"},
        {"Date": "2024-01-05", "Amount": "1"},
        {"Date": "2024-01-05", "Amount": "1"},
    ]
    config = TransformConfig(section="Expenses", id_keys=("id",))
    first = transform(rows, config, [], metadata=META)
    second = transform(rows, config, [], metadata=META)

    assert first[0].id == "txn-42"
    assert first[1].id.startswith("csv-")
    # identical rows at different positions stay distinct
    assert first[1].id != first[2].id
    assert [r.id for r in first] == [r.id for r in second]
    assert first[1].id == compute_record_id(rows[1], index=1, metadata=META)


def test_upload_id_column_is_not_a_natural_id_by_default():
    rows = [
        {"ID": "1", "Date": "2024-01-05", "Description": "A", "Amount": "100"},
        {"ID": "1", "Date": "2024-01-06", "Description": "B", "Amount": "50"},
    ]
    result = transform_with_diagnostics(rows, TransformConfig(section="Revenue"), [], metadata=META)

    assert result.skipped == []
    assert len({r.id for r in result.records}) == 2
    assert all(r.id.startswith("csv-") for r in result.records)
    assert aggregate(result.records).revenue.total == Decimal("150")


def test_repeated_natural_id_is_reported_not_collapsed():
    rows = [
        {"ID": "1", "Date": "2024-01-05", "Amount": "100"},
        {"ID": "2", "Date": "2024-01-05", "Amount": "7"},
        {"ID": "1", "Date": "2024-01-06", "Amount": "50"},
    ]
    config = TransformConfig(section="Revenue", id_keys=("id",))
    result = transform_with_diagnostics(rows, config, [], metadata=META)

    assert [r.id for r in result.records] == ["1", "2"]
    assert [(s.index, s.reason, s.raw_value) for s in result.skipped] == [
        (2, SkipReason.DUPLICATE_ID, "1")
    ]


def test_lower_case_static_section_reaches_the_rollup():
    rows = [{"Date": "2024-01-05", "Amount": "40"}]
    config = TransformConfig.model_validate({"section": "revenue"})
    records = transform(rows, config, [], metadata=META)

    assert records[0].category_path == ("Revenue",)
    assert aggregate(records).revenue.total == Decimal("40")


def test_generated_id_depends_on_tenant():
    row = {"Date": "2024-01-05", "Amount": "1"}
    other = ImportMetadata(tenant_id="org_2")
    assert compute_record_id(row, index=0, metadata=META) != compute_record_id(
        row, index=0, metadata=other
    )


def test_row_data_type_overrides_config():
    rows = [
        {"Date": "2024-01-05", "Amount": "1", "dataType": "budget"},
        {"Date": "2024-01-05", "Amount": "1", "data_type": "Forecast"},
        {"Date": "2024-01-05", "Amount": "1", "dataType": "plan"},
        {"Date": "2024-01-05", "Amount": "1"},
    ]
    config = TransformConfig(section="Expenses", data_type=DataType.ACTUAL)
    types = [r.data_type for r in transform(rows, config, [], metadata=META)]
    assert types == [DataType.BUDGET, DataType.FORECAST, DataType.ACTUAL, DataType.ACTUAL]


def test_taxonomy_mode_sections():
    taxonomy = [
        TaxonomyCategory(id="consulting", name="Consulting", keywords=["consulting"], section="Revenue"),
        TaxonomyCategory(id="software", name="Software", keywords=["github"], section="Expenses"),
    ]
    rows = [
        {"Date": "2024-01-05", "Description": "Acme consulting", "Amount": "100"},
        {"Date": "2024-01-05", "Description": "GitHub", "Amount": "10"},
        {"Date": "2024-01-05", "Description": "Mystery", "Amount": "1"},
    ]
    config = TransformConfig(section_mapping_type="taxonomy")
    records = transform(rows, config, taxonomy, metadata=META)
    assert [r.section for r in records] == ["Revenue", "Expenses", "Uncategorized"]

    rollup = aggregate(records)
    assert rollup.net_income == Decimal("90")


def test_acuity_profile_fields():
    meta = ImportMetadata(tenant_id="org_1", source=SourceType.ACUITY)
    rows = [
        {
            "id": 9001,
            "type": "Private Lesson",
            "datetime": "2024-03-04T15:00:00-0500",
            "price": "$100.00",
        }
    ]
    [rec] = transform(rows, TransformConfig(section="Revenue"), [], metadata=meta)
    assert rec.id == "9001"
    assert rec.name == "Private Lesson"
    assert rec.amount == Decimal("100.00")
    assert rec.date == datetime(2024, 3, 4, 20, 0, tzinfo=UTC)
    assert rec.source is SourceType.ACUITY


def test_plaid_profile_fields():
    meta = ImportMetadata(tenant_id="org_1", source=SourceType.PLAID)
    rows = [
        {"transaction_id": "p-1", "name": "GITHUB.COM", "merchant_name": "GitHub", "date": "2024-03-01", "amount": 21.5},
        {"transaction_id": "p-2", "name": "Transfer", "date": "2024-03-02", "amount": -5},
    ]
    records = transform(rows, TransformConfig(section="Expenses"), TAXONOMY, metadata=meta)
    assert [(r.id, r.name, r.amount) for r in records] == [
        ("p-1", "GitHub", Decimal("21.5")),
        ("p-2", "Transfer", Decimal("-5")),
    ]
    assert records[0].category_id == "software"


def test_config_key_overrides_replace_profile_keys():
    config = TransformConfig(section="Expenses", amount_keys=("Debit",), name_keys=("Memo",))
    rows = [{"Date": "2024-01-05", "Debit": "7", "Amount": "999", "Memo": "Parking"}]
    [rec] = transform(rows, config, [], metadata=META)
    assert rec.amount == Decimal("7")
    assert rec.name == "Parking"


def test_empty_batch():
    result = transform_with_diagnostics([], TransformConfig(section="Revenue"), [], metadata=META)
    assert result.records == [] and result.skipped == []


@pytest.mark.parametrize("bad", [None, "Date,Amount", {"Date": "2024-01-01"}, 42])
def test_malformed_batch_shape_raises_type_error(bad):
    with pytest.raises(TypeError):
        transform(bad, TransformConfig(section="Revenue"), [], metadata=META)


def test_non_mapping_row_raises_type_error():
    with pytest.raises(TypeError):
        transform([["2024-01-01", "5"]], TransformConfig(section="Revenue"), [], metadata=META)


def test_accepts_generators():
    rows = ({"Date": f"2024-01-{d:02d}", "Amount": str(d)} for d in range(1, 4))
    records = transform(rows, TransformConfig(section="Revenue"), [], metadata=META)
    assert sum(r.amount for r in records) == Decimal("6")
