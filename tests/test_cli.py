from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pnl_rollup.cli import app
from tests.helpers.db import bootstrap_sqlite_db

runner = CliRunner()

CSV_TEXT = (
    "Date,Description,Amount,Type,Category\n"
    "2024-01-05,Consulting Fee,1500,Revenue,Consulting\n"
    "2024-01-09,GitHub,$21.00,Expense,Software\n"
    "2024-01-12,Office rent,\"$1,000.00\",expense,Rent\n"
    "2024-02-02,February rent,1000,expense,Rent\n"
)

CONFIG = {
    "section": "Expenses",
    "sectionMappingType": "column",
    "sectionColumn": "Type",
    "hierarchyMappings": [{"csvColumn": "Category", "level": 2}],
}


@pytest.fixture()
def files(tmp_path: Path) -> dict[str, Path]:
    csv_path = tmp_path / "export.csv"
    csv_path.write_text(CSV_TEXT, encoding="utf-8")
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(CONFIG), encoding="utf-8")
    return {"csv": csv_path, "config": config_path, "dir": tmp_path}


def _transform_args(files: dict[str, Path], *extra: str) -> list[str]:
    return [
        "transform",
        "--csv-path",
        str(files["csv"]),
        "--config",
        str(files["config"]),
        "--tenant-id",
        "org_1",
        "--created-by",
        "user_1",
        *extra,
    ]


def test_transform_prints_records(files):
    result = runner.invoke(app, _transform_args(files))
    assert result.exit_code == 0, result.output
    lines = [line.split("\t") for line in result.stdout.strip().splitlines()]
    assert len(lines) == 4
    first = lines[0]
    assert first[1:5] == ["2024-01-05", "1500", "ACTUAL", "Revenue > Consulting"]
    assert lines[2][2] == "1000.00"
    assert lines[2][4] == "Expenses > Rent"
    assert all(line[5] == "uncategorized" for line in lines)


def test_transform_with_taxonomy_file(files):
    taxonomy = files["dir"] / "taxonomy.json"
    taxonomy.write_text(json.dumps([{"id": "software", "keywords": ["github"]}]), encoding="utf-8")
    result = runner.invoke(app, _transform_args(files, "--taxonomy", str(taxonomy)))
    assert result.exit_code == 0, result.output
    categories = [line.split("\t")[5] for line in result.stdout.strip().splitlines()]
    assert categories == ["uncategorized", "software", "uncategorized", "uncategorized"]


def test_transform_show_skipped(files):
    files["csv"].write_text(
        "Date,Description,Amount,Type\n"
        "someday,Bad date,10,expense\n"
        "2024-01-01,Bad amount,ten,expense\n"
        "2024-01-02,Good,5,expense\n",
        encoding="utf-8",
    )
    result = runner.invoke(app, _transform_args(files, "--show-skipped"))
    assert result.exit_code == 0, result.output
    assert "skipped row 0: unparseable_date" in result.output
    assert "skipped row 1: unparseable_amount" in result.output


def test_transform_missing_csv(files):
    result = runner.invoke(
        app,
        [
            "transform",
            "--csv-path",
            str(files["dir"] / "nope.csv"),
            "--config",
            str(files["config"]),
            "--tenant-id",
            "org_1",
        ],
    )
    assert result.exit_code == 1
    assert "Error: File not found" in result.output


def test_transform_invalid_config(files):
    files["config"].write_text(json.dumps({"sectionMappingType": "column"}), encoding="utf-8")
    result = runner.invoke(app, _transform_args(files))
    assert result.exit_code == 1
    assert "Error: invalid transform config" in result.output


def test_persist_then_rollup(files):
    db_url = bootstrap_sqlite_db(files["dir"] / "cli.db")
    result = runner.invoke(app, _transform_args(files, "--persist", "--database-url", db_url))
    assert result.exit_code == 0, result.output

    # persisting twice must not double count
    result = runner.invoke(app, _transform_args(files, "--persist", "--database-url", db_url))
    assert result.exit_code == 0, result.output

    result = runner.invoke(
        app,
        [
            "rollup",
            "--tenant-id",
            "org_1",
            "--start",
            "2024-01-01",
            "--end",
            "2024-01-31",
            "--database-url",
            db_url,
            "--json",
        ],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["Revenue"]["total"] == "1500.00"
    assert data["Expenses"]["total"] == "1021.00"
    assert data["Expenses"]["breakdown"]["Rent"]["total"] == "1000.00"
    assert data["Net Income"] == "479.00"

    result = runner.invoke(app, ["rollup", "--tenant-id", "org_1", "--database-url", db_url])
    assert result.exit_code == 0, result.output
    assert "Net Income" in result.stdout
    # no date range: February rent is included
    assert "-521.00" in result.stdout


def test_rollup_data_type_filter_is_case_insensitive(files):
    db_url = bootstrap_sqlite_db(files["dir"] / "cli.db")
    runner.invoke(app, _transform_args(files, "--persist", "--database-url", db_url))
    result = runner.invoke(
        app,
        ["rollup", "--tenant-id", "org_1", "--data-type", "budget", "--database-url", db_url, "--json"],
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["Net Income"] == "0.00"


def test_seed_taxonomy_then_persist_uses_stored_taxonomy(files):
    db_url = bootstrap_sqlite_db(files["dir"] / "cli.db")
    seed = files["dir"] / "seed.json"
    seed.write_text(json.dumps([{"id": "rent", "keywords": ["rent"]}]), encoding="utf-8")

    result = runner.invoke(
        app, ["seed-taxonomy", "--tenant-id", "org_1", "--file", str(seed), "--database-url", db_url]
    )
    assert result.exit_code == 0, result.output
    assert "Seeded 1 categories" in result.stdout

    result = runner.invoke(app, _transform_args(files, "--persist", "--database-url", db_url))
    assert result.exit_code == 0, result.output
    categories = [line.split("\t")[5] for line in result.stdout.strip().splitlines()]
    assert categories == ["uncategorized", "uncategorized", "rent", "rent"]


def test_seed_taxonomy_invalid_file(files):
    db_url = bootstrap_sqlite_db(files["dir"] / "cli.db")
    bad = files["dir"] / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    result = runner.invoke(
        app, ["seed-taxonomy", "--tenant-id", "org_1", "--file", str(bad), "--database-url", db_url]
    )
    assert result.exit_code == 1
    assert "Error: invalid taxonomy file" in result.output


def test_rollup_rejects_inverted_range():
    result = runner.invoke(
        app, ["rollup", "--tenant-id", "org_1", "--start", "2024-02-01", "--end", "2024-01-01"]
    )
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_rollup_without_database_url_reports_error():
    result = runner.invoke(app, ["rollup", "--tenant-id", "org_1"])
    assert result.exit_code == 1
    assert "Error: failed to load records" in result.output
