from __future__ import annotations

import csv
from pathlib import Path

import pytest

from pnl_rollup.ingest.sources import SOURCE_PROFILES, profile_for
from pnl_rollup.ingest.utils import load_raw_rows_from_csv, read_csv_rows
from pnl_rollup.models import SourceType, TransformConfig


def test_read_csv_rows_keeps_headers_verbatim():
    rows = read_csv_rows("Date,DESCRIPTION,Amount\n2024-01-05,Coffee,\"$4,50\"\n")
    assert rows == [{"Date": "2024-01-05", "DESCRIPTION": "Coffee", "Amount": "$4,50"}]


def test_short_and_long_rows():
    rows = read_csv_rows(["Date,Amount,Memo\n", "2024-01-05,1\n", "2024-01-06,2,x,extra\n"])
    assert rows[0] == {"Date": "2024-01-05", "Amount": "1", "Memo": None}
    assert rows[1] == {"Date": "2024-01-06", "Amount": "2", "Memo": "x"}


def test_load_from_file_strips_bom(tmp_path: Path):
    p = tmp_path / "bom.csv"
    p.write_text("\ufeffDate,Amount\n2024-01-05,1\n", encoding="utf-8")
    assert load_raw_rows_from_csv(p) == [{"Date": "2024-01-05", "Amount": "1"}]


def test_empty_file_has_no_header(tmp_path: Path):
    p = tmp_path / "empty.csv"
    p.write_text("", encoding="utf-8")
    with pytest.raises(csv.Error):
        load_raw_rows_from_csv(p)


def test_every_source_has_a_profile():
    assert set(SOURCE_PROFILES) == set(SourceType)


def test_profile_overrides_only_replace_given_keys():
    config = TransformConfig(section="Expenses", date_keys=("Posted",))
    profile = profile_for(SourceType.PLAID, config)
    assert profile.date_keys == ("Posted",)
    assert profile.amount_keys == SOURCE_PROFILES[SourceType.PLAID].amount_keys
    assert profile_for(SourceType.CSV) is SOURCE_PROFILES[SourceType.CSV]
