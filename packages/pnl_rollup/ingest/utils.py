"""Ingest utilities shared by CLI commands.

Raw rows are handed to the pipeline exactly as read: string-keyed mappings of
string values. Column names are not normalized here; the field resolver
handles casing differences.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from os import PathLike
from pathlib import Path

from ..models import RawRecord


def _rows_from_reader(reader: csv.DictReader) -> list[RawRecord]:
    if not reader.fieldnames:
        raise csv.Error("CSV appears to have no header row")
    rows: list[RawRecord] = []
    for row in reader:
        # Extra cells beyond the header land under a None key; drop them.
        rows.append({k: v for k, v in row.items() if k is not None})
    return rows


def read_csv_rows(lines: str | Iterable[str]) -> list[RawRecord]:
    """Parse CSV text (or an iterable of lines) with a header row into raw rows."""

    source = io.StringIO(lines) if isinstance(lines, str) else lines
    return _rows_from_reader(csv.DictReader(source))


def load_raw_rows_from_csv(csv_path: str | PathLike[str]) -> list[RawRecord]:
    """Read a CSV upload into raw rows; a UTF-8 BOM is tolerated."""

    p = Path(csv_path)
    with p.open(encoding="utf-8-sig", newline="") as f:
        try:
            return _rows_from_reader(csv.DictReader(f))
        except csv.Error as e:
            raise csv.Error(f"{e}: {csv_path}") from e


__all__ = ["load_raw_rows_from_csv", "read_csv_rows"]
