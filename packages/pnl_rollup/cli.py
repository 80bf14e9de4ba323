# ruff: noqa: I001
"""CLI for the ``pnl_rollup`` package.

This module exposes callable command handlers (``cmd_transform``,
``cmd_rollup``, ``cmd_seed_taxonomy``) and a Typer-based console interface.
Environment variables (notably ``DATABASE_URL``) are loaded from a local
``.env`` using ``python-dotenv`` before delegating to command logic.

Handlers print ``Error: ...`` to stderr and return a non-zero exit code
instead of raising, so they can also be called from scripts.
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import configure_logging, get_logger
from .models import DataType, SourceType

_log = get_logger("pnl_rollup.cli")


def _format_record_line(rec) -> str:
    path = " > ".join(label if label is not None else "-" for label in rec.category_path)
    return "\t".join(
        [
            rec.id,
            rec.date.date().isoformat(),
            str(rec.amount),
            rec.data_type.value,
            path,
            rec.category_id,
        ]
    )


def _parse_day(raw: str | None, *, flag: str) -> date | None:
    if raw is None or not raw.strip():
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as e:
        raise ValueError(f"{flag} must be YYYY-MM-DD, got {raw!r}") from e


# ---- Command handlers ---------------------------------------------------------


def cmd_transform(
    csv_path: str,
    *,
    config_path: str,
    tenant_id: str,
    created_by: str | None = None,
    source: SourceType = SourceType.CSV,
    taxonomy_path: str | None = None,
    persist: bool = False,
    database_url: str | None = None,
    show_skipped: bool = False,
) -> int:
    """Transform a CSV export into canonical records and print them.

    Output is one tab-separated line per record:
    ``id, date, amount, data_type, category path, category_id``.

    The taxonomy comes from ``taxonomy_path`` when given, else from the
    tenant's stored taxonomy when persisting, else it is empty (every record
    is ``uncategorized``).
    """

    import csv

    from pydantic import ValidationError

    from .categories import load_taxonomy_from_db, load_taxonomy_from_json
    from .ingest.utils import load_raw_rows_from_csv
    from .models import ImportMetadata, TransformConfig
    from .persistence import save_transformed_batch
    from .pipeline import transform_with_diagnostics

    try:
        rows = load_raw_rows_from_csv(csv_path)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
        return 1
    except (csv.Error, UnicodeDecodeError) as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
        return 1

    try:
        config = TransformConfig.model_validate_json(Path(config_path).read_text(encoding="utf-8"))
    except OSError as e:
        print(f"Error: cannot read transform config {config_path}: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"Error: invalid transform config: {e}", file=sys.stderr)
        return 1

    try:
        metadata = ImportMetadata(tenant_id=tenant_id, source=source, created_by=created_by)
    except ValidationError as e:
        print(f"Error: invalid import metadata: {e}", file=sys.stderr)
        return 1

    try:
        if taxonomy_path:
            taxonomy = load_taxonomy_from_json(taxonomy_path)
        elif persist:
            taxonomy = load_taxonomy_from_db(tenant_id, database_url=database_url)
        else:
            taxonomy = []
    except Exception as e:
        print(f"Error: failed to load taxonomy: {e}", file=sys.stderr)
        return 1

    result = transform_with_diagnostics(rows, config, taxonomy, metadata=metadata)

    if persist:
        try:
            save_transformed_batch(result.records, database_url=database_url)
        except Exception as e:
            print(f"Error: persistence failed: {e}", file=sys.stderr)
            return 1

    for rec in result.records:
        print(_format_record_line(rec))

    if show_skipped:
        for skipped in result.skipped:
            print(
                f"skipped row {skipped.index}: {skipped.reason.value} ({skipped.raw_value!r})",
                file=sys.stderr,
            )
    if result.skipped:
        _log.warning("%d of %d rows were dropped", len(result.skipped), len(rows))
    return 0


def cmd_rollup(
    *,
    tenant_id: str,
    start: str | None = None,
    end: str | None = None,
    data_types: list[DataType] | None = None,
    database_url: str | None = None,
    as_json: bool = False,
) -> int:
    """Aggregate a tenant's stored records and print the P&L rollup."""

    import json

    from .models import DateRange
    from .persistence import fetch_records
    from .rollup import DEFAULT_DATA_TYPES, aggregate

    try:
        date_range = DateRange(_parse_day(start, flag="--start"), _parse_day(end, flag="--end"))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    types = tuple(data_types) if data_types else DEFAULT_DATA_TYPES
    try:
        records = fetch_records(
            tenant_id, date_range=date_range, data_types=types, database_url=database_url
        )
    except Exception as e:
        print(f"Error: failed to load records: {e}", file=sys.stderr)
        return 1

    rollup = aggregate(records, date_range, types, tenant_id=tenant_id)
    if as_json:
        print(json.dumps(rollup.to_dict(), indent=2))
    else:
        print(rollup.render_text())
    return 0


def cmd_seed_taxonomy(*, tenant_id: str, file: str, database_url: str | None = None) -> int:
    from .ingest.seed_taxonomy import reseed_taxonomy

    try:
        count = reseed_taxonomy(tenant_id=tenant_id, file=Path(file), database_url=database_url)
    except FileNotFoundError:
        print(f"Error: File not found: {file}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: invalid taxonomy file: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: seeding failed: {e}", file=sys.stderr)
        return 1

    print(f"Seeded {count} categories for tenant {tenant_id}")
    return 0


# ---- Typer-based console interface -------------------------------------------

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to a CSV export with a header row",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports a friendly error
)
TENANT_ID_OPTION: OptionInfo = typer.Option(..., "--tenant-id", help="Owning tenant id")
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Transform raw financial rows into canonical records and build P&L "
        "rollups. Loads DATABASE_URL from a local .env before running."
    ),
)


@app.command("transform")
def transform_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    tenant_id: Annotated[str, TENANT_ID_OPTION],
    *,
    config: Path = typer.Option(
        ..., "--config", help="Transform config JSON (section, hierarchyMappings, ...)."
    ),
    created_by: str | None = typer.Option(None, help="Actor recorded on each record."),
    source: SourceType = typer.Option(
        SourceType.CSV, case_sensitive=False, help="Origin of the rows."
    ),
    taxonomy: Path | None = typer.Option(None, help="Taxonomy seed JSON to categorize with."),
    persist: bool = typer.Option(False, help="Upsert the records into the database."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    show_skipped: bool = typer.Option(False, help="List dropped rows on stderr."),
) -> None:
    """Transform a CSV export and print the canonical records."""

    raise typer.Exit(
        cmd_transform(
            str(csv_path),
            config_path=str(config),
            tenant_id=tenant_id,
            created_by=created_by,
            source=source,
            taxonomy_path=str(taxonomy) if taxonomy else None,
            persist=persist,
            database_url=database_url,
            show_skipped=show_skipped,
        )
    )


@app.command("rollup")
def rollup_cmd(
    tenant_id: Annotated[str, TENANT_ID_OPTION],
    *,
    start: str | None = typer.Option(None, help="First day (YYYY-MM-DD), inclusive."),
    end: str | None = typer.Option(None, help="Last day (YYYY-MM-DD), inclusive."),
    data_type: list[DataType] | None = typer.Option(
        None, "--data-type", case_sensitive=False, help="Repeatable; defaults to ACTUAL."
    ),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """Print the P&L rollup for a tenant's stored records."""

    raise typer.Exit(
        cmd_rollup(
            tenant_id=tenant_id,
            start=start,
            end=end,
            data_types=data_type,
            database_url=database_url,
            as_json=as_json,
        )
    )


@app.command("seed-taxonomy")
def seed_taxonomy_cmd(
    tenant_id: Annotated[str, TENANT_ID_OPTION],
    *,
    file: Path = typer.Option(..., "--file", help="Taxonomy seed JSON."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Replace a tenant's keyword taxonomy from a seed file."""

    raise typer.Exit(
        cmd_seed_taxonomy(tenant_id=tenant_id, file=str(file), database_url=database_url)
    )


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps already-set environment variables
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m pnl_rollup.cli`
    app()
