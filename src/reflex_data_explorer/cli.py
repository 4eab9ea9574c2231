"""CLI for reflex-data-explorer -- search, filter, sort and page through tabular files.

Usage::

    # First page of a CSV file
    reflex-data-explorer query contacts.csv

    # Search, filter and sort, then show page 2 with 10 rows per page
    reflex-data-explorer query contacts.csv --search acme \\
        --filter status=NEW --sort score:desc --page 2 --page-size 10

    # Export every matching row
    reflex-data-explorer query contacts.csv -f status=NEW --export new.csv

    # Show the inferred columns and filter kinds
    reflex-data-explorer columns contacts.parquet

Rows are explored in memory with the same engine the Reflex mixin uses.
"""

from pathlib import Path
from typing import Annotated, Optional

import polars as pl
import typer

from reflex_data_explorer.explorer import DataExplorer
from reflex_data_explorer.models import ColumnDef, SortDescriptor, find_column
from reflex_data_explorer.pagination import DEFAULT_PAGE_SIZE
from reflex_data_explorer.polars_utils import (
    ROW_ID_FIELD,
    build_columns_from_schema,
    build_filter_configs,
    export_csv,
    frame_to_rows,
    rows_to_frame,
    scan_file,
)

app = typer.Typer(
    name="reflex-data-explorer",
    help="Search, filter, sort and page through tabular data files.",
    no_args_is_help=True,
)


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


def _parse_filter(raw: str) -> tuple[str, str]:
    """Split ``KEY=VALUE``."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise ValueError(f"Invalid filter {raw!r}; expected KEY=VALUE")
    return key.strip(), value


def _parse_sort(raw: str) -> SortDescriptor:
    """Parse ``KEY`` or ``KEY:asc`` / ``KEY:desc``."""
    key, _, direction = raw.partition(":")
    return SortDescriptor(key.strip(), (direction or "asc").strip().lower())  # type: ignore[arg-type]


def _load(file: Path, id_field: str | None) -> tuple[DataExplorer, list[ColumnDef]]:
    df = scan_file(file).collect()
    rows, effective_id_field = frame_to_rows(df, id_field=id_field)
    columns = build_columns_from_schema(df.schema, id_field=effective_id_field, show_id_field=True)
    explorer = DataExplorer(
        rows,
        columns,
        filter_configs=build_filter_configs(df, exclude=[ROW_ID_FIELD]),
        id_field=effective_id_field,
    )
    return explorer, columns


@app.command()
def query(
    file: Annotated[Path, typer.Argument(help="Path to the data file (CSV, TSV, Parquet, JSON, NDJSON, IPC)")],
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Case-insensitive text search across all columns")] = None,
    filters: Annotated[Optional[list[str]], typer.Option("--filter", "-f", help="Column filter KEY=VALUE (repeatable)")] = None,
    sort: Annotated[Optional[str], typer.Option("--sort", help="Sort as KEY or KEY:asc / KEY:desc")] = None,
    page: Annotated[int, typer.Option("--page", "-p", help="1-based page number (clamped to the last page)")] = 1,
    page_size: Annotated[int, typer.Option("--page-size", "-n", help="Rows per page")] = DEFAULT_PAGE_SIZE,
    id_field: Annotated[Optional[str], typer.Option("--id-field", help="Column holding the row id")] = None,
    export: Annotated[Optional[Path], typer.Option("--export", "-o", help="Write every matching row to this CSV file")] = None,
) -> None:
    """Print one page of a data file after search, filters and sort."""
    try:
        explorer, columns = _load(file, id_field)
        explorer.set_page_size(page_size)
        if search:
            explorer.set_query(search)
        for raw in filters or []:
            key, value = _parse_filter(raw)
            if find_column(columns, key) is None:
                raise ValueError(f"Unknown filter column: {key!r}")
            explorer.set_filter(key, value)
        if sort:
            descriptor = _parse_sort(sort)
            if find_column(columns, descriptor.key) is None:
                raise ValueError(f"Unknown sort column: {descriptor.key!r}")
            explorer.set_sort(descriptor)
        explorer.set_page(page)
    except (FileNotFoundError, ValueError) as exc:
        raise _fail(str(exc)) from exc

    view = explorer.view()
    if view.is_empty:
        typer.echo("No rows match the current search and filters.")
    else:
        with pl.Config(tbl_rows=-1, tbl_cols=-1, tbl_hide_dataframe_shape=True):
            typer.echo(rows_to_frame(view.visible_rows, columns))

    pagination = view.pagination
    typer.echo(
        f"{view.summary} | {pagination.range_text} | "
        f"Page {pagination.page} of {pagination.page_count}"
    )

    if export is not None:
        matching = explorer.filtered_rows()
        export_csv(matching, columns, export)
        typer.echo(f"Exported {len(matching)} rows to {export}")


@app.command()
def columns(
    file: Annotated[Path, typer.Argument(help="Path to the data file")],
) -> None:
    """List the columns of a data file with their inferred filter kinds."""
    try:
        df = scan_file(file).collect()
    except (FileNotFoundError, ValueError) as exc:
        raise _fail(str(exc)) from exc

    configs = {c.key: c for c in build_filter_configs(df)}
    for column in build_columns_from_schema(df.schema, show_id_field=True):
        config = configs.get(column.key)
        kind = config.kind if config is not None else "-"
        line = f"{column.key}\t{column.header}\t{column.type}\t{kind}"
        if config is not None and config.options:
            line += f"\t{len(config.options)} options"
        typer.echo(line)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
