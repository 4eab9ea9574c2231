"""Utilities for turning polars frames into explorer rows, columns and filters, and back."""

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import polars as pl

from reflex_data_explorer.models import ColumnDef, FilterConfig, FilterOption, Row

DEFAULT_SELECT_THRESHOLD: int = 20
ROW_ID_FIELD: str = "__row_id__"


def polars_dtype_to_column_type(dtype: pl.DataType) -> str:
    """Map a polars DataType to the closest explorer column type.

    Args:
        dtype: A polars data type.

    Returns:
        One of ``"string"``, ``"number"``, ``"boolean"``, ``"date"``,
        ``"enum"``.
    """
    if isinstance(dtype, pl.Boolean):
        return "boolean"
    if dtype.is_numeric():
        return "number"
    if isinstance(dtype, (pl.Date, pl.Datetime)):
        return "date"
    if _is_categorical_dtype(dtype):
        return "enum"
    # Everything else (String, List, Struct, Duration, …)
    return "string"


def _humanize_field_name(field: str) -> str:
    """Convert a snake_case or raw field name to a human-friendly header.

    Examples:
        ``"first_name"`` -> ``"First Name"``
        ``"age"`` -> ``"Age"``
        ``"__row_id__"`` -> ``"Row Id"``
    """
    return field.strip("_").replace("_", " ").title()


def _is_categorical_dtype(dtype: pl.DataType) -> bool:
    """Return True if the dtype is explicitly categorical (Categorical or Enum)."""
    return isinstance(dtype, (pl.Categorical, pl.Enum))


def _detect_select_options(
    df: pl.DataFrame,
    col_name: str,
    dtype: pl.DataType,
    max_unique: int,
) -> list[str] | None:
    """Decide whether *col_name* should get a ``select`` filter.

    Returns the sorted list of distinct values if the column qualifies,
    otherwise ``None``.  A column qualifies when its dtype is
    ``Categorical`` or ``Enum``, or when it is a string column with at
    most *max_unique* distinct values.
    """
    if _is_categorical_dtype(dtype):
        return df[col_name].cast(pl.String).unique().drop_nulls().sort().to_list()

    if not isinstance(dtype, pl.String) or df.height == 0:
        return None

    unique_vals: list[str] = df[col_name].unique().drop_nulls().sort().to_list()
    if len(unique_vals) <= max_unique:
        return unique_vals
    return None


def _collect(data: pl.LazyFrame | pl.DataFrame, limit: int | None = None) -> pl.DataFrame:
    lf = data.lazy() if isinstance(data, pl.DataFrame) else data
    if limit is not None:
        lf = lf.head(limit)
    return lf.collect()


def _with_id_field(df: pl.DataFrame, id_field: str | None) -> tuple[pl.DataFrame, str]:
    # Trust an explicit id_field; otherwise only use "id" when it is unique,
    # since a repeated id would collapse distinct rows in the selection.
    if id_field is not None:
        return df, id_field
    if "id" in df.columns and df["id"].n_unique() == df.height:
        return df, "id"
    return df.with_row_index(ROW_ID_FIELD), ROW_ID_FIELD


def frame_to_rows(
    data: pl.LazyFrame | pl.DataFrame,
    *,
    id_field: str | None = None,
    limit: int | None = None,
) -> tuple[list[dict[str, Any]], str]:
    """Materialise a polars frame as explorer rows.

    Args:
        data: The frame to convert.
        id_field: Column holding the stable row id.  If ``None`` and no
            unique ``"id"`` column exists, a ``"__row_id__"`` column with a
            zero-based row index is added.
        limit: Optional maximum number of rows to collect.

    Returns:
        A ``(rows, id_field)`` tuple; *rows* are JSON-safe dicts.
    """
    df, effective_id_field = _with_id_field(_collect(data, limit), id_field)
    return _dataframe_to_dicts(df), effective_id_field


def build_columns_from_schema(
    schema: pl.Schema | dict[str, pl.DataType],
    *,
    id_field: str | None = None,
    show_id_field: bool = False,
    sortable: bool = True,
) -> list[ColumnDef]:
    """Build :class:`ColumnDef` objects from a polars schema.

    Args:
        schema: A polars ``Schema`` (e.g. ``lf.collect_schema()``).
        id_field: Name of the row-id column.  Hidden unless
            *show_id_field* is true; ``"__row_id__"`` is always hidden.
        show_id_field: Whether to include the *id_field* column.
        sortable: Sortable flag applied to every non-nested column.

    Returns:
        One column per schema entry, with humanised titles.
    """
    columns: list[ColumnDef] = []
    for col_name, dtype in schema.items():
        if col_name == ROW_ID_FIELD:
            continue
        if not show_id_field and col_name == id_field:
            continue
        nested = isinstance(dtype, (pl.List, pl.Array, pl.Struct))
        columns.append(
            ColumnDef(
                key=col_name,
                title=_humanize_field_name(col_name),
                sortable=sortable and not nested,
                filterable=not nested,
                type=polars_dtype_to_column_type(dtype),  # type: ignore[arg-type]
                align="right" if dtype.is_numeric() else None,
            )
        )
    return columns


def build_filter_configs(
    data: pl.LazyFrame | pl.DataFrame,
    *,
    select_threshold: int = DEFAULT_SELECT_THRESHOLD,
    exclude: Iterable[str] = (),
) -> list[FilterConfig]:
    """Infer filter declarations from a frame's schema and contents.

    * numeric columns -> ``number``
    * ``Date``/``Datetime`` columns -> ``date``
    * categorical columns, and string columns with at most
      *select_threshold* distinct values -> ``select`` with sorted options
    * other string columns -> ``text``

    Boolean and nested columns get no filter.

    Args:
        data: The frame to inspect.
        select_threshold: Maximum distinct values for a ``select`` filter.
            Set to ``0`` to disable auto-detection.
        exclude: Column names to skip (e.g. the row-id column).
    """
    df = _collect(data)
    skip = set(exclude) | {ROW_ID_FIELD}

    configs: list[FilterConfig] = []
    for col_name, dtype in df.schema.items():
        if col_name in skip:
            continue
        label = _humanize_field_name(col_name)
        if dtype.is_numeric():
            configs.append(FilterConfig(col_name, "number", label=label))
            continue
        if isinstance(dtype, (pl.Date, pl.Datetime)):
            configs.append(FilterConfig(col_name, "date", label=label))
            continue
        if not isinstance(dtype, pl.String) and not _is_categorical_dtype(dtype):
            continue

        options: list[str] | None = None
        if select_threshold > 0 or _is_categorical_dtype(dtype):
            options = _detect_select_options(df, col_name, dtype, max_unique=select_threshold)
        if options is not None:
            configs.append(
                FilterConfig(
                    col_name,
                    "select",
                    label=label,
                    options=tuple(FilterOption(v, _humanize_field_name(v)) for v in options),
                    placeholder=f"All {label}",
                )
            )
        else:
            configs.append(
                FilterConfig(col_name, "text", label=label, placeholder=f"Filter by {label.lower()}...")
            )
    return configs


def _dataframe_to_dicts(df: pl.DataFrame) -> list[dict[str, Any]]:
    """Convert a DataFrame to a list of JSON-safe dicts.

    Temporal columns (Date, Datetime, Time, Duration) become ISO-8601
    strings, List columns comma-joined strings, Struct columns strings.
    Other types are left as-is.
    """
    exprs: list[pl.Expr] = []
    needs_cast = False
    for name, dtype in df.schema.items():
        if isinstance(dtype, (pl.Date, pl.Datetime, pl.Time, pl.Duration, pl.Struct)):
            exprs.append(pl.col(name).cast(pl.String))
            needs_cast = True
        elif isinstance(dtype, pl.List):
            exprs.append(pl.col(name).cast(pl.List(pl.String)).list.join(","))
            needs_cast = True
        else:
            exprs.append(pl.col(name))

    if not needs_cast:
        return df.to_dicts()
    return df.select(exprs).to_dicts()


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _column_series(name: str, values: list[Any]) -> pl.Series:
    try:
        return pl.Series(name, values)
    except (TypeError, ValueError, pl.exceptions.PolarsError):
        # Mixed value types in one column: export their text form.
        return pl.Series(name, [None if v is None else str(v) for v in values], dtype=pl.String)


def rows_to_frame(rows: Sequence[Row], columns: Sequence[ColumnDef]) -> pl.DataFrame:
    """Build a DataFrame with one column per :class:`ColumnDef`.

    Values are read through each column's ``value_accessor`` (never
    ``render``).  Column titles become the frame's column names, unless
    two titles collide, in which case the column keys are used.
    """
    titles = [column.header for column in columns]
    names = titles if len(set(titles)) == len(titles) else [column.key for column in columns]
    return pl.DataFrame(
        [
            _column_series(name, [column.value(row) for row in rows])
            for name, column in zip(names, columns)
        ]
    )


def export_csv(
    rows: Sequence[Row],
    columns: Sequence[ColumnDef],
    path: Path | str | None = None,
) -> str | None:
    """Write *rows* as CSV.

    Args:
        rows: Rows to export, typically the filtered or the selected rows.
        columns: Columns to export, in order.
        path: Destination file.  When ``None`` the CSV text is returned.

    Returns:
        The CSV text when *path* is ``None``, otherwise ``None``.
    """
    df = rows_to_frame(rows, columns)
    if path is None:
        return df.write_csv()
    df.write_csv(Path(path))
    return None


# ---------------------------------------------------------------------------
# File scanner
# ---------------------------------------------------------------------------

def scan_file(path: Path | str) -> pl.LazyFrame:
    """Scan a tabular data file into a LazyFrame.

    Auto-detects the file format from the extension:

    * ``.parquet`` / ``.pq`` -- ``pl.scan_parquet()``
    * ``.csv`` -- ``pl.scan_csv()``
    * ``.tsv`` -- ``pl.scan_csv(separator="\\t")``
    * ``.json`` -- ``pl.read_json().lazy()`` (no streaming scan)
    * ``.ndjson`` / ``.jsonl`` -- ``pl.scan_ndjson()``
    * ``.ipc`` / ``.arrow`` / ``.feather`` -- ``pl.scan_ipc()``

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file extension is not recognised.
    """
    path = Path(path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix in (".parquet", ".pq"):
        return pl.scan_parquet(path)
    if suffix == ".csv":
        return pl.scan_csv(path)
    if suffix == ".tsv":
        return pl.scan_csv(path, separator="\t")
    if suffix == ".json":
        return pl.read_json(path).lazy()
    if suffix in (".ndjson", ".jsonl"):
        return pl.scan_ndjson(path)
    if suffix in (".ipc", ".arrow", ".feather"):
        return pl.scan_ipc(path)

    raise ValueError(
        f"Unsupported file extension: {suffix!r}. "
        "Supported: .parquet, .pq, .csv, .tsv, .json, .ndjson, .jsonl, "
        ".ipc, .arrow, .feather"
    )
