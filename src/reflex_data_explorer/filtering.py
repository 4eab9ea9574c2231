"""Free-text search and per-column filtering over in-memory rows."""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from reflex_data_explorer.models import (
    ColumnDef,
    FilterConfig,
    Row,
    is_empty_filter_value,
    resolve_value,
)


def _stringify(value: Any) -> str:
    """Stringify a cell value for text matching; ``None`` becomes ``""``."""
    if value is None:
        return ""
    return str(value)


def _coerce_numeric(value: Any) -> int | float | None:
    """Try to coerce *value* to a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        # Try int first, then float
        for conv in (int, float):
            try:  # noqa: SIM105
                return conv(value)
            except ValueError:
                continue
    return None


def normalize_filter_value(config: FilterConfig | None, value: Any) -> Any:
    """Coerce raw filter input according to the filter's kind.

    ``number`` filters turn numeric strings into ``int``/``float`` so that
    they compare by equality; anything unparseable is kept verbatim.
    ``text``, ``select`` and ``date`` values stay as given, so string
    values keep substring semantics (a ``date`` filter of ``"2024-03"``
    matches every ISO date in March 2024).

    Args:
        config: The filter declaration, or ``None`` for an undeclared key.
        value: Raw value from the UI.

    Returns:
        The value to store in the active filters.
    """
    if is_empty_filter_value(value):
        return None
    if config is not None and config.kind == "number":
        number = _coerce_numeric(value)
        if number is not None:
            return number
    return value


def matches_query(row: Row, query: str, columns: Sequence[ColumnDef]) -> bool:
    """True if *query* is blank or appears in any column of *row*.

    The match is a case-insensitive substring test against each
    column's stringified value.
    """
    if not query.strip():
        return True
    needle = query.lower()
    return any(needle in _stringify(column.value(row)).lower() for column in columns)


def matches_filter(row_value: Any, filter_value: Any) -> bool:
    """Match a single filter value against a row value.

    String filter values use case-insensitive substring matching; any
    other value must be equal.  A ``None`` row value never matches.
    """
    if row_value is None:
        return False
    if isinstance(filter_value, str):
        return filter_value.lower() in _stringify(row_value).lower()
    return row_value == filter_value


def matches_filters(
    row: Row,
    active_filters: Mapping[str, Any],
    columns: Sequence[ColumnDef] = (),
) -> bool:
    """True if *row* satisfies every non-empty entry of *active_filters*."""
    for key, value in active_filters.items():
        if is_empty_filter_value(value):
            continue
        if not matches_filter(resolve_value(row, key, columns), value):
            return False
    return True


def filter_rows(
    rows: Iterable[Row],
    query: str,
    active_filters: Mapping[str, Any],
    columns: Sequence[ColumnDef],
) -> list[Row]:
    """Apply the search query and the column filters to *rows*.

    Both clauses are ANDed.  The input is never mutated and the result
    is always derived from *rows* as given, so relaxing a filter simply
    means calling this again on the original collection.

    Args:
        rows: The full (unfiltered) row collection.
        query: Free-text search; blank means no search.
        active_filters: ``{key: value}``; ``""``/``None`` entries are ignored.
        columns: Column definitions used for value extraction and search.

    Returns:
        A new list with the rows that pass, in input order.
    """
    live_filters = {k: v for k, v in active_filters.items() if not is_empty_filter_value(v)}
    if not query.strip() and not live_filters:
        return list(rows)
    return [
        row
        for row in rows
        if matches_query(row, query, columns) and matches_filters(row, live_filters, columns)
    ]


def active_filter_count(query: str, active_filters: Mapping[str, Any]) -> int:
    """Number of live filters, counting a non-blank query as one."""
    count = sum(1 for v in active_filters.values() if not is_empty_filter_value(v))
    if query.strip():
        count += 1
    return count
