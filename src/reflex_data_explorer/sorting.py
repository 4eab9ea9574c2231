"""Single-key stable sorting and the header-click sort cycle."""

from collections.abc import Iterable, Sequence
from typing import Any

from reflex_data_explorer.models import ColumnDef, Row, SortDescriptor, find_column, resolve_value


def _fallback_key(value: Any) -> tuple[int, str, Any]:
    # Numbers first, by value; everything else grouped by type, by text.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, "", value)
    return (1, type(value).__name__, str(value))


def sort_rows(
    rows: Iterable[Row],
    descriptor: SortDescriptor | None,
    columns: Sequence[ColumnDef] = (),
) -> list[Row]:
    """Order *rows* by the descriptor's key.

    Python's ``sorted`` is stable, including with ``reverse=True``, so
    rows with equal keys keep their input order in both directions.
    Rows whose value is ``None`` always come last, whichever the
    direction.

    Args:
        rows: Rows to order (typically the filtered collection).
        descriptor: Active sort, or ``None`` to keep the input order.
        columns: Column definitions used for value extraction.

    Returns:
        A new list.
    """
    rows = list(rows)
    if descriptor is None:
        return rows

    keyed = [(resolve_value(row, descriptor.key, columns), row) for row in rows]
    present = [pair for pair in keyed if pair[0] is not None]
    blank = [row for value, row in keyed if value is None]

    try:
        ordered = sorted(present, key=lambda pair: pair[0], reverse=descriptor.descending)
    except TypeError:
        # Mixed, mutually incomparable types in one column.
        ordered = sorted(
            present,
            key=lambda pair: _fallback_key(pair[0]),
            reverse=descriptor.descending,
        )
    return [row for _, row in ordered] + blank


def next_sort_descriptor(
    current: SortDescriptor | None,
    key: str,
    columns: Sequence[ColumnDef],
) -> SortDescriptor | None:
    """Return the sort that results from clicking the header of *key*.

    Same key cycles asc -> desc -> none; a different sortable column
    starts at asc.  Clicking a non-sortable or unknown column leaves the
    sort unchanged.
    """
    column = find_column(columns, key)
    if column is None or not column.sortable:
        return current
    if current is None or current.key != key:
        return SortDescriptor(key, "asc")
    if current.direction == "asc":
        return SortDescriptor(key, "desc")
    return None
