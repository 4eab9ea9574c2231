"""Column, filter, sort, pagination and selection models for the data explorer."""

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

RowId = str | int
Row = Any
ActiveFilters = dict[str, Any]

SortDirection = Literal["asc", "desc"]
FilterKind = Literal["text", "select", "date", "number"]
ColumnType = Literal["string", "number", "date", "boolean", "enum"]

SORT_DIRECTIONS: tuple[str, ...] = ("asc", "desc")
FILTER_KINDS: tuple[str, ...] = ("text", "select", "date", "number")


def read_field(row: Row, key: str) -> Any:
    """Read *key* from a row, returning ``None`` when it is absent.

    Mappings are read with ``row.get(key)``; any other object is read as
    an attribute.  A missing key never raises.
    """
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


@dataclass(frozen=True)
class ColumnDef:
    """Declarative description of one column of an explorer table.

    Attributes:
        key: Unique key of the column within its column set.  Also the
            field read from the row when no ``value_accessor`` is given.
        title: Human-readable header.
        sortable: Whether clicking the header cycles the sort.
        filterable: Whether the column may carry a per-column filter.
        value_accessor: Optional ``row -> value`` callable.
        render: Optional ``(value, row) -> presentation`` callable used
            only for display; sorting and filtering use the raw value.
        type: Presentational type hint.
        align: Cell alignment hint.
        width: CSS width hint.
    """

    key: str
    title: str | None = None
    sortable: bool = True
    filterable: bool = True
    value_accessor: Callable[[Row], Any] | None = None
    render: Callable[[Any, Row], Any] | None = None
    type: ColumnType | None = None
    align: Literal["left", "center", "right"] | None = None
    width: str | None = None

    @property
    def header(self) -> str:
        return self.title if self.title is not None else self.key

    def value(self, row: Row) -> Any:
        """Return the value this column extracts from *row*."""
        if self.value_accessor is not None:
            return self.value_accessor(row)
        return read_field(row, self.key)

    def display(self, row: Row) -> Any:
        """Return the rendered value of this column for *row*."""
        value = self.value(row)
        if self.render is not None:
            return self.render(value, row)
        return value

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe description (callables dropped) for frontend transport."""
        return {
            "key": self.key,
            "title": self.header,
            "sortable": self.sortable,
            "filterable": self.filterable,
            "type": self.type,
            "align": self.align,
            "width": self.width,
        }


def validate_columns(columns: Sequence[ColumnDef]) -> None:
    """Raise ``ValueError`` if two columns share a key."""
    seen: set[str] = set()
    for column in columns:
        if column.key in seen:
            raise ValueError(f"Duplicate column key: {column.key!r}")
        seen.add(column.key)


def find_column(columns: Iterable[ColumnDef], key: str) -> ColumnDef | None:
    for column in columns:
        if column.key == key:
            return column
    return None


def resolve_value(row: Row, key: str, columns: Iterable[ColumnDef] = ()) -> Any:
    """Read *key* from *row* through its column's accessor when one exists."""
    column = find_column(columns, key)
    if column is not None:
        return column.value(row)
    return read_field(row, key)


@dataclass(frozen=True)
class FilterOption:
    value: str
    label: str


@dataclass(frozen=True)
class FilterConfig:
    """Declares how a column may be filtered.

    Decoupled from display: a filter may target a key no column shows.
    """

    key: str
    kind: FilterKind = "text"
    label: str | None = None
    options: tuple[FilterOption, ...] = ()
    placeholder: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in FILTER_KINDS:
            raise ValueError(
                f"Unsupported filter kind: {self.kind!r}. "
                f"Supported: {', '.join(FILTER_KINDS)}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "kind": self.kind,
            "label": self.label or self.key,
            "options": [{"value": o.value, "label": o.label} for o in self.options],
            "placeholder": self.placeholder,
        }


def is_empty_filter_value(value: Any) -> bool:
    """``""`` and ``None`` mean "no filter"."""
    return value is None or value == ""


@dataclass(frozen=True)
class SortDescriptor:
    key: str
    direction: SortDirection = "asc"

    def __post_init__(self) -> None:
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(
                f"Unsupported sort direction: {self.direction!r}. Use 'asc' or 'desc'."
            )

    @property
    def descending(self) -> bool:
        return self.direction == "desc"

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "direction": self.direction}


@dataclass(frozen=True)
class PaginationState:
    """Pagination of the filtered collection (``total`` is post-filter)."""

    page: int
    page_size: int
    total: int

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    @property
    def start_index(self) -> int:
        """1-based index of the first row on the page, ``0`` when empty."""
        if self.total == 0:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def end_index(self) -> int:
        """1-based index of the last row on the page, ``0`` when empty."""
        return min(self.page * self.page_size, self.total)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    @property
    def range_text(self) -> str:
        return f"Showing {self.start_index} to {self.end_index} of {self.total} results"

    def to_dict(self) -> dict[str, int]:
        return {
            "page": self.page,
            "pageSize": self.page_size,
            "total": self.total,
            "pageCount": self.page_count,
        }


@dataclass(frozen=True)
class SelectionSummary:
    selected_ids: tuple[RowId, ...] = ()
    all_visible_selected: bool = False
    indeterminate: bool = False

    @property
    def selected_count(self) -> int:
        return len(self.selected_ids)


@dataclass(frozen=True)
class ExplorerView:
    """Everything the table renderer needs for one render pass."""

    visible_rows: tuple[Row, ...]
    pagination: PaginationState
    selection: SelectionSummary
    query: str = ""
    active_filters: Mapping[str, Any] = field(default_factory=dict)
    sort: SortDescriptor | None = None
    filtered_count: int = 0
    raw_count: int = 0
    active_filter_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.filtered_count == 0

    @property
    def summary(self) -> str:
        return f"{self.filtered_count} of {self.raw_count} items"
