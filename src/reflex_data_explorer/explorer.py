"""View orchestration: filter -> sort -> paginate, with selection on the side.

:class:`DataExplorer` owns the descriptors an admin table mutates (query,
column filters, sort, page, page size, selection), recomputes the derived
view on demand, and notifies the caller through plain callbacks after
every state change so it can mirror the state elsewhere (URL, storage,
a Reflex state).

Recomputation is memoised in two tiers.  The filtered and sorted
intermediate is cached under ``(rows identity, query, filters, sort)``;
page navigation and page-size changes only re-slice that cached list.

Typical usage::

    explorer = DataExplorer(
        contacts,
        [ColumnDef("name", "Name"), ColumnDef("company", "Company")],
        page_size=25,
        on_selection_change=lambda ids: print(ids),
    )
    explorer.set_query("acme")
    explorer.sort_by("name")
    view = explorer.view()
"""

import json
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from reflex_data_explorer.filtering import (
    active_filter_count,
    filter_rows,
    normalize_filter_value,
)
from reflex_data_explorer.models import (
    ColumnDef,
    ExplorerView,
    FilterConfig,
    Row,
    RowId,
    SelectionSummary,
    SortDescriptor,
    is_empty_filter_value,
    read_field,
    validate_columns,
)
from reflex_data_explorer.pagination import DEFAULT_PAGE_SIZE, clamp_page, paginate
from reflex_data_explorer.selection import SelectionMode, SelectionTracker
from reflex_data_explorer.sorting import next_sort_descriptor, sort_rows

RowIdGetter = Callable[[Row], RowId]


def _row_id_getter(id_field: str, get_row_id: RowIdGetter | None) -> RowIdGetter:
    if get_row_id is not None:
        return get_row_id
    return lambda row: read_field(row, id_field)


def _freeze_filters(active_filters: Mapping[str, Any]) -> tuple[tuple[str, Any], ...]:
    return tuple(sorted(
        (key, value)
        for key, value in active_filters.items()
        if not is_empty_filter_value(value)
    ))


def compute_view(
    raw_rows: Sequence[Row],
    columns: Sequence[ColumnDef],
    query: str = "",
    active_filters: Mapping[str, Any] | None = None,
    sort: SortDescriptor | None = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    selection: SelectionTracker | None = None,
    *,
    id_field: str = "id",
    get_row_id: RowIdGetter | None = None,
) -> ExplorerView:
    """Derive the view for one set of inputs, without any caching.

    Stages run in a fixed order: filter, sort, paginate.  The selection
    is summarised against the filtered collection, not the page.
    """
    active_filters = dict(active_filters or {})
    selection = selection if selection is not None else SelectionTracker()
    row_id = _row_id_getter(id_field, get_row_id)

    filtered = filter_rows(raw_rows, query, active_filters, columns)
    ordered = sort_rows(filtered, sort, columns)
    page_rows, pagination = paginate(ordered, page, page_size)
    return ExplorerView(
        visible_rows=tuple(page_rows),
        pagination=pagination,
        selection=selection.summary(row_id(row) for row in ordered),
        query=query,
        active_filters=active_filters,
        sort=sort,
        filtered_count=len(ordered),
        raw_count=len(raw_rows),
        active_filter_count=active_filter_count(query, active_filters),
    )


class DataExplorer:
    """Stateful, memoised explorer over a fully materialised row collection.

    Args:
        rows: The raw rows, as delivered by the data source.  The
            collection is compared by identity: pass a new sequence to
            :meth:`set_rows` when the data changes.
        columns: Column definitions; keys must be unique.
        filter_configs: Optional filter declarations used to coerce
            values passed to :meth:`set_filter`.
        id_field: Row field holding the stable row id.
        get_row_id: Callable overriding *id_field*.
        page_size: Initial rows per page.
        selection_mode: ``"multiple"`` or ``"single"``.
        on_sort_change: Called with the new ``SortDescriptor | None``.
        on_filter_change: Called with ``(query, filters)``.
        on_page_change: Called with the new 1-based page.
        on_page_size_change: Called with the new page size.
        on_selection_change: Called with the list of selected ids.
        debug_log: Print recompute timings.
    """

    def __init__(
        self,
        rows: Sequence[Row] = (),
        columns: Sequence[ColumnDef] = (),
        *,
        filter_configs: Iterable[FilterConfig] = (),
        id_field: str = "id",
        get_row_id: RowIdGetter | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        selection_mode: SelectionMode = "multiple",
        on_sort_change: Callable[[SortDescriptor | None], Any] | None = None,
        on_filter_change: Callable[[str, dict[str, Any]], Any] | None = None,
        on_page_change: Callable[[int], Any] | None = None,
        on_page_size_change: Callable[[int], Any] | None = None,
        on_selection_change: Callable[[list[RowId]], Any] | None = None,
        debug_log: bool = False,
    ) -> None:
        validate_columns(columns)
        clamp_page(1, 0, page_size)  # validates page_size

        self.columns: tuple[ColumnDef, ...] = tuple(columns)
        self.filter_configs: dict[str, FilterConfig] = {c.key: c for c in filter_configs}
        self.row_id: RowIdGetter = _row_id_getter(id_field, get_row_id)
        self.selection = SelectionTracker(mode=selection_mode)
        self.debug_log = debug_log

        self.on_sort_change = on_sort_change
        self.on_filter_change = on_filter_change
        self.on_page_change = on_page_change
        self.on_page_size_change = on_page_size_change
        self.on_selection_change = on_selection_change

        self._rows: Sequence[Row] = rows
        self.query: str = ""
        self._filters: dict[str, Any] = {}
        self.sort: SortDescriptor | None = None
        self.page: int = 1
        self.page_size: int = page_size

        self._memo_source: Sequence[Row] | None = None
        self._memo_key: tuple[Any, ...] | None = None
        self._memo_rows: list[Row] = []
        self._memo_ids: list[RowId] = []
        self._summary_key: tuple[int, int, int] | None = None
        self._summary: SelectionSummary | None = None
        self.recompute_count: int = 0

    # ------------------------------------------------------------------
    # Derived data
    # ------------------------------------------------------------------

    @property
    def rows(self) -> Sequence[Row]:
        return self._rows

    @property
    def active_filters(self) -> dict[str, Any]:
        return dict(self._filters)

    def _pipeline(self) -> list[Row]:
        """Return the filtered and sorted rows, recomputing only on change."""
        key = (id(self._rows), self.query, _freeze_filters(self._filters), self.sort)
        if self._memo_source is self._rows and self._memo_key == key:
            return self._memo_rows

        t0 = time.perf_counter()
        filtered = filter_rows(self._rows, self.query, self._filters, self.columns)
        self._memo_rows = sort_rows(filtered, self.sort, self.columns)
        self._memo_ids = [self.row_id(row) for row in self._memo_rows]
        self._memo_source = self._rows
        self._memo_key = key
        self.recompute_count += 1
        if self.debug_log:
            elapsed_ms = (time.perf_counter() - t0) * 1000
            print(
                f"[DataExplorer] recompute: {len(self._rows):,} rows -> "
                f"{len(self._memo_rows):,} filtered ({elapsed_ms:.1f}ms)"
            )
        return self._memo_rows

    def filtered_rows(self) -> list[Row]:
        """Filtered and sorted rows across all pages."""
        return list(self._pipeline())

    def filtered_ids(self) -> list[RowId]:
        self._pipeline()
        return list(self._memo_ids)

    def selected_rows(self) -> list[Row]:
        """Raw rows whose id is selected, in raw order (orphans skipped)."""
        return [row for row in self._rows if self.selection.is_selected(self.row_id(row))]

    def selection_summary(self) -> SelectionSummary:
        """Header checkbox state against the filtered ids.

        Cached until the filtered rows or the selection change, so page
        navigation never walks the filtered collection.
        """
        self._pipeline()
        key = (self.recompute_count, id(self.selection), self.selection.version)
        if self._summary is None or self._summary_key != key:
            self._summary = self.selection.summary(self._memo_ids)
            self._summary_key = key
        return self._summary

    def view(self) -> ExplorerView:
        ordered = self._pipeline()
        page_rows, pagination = paginate(ordered, self.page, self.page_size)
        return ExplorerView(
            visible_rows=tuple(page_rows),
            pagination=pagination,
            selection=self.selection_summary(),
            query=self.query,
            active_filters=self.active_filters,
            sort=self.sort,
            filtered_count=len(ordered),
            raw_count=len(self._rows),
            active_filter_count=active_filter_count(self.query, self._filters),
        )

    # ------------------------------------------------------------------
    # Data, search and filters
    # ------------------------------------------------------------------

    def set_rows(self, rows: Sequence[Row]) -> None:
        """Replace the raw collection (selection is kept by id)."""
        self._rows = rows
        self._reclamp_page()

    def set_query(self, query: str) -> None:
        if query == self.query:
            return
        self.query = query
        self._filters_changed()

    def set_filter(self, key: str, value: Any) -> None:
        """Set (or with ``""``/``None``, remove) the filter on *key*."""
        value = normalize_filter_value(self.filter_configs.get(key), value)
        if is_empty_filter_value(value):
            if key not in self._filters:
                return
            del self._filters[key]
        else:
            if key in self._filters and self._filters[key] == value:
                return
            self._filters[key] = value
        self._filters_changed()

    def set_filters(self, filters: Mapping[str, Any]) -> None:
        """Replace all column filters at once."""
        self._filters = self._normalize_filters(filters)
        self._filters_changed()

    def _normalize_filters(self, filters: Mapping[str, Any]) -> dict[str, Any]:
        normalized = {
            key: normalize_filter_value(self.filter_configs.get(key), value)
            for key, value in filters.items()
        }
        return {k: v for k, v in normalized.items() if not is_empty_filter_value(v)}

    def clear_filters(self) -> None:
        """Reset both the search query and all column filters."""
        self.query = ""
        self._filters = {}
        self._filters_changed()

    def _filters_changed(self) -> None:
        if self.on_filter_change is not None:
            self.on_filter_change(self.query, self.active_filters)
        self._reclamp_page()

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    def sort_by(self, key: str) -> SortDescriptor | None:
        """Apply a header click on *key* (asc -> desc -> none)."""
        self.set_sort(next_sort_descriptor(self.sort, key, self.columns))
        return self.sort

    def set_sort(self, descriptor: SortDescriptor | None) -> None:
        if descriptor == self.sort:
            return
        self.sort = descriptor
        if self.on_sort_change is not None:
            self.on_sort_change(descriptor)
        self._reclamp_page()

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def set_page(self, page: int) -> int:
        """Go to *page*, clamped to the available pages; returns the page."""
        self._update_page(clamp_page(page, len(self._pipeline()), self.page_size))
        return self.page

    def next_page(self) -> int:
        return self.set_page(self.page + 1)

    def previous_page(self) -> int:
        return self.set_page(self.page - 1)

    def set_page_size(self, page_size: int) -> None:
        """Change the page size; the page goes back to 1."""
        clamp_page(1, 0, page_size)  # validates page_size
        if page_size == self.page_size:
            return
        self.page_size = page_size
        if self.on_page_size_change is not None:
            self.on_page_size_change(page_size)
        self._update_page(1)

    def _reclamp_page(self) -> None:
        self._update_page(clamp_page(self.page, len(self._pipeline()), self.page_size))

    def _update_page(self, page: int) -> None:
        if page == self.page:
            return
        self.page = page
        if self.on_page_change is not None:
            self.on_page_change(page)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def toggle_row(self, row_id: RowId) -> None:
        self.selection.toggle(row_id)
        self._selection_changed()

    def toggle_all(self) -> None:
        """Header checkbox: select or deselect every *filtered* row."""
        self.selection.select_all(self.filtered_ids())
        self._selection_changed()

    def clear_selection(self) -> None:
        self.selection.clear()
        self._selection_changed()

    def _selection_changed(self) -> None:
        if self.on_selection_change is not None:
            self.on_selection_change(self.selection.selected_ids())

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Return the search/filter/sort/page-size state as a JSON-safe dict."""
        return {
            "query": self.query,
            "filters": self.active_filters,
            "sort": self.sort.to_dict() if self.sort is not None else None,
            "page_size": self.page_size,
        }

    def restore(self, preset: Mapping[str, Any]) -> None:
        """Apply a preset produced by :meth:`snapshot`.

        The whole preset is validated before anything is applied.
        Missing keys keep their current value.  Callbacks fire for every
        part that changes.

        Raises:
            ValueError: If the preset is malformed.
        """
        query, filters, sort, page_size = _parse_preset(preset)
        filters_changed = False
        if query is not None and query != self.query:
            self.query = query
            filters_changed = True
        if filters is not None:
            normalized = self._normalize_filters(filters)
            if normalized != self._filters:
                self._filters = normalized
                filters_changed = True
        if filters_changed:
            self._filters_changed()
        if sort is not _MISSING:
            self.set_sort(sort)
        if page_size is not None:
            self.set_page_size(page_size)
        if self.debug_log:
            print(
                f"[DataExplorer] preset applied: {len(self._filters)} filter(s), "
                f"sort={self.sort.to_dict() if self.sort else None}, "
                f"{len(self._pipeline()):,} rows match"
            )


_MISSING: Any = object()


def _parse_preset(
    preset: Mapping[str, Any],
) -> tuple[str | None, dict[str, Any] | None, Any, int | None]:
    if not isinstance(preset, Mapping):
        raise ValueError("Preset must be a JSON object")

    query = preset.get("query")
    if query is not None and not isinstance(query, str):
        raise ValueError("Preset 'query' must be a string")

    filters = preset.get("filters")
    if filters is not None and not isinstance(filters, Mapping):
        raise ValueError("Preset 'filters' must be an object")

    sort: Any = _MISSING
    if "sort" in preset:
        raw_sort = preset["sort"]
        if raw_sort is None:
            sort = None
        elif isinstance(raw_sort, Mapping) and isinstance(raw_sort.get("key"), str):
            sort = SortDescriptor(raw_sort["key"], raw_sort.get("direction", "asc"))
        else:
            raise ValueError("Preset 'sort' must be null or {key, direction}")

    page_size = preset.get("page_size")
    if page_size is not None and (not isinstance(page_size, int) or isinstance(page_size, bool)):
        raise ValueError("Preset 'page_size' must be an integer")
    if page_size is not None and page_size < 1:
        raise ValueError(f"Preset 'page_size' must be a positive integer, got {page_size!r}")

    return query, dict(filters) if filters is not None else None, sort, page_size


def dumps_preset(explorer: DataExplorer) -> str:
    return json.dumps(explorer.snapshot(), indent=2, ensure_ascii=False)


def loads_preset(explorer: DataExplorer, text: str) -> None:
    """Parse a JSON preset and apply it to *explorer*.

    Raises:
        ValueError: If *text* is not valid JSON or not a valid preset.
    """
    try:
        preset = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid preset JSON: {exc}") from exc
    explorer.restore(preset)
