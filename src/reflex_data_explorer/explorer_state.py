"""Reusable Reflex state mixin and UI helpers around :class:`DataExplorer`.

Users inherit from :class:`DataExplorerMixin` **and** ``rx.State``, call
:meth:`~DataExplorerMixin.set_explorer_rows` with the rows their data
source returned, and render the ``explorer_*`` vars with their own table
plus the :func:`data_explorer_stats_bar` and :func:`data_explorer_pager`
helpers.

Column definitions carry callables (``value_accessor``, ``render``) that
cannot be serialised into Reflex state, so each explorer lives in a
module-level registry keyed by state class and client token.  The registry
keeps at most ``MAX_REGISTRY_ENTRIES`` explorers and evicts the least
recently used one; an evicted session reloads its rows.  The state
only holds the JSON-safe projection of the current view.

Typical usage::

    from reflex_data_explorer import ColumnDef, DataExplorerMixin, data_explorer_pager

    class ContactsState(DataExplorerMixin, rx.State):
        def load_contacts(self):
            rows = api_client.get_contacts()
            yield from self.set_explorer_rows(rows, CONTACT_COLUMNS, CONTACT_FILTERS)
"""

import json
from collections import OrderedDict
from collections.abc import Sequence
from typing import Any

import reflex as rx

from reflex_data_explorer.explorer import DataExplorer, dumps_preset, loads_preset
from reflex_data_explorer.models import ColumnDef, FilterConfig, Row, RowId
from reflex_data_explorer.pagination import DEFAULT_PAGE_SIZE
from reflex_data_explorer.polars_utils import export_csv
from reflex_data_explorer.selection import SelectionMode

ROW_KEY_FIELD: str = "__row_id__"
SELECTED_FIELD: str = "__selected__"


# ---------------------------------------------------------------------------
# Module-level explorer registry
# ---------------------------------------------------------------------------

class _ExplorerEntry:
    """Holds a :class:`DataExplorer` outside Reflex state.

    ``id_lookup`` maps the stringified row ids sent to the frontend back
    to the original ids (which may be ints).
    """

    def __init__(self) -> None:
        self.explorer: DataExplorer | None = None
        self.id_lookup: dict[str, RowId] = {}

    def load(
        self,
        rows: Sequence[Row],
        columns: Sequence[ColumnDef],
        filter_configs: Sequence[FilterConfig] = (),
        *,
        id_field: str = "id",
        page_size: int = DEFAULT_PAGE_SIZE,
        selection_mode: SelectionMode = "multiple",
        debug_log: bool = True,
    ) -> DataExplorer:
        """Create the explorer, or swap the rows of one with the same columns."""
        explorer = self.explorer
        if explorer is None or explorer.columns != tuple(columns):
            explorer = DataExplorer(
                rows,
                columns,
                filter_configs=filter_configs,
                id_field=id_field,
                page_size=page_size,
                selection_mode=selection_mode,
                debug_log=debug_log,
            )
            self.explorer = explorer
        else:
            configs = {c.key: c for c in filter_configs}
            if configs != explorer.filter_configs:
                explorer.filter_configs = configs
                # re-coerce the kept filters under the new kinds
                explorer.set_filters(explorer.active_filters)
            explorer.set_rows(rows)

        self.id_lookup = {str(explorer.row_id(row)): explorer.row_id(row) for row in rows}
        return explorer

    def resolve_id(self, row_key: str) -> RowId:
        """Map a row key coming back from the frontend to the row id."""
        return self.id_lookup.get(row_key, row_key)


MAX_REGISTRY_ENTRIES: int = 256

# Least recently used entries are evicted first.
_explorer_registry: OrderedDict[str, _ExplorerEntry] = OrderedDict()


def _get_entry(cache_id: str) -> _ExplorerEntry:
    """Return (or create) the registry entry for *cache_id*."""
    entry = _explorer_registry.get(cache_id)
    if entry is not None:
        _explorer_registry.move_to_end(cache_id)
        return entry
    entry = _ExplorerEntry()
    _explorer_registry[cache_id] = entry
    while len(_explorer_registry) > MAX_REGISTRY_ENTRIES:
        _explorer_registry.popitem(last=False)
    return entry


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def row_to_cells(
    row: Row,
    columns: Sequence[ColumnDef],
    row_id: RowId,
    selected: bool = False,
) -> dict[str, Any]:
    """Project a row onto JSON-safe, rendered cell values for the frontend."""
    cells: dict[str, Any] = {
        column.key: _json_safe(column.display(row)) for column in columns
    }
    cells[ROW_KEY_FIELD] = str(row_id)
    cells[SELECTED_FIELD] = selected
    return cells


def explorer_view_vars(explorer: DataExplorer) -> dict[str, Any]:
    """Project the explorer's current view onto the mixin's ``explorer_*`` vars.

    Only the visible page is turned into cells, so the cost follows the
    page size rather than the filtered row count.
    """
    view = explorer.view()
    pagination = view.pagination
    snapshot = explorer.snapshot()
    has_content = bool(snapshot["query"] or snapshot["filters"] or snapshot["sort"])
    return {
        "explorer_rows": [
            row_to_cells(
                row,
                explorer.columns,
                explorer.row_id(row),
                selected=explorer.selection.is_selected(explorer.row_id(row)),
            )
            for row in view.visible_rows
        ],
        "explorer_query": view.query,
        "explorer_filters": {k: _json_safe(v) for k, v in view.active_filters.items()},
        "explorer_sort": view.sort.to_dict() if view.sort is not None else {},
        "explorer_pagination": pagination.to_dict(),
        "explorer_page": pagination.page,
        "explorer_page_count": pagination.page_count,
        "explorer_has_previous": pagination.has_previous,
        "explorer_has_next": pagination.has_next,
        "explorer_selected_ids": [str(i) for i in view.selection.selected_ids],
        "explorer_selected_count": view.selection.selected_count,
        "explorer_all_selected": view.selection.all_visible_selected,
        "explorer_indeterminate": view.selection.indeterminate,
        "explorer_active_filter_count": view.active_filter_count,
        "explorer_summary": view.summary,
        "explorer_range_text": pagination.range_text,
        "explorer_preset_json": (
            json.dumps(snapshot, indent=2, ensure_ascii=False) if has_content else ""
        ),
    }


# ---------------------------------------------------------------------------
# DataExplorerMixin
# ---------------------------------------------------------------------------

class DataExplorerMixin(rx.State, mixin=True):
    """Reflex State mixin for client-side-style explorer tables.

    This is a Reflex **mixin** (``mixin=True``): every subclass gets its
    own independent set of ``explorer_*`` reactive variables, so several
    explorers on one page do not interfere with each other.

    All state variable names are prefixed with ``explorer_`` to avoid
    collisions when composed with other state.
    """

    # -- Frontend state vars --
    explorer_rows: list[dict[str, Any]] = []
    explorer_columns: list[dict[str, Any]] = []
    explorer_filter_configs: list[dict[str, Any]] = []
    explorer_query: str = ""
    explorer_filters: dict[str, Any] = {}
    explorer_sort: dict[str, str] = {}
    explorer_pagination: dict[str, int] = {
        "page": 1,
        "pageSize": DEFAULT_PAGE_SIZE,
        "total": 0,
        "pageCount": 1,
    }
    explorer_page: int = 1
    explorer_page_count: int = 1
    explorer_has_previous: bool = False
    explorer_has_next: bool = False
    explorer_selected_ids: list[str] = []
    explorer_selected_count: int = 0
    explorer_all_selected: bool = False
    explorer_indeterminate: bool = False
    explorer_active_filter_count: int = 0
    explorer_summary: str = ""
    explorer_range_text: str = ""
    explorer_loading: bool = False
    explorer_loaded: bool = False
    explorer_preset_json: str = ""

    # -- Backend-only vars (not sent to frontend) --
    _explorer_cache_id: str = ""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_explorer_rows(
        self,
        rows: Sequence[Row],
        columns: Sequence[ColumnDef],
        filter_configs: Sequence[FilterConfig] = (),
        *,
        id_field: str = "id",
        page_size: int = DEFAULT_PAGE_SIZE,
        selection_mode: SelectionMode = "multiple",
        debug_log: bool = True,
    ):
        """Load a fetched row collection into this state's explorer.

        This is a **generator** -- use ``yield from self.set_explorer_rows(...)``
        inside your event handler so the loading state is sent to the
        frontend immediately.

        Calling it again with the same columns keeps the search, filters,
        sort, page size and selection, and only swaps the rows (for
        example after a refetch).

        Args:
            rows: Rows as returned by the data source.
            columns: Column definitions.
            filter_configs: Filter declarations shown above the table.
            id_field: Row field holding the stable id.
            page_size: Initial rows per page.
            selection_mode: ``"multiple"`` or ``"single"``.
            debug_log: Print recompute timings.
        """
        self.explorer_loading = True  # type: ignore[assignment]
        yield  # send loading state to the frontend immediately

        entry = self._explorer_entry()
        explorer = entry.load(
            rows,
            columns,
            filter_configs,
            id_field=id_field,
            page_size=page_size,
            selection_mode=selection_mode,
            debug_log=debug_log,
        )
        self.explorer_columns = [c.to_dict() for c in explorer.columns]  # type: ignore[assignment]
        self.explorer_filter_configs = [c.to_dict() for c in filter_configs]  # type: ignore[assignment]
        self._sync_explorer_view()
        self.explorer_loaded = True  # type: ignore[assignment]
        self.explorer_loading = False  # type: ignore[assignment]

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def handle_explorer_search(self, query: str) -> None:
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.set_query(query)
        self._sync_explorer_view()

    def handle_explorer_filter(self, key: str, value: Any) -> None:
        """Set one column filter; an empty value removes it."""
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.set_filter(key, value)
        self._sync_explorer_view()

    def clear_explorer_filters(self) -> None:
        """Clear the search box and every column filter."""
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.clear_filters()
        self._sync_explorer_view()

    def handle_explorer_sort(self, key: str) -> None:
        """Header click: cycle asc -> desc -> none on *key*."""
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.sort_by(key)
        self._sync_explorer_view()

    def handle_explorer_page(self, page: int) -> None:
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.set_page(int(page))
        self._sync_explorer_view()

    def next_explorer_page(self) -> None:
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.next_page()
        self._sync_explorer_view()

    def previous_explorer_page(self) -> None:
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.previous_page()
        self._sync_explorer_view()

    def handle_explorer_page_size(self, page_size: str) -> None:
        """Page-size dropdown change (values arrive as strings)."""
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.set_page_size(int(page_size))
        self._sync_explorer_view()

    def toggle_explorer_row(self, row_key: str) -> None:
        entry = self._explorer_entry()
        if entry.explorer is None:
            return
        entry.explorer.toggle_row(entry.resolve_id(row_key))
        self._sync_explorer_view()

    def toggle_explorer_all(self) -> None:
        """Header checkbox: (de)select every row matching the filters."""
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.toggle_all()
        self._sync_explorer_view()

    def clear_explorer_selection(self) -> None:
        explorer = self._explorer()
        if explorer is None:
            return
        explorer.clear_selection()
        self._sync_explorer_view()

    def download_explorer_preset(self) -> rx.event.EventSpec | None:
        """Download the current search/filter/sort state as a JSON preset."""
        explorer = self._explorer()
        if explorer is None:
            return None
        return rx.download(  # type: ignore[return-value]
            data=dumps_preset(explorer),
            filename="explorer_preset.json",
        )

    async def handle_explorer_preset_upload(self, files: list[rx.UploadFile]):
        """Apply an uploaded JSON preset.

        This is an async generator so loading state is pushed to the
        frontend immediately.
        """
        explorer = self._explorer()
        if not files or explorer is None:
            return

        self.explorer_loading = True  # type: ignore[assignment]
        yield

        content = await files[0].read()
        text = content.decode("utf-8") if isinstance(content, bytes) else content
        try:
            loads_preset(explorer, text)
        except ValueError as exc:
            self.explorer_loading = False  # type: ignore[assignment]
            yield rx.toast.error(f"Could not apply preset: {exc}")
            return

        self._sync_explorer_view()
        self.explorer_loading = False  # type: ignore[assignment]

    def download_explorer_csv(self, scope: str = "filtered") -> rx.event.EventSpec | None:
        """Export the filtered rows (or, with ``scope="selected"``, the selection) as CSV."""
        explorer = self._explorer()
        if explorer is None:
            return None
        rows = explorer.selected_rows() if scope == "selected" else explorer.filtered_rows()
        csv_text = export_csv(rows, explorer.columns) or ""
        return rx.download(  # type: ignore[return-value]
            data=csv_text,
            filename=f"export_{scope}.csv",
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _explorer_entry(self) -> _ExplorerEntry:
        if not self._explorer_cache_id:
            cache_id = f"{type(self).__name__}:{self.router.session.client_token}"
            self._explorer_cache_id = cache_id  # type: ignore[assignment]
        return _get_entry(self._explorer_cache_id)

    def _explorer(self) -> DataExplorer | None:
        return self._explorer_entry().explorer

    def _sync_explorer_view(self) -> None:
        """Copy the explorer's current view into the ``explorer_*`` vars."""
        explorer = self._explorer()
        if explorer is None:
            return
        for name, value in explorer_view_vars(explorer).items():
            setattr(self, name, value)


# ---------------------------------------------------------------------------
# UI helpers
# ---------------------------------------------------------------------------

def data_explorer_stats_bar(state_cls: type, *, show_export: bool = True) -> rx.Component:
    """Return a toolbar with the search box, item count and filter/selection badges.

    Args:
        state_cls: The ``rx.State`` subclass that inherits from
            :class:`DataExplorerMixin`.
        show_export: Show the "Export" button (filtered rows as CSV).

    Returns:
        A Reflex component.
    """
    export_button = rx.button(
        rx.icon("download", size=14),
        "Export",
        size="1",
        variant="ghost",
        on_click=state_cls.download_explorer_csv("filtered"),  # type: ignore[attr-defined]
    )
    return rx.hstack(
        rx.input(
            placeholder="Search...",
            value=state_cls.explorer_query,
            on_change=state_cls.handle_explorer_search,
            max_width="20em",
        ),
        rx.text(state_cls.explorer_summary, size="2", color="var(--gray-9)"),
        rx.cond(
            state_cls.explorer_active_filter_count > 0,
            rx.hstack(
                rx.badge(
                    state_cls.explorer_active_filter_count.to(str),  # type: ignore[union-attr]
                    " filters",
                    color_scheme="blue",
                ),
                rx.button(
                    "Clear",
                    size="1",
                    variant="ghost",
                    on_click=state_cls.clear_explorer_filters,
                ),
                spacing="2",
                align="center",
            ),
        ),
        rx.cond(
            state_cls.explorer_selected_count > 0,
            rx.badge(
                state_cls.explorer_selected_count.to(str),  # type: ignore[union-attr]
                " selected",
                color_scheme="green",
            ),
        ),
        rx.spacer(),
        export_button if show_export else rx.fragment(),
        spacing="3",
        align="center",
        width="100%",
        padding="0.4em 0.8em",
        margin_bottom="0.5em",
    )


def data_explorer_pager(state_cls: type) -> rx.Component:
    """Return the "Showing a to b of n" line with Previous/Next buttons.

    Args:
        state_cls: The ``rx.State`` subclass that inherits from
            :class:`DataExplorerMixin`.

    Returns:
        A Reflex component.
    """
    return rx.hstack(
        rx.text(state_cls.explorer_range_text, size="2", color="var(--gray-9)"),
        rx.spacer(),
        rx.button(
            "Previous",
            size="1",
            variant="ghost",
            disabled=~state_cls.explorer_has_previous,
            on_click=state_cls.previous_explorer_page,
        ),
        rx.text(
            "Page ",
            state_cls.explorer_page.to(str),  # type: ignore[union-attr]
            " of ",
            state_cls.explorer_page_count.to(str),  # type: ignore[union-attr]
            size="2",
            color="var(--gray-9)",
        ),
        rx.button(
            "Next",
            size="1",
            variant="ghost",
            disabled=~state_cls.explorer_has_next,
            on_click=state_cls.next_explorer_page,
        ),
        align="center",
        spacing="2",
        width="100%",
        padding="0.5em 0.8em",
    )
