from collections import OrderedDict
from datetime import date

from reflex_data_explorer import ColumnDef, FilterConfig, explorer_view_vars, row_to_cells
from reflex_data_explorer import explorer_state
from reflex_data_explorer.explorer_state import ROW_KEY_FIELD, SELECTED_FIELD, _ExplorerEntry, _get_entry


def test_row_to_cells_renders_values():
    columns = [
        ColumnDef("name", "Name"),
        ColumnDef("status", "Status", render=lambda value, _row: value.title()),
        ColumnDef("joined", "Joined"),
    ]
    row = {"id": 7, "name": "Ada", "status": "NEW", "joined": date(2024, 1, 5), "secret": "x"}
    cells = row_to_cells(row, columns, 7, selected=True)
    assert cells == {
        "name": "Ada",
        "status": "New",
        "joined": "2024-01-05",
        ROW_KEY_FIELD: "7",
        SELECTED_FIELD: True,
    }


def test_row_to_cells_keeps_json_scalars():
    columns = [ColumnDef("score"), ColumnDef("active"), ColumnDef("note")]
    cells = row_to_cells({"score": 1.5, "active": False, "note": None}, columns, "r-1")
    assert cells["score"] == 1.5
    assert cells["active"] is False
    assert cells["note"] is None
    assert cells[SELECTED_FIELD] is False


def test_registry_entries_are_reused():
    entry = _get_entry("TestState:token-1")
    assert entry.explorer is None
    assert _get_entry("TestState:token-1") is entry
    assert _get_entry("TestState:token-2") is not entry


def test_registry_evicts_least_recently_used(monkeypatch):
    monkeypatch.setattr(explorer_state, "_explorer_registry", OrderedDict())
    monkeypatch.setattr(explorer_state, "MAX_REGISTRY_ENTRIES", 2)
    first = _get_entry("a")
    second = _get_entry("b")
    assert _get_entry("a") is first
    _get_entry("c")
    assert list(explorer_state._explorer_registry) == ["a", "c"]
    assert _get_entry("b") is not second


def test_row_keys_map_back_to_int_ids(contacts, contact_columns):
    entry = _ExplorerEntry()
    explorer = entry.load(contacts, contact_columns, page_size=3, debug_log=False)
    assert entry.resolve_id("3") == 3
    assert entry.resolve_id("unknown") == "unknown"

    explorer.toggle_row(entry.resolve_id("3"))
    assert explorer.selection.selected_ids() == [3]

    values = explorer_view_vars(explorer)
    assert values["explorer_selected_ids"] == ["3"]
    assert [c[ROW_KEY_FIELD] for c in values["explorer_rows"]] == ["1", "2", "3"]
    assert [c[SELECTED_FIELD] for c in values["explorer_rows"]] == [False, False, True]
    assert values["explorer_indeterminate"] is True
    assert values["explorer_all_selected"] is False
    assert values["explorer_summary"] == "10 of 10 items"
    assert values["explorer_range_text"] == "Showing 1 to 3 of 10 results"
    assert values["explorer_pagination"] == {"page": 1, "pageSize": 3, "total": 10, "pageCount": 4}
    assert values["explorer_preset_json"] == ""


def test_view_vars_carry_preset_and_sort(contacts, contact_columns):
    entry = _ExplorerEntry()
    explorer = entry.load(contacts, contact_columns, debug_log=False)
    explorer.set_query("globex")
    explorer.sort_by("score")
    values = explorer_view_vars(explorer)
    assert values["explorer_sort"] == {"key": "score", "direction": "asc"}
    assert values["explorer_active_filter_count"] == 1
    assert [c["name"] for c in values["explorer_rows"]] == ["Contact 6", "Contact 1"]
    assert '"query": "globex"' in values["explorer_preset_json"]


def test_reload_with_same_columns_keeps_state(contacts, contact_columns):
    entry = _ExplorerEntry()
    explorer = entry.load(contacts, contact_columns, debug_log=False)
    explorer.set_query("contact")
    explorer.toggle_row(1)

    again = entry.load(contacts[:3], contact_columns, debug_log=False)
    assert again is explorer
    assert explorer.query == "contact"
    assert explorer.selection.selected_ids() == [1]
    assert explorer.view().raw_count == 3
    assert set(entry.id_lookup) == {"1", "2", "3"}


def test_reload_applies_new_filter_configs(contacts, contact_columns):
    entry = _ExplorerEntry()
    explorer = entry.load(contacts, contact_columns, debug_log=False)
    explorer.set_filter("score", "37")
    assert explorer.active_filters == {"score": "37"}

    entry.load(contacts, contact_columns, [FilterConfig("score", "number")], debug_log=False)
    assert "score" in explorer.filter_configs
    assert explorer.active_filters == {"score": 37}
    assert [r["id"] for r in explorer.filtered_rows()] == [1]


def test_new_columns_replace_the_explorer(contacts, contact_columns):
    entry = _ExplorerEntry()
    first = entry.load(contacts, contact_columns, debug_log=False)
    second = entry.load(contacts, contact_columns[:2], debug_log=False)
    assert second is not first
    assert entry.explorer is second
