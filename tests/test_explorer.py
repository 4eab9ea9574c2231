import json

import pytest

from reflex_data_explorer import (
    ColumnDef,
    DataExplorer,
    FilterConfig,
    SelectionTracker,
    SortDescriptor,
    compute_view,
    dumps_preset,
    loads_preset,
)


@pytest.fixture
def events():
    return []


@pytest.fixture
def explorer(contacts, contact_columns, events):
    return DataExplorer(
        contacts,
        contact_columns,
        filter_configs=[FilterConfig("score", "number"), FilterConfig("status", "select")],
        page_size=3,
        on_sort_change=lambda sort: events.append(("sort", sort)),
        on_filter_change=lambda query, filters: events.append(("filter", query, filters)),
        on_page_change=lambda page: events.append(("page", page)),
        on_page_size_change=lambda size: events.append(("page_size", size)),
        on_selection_change=lambda ids: events.append(("selection", ids)),
    )


def test_initial_view(explorer):
    view = explorer.view()
    assert [r["id"] for r in view.visible_rows] == [1, 2, 3]
    assert view.pagination.total == 10
    assert view.pagination.page_count == 4
    assert view.summary == "10 of 10 items"
    assert view.active_filter_count == 0
    assert not view.is_empty


def test_duplicate_column_keys_raise(contacts):
    with pytest.raises(ValueError):
        DataExplorer(contacts, [ColumnDef("name"), ColumnDef("name")])


def test_invalid_page_size_raises(contacts, contact_columns):
    with pytest.raises(ValueError):
        DataExplorer(contacts, contact_columns, page_size=0)


def test_total_is_filtered_count(explorer):
    explorer.set_filter("status", "NEW")
    view = explorer.view()
    assert view.pagination.total == 5
    assert view.filtered_count == 5
    assert view.raw_count == 10
    assert view.summary == "5 of 10 items"
    assert view.active_filter_count == 1


def test_page_navigation_reuses_filtered_rows(explorer):
    explorer.set_query("contact")
    explorer.view()
    recomputes = explorer.recompute_count

    explorer.next_page()
    explorer.view()
    explorer.set_page(4)
    explorer.view()
    explorer.previous_page()
    explorer.set_page_size(5)
    explorer.view()

    assert explorer.recompute_count == recomputes


def test_descriptor_change_recomputes(explorer):
    explorer.view()
    recomputes = explorer.recompute_count
    explorer.sort_by("score")
    explorer.view()
    assert explorer.recompute_count == recomputes + 1


def test_new_rows_object_recomputes(explorer, contacts):
    explorer.view()
    recomputes = explorer.recompute_count
    explorer.set_rows(list(contacts))
    explorer.view()
    assert explorer.recompute_count == recomputes + 1


def test_page_is_clamped_after_filter_change(explorer, events):
    explorer.set_page(4)
    assert explorer.page == 4
    explorer.set_filter("status", "NEW")
    assert explorer.page == 2
    assert ("page", 2) in events
    assert explorer.view().visible_rows == tuple(explorer.filtered_rows()[3:5])


def test_set_page_clamps(explorer):
    assert explorer.set_page(42) == 4
    assert explorer.set_page(-1) == 1
    assert explorer.previous_page() == 1


def test_page_size_change_resets_page(explorer, events):
    explorer.set_page(3)
    events.clear()
    explorer.set_page_size(5)
    assert explorer.page == 1
    assert events == [("page_size", 5), ("page", 1)]
    with pytest.raises(ValueError):
        explorer.set_page_size(0)


def test_sort_cycle_fires_callback(explorer, events):
    assert explorer.sort_by("score") == SortDescriptor("score", "asc")
    assert explorer.sort_by("score") == SortDescriptor("score", "desc")
    assert explorer.sort_by("score") is None
    assert explorer.sort_by("email") is None
    assert [e for e in events if e[0] == "sort"] == [
        ("sort", SortDescriptor("score", "asc")),
        ("sort", SortDescriptor("score", "desc")),
        ("sort", None),
    ]


def test_sorted_view(explorer):
    explorer.set_sort(SortDescriptor("score", "desc"))
    assert [r["id"] for r in explorer.view().visible_rows] == [8, 5, 2]


def test_filter_callback_and_normalisation(explorer, events):
    explorer.set_filter("score", "37")
    assert explorer.active_filters == {"score": 37}
    assert events[-1] == ("filter", "", {"score": 37})
    assert [r["id"] for r in explorer.filtered_rows()] == [1]

    events.clear()
    explorer.set_filter("score", 37)
    assert events == []

    explorer.set_filter("score", "")
    assert explorer.active_filters == {}
    assert events[-1] == ("filter", "", {})


def test_clear_filters_resets_query_too(explorer):
    explorer.set_query("globex")
    explorer.set_filter("status", "NEW")
    explorer.clear_filters()
    assert explorer.query == ""
    assert explorer.active_filters == {}
    assert explorer.view().filtered_count == 10


def test_active_filters_is_a_copy(explorer):
    explorer.set_filter("status", "NEW")
    explorer.active_filters["status"] = "ARCHIVED"
    assert explorer.active_filters == {"status": "NEW"}


def test_toggle_all_selects_only_filtered_rows(explorer, events):
    explorer.set_filter("status", "resolved")
    explorer.toggle_all()
    assert explorer.selection.selected_ids() == [3, 8]
    assert events[-1] == ("selection", [3, 8])
    assert explorer.view().selection.all_visible_selected

    explorer.toggle_all()
    assert explorer.selection.selected_ids() == []


def test_selection_survives_filter_and_page_changes(explorer):
    explorer.toggle_row(2)
    explorer.toggle_row(9)
    explorer.set_page(3)
    explorer.set_filter("status", "NEW")
    explorer.sort_by("name")
    assert explorer.selection.selected_ids() == [2, 9]
    assert explorer.view().selection.indeterminate
    assert [r["id"] for r in explorer.selected_rows()] == [2, 9]


def test_selected_rows_skip_orphans(explorer, contacts):
    explorer.toggle_row(1)
    explorer.toggle_row(10)
    explorer.set_rows(contacts[:5])
    assert [r["id"] for r in explorer.selected_rows()] == [1]
    assert explorer.selection.selected_ids() == [1, 10]


def test_single_selection_mode(contacts, contact_columns):
    explorer = DataExplorer(contacts, contact_columns, selection_mode="single")
    explorer.toggle_row(1)
    explorer.toggle_row(4)
    explorer.toggle_all()
    assert explorer.selection.selected_ids() == [4]


def test_custom_row_id(contact_columns):
    rows = [{"email": "a@x.io", "name": "A"}, {"email": "b@x.io", "name": "B"}]
    explorer = DataExplorer(rows, contact_columns, get_row_id=lambda row: row["email"])
    explorer.toggle_all()
    assert explorer.filtered_ids() == ["a@x.io", "b@x.io"]
    assert explorer.selection.selected_ids() == ["a@x.io", "b@x.io"]


def test_debug_log_prints_timings(contacts, contact_columns, capsys):
    explorer = DataExplorer(contacts, contact_columns, debug_log=True)
    explorer.view()
    assert "[DataExplorer] recompute: 10 rows -> 10 filtered" in capsys.readouterr().out


def test_compute_view_is_deterministic(contacts, contact_columns):
    kwargs = dict(query="contact", active_filters={"status": "NEW"}, sort=SortDescriptor("score"), page=2, page_size=2)
    first = compute_view(contacts, contact_columns, **kwargs)
    second = compute_view(contacts, contact_columns, **kwargs)
    assert first == second
    assert [r["id"] for r in first.visible_rows] == [4, 7]
    assert first.pagination.page_count == 3


def test_compute_view_summarises_selection_against_filtered_rows(contacts, contact_columns):
    selection = SelectionTracker([3, 8])
    view = compute_view(contacts, contact_columns, active_filters={"status": "RESOLVED"}, page_size=1, selection=selection)
    assert view.selection.all_visible_selected
    assert len(view.visible_rows) == 1


def test_compute_view_matches_explorer(explorer, contacts, contact_columns):
    explorer.set_query("o")
    explorer.set_sort(SortDescriptor("name", "desc"))
    explorer.set_page(2)
    view = compute_view(
        contacts, contact_columns, query="o", sort=SortDescriptor("name", "desc"), page=2, page_size=3,
    )
    assert explorer.view() == view


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

def test_preset_round_trip(explorer, contacts, contact_columns):
    explorer.set_query("contact")
    explorer.set_filter("status", "NEW")
    explorer.set_sort(SortDescriptor("score", "desc"))
    explorer.set_page_size(10)
    text = dumps_preset(explorer)
    assert json.loads(text) == {
        "query": "contact",
        "filters": {"status": "NEW"},
        "sort": {"key": "score", "direction": "desc"},
        "page_size": 10,
    }

    other = DataExplorer(contacts, contact_columns)
    loads_preset(other, text)
    assert other.snapshot() == explorer.snapshot()
    assert other.view().visible_rows == explorer.view().visible_rows


def test_restore_fires_filter_callback_once(explorer, events):
    explorer.restore({"query": "globex", "filters": {"status": "NEW"}})
    assert [e for e in events if e[0] == "filter"] == [("filter", "globex", {"status": "NEW"})]


def test_restore_keeps_missing_keys(explorer):
    explorer.set_sort(SortDescriptor("name"))
    explorer.restore({"query": "acme"})
    assert explorer.sort == SortDescriptor("name")
    explorer.restore({"sort": None})
    assert explorer.sort is None


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2]",
        '{"query": 5}',
        '{"filters": []}',
        '{"sort": "score"}',
        '{"sort": {"key": "score", "direction": "sideways"}}',
        '{"page_size": "10"}',
        '{"query": "x", "page_size": 0}',
        '{"filters": {"status": "NEW"}, "sort": null, "page_size": -5}',
    ],
)
def test_malformed_preset_raises(explorer, events, text):
    explorer.set_sort(SortDescriptor("name"))
    events.clear()
    before = explorer.snapshot()
    with pytest.raises(ValueError):
        loads_preset(explorer, text)
    assert explorer.snapshot() == before
    assert events == []


def test_set_filters_replaces_all(explorer, events):
    explorer.set_filter("status", "NEW")
    explorer.set_filters({"score": "85", "company": ""})
    assert explorer.active_filters == {"score": 85}
    assert events[-1] == ("filter", "", {"score": 85})
    assert [r["id"] for r in explorer.filtered_rows()] == [5]


def test_select_all_ignores_rows_hidden_by_filter(explorer):
    explorer.set_filter("status", "NEW")
    explorer.toggle_all()
    explorer.clear_filters()
    assert not explorer.selection.is_selected(2)
    assert explorer.selection.selected_ids() == [1, 4, 6, 7, 10]
    summary = explorer.view().selection
    assert summary.indeterminate
    assert not summary.all_visible_selected


def test_page_navigation_does_not_walk_filtered_rows():
    calls = []

    def row_id(row):
        calls.append(row["id"])
        return row["id"]

    rows = [{"id": i, "name": f"n{i}"} for i in range(1000)]
    explorer = DataExplorer(rows, [ColumnDef("name")], get_row_id=row_id, page_size=10)
    explorer.toggle_row(3)
    explorer.view()

    calls.clear()
    explorer.next_page()
    view = explorer.view()
    assert len(calls) <= 10
    assert view.pagination.page == 2
    assert view.selection.indeterminate


def test_selection_summary_follows_selection_and_filters(explorer):
    assert explorer.view().selection.selected_count == 0
    explorer.toggle_row(3)
    assert explorer.view().selection.selected_ids == (3,)
    explorer.selection.toggle(8)
    assert explorer.view().selection.selected_ids == (3, 8)
    explorer.set_filter("status", "resolved")
    assert explorer.view().selection.all_visible_selected
