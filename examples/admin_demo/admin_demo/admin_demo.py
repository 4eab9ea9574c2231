"""Example Reflex app demonstrating the data explorer on an admin contacts table.

One page: a contacts list with search, status/source/company filters,
header-click sorting, pagination and checkbox selection.  The rows are
built from an inline polars DataFrame standing in for the REST client.
"""

from typing import Any

import polars as pl
import reflex as rx

from reflex_data_explorer import (
    PAGE_SIZE_OPTIONS,
    ColumnDef,
    DataExplorerMixin,
    FilterConfig,
    FilterOption,
    data_explorer_pager,
    data_explorer_stats_bar,
    frame_to_rows,
)

STATUSES: list[str] = ["NEW", "IN_REVIEW", "RESOLVED", "ARCHIVED"]
SOURCES: list[str] = ["WEBSITE", "EMAIL", "REFERRAL", "SOCIAL_MEDIA", "OTHER"]


def _label(value: Any) -> str:
    return str(value).replace("_", " ").title()


CONTACT_COLUMNS: list[ColumnDef] = [
    ColumnDef("name", "Name"),
    ColumnDef("email", "Email", sortable=False),
    ColumnDef("status", "Status", render=lambda value, _row: _label(value)),
    ColumnDef("source", "Source", render=lambda value, _row: _label(value)),
    ColumnDef("company", "Company", render=lambda value, _row: value or "-"),
    ColumnDef("score", "Lead Score", type="number", align="right"),
    ColumnDef("created_at", "Created", type="date"),
]

CONTACT_FILTERS: list[FilterConfig] = [
    FilterConfig("status", "select", label="Status",
                 options=tuple(FilterOption(s, _label(s)) for s in STATUSES)),
    FilterConfig("source", "select", label="Source",
                 options=tuple(FilterOption(s, _label(s)) for s in SOURCES)),
    FilterConfig("company", "text", label="Company", placeholder="Filter by company..."),
]


# ---------------------------------------------------------------------------
# Sample data builders
# ---------------------------------------------------------------------------

def _build_contacts_frame() -> pl.DataFrame:
    """Create a sample DataFrame with contact submissions."""
    n = 60
    companies = ["Acme Corp", "Globex", None, "Initech", "Umbrella", "Hooli"]
    return pl.DataFrame(
        {
            "id": [f"c-{i:03d}" for i in range(1, n + 1)],
            "name": [f"Contact {i}" for i in range(1, n + 1)],
            "email": [f"contact{i}@example.com" for i in range(1, n + 1)],
            "status": [STATUSES[i % len(STATUSES)] for i in range(n)],
            "source": [SOURCES[i % len(SOURCES)] for i in range(n)],
            "company": [companies[i % len(companies)] for i in range(n)],
            "score": [(i * 37) % 100 for i in range(n)],
            "created_at": [f"2024-{(i % 12) + 1:02d}-{(i % 28) + 1:02d}" for i in range(n)],
        }
    )


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class ContactsState(DataExplorerMixin, rx.State):
    """Contacts page state; all explorer vars come from the mixin."""

    def load_contacts(self):
        rows, _ = frame_to_rows(_build_contacts_frame(), id_field="id")
        yield from self.set_explorer_rows(rows, CONTACT_COLUMNS, CONTACT_FILTERS, page_size=10)


# ---------------------------------------------------------------------------
# UI components
# ---------------------------------------------------------------------------

def _filter_input(config: FilterConfig) -> rx.Component:
    if config.kind == "select":
        return rx.select(
            [o.value for o in config.options],
            placeholder=f"All {config.label}",
            on_change=lambda value: ContactsState.handle_explorer_filter(config.key, value),
            size="2",
        )
    return rx.input(
        placeholder=config.placeholder or config.label,
        on_blur=lambda value: ContactsState.handle_explorer_filter(config.key, value),
        size="2",
        width="12em",
    )


def _header_cell(column: ColumnDef) -> rx.Component:
    if not column.sortable:
        return rx.table.column_header_cell(column.header)
    return rx.table.column_header_cell(
        rx.hstack(
            rx.text(column.header),
            rx.cond(
                ContactsState.explorer_sort["key"] == column.key,
                rx.cond(
                    ContactsState.explorer_sort["direction"] == "asc",
                    rx.icon("chevron_up", size=12),
                    rx.icon("chevron_down", size=12),
                ),
                rx.icon("chevrons_up_down", size=12, color="var(--gray-8)"),
            ),
            spacing="1",
            align="center",
        ),
        on_click=ContactsState.handle_explorer_sort(column.key),
        cursor="pointer",
    )


def _row(row: rx.Var) -> rx.Component:
    return rx.table.row(
        rx.table.cell(
            rx.checkbox(
                checked=row["__selected__"].to(bool),
                on_change=lambda _checked: ContactsState.toggle_explorer_row(row["__row_id__"]),
            )
        ),
        *[rx.table.cell(row[column.key]) for column in CONTACT_COLUMNS],
    )


def _select_all_cell() -> rx.Component:
    """Header checkbox; a "minus" button while only some matching rows are selected."""
    return rx.cond(
        ContactsState.explorer_indeterminate,
        rx.icon_button(
            rx.icon("minus", size=12),
            size="1",
            variant="soft",
            on_click=ContactsState.toggle_explorer_all,
        ),
        rx.checkbox(
            checked=ContactsState.explorer_all_selected,
            on_change=lambda _checked: ContactsState.toggle_explorer_all(),
        ),
    )


def contacts_table() -> rx.Component:
    return rx.table.root(
        rx.table.header(
            rx.table.row(
                rx.table.column_header_cell(_select_all_cell()),
                *[_header_cell(column) for column in CONTACT_COLUMNS],
            )
        ),
        rx.table.body(rx.foreach(ContactsState.explorer_rows, _row)),
        width="100%",
    )


def index() -> rx.Component:
    """Render the contacts page."""
    return rx.box(
        rx.heading("Contacts", size="6", margin_bottom="1em"),
        data_explorer_stats_bar(ContactsState),
        rx.hstack(
            *[_filter_input(config) for config in CONTACT_FILTERS],
            rx.select(
                [str(size) for size in PAGE_SIZE_OPTIONS],
                default_value="10",
                on_change=ContactsState.handle_explorer_page_size,
                size="2",
            ),
            spacing="3",
            margin_bottom="1em",
        ),
        rx.cond(
            ContactsState.explorer_summary.startswith("0 of"),  # type: ignore[union-attr]
            rx.callout(
                "No data found. Try adjusting your filters or search query.",
                icon="info",
            ),
            contacts_table(),
        ),
        data_explorer_pager(ContactsState),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=ContactsState.load_contacts)
