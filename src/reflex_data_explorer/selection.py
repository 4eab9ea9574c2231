"""Row selection tracked by row id, independent of what is on screen."""

from collections.abc import Iterable
from typing import Literal

from reflex_data_explorer.models import RowId, SelectionSummary

SelectionMode = Literal["multiple", "single"]


class SelectionTracker:
    """Set of selected row ids with tri-state "select all" semantics.

    Selection is keyed by id, so it survives page navigation, re-sorting
    and filter changes.  Ids are kept in the order they were selected.
    An id that disappears from the data stays selected until
    :meth:`clear` (or an explicit :meth:`retain`).

    In ``"single"`` mode at most one id is selected: :meth:`toggle`
    replaces the selection and :meth:`select_all` does nothing.

    ``version`` is bumped by every mutating call so that callers can
    cache anything derived from the selection.
    """

    def __init__(self, selected: Iterable[RowId] = (), mode: SelectionMode = "multiple") -> None:
        if mode not in ("multiple", "single"):
            raise ValueError(f"Unsupported selection mode: {mode!r}")
        self.mode: SelectionMode = mode
        # dict keys double as an insertion-ordered set
        ids = list(selected)
        if mode == "single":
            ids = ids[-1:]
        self._selected: dict[RowId, None] = dict.fromkeys(ids)
        self.version: int = 0

    def toggle(self, row_id: RowId) -> None:
        if row_id in self._selected:
            del self._selected[row_id]
        elif self.mode == "single":
            self._selected = {row_id: None}
        else:
            self._selected[row_id] = None
        self.version += 1

    def select_all(self, visible_ids: Iterable[RowId]) -> None:
        """Check every visible id, or uncheck them all if all are checked.

        *visible_ids* must come from the filtered collection so that rows
        hidden by a filter are never selected behind the user's back.
        Selected ids outside *visible_ids* are left alone.
        """
        if self.mode == "single":
            return
        visible = list(visible_ids)
        if not visible:
            return
        if self.all_selected(visible):
            for row_id in visible:
                self._selected.pop(row_id, None)
        else:
            for row_id in visible:
                self._selected[row_id] = None
        self.version += 1

    def clear(self) -> None:
        self._selected = {}
        self.version += 1

    def retain(self, ids: Iterable[RowId]) -> None:
        """Drop selected ids that are not in *ids*."""
        keep = set(ids)
        self._selected = {row_id: None for row_id in self._selected if row_id in keep}
        self.version += 1

    def is_selected(self, row_id: RowId) -> bool:
        return row_id in self._selected

    def selected_count(self) -> int:
        return len(self._selected)

    def selected_ids(self) -> list[RowId]:
        return list(self._selected)

    def all_selected(self, visible_ids: Iterable[RowId]) -> bool:
        """True if there is at least one visible id and all are selected."""
        visible = list(visible_ids)
        return bool(visible) and all(row_id in self._selected for row_id in visible)

    def summary(self, visible_ids: Iterable[RowId]) -> SelectionSummary:
        """Derive the header checkbox state against *visible_ids*.

        With nothing visible the header is neither checked nor
        indeterminate, whatever is selected elsewhere.
        """
        visible = list(visible_ids)
        every_visible = all(row_id in self._selected for row_id in visible)
        return SelectionSummary(
            selected_ids=tuple(self._selected),
            all_visible_selected=bool(visible) and every_visible,
            indeterminate=self.selected_count() > 0 and not every_visible,
        )

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._selected

    def __repr__(self) -> str:
        return f"SelectionTracker(selected={self.selected_ids()!r}, mode={self.mode!r})"
