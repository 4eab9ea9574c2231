"""Page slicing of the filtered and sorted collection."""

import math
from collections.abc import Sequence
from typing import NamedTuple

from reflex_data_explorer.models import PaginationState, Row

DEFAULT_PAGE_SIZE: int = 25
PAGE_SIZE_OPTIONS: tuple[int, ...] = (10, 25, 50, 100)


class PageSlice(NamedTuple):
    page_rows: list[Row]
    pagination: PaginationState


def _check_page_size(page_size: int) -> None:
    if page_size < 1:
        raise ValueError(f"page_size must be a positive integer, got {page_size!r}")


def page_count(total: int, page_size: int) -> int:
    """Number of pages for *total* rows; never less than 1."""
    _check_page_size(page_size)
    return max(1, math.ceil(total / page_size))


def clamp_page(page: int, total: int, page_size: int) -> int:
    """Clamp a 1-based *page* into ``[1, page_count]``."""
    return min(max(1, page), page_count(total, page_size))


def paginate(rows: Sequence[Row], page: int, page_size: int) -> PageSlice:
    """Slice *rows* to the requested page.

    The page is clamped before slicing, so an out-of-range request
    returns the nearest valid page instead of an error.

    Args:
        rows: Filtered and sorted rows.
        page: Requested 1-based page.
        page_size: Rows per page (must be >= 1).

    Returns:
        A ``(page_rows, pagination)`` tuple whose ``pagination.total`` is
        ``len(rows)``.

    Raises:
        ValueError: If *page_size* is less than 1.
    """
    total = len(rows)
    page = clamp_page(page, total, page_size)
    offset = (page - 1) * page_size
    return PageSlice(
        page_rows=list(rows[offset:offset + page_size]),
        pagination=PaginationState(page=page, page_size=page_size, total=total),
    )
