"""reflex-data-explorer – in-memory search, filter, sort, pagination and selection for admin tables.

Install the package for the engine, the polars helpers and the Reflex
state mixin::

    pip install reflex-data-explorer

The engine itself (``filter_rows``, ``sort_rows``, ``paginate``,
``SelectionTracker``, ``DataExplorer``) is pure Python and works on any
sequence of mappings or objects.
"""

from reflex_data_explorer.explorer import DataExplorer, compute_view, dumps_preset, loads_preset
from reflex_data_explorer.explorer_state import (
    DataExplorerMixin,
    data_explorer_pager,
    data_explorer_stats_bar,
    explorer_view_vars,
    row_to_cells,
)
from reflex_data_explorer.filtering import (
    active_filter_count,
    filter_rows,
    matches_filters,
    matches_query,
    normalize_filter_value,
)
from reflex_data_explorer.models import (
    ColumnDef,
    ExplorerView,
    FilterConfig,
    FilterOption,
    PaginationState,
    SelectionSummary,
    SortDescriptor,
)
from reflex_data_explorer.pagination import (
    DEFAULT_PAGE_SIZE,
    PAGE_SIZE_OPTIONS,
    PageSlice,
    clamp_page,
    page_count,
    paginate,
)
from reflex_data_explorer.polars_utils import (
    build_columns_from_schema,
    build_filter_configs,
    export_csv,
    frame_to_rows,
    rows_to_frame,
    scan_file,
)
from reflex_data_explorer.selection import SelectionTracker
from reflex_data_explorer.sorting import next_sort_descriptor, sort_rows
