"""Pages browser: the operations a presentation layer calls."""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.config import BrowserConfig
from ..core.errors import FetchError
from ..core.state import (
    ApplyFilter,
    BrowserState,
    FetchFailed,
    FetchRequest,
    FetchSucceeded,
    GoFirst,
    GoLast,
    GoNext,
    GoPrevious,
    GoToPage,
    LoadView,
    ResetFilters,
    SetPageSize,
    SetScope,
    SetSearchText,
    SortBy,
    StateManager,
    SubmitSearch,
)
from ..core.types import ActiveFilters, ColumnDescriptor, FilterClause, Record
from ..preprocessing.distinct import (
    DistinctValue,
    distinct_option_pairs,
    get_distinct_values,
    option_filter_value,
)

logger = logging.getLogger(__name__)

ColumnResolver = Callable[[str], List[ColumnDescriptor]]
Fetcher = Callable[[FetchRequest], List[Record]]


def initial_state(config: BrowserConfig) -> BrowserState:
    """State of a browser that has not loaded anything yet."""
    return BrowserState(
        scope=config.folder_scope(None),
        sort_column=config.default_sort_column,
        sort_descending=False,
        page_size=config.default_page_size,
        default_sort_column=config.default_sort_column,
    )


class PagesBrowser:
    """
    Searchable, filterable, sortable and paginated view over a list.

    Filter, sort, search and scope changes refetch one capped window from
    the list service; page and page-size changes only re-slice the window
    already loaded.

    Example:
        config = BrowserConfig(site_url="https://contoso.sharepoint.com/sites/kb")
        client = SharePointClient.from_config(config, session)
        service = PagesService(client, config)
        browser = PagesBrowser(
            resolve_columns=service.resolve_columns,
            fetch_page=service.fetch_enriched_page,
            config=config,
        )
        browser.load_view(view_id)
        browser.apply_filter(FilterClause("Topic", ColumnType.CHOICE, ["HR"]))
        browser.go_next()
        rows = browser.visible_records
    """

    def __init__(
        self,
        resolve_columns: ColumnResolver,
        fetch_page: Fetcher,
        config: Optional[BrowserConfig] = None,
        state_manager: Optional[StateManager] = None,
    ):
        """
        Initialize the browser.

        Args:
            resolve_columns: Returns the columns of a view id
            fetch_page: Executes a FetchRequest and returns enriched records
            config: Browser configuration. Defaults to BrowserConfig().
            state_manager: Where state lives between reruns. A StateManager
                keyed by config.session_key is created when omitted.
        """
        self._config = config or BrowserConfig()
        self._resolve_columns = resolve_columns
        self._fetch_page = fetch_page
        self._state_manager = state_manager or StateManager(
            self._config.session_key, initial_state(self._config)
        )
        self._view_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, action: Any) -> None:
        request = self._state_manager.dispatch(action)
        if request is not None:
            self._run_fetch(request)

    def _run_fetch(self, request: FetchRequest) -> None:
        """Execute a fetch and feed its completion back through the reducer."""
        try:
            records = self._fetch_page(request)
        except FetchError as e:
            self._state_manager.dispatch(FetchFailed(request, str(e)))
            raise
        except Exception as e:
            logger.error(
                "Fetcher raised %s for generation %d", type(e).__name__, request.generation
            )
            self._state_manager.dispatch(
                FetchFailed(request, f"Error fetching filtered pages: {e}")
            )
            raise
        self._state_manager.dispatch(FetchSucceeded(request, records))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def load_view(self, view_id: str) -> List[ColumnDescriptor]:
        """
        Resolve the columns of a view and fetch its first window.

        Raises:
            MetadataResolutionError: If the columns cannot be resolved
            FetchError: If the fetch fails
        """
        columns = list(self._resolve_columns(view_id))
        self._view_id = view_id
        self._dispatch(LoadView(tuple(columns)))
        return columns

    def set_scope(self, category: Optional[str]) -> None:
        """Restrict results to a folder of the library and refetch."""
        self._dispatch(SetScope(self._config.folder_scope(category)))

    def apply_filter(self, clause: FilterClause) -> None:
        """Upsert (or remove, when it has no values) the clause for its column and refetch."""
        self._dispatch(ApplyFilter(clause))

    def set_search_text(self, text: str) -> None:
        self._dispatch(SetSearchText(text))

    def submit_search(self) -> None:
        self._dispatch(SubmitSearch())

    def sort_by(self, column: str) -> None:
        """Sort by column; clicking the current sort column toggles direction."""
        self._dispatch(SortBy(column))

    def reset_filters(self) -> None:
        """Clear filters and search text and refetch with the default sort, descending."""
        self._dispatch(ResetFilters())

    def set_page_size(self, page_size: Any) -> None:
        self._dispatch(SetPageSize(page_size))

    def go_to_page(self, page: Any) -> None:
        self._dispatch(GoToPage(page))

    def go_first(self) -> None:
        self._dispatch(GoFirst())

    def go_previous(self) -> None:
        self._dispatch(GoPrevious())

    def go_next(self) -> None:
        self._dispatch(GoNext())

    def go_last(self) -> None:
        self._dispatch(GoLast())

    # ------------------------------------------------------------------
    # Observable outputs
    # ------------------------------------------------------------------

    @property
    def state(self) -> BrowserState:
        return self._state_manager.state

    @property
    def config(self) -> BrowserConfig:
        return self._config

    @property
    def view_id(self) -> Optional[str]:
        return self._view_id

    @property
    def columns(self) -> Tuple[ColumnDescriptor, ...]:
        return self.state.columns

    @property
    def visible_records(self) -> Tuple[Record, ...]:
        return self.state.visible_records

    @property
    def result_set(self) -> Tuple[Record, ...]:
        return self.state.result_set

    @property
    def total_items(self) -> int:
        return self.state.window.total_items

    @property
    def total_pages(self) -> int:
        return self.state.window.total_pages

    @property
    def current_page(self) -> int:
        return self.state.window.page

    @property
    def page_size(self) -> int:
        return self.state.page_size

    @property
    def sort_column(self) -> str:
        return self.state.sort_column

    @property
    def sort_descending(self) -> bool:
        return self.state.sort_descending

    @property
    def search_text(self) -> str:
        return self.state.search_text

    @property
    def active_filters(self) -> ActiveFilters:
        return self.state.filters

    @property
    def has_active_filters(self) -> bool:
        return bool(self.state.filters)

    @property
    def last_error(self) -> Optional[str]:
        return self.state.last_error

    def column(self, internal_name: str) -> ColumnDescriptor:
        for column in self.state.columns:
            if column.internal_name == internal_name:
                return column
        raise KeyError(f"Column '{internal_name}' is not displayed in the current view")

    def filter_for(self, column: str) -> Optional[FilterClause]:
        """Active clause for a column, if any."""
        return self.state.filters.get(column)

    def distinct_values(
        self, column: str, records: Optional[Sequence[Record]] = None
    ) -> List[DistinctValue]:
        """
        Filter choices for a column.

        Drawn from the batch loaded for the current scope and view, refreshed
        by unfiltered fetches so choices do not shrink while filters are
        active, or from the given records.
        """
        descriptor = self.column(column)
        source: Iterable[Record] = records if records is not None else self.state.option_batch
        return get_distinct_values(list(source), column, descriptor.column_type)

    def filter_options(self, column: str) -> List[Dict[str, Any]]:
        """Filter choices for a column as {'text', 'value'} dicts for choice widgets."""
        return distinct_option_pairs(self.distinct_values(column))

    def apply_choices(self, column: str, choices: Iterable[DistinctValue]) -> None:
        """
        Filter a column by choices picked from distinct_values().

        User choices filter by user id. An empty selection removes the
        column's filter.

        Raises:
            KeyError: If the column is not displayed in the current view
        """
        values = [option_filter_value(choice) for choice in choices]
        clause = FilterClause.for_column(
            self.column(column), [v for v in values if v is not None]
        )
        self.apply_filter(clause)

    def __repr__(self) -> str:
        state = self.state
        return (
            f"{self.__class__.__name__}("
            f"view_id={self._view_id!r}, "
            f"scope='{state.scope}', "
            f"filters={len(state.filters)}, "
            f"page={self.current_page}/{self.total_pages})"
        )
