"""Browser state, the reducer that drives it, and session-state storage.

Every user action goes through ``reduce(state, action)``, which returns the
next state and, for actions that change what must be fetched, a
FetchRequest. Each request carries a generation number; completions for any
generation other than the latest one are discarded, so a slow response can
never overwrite the result of a newer action.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from .pagination import (
    PageWindow,
    clamp_page,
    page_slice,
    page_window,
    parse_page_entry,
    parse_page_size,
)
from .types import ActiveFilters, ColumnDescriptor, FilterClause, Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchRequest:
    """
    Parameters of one fetch, captured when the triggering action ran.

    Attributes:
        generation: Generation of the state that issued the request
        page: Page used to compute the remote $skip (always 1 for refetches)
        page_size: Page size at invocation
        sort_column: Column for $orderby
        descending: Sort direction for $orderby
        scope: Folder prefix the items must live under
        search_text: Free-text search
        filters: Active filters at invocation
        columns: Displayed columns, used for $select/$expand
    """

    generation: int
    page: int
    page_size: int
    sort_column: str
    descending: bool
    scope: str
    search_text: str
    filters: ActiveFilters
    columns: Tuple[ColumnDescriptor, ...] = ()

    @property
    def server_filters(self) -> Tuple[FilterClause, ...]:
        return self.filters.server

    @property
    def client_filters(self) -> Tuple[FilterClause, ...]:
        return self.filters.client

    @property
    def is_unfiltered(self) -> bool:
        return not self.filters and not self.search_text


@dataclass(frozen=True)
class BrowserState:
    """Complete, immutable state of a pages browser."""

    scope: str = ""
    search_text: str = ""
    filters: ActiveFilters = field(default_factory=ActiveFilters)
    sort_column: str = "Created"
    sort_descending: bool = False
    page_size: int = 10
    page: int = 1
    columns: Tuple[ColumnDescriptor, ...] = ()
    result_set: Tuple[Record, ...] = ()
    # Batch that filter choices are drawn from, and the scope and columns it was fetched for
    option_batch: Tuple[Record, ...] = ()
    option_scope: Optional[str] = None
    option_columns: Tuple[ColumnDescriptor, ...] = ()
    generation: int = 0
    pending: Optional[FetchRequest] = None
    last_error: Optional[str] = None
    default_sort_column: str = "Created"

    @property
    def window(self) -> PageWindow:
        return page_window(len(self.result_set), self.page_size, self.page)

    @property
    def visible_records(self) -> Tuple[Record, ...]:
        return page_slice(self.result_set, self.page, self.page_size)

    @property
    def is_loading(self) -> bool:
        return self.pending is not None


@dataclass(frozen=True)
class Transition:
    """Reducer output: next state plus the fetch it requires, if any."""

    state: BrowserState
    fetch: Optional[FetchRequest] = None


# =============================================================================
# Actions
# =============================================================================


@dataclass(frozen=True)
class LoadView:
    columns: Tuple[ColumnDescriptor, ...]


@dataclass(frozen=True)
class SetScope:
    scope: str


@dataclass(frozen=True)
class SetSearchText:
    text: str


@dataclass(frozen=True)
class SubmitSearch:
    pass


@dataclass(frozen=True)
class ApplyFilter:
    clause: FilterClause


@dataclass(frozen=True)
class ResetFilters:
    pass


@dataclass(frozen=True)
class SortBy:
    column: str


@dataclass(frozen=True)
class SetPageSize:
    page_size: Any


@dataclass(frozen=True)
class GoToPage:
    page: Any


@dataclass(frozen=True)
class GoFirst:
    pass


@dataclass(frozen=True)
class GoPrevious:
    pass


@dataclass(frozen=True)
class GoNext:
    pass


@dataclass(frozen=True)
class GoLast:
    pass


@dataclass(frozen=True)
class FetchSucceeded:
    request: FetchRequest
    records: Sequence[Record]


@dataclass(frozen=True)
class FetchFailed:
    request: FetchRequest
    error: str


# =============================================================================
# Reducer
# =============================================================================


def _refetch(state: BrowserState, **changes: Any) -> Transition:
    """Apply changes, bump the generation and issue a page-1 fetch."""
    next_state = replace(state, generation=state.generation + 1, **changes)
    request = FetchRequest(
        generation=next_state.generation,
        page=1,
        page_size=next_state.page_size,
        sort_column=next_state.sort_column,
        descending=next_state.sort_descending,
        scope=next_state.scope,
        search_text=next_state.search_text,
        filters=next_state.filters,
        columns=next_state.columns,
    )
    return Transition(replace(next_state, pending=request), request)


def _go_to(state: BrowserState, page: int) -> Transition:
    return Transition(
        replace(state, page=clamp_page(page, state.window.total_pages))
    )


def _on_sort_by(state: BrowserState, action: SortBy) -> Transition:
    if action.column == state.sort_column:
        descending = not state.sort_descending
    else:
        descending = True
    return _refetch(state, sort_column=action.column, sort_descending=descending)


def _on_reset_filters(state: BrowserState, action: ResetFilters) -> Transition:
    return _refetch(
        state,
        filters=ActiveFilters(),
        search_text="",
        sort_column=state.default_sort_column,
        sort_descending=True,
    )


def _on_set_page_size(state: BrowserState, action: SetPageSize) -> Transition:
    size = parse_page_size(action.page_size)
    if not size:
        logger.warning("Ignoring invalid page size %r", action.page_size)
        return Transition(state)
    return Transition(replace(state, page_size=size, page=1))


def _is_current(state: BrowserState, request: FetchRequest) -> bool:
    if request.generation != state.generation:
        logger.warning(
            "Discarding stale fetch completion (generation %d, current %d)",
            request.generation,
            state.generation,
        )
        return False
    return True


def _on_fetch_succeeded(state: BrowserState, action: FetchSucceeded) -> Transition:
    from ..preprocessing.filtering import apply_client_filters

    request = action.request
    if not _is_current(state, request):
        return Transition(state)

    records = tuple(action.records)
    result_set = tuple(apply_client_filters(records, request.client_filters))

    option_batch = state.option_batch
    option_scope = state.option_scope
    option_columns = state.option_columns
    origin_changed = (request.scope, request.columns) != (option_scope, option_columns)
    if request.is_unfiltered or not option_batch or origin_changed:
        option_batch = records
        option_scope = request.scope
        option_columns = request.columns

    return Transition(
        replace(
            state,
            result_set=result_set,
            option_batch=option_batch,
            option_scope=option_scope,
            option_columns=option_columns,
            page=1,
            pending=None,
            last_error=None,
        )
    )


def _on_fetch_failed(state: BrowserState, action: FetchFailed) -> Transition:
    if not _is_current(state, action.request):
        return Transition(state)
    return Transition(replace(state, pending=None, last_error=action.error))


_HANDLERS: Dict[type, Callable[[BrowserState, Any], Transition]] = {
    LoadView: lambda s, a: _refetch(s, columns=tuple(a.columns)),
    SetScope: lambda s, a: _refetch(s, scope=a.scope),
    SetSearchText: lambda s, a: Transition(replace(s, search_text=a.text or "")),
    SubmitSearch: lambda s, a: _refetch(s),
    ApplyFilter: lambda s, a: _refetch(s, filters=s.filters.apply(a.clause)),
    ResetFilters: _on_reset_filters,
    SortBy: _on_sort_by,
    SetPageSize: _on_set_page_size,
    GoToPage: lambda s, a: _go_to(s, parse_page_entry(a.page)),
    GoFirst: lambda s, a: _go_to(s, 1),
    GoPrevious: lambda s, a: _go_to(s, s.page - 1),
    GoNext: lambda s, a: _go_to(s, s.page + 1),
    GoLast: lambda s, a: _go_to(s, s.window.total_pages),
    FetchSucceeded: _on_fetch_succeeded,
    FetchFailed: _on_fetch_failed,
}


def reduce(state: BrowserState, action: Any) -> Transition:
    """
    Compute the next browser state for an action.

    Args:
        state: Current state
        action: One of the action dataclasses of this module

    Returns:
        Transition with the next state and an optional FetchRequest

    Raises:
        TypeError: If the action type is unknown
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown browser action: {action!r}")
    return handler(state, action)


# =============================================================================
# Session storage
# =============================================================================


class StateManager:
    """
    Keeps a BrowserState in Streamlit session_state between reruns.

    Features:
        - Reducer-driven updates: the stored state is only replaced through
          dispatch(), never mutated in place
        - Update counter incremented on every state change
        - Session ID for multi-tab/session safety
    """

    def __init__(
        self,
        session_key: str = "pages_insight_state",
        initial_state: Optional[BrowserState] = None,
    ):
        """
        Initialize the StateManager.

        Args:
            session_key: Key to use in Streamlit session_state. Use different
                keys for independent browsers on the same page.
            initial_state: State stored when the session has none yet
        """
        self._session_key = session_key
        self._initial_state = initial_state or BrowserState()
        self._ensure_session_state()

    def _ensure_session_state(self) -> None:
        """Ensure session state is initialized."""
        import streamlit as st

        if self._session_key not in st.session_state:
            st.session_state[self._session_key] = {
                "counter": 0,
                "id": float(np.random.random()),
                "browser": self._initial_state,
            }

    @property
    def _state(self) -> Dict[str, Any]:
        """Get the internal state dict from session_state."""
        import streamlit as st

        self._ensure_session_state()
        return st.session_state[self._session_key]

    @property
    def session_id(self) -> float:
        return self._state["id"]

    @property
    def counter(self) -> int:
        return self._state["counter"]

    @property
    def state(self) -> BrowserState:
        return self._state["browser"]

    def dispatch(self, action: Any) -> Optional[FetchRequest]:
        """
        Run an action through the reducer and store the result.

        Args:
            action: Browser action

        Returns:
            The FetchRequest the caller must execute, or None
        """
        current = self.state
        transition = reduce(current, action)
        if transition.state is not current:
            self._state["browser"] = transition.state
            self._state["counter"] += 1
        return transition.fetch

    def clear(self) -> None:
        """Restore the initial state and reset the counter."""
        self._state["browser"] = self._initial_state
        self._state["counter"] = 0

    def __repr__(self) -> str:
        state = self.state
        return (
            f"StateManager(session_key='{self._session_key}', "
            f"counter={self.counter}, "
            f"generation={state.generation}, "
            f"items={len(state.result_set)})"
        )
