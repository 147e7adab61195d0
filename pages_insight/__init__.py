"""
Pages Insight - Filtered query construction and pagination for SharePoint lists.

This package turns typed column filters, search text and folder scopes into
remote list queries, applies the filters the remote service cannot evaluate,
tags records with the user's alert subscriptions, and keeps sort and
pagination state coherent across refetches.
"""

from .components.browser import PagesBrowser
from .core.config import BrowserConfig
from .core.errors import (
    FetchError,
    MetadataResolutionError,
    PagesInsightError,
    RemoteServiceError,
)
from .core.state import BrowserState, FetchRequest, StateManager, reduce
from .core.types import ActiveFilters, ColumnDescriptor, ColumnType, FilterClause
from .preprocessing.distinct import FilterOption, get_distinct_values
from .preprocessing.filtering import (
    apply_client_filters,
    build_field_sets,
    build_filter_query,
)
from .remote.client import SharePointClient
from .remote.pages import PagesService
from .rendering.bridge import prepare_view_data

__version__ = "0.1.0"

__all__ = [
    # Core
    "BrowserConfig",
    "BrowserState",
    "FetchRequest",
    "StateManager",
    "reduce",
    "ColumnType",
    "ColumnDescriptor",
    "FilterClause",
    "ActiveFilters",
    # Errors
    "PagesInsightError",
    "MetadataResolutionError",
    "FetchError",
    "RemoteServiceError",
    # Query building
    "build_filter_query",
    "build_field_sets",
    "apply_client_filters",
    "get_distinct_values",
    "FilterOption",
    # Remote
    "SharePointClient",
    "PagesService",
    # Components
    "PagesBrowser",
    "prepare_view_data",
]
