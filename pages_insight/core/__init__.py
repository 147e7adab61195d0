"""Core infrastructure for pages_insight."""

from .config import BrowserConfig
from .errors import FetchError, MetadataResolutionError, PagesInsightError
from .types import ActiveFilters, ColumnDescriptor, ColumnType, FilterClause
from .state import BrowserState, FetchRequest, StateManager, reduce

__all__ = [
    "BrowserConfig",
    "BrowserState",
    "FetchRequest",
    "StateManager",
    "reduce",
    "ColumnType",
    "ColumnDescriptor",
    "FilterClause",
    "ActiveFilters",
    "PagesInsightError",
    "MetadataResolutionError",
    "FetchError",
]
