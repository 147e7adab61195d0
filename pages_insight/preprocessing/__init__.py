"""Query building, client-side filtering and distinct value extraction."""

from .distinct import FilterOption, get_distinct_values
from .filtering import (
    FieldSets,
    FilterQuery,
    apply_client_filters,
    build_field_sets,
    build_filter_query,
)

__all__ = [
    "build_filter_query",
    "build_field_sets",
    "apply_client_filters",
    "FilterQuery",
    "FieldSets",
    "get_distinct_values",
    "FilterOption",
]
