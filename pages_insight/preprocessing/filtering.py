"""Filter expression building and client-side taxonomy filtering."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
import polars as pl

from ..core.types import ActiveFilters, ColumnDescriptor, ColumnType, FilterClause, Record

logger = logging.getLogger(__name__)

# Computed columns that alias the file name and can be filtered through Title
NAME_ALIAS_FIELDS = frozenset(
    {"Name", "FileLeafRef", "LinkFilename", "LinkFilenameNoMenu"}
)

# Fields every fetch selects, ahead of the displayed columns
BASE_SELECT_FIELDS: Tuple[str, ...] = ("FileRef", "FileDirRef", "FSObjType", "Title", "Id")

PATH_FIELD = "FileDirRef"
OBJECT_TYPE_FIELD = "FSObjType"
ARTICLE_ID_FIELD = "Article_x0020_ID"
MODIFIED_FIELD = "Modified"

# FSObjType value of documents (folders are 1)
DOCUMENT_OBJECT_TYPE = 0

_ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


@dataclass(frozen=True)
class FilterQuery:
    """
    Result of translating filters into a remote query.

    Attributes:
        expression: Server-side $filter expression
        client_filters: Clauses the remote service cannot evaluate
    """

    expression: str
    client_filters: Tuple[FilterClause, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FieldSets:
    """$select and $expand field lists for a fetch."""

    select: Tuple[str, ...]
    expand: Tuple[str, ...] = field(default_factory=tuple)


def to_utc_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a date value into a UTC timestamp.

    Naive values are taken as UTC, the way ISO date strings without an
    offset are read by the remote service.

    Args:
        value: ISO string, datetime or Timestamp

    Returns:
        tz-aware Timestamp, or None when the value cannot be parsed
    """
    if value is None or value == "":
        return None
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def _date_expression(column: str, value: str) -> Optional[str]:
    ts = to_utc_timestamp(value)
    if ts is None:
        logger.warning("Dropping unparsable date filter value %r for %s", value, column)
        return None
    start = ts.normalize()
    end = start + pd.Timedelta(days=1)
    return (
        f"({column} ge datetime'{start.strftime(_ISO_FORMAT)}' "
        f"and {column} lt datetime'{end.strftime(_ISO_FORMAT)}')"
    )


def _user_expression(column: str, value: str) -> Optional[str]:
    return f"{column}/Id eq '{value}'"


def _url_expression(column: str, value: str) -> Optional[str]:
    return f"{column}/Url eq '{value}'"


def _computed_expression(column: str, value: str) -> Optional[str]:
    if column not in NAME_ALIAS_FIELDS:
        return None
    return f"Title eq '{value}'"


def _scalar_expression(column: str, value: str) -> Optional[str]:
    return f"{column} eq '{value}'"


# One entry per type with special server syntax; everything else is a plain eq
_VALUE_EXPRESSIONS: Dict[ColumnType, Callable[[str, str], Optional[str]]] = {
    ColumnType.DATETIME: _date_expression,
    ColumnType.USER: _user_expression,
    ColumnType.URL: _url_expression,
    ColumnType.COMPUTED: _computed_expression,
}


def clause_expression(clause: FilterClause) -> Optional[str]:
    """
    Translate one server-expressible clause.

    Args:
        clause: Clause with at least one value

    Returns:
        '(<v1> or <v2> ...)' or None when no value is expressible
    """
    if clause.is_client_only:
        return None
    to_expression = _VALUE_EXPRESSIONS.get(clause.column_type, _scalar_expression)
    parts = [to_expression(clause.column, value) for value in clause.values]
    parts = [part for part in parts if part]
    if not parts:
        return None
    return f"({' or '.join(parts)})"


def build_filter_query(
    folder_scope: str,
    search_text: str = "",
    filters: Optional[Iterable[FilterClause]] = None,
) -> FilterQuery:
    """
    Build the server filter expression for a fetch.

    The expression always restricts results to documents below folder_scope.
    Search text matches the title, the article id or the modified column.
    Each server-expressible clause adds an AND-ed group of OR-ed values.
    Taxonomy clauses are skipped and returned as client filters.

    Args:
        folder_scope: Server-relative folder prefix
        search_text: Free-text search, ignored when empty
        filters: Active clauses (ActiveFilters or any iterable of clauses)

    Returns:
        FilterQuery with the expression and the client-only clauses
    """
    if isinstance(filters, ActiveFilters):
        filters = filters.all()

    expression = (
        f"startswith({PATH_FIELD}, '{folder_scope}') "
        f"and {OBJECT_TYPE_FIELD} eq {DOCUMENT_OBJECT_TYPE}"
    )
    if search_text:
        expression += (
            f" and (substringof('{search_text}', Title)"
            f" or {ARTICLE_ID_FIELD} eq '{search_text}'"
            f" or substringof('{search_text}', {MODIFIED_FIELD}))"
        )

    client_filters: List[FilterClause] = []
    for clause in filters or ():
        if clause.is_empty:
            continue
        if clause.is_client_only:
            client_filters.append(clause)
            continue
        group = clause_expression(clause)
        if group:
            expression += f" and {group}"

    logger.debug("Built filter expression: %s", expression)
    return FilterQuery(expression=expression, client_filters=tuple(client_filters))


def build_field_sets(columns: Iterable[ColumnDescriptor]) -> FieldSets:
    """
    Compute $select and $expand for the displayed columns.

    User columns are lookups that must be expanded to read their Id and
    Title. Taxonomy values are returned inline and need no expansion.

    Args:
        columns: Displayed columns

    Returns:
        FieldSets with de-duplicated, order-preserving field lists
    """
    select: Dict[str, None] = dict.fromkeys(BASE_SELECT_FIELDS)
    expand: Dict[str, None] = {}
    for column in columns:
        if column.column_type is ColumnType.USER:
            select[f"{column.internal_name}/Id"] = None
            select[f"{column.internal_name}/Title"] = None
            expand[column.internal_name.split("/")[0]] = None
        else:
            select[column.internal_name] = None
    return FieldSets(select=tuple(select), expand=tuple(expand))


def _taxonomy_labels(value: Any) -> Optional[List[str]]:
    """Labels of a multi-valued taxonomy field, or None when not list-shaped."""
    if not isinstance(value, list):
        return None
    return [
        str(term["Label"])
        for term in value
        if isinstance(term, dict) and term.get("Label") is not None
    ]


def _rows_matching(records: Sequence[Record], clause: FilterClause) -> set:
    labels = [_taxonomy_labels(record.get(clause.column)) for record in records]
    frame = pl.DataFrame(
        {"_row": list(range(len(records))), "labels": labels},
        schema={"_row": pl.Int64, "labels": pl.List(pl.Utf8)},
    )
    matched = (
        frame.lazy()
        .explode("labels")
        .filter(pl.col("labels").is_in(list(clause.values)))
        .select("_row")
        .unique()
        .collect()
    )
    return set(matched["_row"].to_list())


def apply_client_filters(
    records: Sequence[Record], client_filters: Iterable[FilterClause]
) -> List[Record]:
    """
    Apply taxonomy clauses to fetched records.

    A record passes a clause when its field holds at least one term whose
    label is among the clause values. Records whose field is missing or not
    a list fail every clause. Clauses combine with AND.

    Args:
        records: Fetched records in server order
        client_filters: Taxonomy clauses

    Returns:
        Surviving records, order preserved
    """
    clauses = [clause for clause in client_filters if not clause.is_empty]
    if not clauses or not records:
        return list(records)

    keep = set(range(len(records)))
    for clause in clauses:
        keep &= _rows_matching(records, clause)
        if not keep:
            break

    return [record for index, record in enumerate(records) if index in keep]
