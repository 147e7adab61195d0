"""Distinct value extraction for populating filter choices."""

from collections.abc import Hashable
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..core.types import ColumnType, Record
from .filtering import to_utc_timestamp


@dataclass(frozen=True)
class FilterOption:
    """A choice whose display text differs from its filter value (users)."""

    text: str
    value: Any


DistinctValue = Union[Any, FilterOption]

# An extractor turns one field value into (dedupe key, emitted value) pairs
Extractor = Callable[[Any], Iterable[Tuple[Hashable, DistinctValue]]]


def _taxonomy_values(value: Any):
    terms = value if isinstance(value, list) else [value]
    for term in terms:
        if isinstance(term, dict) and term.get("Label"):
            yield term["Label"], term["Label"]


def _date_values(value: Any):
    ts = to_utc_timestamp(value)
    if ts is not None:
        day = ts.strftime("%Y-%m-%d")
        yield day, day


def _user_values(value: Any):
    if isinstance(value, dict) and value.get("Title"):
        yield value["Title"], FilterOption(text=value["Title"], value=value.get("Id"))


def _url_values(value: Any):
    if isinstance(value, dict) and value.get("Url"):
        yield value["Url"], value["Url"]


def _computed_values(value: Any):
    stem = str(value).split(".")[0]
    if stem:
        yield stem, stem


def _scalar_values(value: Any):
    if isinstance(value, Hashable):
        yield value, value


_EXTRACTORS: Dict[ColumnType, Extractor] = {
    ColumnType.TAXONOMY_MULTI: _taxonomy_values,
    ColumnType.TAXONOMY: _taxonomy_values,
    ColumnType.DATETIME: _date_values,
    ColumnType.USER: _user_values,
    ColumnType.URL: _url_values,
    ColumnType.COMPUTED: _computed_values,
}


def get_distinct_values(
    records: Sequence[Record],
    column: str,
    column_type: Union[ColumnType, str, None] = None,
) -> List[DistinctValue]:
    """
    Get the distinct display values of a column, in first-seen order.

    Extraction depends on the column type:
    - taxonomy: term labels, flattened across records
    - DateTime: calendar day (UTC) as 'YYYY-MM-DD'
    - User: FilterOption(text=display name, value=user id), keyed by name
    - URL: the Url part
    - Computed: text before the first '.'
    - anything else: the raw value

    Missing or falsy values contribute nothing.

    Args:
        records: Loaded batch of records
        column: Internal name of the column
        column_type: Semantic type of the column

    Returns:
        List of distinct values
    """
    extract = _EXTRACTORS.get(ColumnType.parse(column_type), _scalar_values)

    seen = set()
    distinct: List[DistinctValue] = []
    for record in records:
        value = record.get(column)
        if not value:
            continue
        for key, emitted in extract(value):
            if key in seen:
                continue
            seen.add(key)
            distinct.append(emitted)
    return distinct


def distinct_option_pairs(values: Iterable[DistinctValue]) -> List[Dict[str, Any]]:
    """Normalize distinct values into {'text', 'value'} dicts for choice widgets."""
    pairs = []
    for value in values:
        if isinstance(value, FilterOption):
            pairs.append({"text": value.text, "value": value.value})
        else:
            pairs.append({"text": str(value), "value": value})
    return pairs


def option_filter_value(value: DistinctValue) -> Optional[str]:
    """String form of a distinct value as stored in a FilterClause."""
    if isinstance(value, FilterOption):
        return None if value.value is None else str(value.value)
    return str(value)
