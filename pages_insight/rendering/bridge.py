"""Bridge between the browser engine and a table front end."""

import hashlib
import json
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Sequence

import pandas as pd

from ..core.types import ColumnDescriptor, ColumnType, Record
from ..preprocessing.filtering import to_utc_timestamp

if TYPE_CHECKING:
    from ..components.browser import PagesBrowser

# Always shipped with the visible rows so the front end can link and flag items
_ROW_META_FIELDS = ("Id", "FileRef", "Subscribed")


def _user_text(value: Any) -> Any:
    return value.get("Title") if isinstance(value, dict) else value


def _url_text(value: Any) -> Any:
    return value.get("Url") if isinstance(value, dict) else value


def _taxonomy_text(value: Any) -> Any:
    terms = value if isinstance(value, list) else [value]
    labels = [t.get("Label") for t in terms if isinstance(t, dict) and t.get("Label")]
    return "; ".join(labels)


def _date_text(value: Any) -> Any:
    ts = to_utc_timestamp(value)
    return ts.strftime("%Y-%m-%d") if ts is not None else value


_CELL_TEXT: Dict[ColumnType, Callable[[Any], Any]] = {
    ColumnType.USER: _user_text,
    ColumnType.URL: _url_text,
    ColumnType.TAXONOMY_MULTI: _taxonomy_text,
    ColumnType.TAXONOMY: _taxonomy_text,
    ColumnType.DATETIME: _date_text,
}


def cell_text(value: Any, column_type: ColumnType) -> Any:
    """
    Display form of a field value.

    Args:
        value: Raw field value from a record
        column_type: Semantic type of the column

    Returns:
        Flat value suitable for a table cell (None stays None)
    """
    if value is None:
        return None
    return _CELL_TEXT.get(column_type, lambda v: v)(value)


def records_to_frame(
    records: Sequence[Record], columns: Sequence[ColumnDescriptor]
) -> pd.DataFrame:
    """
    Flatten records into a display DataFrame.

    Columns follow the view order, followed by the row metadata fields.
    """
    names: List[str] = [c.internal_name for c in columns]
    names += [f for f in _ROW_META_FIELDS if f not in names]
    types = {c.internal_name: c.column_type for c in columns}

    rows = [
        {
            name: cell_text(record.get(name), types.get(name, ColumnType.TEXT))
            for name in names
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=names)


def compute_rows_hash(rows: List[Dict[str, Any]]) -> str:
    """
    Hash visible rows so unchanged pages need not be re-sent.

    Returns:
        SHA256 hash string
    """
    hash_input = json.dumps(rows, sort_keys=True, default=str).encode()
    return hashlib.sha256(hash_input).hexdigest()


def prepare_view_data(browser: "PagesBrowser") -> Dict[str, Any]:
    """
    Prepare the visible page for a table front end.

    Args:
        browser: Browser whose current page is rendered

    Returns:
        Dict with tableData (pandas DataFrame), _pagination, _sort, _filters,
        _error and _hash keys
    """
    state = browser.state
    df = records_to_frame(state.visible_records, state.columns)
    window = state.window

    pagination = window.to_dict()
    pagination["has_previous"] = window.has_previous
    pagination["has_next"] = window.has_next
    pagination["page_size_options"] = list(browser.config.page_size_options)

    return {
        "tableData": df,
        "_pagination": pagination,
        "_sort": {
            "sort_column": state.sort_column,
            "sort_dir": "desc" if state.sort_descending else "asc",
        },
        "_filters": [
            {"field": c.column, "type": c.column_type.value, "value": list(c.values)}
            for c in state.filters.all()
        ],
        "_error": state.last_error,
        "_hash": compute_rows_hash(df.to_dict(orient="records")),
    }
