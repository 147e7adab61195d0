"""Column metadata resolution for list views."""

import logging
from typing import Any, Dict, List

from ..core.errors import MetadataResolutionError, RemoteServiceError
from ..core.types import ColumnDescriptor, ColumnType
from .client import SharePointClient

logger = logging.getLogger(__name__)

DEFAULT_MIN_WIDTH = 100
DEFAULT_MAX_WIDTH = 200

# (min, max) display width overrides by internal name
COLUMN_WIDTHS: Dict[str, tuple] = {
    "DocIcon": (16, 16),
    "LinkFilename": (150, 350),
    "LinkFilenameNoMenu": (150, 350),
    "FileLeafRef": (150, 350),
    "Title": (200, 400),
    "Article_x0020_ID": (70, 100),
    "Created": (90, 120),
    "Modified": (90, 120),
    "Author": (120, 180),
    "Editor": (120, 180),
}


def column_min_width(internal_name: str) -> int:
    return COLUMN_WIDTHS.get(internal_name, (DEFAULT_MIN_WIDTH, DEFAULT_MAX_WIDTH))[0]


def column_max_width(internal_name: str) -> int:
    return COLUMN_WIDTHS.get(internal_name, (DEFAULT_MIN_WIDTH, DEFAULT_MAX_WIDTH))[1]


def list_path(list_title: str) -> str:
    return f"_api/web/lists/getbytitle('{list_title}')"


def _view_field_names(payload: Any) -> List[str]:
    # nometadata: {"Items": [...]}; verbose: {"d": {"Items": {"results": [...]}}}
    if isinstance(payload, dict) and "d" in payload:
        payload = payload["d"]
    items = payload.get("Items") if isinstance(payload, dict) else None
    if isinstance(items, dict):
        items = items.get("results")
    if not isinstance(items, list):
        raise MetadataResolutionError("View fields response has no Items list")
    return [str(name) for name in items]


def to_column_descriptor(field: Dict[str, Any]) -> ColumnDescriptor:
    """
    Convert a field metadata payload into a ColumnDescriptor.

    Args:
        field: Field JSON with InternalName, Title and TypeAsString

    Returns:
        ColumnDescriptor with width hints applied
    """
    internal_name = field["InternalName"]
    type_name = field.get("TypeAsString") or ""
    return ColumnDescriptor(
        internal_name=internal_name,
        display_name=field.get("Title") or internal_name,
        column_type=ColumnType.parse(type_name),
        min_width=column_min_width(internal_name),
        max_width=column_max_width(internal_name),
        type_name=type_name,
    )


def resolve_columns(
    client: SharePointClient, view_id: str, list_title: str = "Site Pages"
) -> List[ColumnDescriptor]:
    """
    Resolve the ordered columns of a list view.

    Reads the view's field names, then the metadata of each field to get its
    display name and type.

    Args:
        client: REST client for the site
        view_id: GUID of the view
        list_title: Title of the list the view belongs to

    Returns:
        Column descriptors in view order

    Raises:
        MetadataResolutionError: If the view or any of its fields cannot be read
    """
    base = list_path(list_title)
    try:
        names = _view_field_names(
            client.get_json(f"{base}/views('{view_id}')/viewfields")
        )
        columns = []
        for name in names:
            field = client.get_json(f"{base}/fields/getbyinternalnameortitle('{name}')")
            if isinstance(field, dict) and "d" in field:
                field = field["d"]
            columns.append(to_column_descriptor(field))
    except RemoteServiceError as e:
        raise MetadataResolutionError(
            f"Could not resolve columns of view '{view_id}': {e}"
        ) from e
    except (KeyError, TypeError) as e:
        raise MetadataResolutionError(
            f"Malformed field metadata in view '{view_id}': {e}"
        ) from e

    logger.info("Resolved %d columns for view %s", len(columns), view_id)
    return columns
