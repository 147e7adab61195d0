"""Fetching and enriching pages of list items."""

import logging
from typing import Any, Dict, List, Optional, Set
from urllib.parse import quote

from ..core.config import BrowserConfig
from ..core.errors import FetchError, RemoteServiceError
from ..core.state import FetchRequest
from ..core.types import ColumnDescriptor, Record
from ..preprocessing.filtering import build_field_sets, build_filter_query
from .client import SharePointClient
from .columns import list_path, resolve_columns

logger = logging.getLogger(__name__)

SUBSCRIBE_PAGE = "/_layouts/15/SubNew.aspx"
MANAGE_ALERTS_PAGE = "/_layouts/15/mySubs.aspx"

SUBSCRIBED_FIELD = "Subscribed"


def _results(payload: Any) -> List[Dict[str, Any]]:
    """Extract the row list from a nometadata or verbose collection payload."""
    if isinstance(payload, dict) and "d" in payload:
        payload = payload["d"]
    if isinstance(payload, dict):
        rows = payload.get("value", payload.get("results"))
    else:
        rows = payload
    if not isinstance(rows, list):
        raise FetchError("Unexpected collection payload from list service")
    return rows


def file_name(file_ref: Optional[str]) -> Optional[str]:
    """Trailing path segment of a FileRef ('/sites/kb/SitePages/a.aspx' -> 'a.aspx')."""
    if not file_ref:
        return None
    return str(file_ref).rstrip("/").split("/")[-1]


def subscribed_names(alerts: List[Dict[str, Any]], list_title: str) -> Set[str]:
    """
    File names the user has alerts on.

    Alert titles look like '<list title>: <file name>'. Alerts with other
    title shapes are ignored.
    """
    prefix = f"{list_title}: "
    names = set()
    for alert in alerts:
        title = alert.get("Title") or ""
        _, sep, name = title.partition(prefix)
        if sep and name:
            names.add(name)
    return names


def tag_subscriptions(records: List[Record], names: Set[str]) -> List[Record]:
    """Set the Subscribed flag of every record from the subscribed file names."""
    for record in records:
        record[SUBSCRIBED_FIELD] = file_name(record.get("FileRef")) in names
    return records


class PagesService:
    """
    Remote access to a document library and the user's alerts.

    Implements the fetcher and column resolver used by PagesBrowser.
    """

    def __init__(self, client: SharePointClient, config: Optional[BrowserConfig] = None):
        self._client = client
        self._config = config or BrowserConfig(site_url=client.site_url)

    @property
    def config(self) -> BrowserConfig:
        return self._config

    def resolve_columns(self, view_id: str) -> List[ColumnDescriptor]:
        """Columns of a view of the configured list."""
        return resolve_columns(self._client, view_id, self._config.list_title)

    def fetch_items(self, request: FetchRequest) -> List[Record]:
        """
        Issue the bounded items query for a request.

        $top is always the configured fetch cap, not the page size: paging
        through the window happens client-side.

        Args:
            request: Captured fetch parameters

        Returns:
            Raw records in server sort order

        Raises:
            RemoteServiceError: If the call fails
        """
        query = build_filter_query(request.scope, request.search_text, request.server_filters)
        fields = build_field_sets(request.columns)
        direction = "desc" if request.descending else "asc"

        params: Dict[str, Any] = {
            "$filter": query.expression,
            "$select": ",".join(fields.select),
            "$orderby": f"{request.sort_column} {direction}",
            "$skip": max(0, (request.page - 1) * request.page_size),
            "$top": self._config.fetch_cap,
        }
        if fields.expand:
            params["$expand"] = ",".join(fields.expand)

        payload = self._client.get_json(f"{list_path(self._config.list_title)}/items", params)
        return _results(payload)

    def fetch_subscriptions(self) -> Set[str]:
        """
        File names in the configured list the current user has alerts on.

        Raises:
            RemoteServiceError: If either call fails
        """
        user = self._client.get_json("_api/web/currentuser")
        if isinstance(user, dict) and "d" in user:
            user = user["d"]
        user_id = user["Id"]
        title = self._config.list_title
        alerts = self._client.get_json(
            "_api/web/alerts",
            {"$filter": f"UserId eq {user_id} and substringof('{title}', Title)"},
        )
        return subscribed_names(_results(alerts), title)

    def fetch_enriched_page(self, request: FetchRequest) -> List[Record]:
        """
        Fetch a window of records and tag each with its subscription status.

        The subscription lookup runs after the items query. Records are
        matched to alerts by file name only, so a file name shared with an
        alert on another list is tagged as subscribed.

        Args:
            request: Captured fetch parameters

        Returns:
            Records with a boolean 'Subscribed' field

        Raises:
            FetchError: If the items query or the subscription lookup fails,
                or either reply has an unexpected shape
        """
        try:
            records = self.fetch_items(request)
            names = self.fetch_subscriptions()
            tagged = tag_subscriptions(records, names)
        except (RemoteServiceError, KeyError, TypeError, AttributeError) as e:
            logger.error("Fetch for generation %d failed: %s", request.generation, e)
            raise FetchError(f"Error fetching filtered pages: {e}") from e

        logger.info(
            "Fetched %d records (generation %d, %d subscribed names)",
            len(records),
            request.generation,
            len(names),
        )
        return tagged

    def get_list_details(self) -> Dict[str, Any]:
        """
        Metadata of the configured list (Id, Title, ItemCount, ...).

        Raises:
            FetchError: If the list cannot be read
        """
        try:
            details = self._client.get_json(list_path(self._config.list_title))
        except RemoteServiceError as e:
            raise FetchError(
                f"Error retrieving list details for {self._config.list_title}: {e}"
            ) from e
        if isinstance(details, dict) and "d" in details:
            details = details["d"]
        return details

    def subscribe_link(self, list_id: str, item_id: Any, source: str = "") -> str:
        """URL of the 'Alert Me' page for one item."""
        link = f"{self._client.site_url}{SUBSCRIBE_PAGE}?List={list_id}&Id={item_id}"
        if source:
            link += f"&source={quote(source, safe='')}"
        return link

    def manage_alerts_link(self, source: str = "") -> str:
        """URL of the 'Manage My Alerts' page."""
        link = f"{self._client.site_url}{MANAGE_ALERTS_PAGE}"
        if source:
            link += f"?source={quote(source, safe='')}"
        return link
