"""Thin JSON client for the SharePoint REST API."""

import logging
from typing import Any, Dict, Optional

import requests

from ..core.config import BrowserConfig
from ..core.errors import RemoteServiceError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json;odata=nometadata",
    "User-Agent": "pages-insight/0.1 (list browser)",
}


class SharePointClient:
    """
    Issues GET requests against a site's REST endpoint.

    Authentication is the caller's concern: pass a requests.Session that
    already carries cookies, bearer tokens or an auth handler.
    """

    def __init__(
        self,
        site_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize the client.

        Args:
            site_url: Absolute URL of the site
            session: Session used for every request. A new one is created
                when omitted.
            timeout: Per-request timeout in seconds
        """
        if not site_url:
            raise ValueError("site_url is required")
        self._site_url = site_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    @classmethod
    def from_config(
        cls, config: BrowserConfig, session: Optional[requests.Session] = None
    ) -> "SharePointClient":
        """Client for config.site_url using config.request_timeout."""
        return cls(config.site_url, session=session, timeout=config.request_timeout)

    @property
    def site_url(self) -> str:
        return self._site_url

    def url(self, path: str) -> str:
        return f"{self._site_url}/{path.lstrip('/')}"

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a REST resource and decode its JSON body.

        Args:
            path: Path relative to the site URL (e.g. '_api/web/currentuser')
            params: Query string parameters ($filter, $select, ...)

        Returns:
            Decoded JSON body

        Raises:
            RemoteServiceError: On transport errors, non-2xx responses or
                bodies that are not JSON
        """
        url = self.url(path)
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(
                url, params=params, headers=DEFAULT_HEADERS, timeout=self._timeout
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else 0
            raise RemoteServiceError(
                f"GET {url} failed with HTTP {status}", status_code=status
            ) from e
        except requests.exceptions.RequestException as e:
            raise RemoteServiceError(f"GET {url} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(f"GET {url} returned invalid JSON") from e
