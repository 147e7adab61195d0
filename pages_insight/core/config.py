"""Browser configuration."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

# Rows requested from the list service per query, regardless of page size
DEFAULT_FETCH_CAP = 5000

DEFAULT_PAGE_SIZE_OPTIONS: Tuple[int, ...] = (10, 15, 20, 40, 60, 80, 100)


@dataclass(frozen=True)
class BrowserConfig:
    """
    Configuration for a pages browser.

    Attributes:
        site_url: Absolute URL of the site (e.g. 'https://contoso.sharepoint.com/sites/kb')
        server_relative_url: Server-relative URL of the site (e.g. '/sites/kb').
            Derived from site_url when empty.
        list_title: Title of the document library to browse
        library_folder: Root folder of the library, used to build folder scopes
        fetch_cap: Upper bound of rows returned by a single fetch
        default_page_size: Page size used on first load
        page_size_options: Page sizes offered to the presentation layer
        default_sort_column: Sort column on first load and after reset
        request_timeout: Timeout in seconds for each REST call
        session_key: Key used in Streamlit session_state for browser state
    """

    site_url: str = ""
    server_relative_url: str = ""
    list_title: str = "Site Pages"
    library_folder: str = "SitePages"
    fetch_cap: int = DEFAULT_FETCH_CAP
    default_page_size: int = 10
    page_size_options: Tuple[int, ...] = field(default=DEFAULT_PAGE_SIZE_OPTIONS)
    default_sort_column: str = "Created"
    request_timeout: float = 30.0
    session_key: str = "pages_insight_state"

    def __post_init__(self) -> None:
        if self.fetch_cap < 1:
            raise ValueError(f"fetch_cap must be >= 1, got {self.fetch_cap}")
        if self.default_page_size < 1:
            raise ValueError(
                f"default_page_size must be >= 1, got {self.default_page_size}"
            )
        if not self.server_relative_url and self.site_url:
            object.__setattr__(
                self, "server_relative_url", _server_relative(self.site_url)
            )

    @property
    def library_path(self) -> str:
        """Server-relative path of the library root folder."""
        base = self.server_relative_url.rstrip("/")
        return f"{base}/{self.library_folder}"

    def folder_scope(self, category: Optional[str]) -> str:
        """
        Folder prefix that fetched items must live under.

        Args:
            category: Sub-folder of the library selected by the user,
                or None for the whole library

        Returns:
            Server-relative folder path used with startswith(FileDirRef, ...)
        """
        if not category:
            return self.library_path
        return f"{self.library_path}/{category.strip('/')}"


def _server_relative(site_url: str) -> str:
    # 'https://host/sites/kb/' -> '/sites/kb'
    without_scheme = site_url.split("://", 1)[-1]
    _, _, path = without_scheme.partition("/")
    path = path.rstrip("/")
    return f"/{path}" if path else ""
