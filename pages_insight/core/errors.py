"""Error types raised by the browser engine.

- PagesInsightError: common base class
- MetadataResolutionError: the column list of a view could not be resolved
- FetchError: the primary fetch or the subscription lookup failed
- RemoteServiceError: transport level failure talking to the list service
"""


class PagesInsightError(Exception):
    """Base class for all pages_insight errors."""

    pass


class RemoteServiceError(PagesInsightError):
    """Raised when a REST call fails.

    Covers connection errors, timeouts, non-2xx responses and bodies that
    are not valid JSON. Higher layers wrap it in MetadataResolutionError or
    FetchError.
    """

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class MetadataResolutionError(PagesInsightError):
    """Raised when the columns of a view cannot be resolved.

    Fatal for rendering that view. It is not retried.
    """

    pass


class FetchError(PagesInsightError):
    """Raised when fetching or enriching a page of records fails.

    The previous result set and pagination state stay in place. No partial
    enrichment is ever returned.
    """

    pass
