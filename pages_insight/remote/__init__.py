"""REST access to the list and alert services."""

from .client import SharePointClient
from .columns import resolve_columns
from .pages import PagesService

__all__ = ["SharePointClient", "PagesService", "resolve_columns"]
