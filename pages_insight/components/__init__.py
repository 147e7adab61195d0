"""Browser components."""

from .browser import PagesBrowser

__all__ = ["PagesBrowser"]
