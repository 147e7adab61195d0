"""Client-side pagination over a fetched result set.

Pagination is fully derived from (result set, page size, page number). The
remote fetch returns one capped window; every page shown to the user is a
slice of that window.
"""

import math
from dataclasses import dataclass
from typing import Any, Sequence, Tuple


@dataclass(frozen=True)
class PageWindow:
    """Derived pagination values for one result set."""

    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def start(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def end(self) -> int:
        return min(self.page * self.page_size, self.total_items)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "total_rows": self.total_items,
            "total_pages": self.total_pages,
        }


def total_pages(total_items: int, page_size: int) -> int:
    """
    Number of pages needed for total_items rows.

    Args:
        total_items: Row count (>= 0)
        page_size: Rows per page (>= 1)

    Returns:
        ceil(total_items / page_size), floored to 1 for an empty result set
    """
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return max(1, math.ceil(total_items / page_size))


def clamp_page(page: int, page_count: int) -> int:
    """Clamp a page number into [1, page_count]."""
    return max(1, min(int(page), max(1, page_count)))


def parse_page_entry(raw: Any) -> int:
    """
    Interpret a direct page-number entry.

    Integers pass through, fractional numbers are rounded up, numeric strings
    are parsed. Anything else maps to page 0 so that clamping lands on the
    first page.

    Args:
        raw: Value typed by the user (int, float or str)

    Returns:
        Unclamped page number
    """
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return math.ceil(raw) if math.isfinite(raw) else 0
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return 0
        return math.ceil(number) if math.isfinite(number) else 0
    return 0


def parse_page_size(raw: Any) -> int:
    """Parse a page size entry; returns 0 when it is not a positive number."""
    size = parse_page_entry(raw)
    return size if size >= 1 else 0


def page_window(total_items: int, page_size: int, page: int) -> PageWindow:
    """Build the clamped window for a requested page."""
    count = total_pages(total_items, page_size)
    return PageWindow(
        page=clamp_page(page, count),
        page_size=page_size,
        total_items=total_items,
        total_pages=count,
    )


def page_slice(items: Sequence[Any], page: int, page_size: int) -> Tuple[Any, ...]:
    """
    Visible slice of items for a page.

    Args:
        items: Full result set
        page: Requested page, clamped before slicing
        page_size: Rows per page

    Returns:
        items[(page - 1) * page_size : page * page_size]
    """
    window = page_window(len(items), page_size, page)
    return tuple(items[window.start : window.end])
