"""
Pagination helpers shared by the catalog routers
"""

from typing import Optional

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50


def clamp_page_size(first: Optional[str]) -> int:
    """Parse the "first" query parameter, defaulting to 12 and clamping to 1..50."""
    try:
        value = int(first) if first is not None else 0
    except ValueError:
        value = 0
    if value == 0:
        value = DEFAULT_PAGE_SIZE
    return min(max(value, 1), MAX_PAGE_SIZE)
