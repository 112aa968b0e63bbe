"""Page arithmetic shared by the log query and node inspector engines.

Both engines fetch one row more than a page holds. The extra row only
proves that a further page exists and is never returned to the caller.
"""

from collections.abc import Sequence
from typing import TypeVar

from loginspector.core.models import NO_PAGE, Page

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20

# Largest OFFSET the store accepts (a signed 64-bit integer).
MAX_OFFSET = 2**63 - 1


def normalize_page_num(page_num: int) -> int:
    """Clamp a requested page number to the first page.

    Args:
        page_num: Page number as requested by the caller.

    Returns:
        page_num, or 1 when page_num is below 1.
    """
    return page_num if page_num >= 1 else 1


def page_window(page_num: int, page_size: int) -> tuple[int, int]:
    """Return the (limit, offset) to fetch for a page, including the lookahead row.

    Args:
        page_num: Normalized 1-based page number.
        page_size: Maximum number of items per page.

    Returns:
        Tuple of (limit, offset) for the storage query.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return page_size + 1, (page_num - 1) * page_size


def build_page(fetched: Sequence[T], page_num: int, page_size: int) -> Page[T]:
    """Build a page from rows fetched with page_window().

    Args:
        fetched: Rows returned for the window, at most page_size + 1 of them.
        page_num: Normalized 1-based page number.
        page_size: Maximum number of items per page.

    Returns:
        Page holding at most page_size items with navigation cursors set.
    """
    has_next = len(fetched) > page_size
    return Page(
        result_list=list(fetched[:page_size]),
        curr_page=page_num,
        prev_page=page_num - 1 if page_num > 1 else NO_PAGE,
        next_page=page_num + 1 if has_next else NO_PAGE,
        page_size=page_size,
    )
