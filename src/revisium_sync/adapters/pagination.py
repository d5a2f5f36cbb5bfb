"""Cursor pagination over ``{edges, pageInfo, totalCount}`` listings.

Usage:
    from functools import partial
    from revisium_sync.adapters.pagination import fetch_all_pages

    nodes, total = await fetch_all_pages(
        partial(client.list_rows, revision_id, "stats"),
        page_size=100,
    )
"""

from collections.abc import Awaitable, Callable
from typing import Any

from revisium_sync.adapters.base import Page

DEFAULT_PAGE_SIZE = 100

FetchPage = Callable[..., Awaitable[Page]]


async def fetch_all_pages(
    fetch_page: FetchPage,
    page_size: int = DEFAULT_PAGE_SIZE,
    on_page: Callable[[int, int], None] | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """Fetch every page of a listing, one request at a time.

    Loops until ``hasNextPage`` is false, passing ``endCursor`` forward as
    ``after``.

    Args:
        fetch_page: Async callable accepting ``first`` and ``after`` keyword
            arguments and returning a ``Page``.
        page_size: Number of items requested per page.
        on_page: Optional callback invoked after each page with
            ``(items_so_far, total_count)``.

    Returns:
        Tuple of ``(nodes, total_count)`` where ``total_count`` is taken
        from the first page.
    """
    nodes: list[dict[str, Any]] = []
    total_count = 0
    after: str | None = None
    first_page = True

    while True:
        page = await fetch_page(first=page_size, after=after)

        if first_page:
            total_count = page.total_count
            first_page = False

        nodes.extend(page.nodes)

        if on_page is not None:
            on_page(len(nodes), total_count)

        # A next page without a cursor cannot be requested
        if not page.page_info.has_next_page or page.page_info.end_cursor is None:
            break
        after = page.page_info.end_cursor

    return nodes, total_count
