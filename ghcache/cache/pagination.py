"""Cursor-following pagination driver."""

from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from ghcache.context import CancelContext, check_context
from ghcache.exceptions import GhCacheError, OperationCancelledError, RemoteQueryError
from ghcache.types.page import Page

T = TypeVar("T")

PageFetcher = Callable[[str | None, "CancelContext | None"], Page[T]]


def paginate(
    fetch_page: PageFetcher[T],
    scope: Any,
    cursor: str | None = None,
    ctx: CancelContext | None = None,
) -> Iterator[Page[T]]:
    """
    Yield pages of a remote collection until the server reports no more.

    The generator is lazy and cannot be restarted. The first failing page
    aborts the iteration with RemoteQueryError; pages already yielded are
    the caller's to keep.

    Args:
        fetch_page: ``fetch_page(cursor, ctx)`` returning one Page
        scope: Scope identifier reported in errors
        cursor: Starting cursor (None = start of the collection)
        ctx: Optional cancellation context, checked before each page

    Raises:
        RemoteQueryError: If a page fetch fails or a page is malformed
        OperationCancelledError: If ``ctx`` is cancelled
    """
    while True:
        check_context(ctx)
        try:
            page = fetch_page(cursor, ctx)
        except (OperationCancelledError, RemoteQueryError):
            raise
        except GhCacheError as e:
            raise RemoteQueryError(scope, e) from e
        except (KeyError, TypeError, ValueError) as e:
            # Malformed records in the response body
            raise RemoteQueryError(scope, e) from e

        yield page

        if not page.has_next_page:
            return
        if not page.end_cursor or page.end_cursor == cursor:
            raise RemoteQueryError(scope, f"page reports more results without a new cursor ({page.end_cursor!r})")
        cursor = page.end_cursor
