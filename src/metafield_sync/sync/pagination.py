"""Pull-based enumeration of cursor-paginated collections."""

from typing import Awaitable, Callable, Generic, Protocol, Sequence, TypeVar

import structlog

log = structlog.stdlib.get_logger()

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Page(Protocol[T_co]):
    @property
    def items(self) -> Sequence[T_co]: ...

    @property
    def next_cursor(self) -> str | None: ...

    @property
    def has_more(self) -> bool: ...


class PaginatedEnumerator(Generic[T]):
    """
    Async iterator over the batches of a cursor-paginated collection.

    A page is only fetched when the consumer asks for the next batch. The
    first fetch uses a ``None`` cursor. Enumeration ends after a page reports
    ``has_more=False``. A failing fetch is raised to the consumer and ends
    the enumeration; the iterator cannot be restarted. So does a page that
    reports ``has_more=True`` without a new cursor, which would otherwise
    repeat the same page forever (ValueError).

    Example:
        >>> pages = PaginatedEnumerator(lambda cursor: client.list_items_page(cursor, 50))
        >>> async for items in pages:
        ...     handle(items)
    """

    def __init__(self, fetch_page: Callable[[str | None], Awaitable[Page[T]]]):
        self._fetch_page = fetch_page
        self._cursor: str | None = None
        self._has_more = True
        self._pages_fetched = 0

    @property
    def has_more(self) -> bool:
        """True while another batch may be requested."""
        return self._has_more

    @property
    def pages_fetched(self) -> int:
        return self._pages_fetched

    def __aiter__(self) -> "PaginatedEnumerator[T]":
        return self

    async def __anext__(self) -> list[T]:
        if not self._has_more:
            raise StopAsyncIteration

        try:
            page = await self._fetch_page(self._cursor)
        except Exception:
            self._has_more = False
            log.warning("pagination_aborted", pages_fetched=self._pages_fetched)
            raise

        self._pages_fetched += 1
        if page.has_more and (not page.next_cursor or page.next_cursor == self._cursor):
            self._has_more = False
            log.error(
                "pagination_cursor_not_advancing",
                cursor=self._cursor,
                next_cursor=page.next_cursor,
            )
            raise ValueError(
                f"Page {self._pages_fetched} reports more results but its cursor "
                f"does not advance (next_cursor={page.next_cursor!r})"
            )

        self._cursor = page.next_cursor
        self._has_more = bool(page.has_more)

        log.debug(
            "page_fetched",
            page_number=self._pages_fetched,
            item_count=len(page.items),
            has_more=self._has_more,
        )
        return list(page.items)
