"""
History Loader - Fetches older messages as the user scrolls up.

Keeps the pagination cursor (category, offset, total) of the active view and
guarantees that at most one page request is outstanding at a time.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from chaos_sync.config import settings
from chaos_sync.errors import TransportError
from chaos_sync.messages.models import MessageItem, PageResult, PageWindow

logger = logging.getLogger(__name__)

FetchPage = Callable[[str, int, int], Awaitable[PageResult]]


class ScrollContainer(Protocol):
    """Anything with a scroll position that can notify scroll listeners."""

    scroll_top: float

    def add_scroll_listener(self, listener: Callable[[], None]) -> None: ...

    def remove_scroll_listener(self, listener: Callable[[], None]) -> None: ...


class HistoryLoader:
    """
    Loads strictly older pages of the active category on demand.

    Usage:
        loader = HistoryLoader(fetch_page=api.fetch_page, on_prepend=view.prepend)
        loader.set_state("all", offset=len(first_page.items), total=first_page.total)
        await loader.load_more()
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        on_prepend: Callable[[list[MessageItem]], None],
        on_error: Callable[[Exception], None] | None = None,
        page_size: int | None = None,
        scroll_threshold: float | None = None,
    ):
        """
        Initialize the loader.

        Args:
            fetch_page: Async (category_id, limit, offset) -> PageResult, newest first
            on_prepend: Called with older items, oldest first, to insert above the list
            on_error: Called with the error when a page fetch fails
            page_size: Messages per request (defaults to settings)
            scroll_threshold: Distance from the top (px) that triggers a load
        """
        self.fetch_page = fetch_page
        self.on_prepend = on_prepend
        self.on_error = on_error or (lambda error: None)
        self.page_size = page_size or settings.page_size
        self.scroll_threshold = scroll_threshold if scroll_threshold is not None else settings.scroll_threshold

        self.category_id = "all"
        self.offset = 0
        self.total = 0
        self.loading_more = False

        # Bumped on every set_state so late responses of an old session are dropped
        self._generation = 0
        self._container: ScrollContainer | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def window(self) -> PageWindow:
        return PageWindow(category_id=self.category_id, loaded_count=self.offset, total=self.total)

    @property
    def has_more(self) -> bool:
        return self.offset < self.total

    def set_state(self, category_id: str, offset: int, total: int) -> None:
        """
        Set the baseline after the first page of a category was loaded.

        Args:
            category_id: Active category
            offset: Number of items returned for the first page
            total: Server-reported total for the category
        """
        self.category_id = category_id
        self.offset = offset
        self.total = max(total, offset)
        self.loading_more = False
        self._generation += 1

    def reset(self, category_id: str) -> None:
        """Start a new empty window (category switch)."""
        self.set_state(category_id, 0, 0)

    def attach(self, container: ScrollContainer) -> None:
        """Start listening to scroll events of the message container (once)."""
        if container is None or self._container is not None:
            return
        self._container = container
        container.add_scroll_listener(self._on_scroll)

    def detach(self) -> None:
        """Stop listening to scroll events."""
        if self._container is not None:
            self._container.remove_scroll_listener(self._on_scroll)
            self._container = None

    @property
    def is_attached(self) -> bool:
        return self._container is not None

    def _on_scroll(self) -> None:
        container = self._container
        if container is None or self.loading_more or self._tasks or not self.has_more:
            return
        if container.scroll_top <= self.scroll_threshold:
            task = asyncio.create_task(self.load_more())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def load_more(self) -> bool:
        """
        Load the next page of older messages.

        Returns:
            True if a page was fetched and applied, False if nothing was needed,
            a load was already in flight, the fetch failed, or the response
            arrived after the category changed
        """
        if self.loading_more or not self.has_more:
            return False

        self.loading_more = True
        category_id = self.category_id
        generation = self._generation
        offset = self.offset

        try:
            page = await self.fetch_page(category_id, self.page_size, offset)
        except Exception as e:
            if generation == self._generation:
                self.loading_more = False
            logger.error(f"Failed to load older messages for {category_id!r}: {e}")
            if not isinstance(e, TransportError):
                e = TransportError(f"Page fetch failed: {e}")
            self.on_error(e)
            return False

        if generation != self._generation or category_id != self.category_id:
            logger.info(f"Discarding stale page for {category_id!r} at offset {offset}")
            return False

        try:
            if page.items:
                # Served newest first; the view reads oldest -> newest
                self.on_prepend(list(reversed(page.items)))
            self.offset = offset + len(page.items)
            self.total = max(page.total, self.offset)
            logger.debug(
                f"Loaded {len(page.items)} older messages for {category_id!r} "
                f"({self.offset}/{self.total})"
            )
            return True
        finally:
            self.loading_more = False

    async def wait_idle(self) -> None:
        """Wait for scroll-triggered loads to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
