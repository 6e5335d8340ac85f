"""Cursor-based pagination shared by the list endpoints."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Generic, List, Optional, Tuple, TypeVar

from opencloud.types import Cursor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CursorPage(ABC, Generic[T]):
    """One page of a cursor-paginated listing.

    fetch_page() replaces items with the next page and advances the cursor.
    Once the API stops returning a cursor the page is finished and
    fetch_page() becomes a no-op.

    Usage:
        page = await store.list_keys()
        for key in page.items:
            ...
        while not page.is_finished:
            await page.fetch_page()

        # or, across all remaining pages:
        async for key in await store.list_keys():
            ...
    """

    def __init__(self, cursor: Optional[str] = None) -> None:
        self.items: List[T] = []
        self.next_cursor: Optional[Cursor] = Cursor(cursor) if cursor else None
        self.is_finished: bool = False
        self._fetched = False

    @abstractmethod
    async def _fetch(self, cursor: Optional[Cursor]) -> Tuple[List[T], Optional[Cursor]]:
        """Fetch one page starting at cursor; return its items and the next cursor."""

    async def fetch_page(self) -> "CursorPage[T]":
        """Fetch the next page into this object and return it."""
        if self.is_finished:
            return self

        items, next_cursor = await self._fetch(self.next_cursor)
        logger.debug(
            f"{type(self).__name__}: fetched {len(items)} items, "
            f"{'more available' if next_cursor else 'last page'}"
        )
        self.items = items
        self.next_cursor = next_cursor
        self.is_finished = not next_cursor
        self._fetched = True
        return self

    async def __aiter__(self) -> AsyncIterator[T]:
        """Yield the current page's items, then every remaining page's."""
        if not self._fetched:
            await self.fetch_page()
        while True:
            for item in self.items:
                yield item
            if self.is_finished:
                return
            await self.fetch_page()
