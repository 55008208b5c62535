"""Ordered in-memory view of the messages currently displayed."""

import bisect
import logging
from typing import Any

from chaos_sync.messages.models import MessageItem

logger = logging.getLogger(__name__)


class MessageView:
    """
    Messages of the active category, oldest first, unique by id.

    Push events and lazy loading both write here; an id that is already
    present is never added a second time.
    """

    def __init__(self):
        self._items: list[MessageItem] = []
        self._by_key: dict[str, MessageItem] = {}

    @property
    def items(self) -> list[MessageItem]:
        return list(self._items)

    @property
    def ids(self) -> list[Any]:
        return [m.id for m in self._items]

    @property
    def oldest(self) -> MessageItem | None:
        return self._items[0] if self._items else None

    def get(self, message_id: Any) -> MessageItem | None:
        return self._by_key.get(str(message_id))

    def __contains__(self, message_id: Any) -> bool:
        return str(message_id) in self._by_key

    def __len__(self) -> int:
        return len(self._items)

    def _index_of(self, message_id: Any) -> int:
        """
        Position of a displayed item, or -1.

        Membership is a dict lookup; only a hit pays for the list search, since
        positions shift on every prepend and insert.
        """
        current = self._by_key.get(str(message_id))
        if current is None:
            return -1
        return next(i for i, item in enumerate(self._items) if item is current)

    def replace_all(self, items: list[MessageItem]) -> list[MessageItem]:
        """Replace the whole list (items oldest first); returns what is now shown."""
        self._items = []
        self._by_key = {}
        for item in items:
            if item.key in self._by_key:
                continue
            self._items.append(item)
            self._by_key[item.key] = item
        return self.items

    def prepend(self, items: list[MessageItem]) -> list[MessageItem]:
        """
        Insert older items (oldest first) above the current list.

        Returns:
            The items actually added (already-present ids are skipped)
        """
        added = []
        for item in items:
            if item.key in self._by_key:
                logger.debug(f"Skipping already displayed message {item.id}")
                continue
            added.append(item)
            self._by_key[item.key] = item
        self._items[:0] = added
        return added

    def insert(self, item: MessageItem) -> bool:
        """
        Insert a single item at its chronological position.

        Returns:
            False if an item with the same id is already displayed
        """
        if item.key in self._by_key:
            return False
        position = bisect.bisect_right(self._items, item.timestamp, key=lambda m: m.timestamp)
        self._items.insert(position, item)
        self._by_key[item.key] = item
        return True

    def update(self, item: MessageItem) -> bool:
        """Replace a displayed item in place; False if it is not displayed."""
        index = self._index_of(item.id)
        if index == -1:
            return False
        self._items[index] = item
        self._by_key[item.key] = item
        return True

    def remove(self, message_id: Any) -> MessageItem | None:
        index = self._index_of(message_id)
        if index == -1:
            return None
        item = self._items.pop(index)
        del self._by_key[item.key]
        return item
