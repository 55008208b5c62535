"""In-memory stand-ins for the backend used across the test suites."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

from chaos_sync.errors import TransportError
from chaos_sync.messages.models import AttachmentMeta, MessageItem, MessageType, PageResult
from chaos_sync.sync.coordinator import matches_category

BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_item(i: int, **changes) -> MessageItem:
    item = MessageItem(
        id=i,
        author="alice",
        content=f"message {i}",
        type=MessageType.TEXT,
        timestamp=BASE_TIME + timedelta(minutes=i),
    )
    return item.with_flags(**changes) if changes else item


def message_json(i: int, **changes) -> dict:
    data = {
        "id": i,
        "author": "alice",
        "content": f"message {i}",
        "type": "text",
        "timestamp": (BASE_TIME + timedelta(minutes=i)).isoformat(),
        "encrypted": False,
        "pinned": False,
        "favorite": False,
        "metadata": [],
    }
    data.update(changes)
    return data


def frame(event: str, payload) -> str:
    return json.dumps({"event": event, "payload": payload})


async def settle(predicate=None, rounds: int = 100) -> None:
    """Let pending tasks run until predicate() holds (or a fixed number of loop turns)."""
    for _ in range(rounds):
        if predicate is not None and predicate():
            return
        await asyncio.sleep(0)


class FakeMessagesApi:
    """Serves pages from an in-memory store, newest first, like the backend."""

    def __init__(self, items: list[MessageItem] | None = None):
        self.items = list(items or [])
        self.calls: list[tuple[str, int, int]] = []
        self.files: dict = {}
        self.downloads: list = []
        self.sent: list = []
        self.fail_next = 0
        self.gate: asyncio.Event | None = None
        self.action_error: TransportError | None = None
        self.closed = False

    def _newest_first(self, category_id: str) -> list[MessageItem]:
        filtered = [m for m in self.items if matches_category(m, category_id)]
        return sorted(filtered, key=lambda m: m.timestamp, reverse=True)

    async def fetch_page(self, category_id: str, limit: int, offset: int) -> PageResult:
        self.calls.append((category_id, limit, offset))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next -= 1
            raise TransportError("HTTP 503: Service Unavailable", status_code=503)
        items = self._newest_first(category_id)
        return PageResult(items=items[offset:offset + limit], total=len(items))

    def _replace(self, message_id, **changes) -> MessageItem:
        if self.action_error is not None:
            raise self.action_error
        for index, item in enumerate(self.items):
            if item.id == message_id:
                self.items[index] = item.with_flags(**changes)
                return self.items[index]
        raise TransportError("HTTP 404: Not Found", status_code=404)

    async def pin_message(self, message_id, pinned: bool = True) -> MessageItem:
        return self._replace(message_id, pinned=pinned)

    async def favorite_message(self, message_id, favorite: bool = True) -> MessageItem:
        return self._replace(message_id, favorite=favorite)

    async def delete_message(self, message_id) -> None:
        if self.action_error is not None:
            raise self.action_error
        self.items = [m for m in self.items if m.id != message_id]

    async def send_message(self, content, files=None, encrypted: bool = False, author=None) -> MessageItem:
        files = list(files or [])
        self.sent.append((content, files, encrypted))
        if self.action_error is not None:
            raise self.action_error
        message_id = max((m.id for m in self.items), default=0) + 1
        attachments = []
        for index, blob in enumerate(files):
            file_id = f"s{message_id}-{index}"
            self.files[file_id] = blob.data
            attachments.append(
                AttachmentMeta(id=file_id, mime_type=blob.mime_type, file_name=blob.name, file_size=blob.size)
            )
        item = make_item(message_id, content=content, encrypted=encrypted, attachments=attachments)
        self.items.append(item)
        return item

    async def download_file(self, file_id) -> bytes:
        self.downloads.append(file_id)
        if file_id not in self.files:
            raise TransportError("Download failed", status_code=404)
        return self.files[file_id]

    async def close(self):
        self.closed = True


class FakeWebSocket:
    """Websocket connection fed by the test; iteration ends when closed."""

    def __init__(self):
        self._frames: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, raw) -> None:
        self._frames.put_nowait(raw)

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self._frames.put_nowait(None)

    async def close(self):
        self.closed = True
        self._frames.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        raw = await self._frames.get()
        if raw is None:
            raise StopAsyncIteration
        return raw


class FakeConnector:
    """connect_fn for LiveUpdateChannel: hands out sockets or raises, in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.urls: list[str] = []

    async def __call__(self, url: str):
        self.urls.append(url)
        outcome = self.outcomes.pop(0) if self.outcomes else OSError("connection refused")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeScrollContainer:
    def __init__(self, scroll_top: float = 500):
        self.scroll_top = scroll_top
        self.listeners = []

    def add_scroll_listener(self, listener):
        self.listeners.append(listener)

    def remove_scroll_listener(self, listener):
        self.listeners.remove(listener)

    def scroll_to(self, scroll_top: float):
        self.scroll_top = scroll_top
        for listener in list(self.listeners):
            listener()


def attachment(i: int, file_name: str = "photo.png.enc", mime_type: str = "application/octet-stream") -> AttachmentMeta:
    return AttachmentMeta(id=f"f{i}", mime_type=mime_type, file_name=file_name, file_size=0)
