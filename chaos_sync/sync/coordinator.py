"""
Sync Coordinator - Keeps the displayed message list consistent with the backend.

Two independent sources write to the view:
- the HistoryLoader, which pulls strictly older pages as the user scrolls up
- the LiveUpdateChannel, which pushes created/updated/deleted events

A push event carrying a complete message is applied directly to the view; an
event that cannot be resolved to a message triggers one refetch of the active
category's first page.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from chaos_sync.api.client import ALL_CATEGORY, CATEGORY_TYPES, FAVORITES_CATEGORY, MessagesApiClient
from chaos_sync.config import settings
from chaos_sync.errors import InvalidArgumentError, PromptCancelledError, TransportError
from chaos_sync.messages.models import FileBlob, MessageItem
from chaos_sync.messages.schemas import PushEvent, PushEventType
from chaos_sync.protection.cache import DecryptionCache
from chaos_sync.protection.cipher import encrypt_file, encrypt_text
from chaos_sync.protection.revealer import ContentRevealer, PasswordPrompt
from chaos_sync.sync.channel import LiveUpdateChannel
from chaos_sync.sync.loader import HistoryLoader
from chaos_sync.sync.view import MessageView

logger = logging.getLogger(__name__)

ENCRYPT_PROMPT = "Enter the password to encrypt the message"


async def _no_prompt(label: str) -> str | None:
    return None


def _noop(*args) -> None:
    return None


def matches_category(item: MessageItem, category_id: str) -> bool:
    """Check if a message belongs in a sidebar category."""
    if category_id == FAVORITES_CATEGORY:
        return item.favorite
    message_type = CATEGORY_TYPES.get(category_id)
    if message_type is None:
        return True
    return item.type.value == message_type


class SyncCoordinator:
    """
    Owns the view model, the history loader, the push channel and the secret caches.

    Usage:
        coordinator = SyncCoordinator(api, on_render=render_list, on_insert=render_one)
        await coordinator.start()
        ...
        await coordinator.close()
    """

    def __init__(
        self,
        api: MessagesApiClient,
        channel: LiveUpdateChannel | None = None,
        prompt_password: PasswordPrompt | None = None,
        page_size: int | None = None,
        on_render: Callable[[list[MessageItem]], None] | None = None,
        on_prepend: Callable[[list[MessageItem]], None] | None = None,
        on_insert: Callable[[MessageItem], None] | None = None,
        on_update: Callable[[MessageItem], None] | None = None,
        on_remove: Callable[[Any], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            api: REST client (fetch_page plus server-confirmed actions)
            channel: Push channel (defaults to one built from settings)
            prompt_password: Async label -> password or None (cancelled)
            page_size: Messages per page (defaults to settings)
            on_render: Full list re-render, oldest first
            on_prepend: Older items inserted above the list, oldest first
            on_insert: One new item inserted at its chronological position
            on_update: One item changed in place
            on_remove: One item removed (called with its id)
            on_error: Recoverable errors (failed fetches, failed actions, channel give-up)
        """
        self.api = api
        self.page_size = page_size or settings.page_size
        self.on_render = on_render or _noop
        self.on_prepend = on_prepend or _noop
        self.on_insert = on_insert or _noop
        self.on_update = on_update or _noop
        self.on_remove = on_remove or _noop
        self.on_error = on_error or _noop

        self.view = MessageView()
        self.cache = DecryptionCache()
        self.prompt_password = prompt_password or _no_prompt
        self.revealer = ContentRevealer(api, self.prompt_password, self.cache)
        self.loader = HistoryLoader(
            fetch_page=api.fetch_page,
            on_prepend=self._handle_prepend,
            on_error=self._report_error,
            page_size=self.page_size,
        )
        self.channel = channel or LiveUpdateChannel()
        if self.channel.on_give_up is None:
            self.channel.on_give_up = self._handle_give_up

        self.category_id = ALL_CATEGORY
        self._select_generation = 0
        self._consumer: asyncio.Task | None = None

    async def start(self) -> None:
        """Load the first page of all messages and start listening for push events."""
        await self.select_category(ALL_CATEGORY)
        self.channel.connect()
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume_events())
        logger.info("Sync coordinator started")

    async def close(self) -> None:
        """Stop listening, release connections and forget revealed secrets."""
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        await self.channel.disconnect()
        self.loader.detach()
        await self.loader.wait_idle()
        await self.api.close()
        self.cache.clear()
        logger.info("Sync coordinator stopped")

    def _report_error(self, error: Exception) -> None:
        self.on_error(error)

    def _handle_give_up(self) -> None:
        self.on_error(TransportError("Live updates are unavailable; the list refreshes only on demand"))

    # --- Pull side ---

    async def select_category(self, category_id: str) -> bool:
        """
        Switch the view to a category and render its first page.

        The active category and the loader window change only once the first
        page has arrived. On failure the previous list, category and window stay
        as they were, so scrolling keeps loading older messages of what is shown.

        Returns:
            False if the fetch failed or a newer selection superseded this one
        """
        self._select_generation += 1
        generation = self._select_generation

        try:
            page = await self.api.fetch_page(category_id, self.page_size, 0)
        except TransportError as e:
            logger.error(f"Failed to load messages for {category_id!r}: {e}")
            self._report_error(e)
            return False

        if generation != self._select_generation:
            logger.info(f"Discarding stale first page for {category_id!r}")
            return False

        self.category_id = category_id
        shown = self.view.replace_all(list(reversed(page.items)))
        self.loader.set_state(category_id, len(page.items), page.total)
        self.on_render(shown)
        logger.info(f"Loaded {len(page.items)}/{page.total} messages for {category_id!r}")
        return True

    async def refresh(self) -> bool:
        """Refetch the first page of the active category."""
        return await self.select_category(self.category_id)

    async def load_more(self) -> bool:
        return await self.loader.load_more()

    def _handle_prepend(self, items: list[MessageItem]) -> None:
        added = self.view.prepend(items)
        if added:
            self.on_prepend(added)

    # --- Push side ---

    async def _consume_events(self):
        """Apply push events in arrival order."""
        while True:
            event = await self.channel.events.get()
            try:
                await self.apply_event(event)
            except Exception as e:
                logger.error(f"Failed to apply push event {event.type.value}: {e}")

    async def apply_event(self, event: PushEvent) -> None:
        if not event.is_complete:
            logger.info(f"Push {event.type.value} event without a usable message, refetching")
            await self.refresh()
            return

        if event.type == PushEventType.CREATED:
            item = event.message.to_item()
            if not matches_category(item, self.category_id):
                return
            if self.view.insert(item):
                self.on_insert(item)
            else:
                logger.debug(f"Ignoring duplicate created event for message {item.id}")

        elif event.type == PushEventType.UPDATED:
            item = event.message.to_item()
            if item.key not in self.view:
                return
            if matches_category(item, self.category_id):
                self.view.update(item)
                self.on_update(item)
            else:
                self._remove(item.id)

        elif event.type == PushEventType.DELETED:
            self._remove(event.message_id)

    def _remove(self, message_id: Any) -> None:
        self.cache.forget(message_id)
        if self.view.remove(message_id) is not None:
            self.on_remove(message_id)

    # --- Server-confirmed actions ---

    def _require(self, message_id: Any) -> MessageItem:
        item = self.view.get(message_id)
        if item is None:
            raise KeyError(f"Message {message_id} is not displayed")
        return item

    async def _confirm_flag(
        self,
        message_id: Any,
        changes: dict,
        action: Callable[[], Awaitable[MessageItem]],
    ) -> MessageItem:
        """Apply a flag change optimistically, then confirm or revert it."""
        original = self._require(message_id)
        optimistic = original.with_flags(**changes)
        self.view.update(optimistic)
        self.on_update(optimistic)

        try:
            confirmed = await action()
        except TransportError as e:
            logger.error(f"Server rejected {changes} for message {message_id}: {e}")
            if self.view.update(original):
                self.on_update(original)
            self._report_error(e)
            raise

        if self.view.update(confirmed):
            self.on_update(confirmed)
        return confirmed

    async def set_pinned(self, message_id: Any, pinned: bool = True) -> MessageItem:
        return await self._confirm_flag(
            message_id, {"pinned": pinned}, lambda: self.api.pin_message(message_id, pinned)
        )

    async def set_favorite(self, message_id: Any, favorite: bool = True) -> MessageItem:
        return await self._confirm_flag(
            message_id, {"favorite": favorite}, lambda: self.api.favorite_message(message_id, favorite)
        )

    async def delete_message(self, message_id: Any) -> None:
        """Delete a message; it leaves the view only after the server confirms."""
        try:
            await self.api.delete_message(message_id)
        except TransportError as e:
            self._report_error(e)
            raise
        self._remove(message_id)

    async def send_message(
        self,
        content: str,
        files: list[FileBlob] | None = None,
        encrypt: bool = False,
        password: str | None = None,
    ) -> MessageItem:
        """
        Send a new message, optionally encrypting its text and attachments.

        Encryption is used when `encrypt` is set or a password is given; without
        a password the user is prompted. The sent message is inserted into the
        view (if it belongs to the active category) once the server returns it,
        and its password is remembered so the sender is not asked again.

        Raises:
            InvalidArgumentError: If there is neither text nor a file
            PromptCancelledError: If the encryption prompt was dismissed (nothing is sent)
            TransportError: If the server rejected the message
        """
        files = list(files or [])
        if not content and not files:
            raise InvalidArgumentError("Message has no text and no files")

        encrypted = encrypt or bool(password)
        if encrypted:
            if not password:
                password = await self.prompt_password(ENCRYPT_PROMPT)
            if not password:
                logger.info("Encryption password prompt cancelled, message not sent")
                raise PromptCancelledError("Encryption password prompt cancelled")
            content = encrypt_text(content, password)
            files = [await asyncio.to_thread(encrypt_file, f, password) for f in files]

        try:
            item = await self.api.send_message(content, files, encrypted=encrypted)
        except TransportError as e:
            self._report_error(e)
            raise

        if encrypted:
            self.cache.passwords.remember(item.id, password)
        if matches_category(item, self.category_id) and self.view.insert(item):
            self.on_insert(item)
        return item

    # --- Content protection ---

    async def reveal(self, message_id: Any) -> str:
        """Plaintext of a displayed message (prompts for the password once)."""
        return await self.revealer.reveal(self._require(message_id))

    async def download_attachment(self, message_id: Any, attachment_id: Any) -> FileBlob:
        item = self._require(message_id)
        attachment = item.find_attachment(attachment_id)
        if attachment is None:
            raise KeyError(f"Message {message_id} has no attachment {attachment_id}")
        return await self.revealer.download_attachment(item, attachment)

    async def preview_attachments(self, message_id: Any) -> list[FileBlob]:
        return await self.revealer.preview_attachments(self._require(message_id))
