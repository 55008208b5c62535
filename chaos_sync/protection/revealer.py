"""Reveal encrypted messages and attachments on user request."""

import asyncio
import logging
from typing import Awaitable, Callable

from chaos_sync.api.client import MessagesApiClient
from chaos_sync.errors import DecryptionFailedError, PromptCancelledError, TransportError
from chaos_sync.messages.mime import display_mime
from chaos_sync.messages.models import AttachmentMeta, FileBlob, MessageItem
from chaos_sync.protection.cache import DecryptionCache
from chaos_sync.protection.cipher import decrypt_file, decrypt_text

logger = logging.getLogger(__name__)

PasswordPrompt = Callable[[str], Awaitable[str | None]]

REVEAL_PROMPT = "Enter the password to decrypt the message"
ATTACHMENT_PROMPT = "Enter the password to decrypt the attachment"


class ContentRevealer:
    """
    Asks for a password (once per message), decrypts, and caches the result.

    A failed decrypt or a cancelled prompt leaves the caches untouched and only
    affects the message being revealed.
    """

    def __init__(
        self,
        api: MessagesApiClient,
        prompt_password: PasswordPrompt,
        cache: DecryptionCache | None = None,
    ):
        self.api = api
        self.prompt_password = prompt_password
        self.cache = cache if cache is not None else DecryptionCache()

    async def _password_for(self, message: MessageItem, label: str) -> str:
        password = self.cache.passwords.get(message.id)
        if password:
            return password

        password = await self.prompt_password(label)
        if not password:
            logger.info(f"Password prompt cancelled for message {message.id}")
            raise PromptCancelledError(f"Password prompt cancelled for message {message.id}")
        return password

    async def reveal(self, message: MessageItem) -> str:
        """
        Return the plaintext of a message, prompting for the password if needed.

        Raises:
            PromptCancelledError: If the user dismissed the prompt
            DecryptionFailedError: On a wrong password or corrupt content
        """
        if not message.encrypted:
            return message.content

        cached = self.cache.get_plaintext(message.id)
        if cached is not None:
            return cached

        password = await self._password_for(message, REVEAL_PROMPT)
        plaintext = decrypt_text(message.content, password)
        self.cache.store(message.id, plaintext, password)
        logger.info(f"Revealed message {message.id}")
        return plaintext

    async def download_attachment(self, message: MessageItem, attachment: AttachmentMeta) -> FileBlob:
        """
        Download an attachment, decrypting it when the message is encrypted.

        The returned blob has `.enc` stripped from its name and a MIME type
        suitable for preview. For encrypted messages the password is settled
        before anything is downloaded.
        """
        password = None
        if message.encrypted:
            password = await self._password_for(message, ATTACHMENT_PROMPT)

        data = await self.api.download_file(attachment.id)
        mime_type = display_mime(attachment.mime_type, attachment.file_name)
        blob = FileBlob(name=attachment.file_name, data=data, mime_type=mime_type)

        if password is None:
            return blob

        decrypted = await asyncio.to_thread(decrypt_file, blob, password, mime_type)
        self.cache.passwords.remember(message.id, password)
        return decrypted

    async def preview_attachments(self, message: MessageItem) -> list[FileBlob]:
        """
        Decrypt every attachment of a revealed message for preview.

        Uses only the cached password; attachments that fail are skipped.
        """
        password = self.cache.passwords.get(message.id)
        if not message.encrypted or not password:
            return []

        previews = []
        for attachment in message.attachments:
            try:
                previews.append(await self.download_attachment(message, attachment))
            except (TransportError, DecryptionFailedError) as e:
                logger.error(f"Preview decrypt failed for attachment {attachment.id}: {e}")
        return previews
