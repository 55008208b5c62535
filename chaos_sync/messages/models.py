"""Data models for messages shown in the organizer list."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from chaos_sync.messages.mime import DEFAULT_MIME


class MessageType(str, Enum):
    """Kinds of message content."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    LINK = "link"


FILE_MESSAGE_TYPES = frozenset({MessageType.IMAGE, MessageType.VIDEO, MessageType.AUDIO, MessageType.FILE})


@dataclass(frozen=True)
class AttachmentMeta:
    """Metadata of a file attached to a message. Immutable once received."""

    id: Any
    mime_type: str
    file_name: str
    file_size: int
    duration_seconds: float | None = None

    @property
    def is_encrypted_file(self) -> bool:
        """Check if the stored file carries the encrypted `.enc` suffix."""
        return self.file_name.endswith(".enc")

    def __repr__(self) -> str:
        return f"<Attachment {self.file_name} ({self.mime_type}, {self.file_size} bytes)>"


@dataclass
class MessageItem:
    """
    A message as displayed in the list.

    Identity is `id`, which is always assigned by the server. `content` holds
    ciphertext when `encrypted` is set.
    """

    id: Any
    author: str
    content: str
    type: MessageType
    timestamp: datetime
    encrypted: bool = False
    pinned: bool = False
    favorite: bool = False
    attachments: list[AttachmentMeta] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Stable lookup key (ids may arrive as int or str)."""
        return str(self.id)

    @property
    def is_file_message(self) -> bool:
        """Check if this message is an image, video, audio or file message."""
        return self.type in FILE_MESSAGE_TYPES

    def find_attachment(self, attachment_id: Any) -> AttachmentMeta | None:
        for attachment in self.attachments:
            if str(attachment.id) == str(attachment_id):
                return attachment
        return None

    def with_flags(self, **changes) -> "MessageItem":
        """Return a copy with the given fields changed."""
        return replace(self, **changes)

    def __repr__(self) -> str:
        lock = " [encrypted]" if self.encrypted else ""
        preview = "" if self.encrypted else (self.content[:40] + "..." if len(self.content) > 40 else self.content)
        return f"<Message {self.id} {self.type.value} by {self.author}{lock}: {preview!r}>"


@dataclass
class PageResult:
    """One page of messages as served: newest first."""

    items: list[MessageItem]
    total: int


@dataclass
class PageWindow:
    """Pagination window of the active category view."""

    category_id: str
    loaded_count: int = 0
    total: int = 0

    @property
    def exhausted(self) -> bool:
        return self.loaded_count >= self.total


@dataclass
class FileBlob:
    """An in-memory file: name, bytes and MIME type."""

    name: str
    data: bytes
    mime_type: str = DEFAULT_MIME

    @property
    def size(self) -> int:
        return len(self.data)
