"""Pydantic schemas for backend JSON payloads."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chaos_sync.messages.models import AttachmentMeta, MessageItem, MessageType, PageResult


class PushEventType(str, Enum):
    """Mutation events delivered over the push channel."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


# Event names used by older backend builds
LEGACY_EVENT_NAMES = {
    "new_message": PushEventType.CREATED,
    "message_updated": PushEventType.UPDATED,
    "message_deleted": PushEventType.DELETED,
}


class AttachmentSchema(BaseModel):
    """Attachment metadata as sent by the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Any
    mime_type: str = Field("application/octet-stream", alias="mimeType")
    file_name: str = Field("file", alias="fileName")
    file_size: int = Field(0, alias="fileSize")
    duration: float | None = Field(None, description="Duration of audio/video in seconds")

    def to_meta(self) -> AttachmentMeta:
        return AttachmentMeta(
            id=self.id,
            mime_type=self.mime_type,
            file_name=self.file_name,
            file_size=self.file_size,
            duration_seconds=self.duration,
        )


class MessageSchema(BaseModel):
    """A complete message entity as sent by the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Any = Field(..., description="Server-assigned message identifier")
    author: str
    content: str = ""
    type: MessageType = MessageType.TEXT
    timestamp: datetime
    encrypted: bool = False
    pinned: bool = False
    favorite: bool = False
    metadata: list[AttachmentSchema] | None = Field(None, description="Attachments")

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_item(self) -> MessageItem:
        return MessageItem(
            id=self.id,
            author=self.author,
            content=self.content,
            type=self.type,
            timestamp=self.timestamp,
            encrypted=self.encrypted,
            pinned=self.pinned,
            favorite=self.favorite,
            attachments=[a.to_meta() for a in self.metadata or []],
        )


class MessagePageSchema(BaseModel):
    """Response of the message list and search endpoints."""

    model_config = ConfigDict(extra="ignore")

    messages: list[MessageSchema] = Field(default_factory=list)
    total: int | None = None

    def to_page(self) -> PageResult:
        items = [m.to_item() for m in self.messages]
        total = self.total if self.total is not None else len(items)
        return PageResult(items=items, total=total)


class PushFrame(BaseModel):
    """Envelope of a push channel text frame."""

    model_config = ConfigDict(extra="ignore")

    event: str
    payload: Any = None


class PushEvent(BaseModel):
    """
    A recognized push event.

    `message` is set only when the payload is a complete entity; `message_id`
    is set whenever the payload carries an id.
    """

    type: PushEventType
    message_id: Any = None
    message: MessageSchema | None = None
    raw_payload: Any = None

    @property
    def has_id(self) -> bool:
        return self.message_id is not None

    @property
    def is_complete(self) -> bool:
        if self.type == PushEventType.DELETED:
            return self.has_id
        return self.message is not None
