"""Message data models and wire schemas."""

from chaos_sync.messages.models import AttachmentMeta, MessageItem, MessageType, PageResult, PageWindow
from chaos_sync.messages.schemas import MessageSchema, PushEvent, PushEventType

__all__ = [
    "AttachmentMeta",
    "MessageItem",
    "MessageType",
    "PageResult",
    "PageWindow",
    "MessageSchema",
    "PushEvent",
    "PushEventType",
]
