"""Message list synchronization: history loading, push channel, coordination."""

from chaos_sync.sync.channel import ChannelState, LiveUpdateChannel, ReconnectPolicy
from chaos_sync.sync.coordinator import SyncCoordinator
from chaos_sync.sync.loader import HistoryLoader
from chaos_sync.sync.view import MessageView

__all__ = [
    "ChannelState",
    "LiveUpdateChannel",
    "ReconnectPolicy",
    "SyncCoordinator",
    "HistoryLoader",
    "MessageView",
]
