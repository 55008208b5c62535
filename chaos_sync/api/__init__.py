"""REST access to the Chaos Organizer backend."""

from chaos_sync.api.client import MessagesApiClient

__all__ = ["MessagesApiClient"]
