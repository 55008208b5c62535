"""Exceptions raised by the sync engine."""


class ChaosSyncError(Exception):
    """Base class for all sync engine errors."""


class InvalidArgumentError(ChaosSyncError, ValueError):
    """Raised when a required argument (e.g. an encryption password) is missing."""


class DecryptionFailedError(ChaosSyncError):
    """
    Raised when ciphertext cannot be decrypted.

    A wrong password and corrupt ciphertext are indistinguishable: the cipher
    format carries no authentication tag.
    """


class TransportError(ChaosSyncError):
    """Raised when a page fetch, a server action or a channel connect fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PromptCancelledError(ChaosSyncError):
    """Raised when the user dismisses a password prompt."""
