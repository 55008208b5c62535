"""
Session caches for passwords and decrypted content.

Both caches live only in memory for the lifetime of their owner and are keyed
by str(message id). They are touched only from the event loop thread, so no
locking is done here.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def _key(item_id: Any) -> str:
    return str(item_id)


class PasswordCache:
    """Remembers the password that opened a message so the user is not asked again."""

    def __init__(self):
        self._passwords: dict[str, str] = {}

    def get(self, item_id: Any) -> str | None:
        return self._passwords.get(_key(item_id))

    def remember(self, item_id: Any, password: str) -> None:
        """Store a password for an item, replacing any previous one."""
        self._passwords[_key(item_id)] = password

    def forget(self, item_id: Any) -> None:
        self._passwords.pop(_key(item_id), None)

    def clear(self) -> None:
        self._passwords.clear()

    def __contains__(self, item_id: Any) -> bool:
        return _key(item_id) in self._passwords

    def __len__(self) -> int:
        return len(self._passwords)


class DecryptionCache:
    """
    Plaintext of revealed messages plus the passwords that revealed them.

    Entries are added only after a successful decrypt.
    """

    def __init__(self, passwords: PasswordCache | None = None):
        self.passwords = passwords if passwords is not None else PasswordCache()
        self._plaintexts: dict[str, str] = {}

    def get_plaintext(self, item_id: Any) -> str | None:
        return self._plaintexts.get(_key(item_id))

    def store(self, item_id: Any, plaintext: str, password: str) -> None:
        self._plaintexts[_key(item_id)] = plaintext
        self.passwords.remember(item_id, password)

    def is_revealed(self, item_id: Any) -> bool:
        return _key(item_id) in self._plaintexts

    def forget(self, item_id: Any) -> None:
        """Drop everything known about one item (e.g. after it was deleted)."""
        self._plaintexts.pop(_key(item_id), None)
        self.passwords.forget(item_id)

    def clear(self) -> None:
        if self._plaintexts or len(self.passwords):
            logger.debug(f"Clearing decryption cache ({len(self._plaintexts)} revealed messages)")
        self._plaintexts.clear()
        self.passwords.clear()
