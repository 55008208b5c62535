"""Password-based protection of message content."""

from chaos_sync.protection.cache import DecryptionCache, PasswordCache
from chaos_sync.protection.cipher import FileBlob, decrypt_file, decrypt_text, encrypt_file, encrypt_text
from chaos_sync.protection.revealer import ContentRevealer

__all__ = [
    "DecryptionCache",
    "PasswordCache",
    "FileBlob",
    "decrypt_file",
    "decrypt_text",
    "encrypt_file",
    "encrypt_text",
    "ContentRevealer",
]
