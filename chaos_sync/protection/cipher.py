"""
Password-based encryption of message text and attachments.

Ciphertext uses the OpenSSL "Salted__" format that browser clients of the
organizer produce and read:

    base64( b"Salted__" || salt[8] || AES-256-CBC(PKCS#7 padded plaintext) )

Key and IV are derived from the password and salt with EVP_BytesToKey (MD5,
one iteration). The format has no authentication tag, so a wrong password is
detected only through padding, UTF-8 or length checks.

Encrypted files are stored as the ASCII bytes of the same base64 string, under
the original name with a `.enc` suffix, so they go through the normal upload
path like any other attachment.
"""

import base64
import binascii
import hashlib
import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from chaos_sync.errors import DecryptionFailedError, InvalidArgumentError
from chaos_sync.messages.mime import DEFAULT_MIME, ENCRYPTED_SUFFIX, strip_encrypted_suffix
from chaos_sync.messages.models import FileBlob

logger = logging.getLogger(__name__)

SALT_MAGIC = b"Salted__"
SALT_SIZE = 8
KEY_SIZE = 32
IV_SIZE = 16
BLOCK_SIZE = 16


def _evp_bytes_to_key(password: bytes, salt: bytes) -> tuple[bytes, bytes]:
    """Derive (key, iv) the way OpenSSL's EVP_BytesToKey does with MD5."""
    derived = b""
    block = b""
    while len(derived) < KEY_SIZE + IV_SIZE:
        block = hashlib.md5(block + password + salt).digest()
        derived += block
    return derived[:KEY_SIZE], derived[KEY_SIZE:KEY_SIZE + IV_SIZE]


def _encrypt_bytes(plaintext: bytes, password: str) -> str:
    salt = os.urandom(SALT_SIZE)
    key, iv = _evp_bytes_to_key(password.encode("utf-8"), salt)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ct = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(SALT_MAGIC + salt + ct).decode("ascii")


def _decrypt_bytes(ciphertext: str, password: str) -> bytes:
    """Decrypt a serialized blob; raises DecryptionFailedError on any failure."""
    try:
        raw = base64.b64decode(ciphertext.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionFailedError("Ciphertext is not valid base64") from e

    header_size = len(SALT_MAGIC) + SALT_SIZE
    body = raw[header_size:]
    if not raw.startswith(SALT_MAGIC) or not body or len(body) % BLOCK_SIZE:
        raise DecryptionFailedError("Ciphertext is not in salted format")

    salt = raw[len(SALT_MAGIC):header_size]
    key, iv = _evp_bytes_to_key(password.encode("utf-8"), salt)

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionFailedError("Wrong password") from e


def encrypt_text(plain_text: str, password: str) -> str:
    """
    Encrypt message text with a password.

    Args:
        plain_text: Text to encrypt (None is treated as empty)
        password: Non-empty password

    Returns:
        Self-contained base64 ciphertext, safe to store as message content

    Raises:
        InvalidArgumentError: If the password is empty
    """
    if not password:
        raise InvalidArgumentError("Password is required")
    return _encrypt_bytes((plain_text or "").encode("utf-8"), password)


def decrypt_text(ciphertext: str, password: str) -> str:
    """
    Decrypt message text.

    Args:
        ciphertext: Base64 ciphertext produced by encrypt_text
        password: Password used for encryption

    Returns:
        The plaintext; empty string for empty input

    Raises:
        DecryptionFailedError: On an empty password, unparsable ciphertext,
            bad padding or output that is not valid UTF-8
    """
    if not password:
        raise DecryptionFailedError("Password is required")
    if not ciphertext or not isinstance(ciphertext, str):
        return ""

    data = _decrypt_bytes(ciphertext, password)
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionFailedError("Wrong password") from e

    if not text:
        raise DecryptionFailedError("Wrong password")
    return text


def encrypt_file(file: FileBlob, password: str) -> FileBlob:
    """
    Encrypt an attachment before upload.

    Returns:
        A blob whose bytes are the ASCII ciphertext, named `<original>.enc`
        (the suffix is not doubled)

    Raises:
        InvalidArgumentError: If the password is empty
    """
    if not password:
        raise InvalidArgumentError("Password is required")

    ciphertext = _encrypt_bytes(file.data, password)
    name = file.name or "file"
    if not name.endswith(ENCRYPTED_SUFFIX):
        name += ENCRYPTED_SUFFIX

    logger.debug(f"Encrypted file {file.name!r} ({file.size} bytes)")
    return FileBlob(name=name, data=ciphertext.encode("ascii"), mime_type=DEFAULT_MIME)


def decrypt_file(blob: FileBlob, password: str, mime_type: str = DEFAULT_MIME) -> FileBlob:
    """
    Decrypt a downloaded attachment.

    Args:
        blob: Blob whose bytes are the ASCII ciphertext
        password: Password used for encryption
        mime_type: MIME type to give the plaintext blob

    Returns:
        Plaintext blob, byte-for-byte equal to the original, `.enc` stripped
        from the name

    Raises:
        DecryptionFailedError: On an empty password, undecodable blob or an
            empty recovered payload
    """
    if not password:
        raise DecryptionFailedError("Password is required")

    try:
        ciphertext = blob.data.decode("ascii")
    except UnicodeDecodeError as e:
        raise DecryptionFailedError("Encrypted file is not text") from e

    data = _decrypt_bytes(ciphertext, password)
    if len(data) <= 0:
        raise DecryptionFailedError("Wrong password")

    return FileBlob(name=strip_encrypted_suffix(blob.name), data=data, mime_type=mime_type)
