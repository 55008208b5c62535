import base64
import unittest

from chaos_sync.errors import DecryptionFailedError, InvalidArgumentError
from chaos_sync.messages.mime import display_mime, mime_from_filename, strip_encrypted_suffix
from chaos_sync.protection.cipher import FileBlob, decrypt_file, decrypt_text, encrypt_file, encrypt_text


class TextEncryptionTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        for text in ("hello", "Привет, мир! 🔐", "a" * 1000, "line1\nline2"):
            ciphertext = encrypt_text(text, "s3cret")
            self.assertEqual(decrypt_text(ciphertext, "s3cret"), text)

    def test_ciphertext_is_salted_base64(self) -> None:
        ciphertext = encrypt_text("hello", "pw")
        raw = base64.b64decode(ciphertext)
        self.assertTrue(ciphertext.startswith("U2FsdGVkX1"))
        self.assertEqual(raw[:8], b"Salted__")
        self.assertEqual((len(raw) - 16) % 16, 0)

    def test_salt_makes_every_ciphertext_different(self) -> None:
        self.assertNotEqual(encrypt_text("hello", "pw"), encrypt_text("hello", "pw"))

    def test_encrypt_requires_password(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            encrypt_text("hello", "")
        with self.assertRaises(ValueError):
            encrypt_text("hello", None)

    def test_decrypt_requires_password(self) -> None:
        ciphertext = encrypt_text("hello", "pw")
        with self.assertRaises(DecryptionFailedError):
            decrypt_text(ciphertext, "")

    def test_empty_ciphertext_decrypts_to_empty_text(self) -> None:
        self.assertEqual(decrypt_text("", "pw"), "")

    def test_garbage_fails(self) -> None:
        for garbage in ("not base64 !!", base64.b64encode(b"plain bytes here").decode(), "U2FsdGVkX1=="):
            with self.assertRaises(DecryptionFailedError):
                decrypt_text(garbage, "pw")

    def test_wrong_password_never_returns_plaintext(self) -> None:
        text = "the meeting is at noon"
        for i in range(20):
            ciphertext = encrypt_text(text, f"right-{i}")
            try:
                result = decrypt_text(ciphertext, f"wrong-{i}")
            except DecryptionFailedError:
                continue
            self.assertNotEqual(result, text)

    def test_encrypted_empty_text_reads_as_wrong_password(self) -> None:
        ciphertext = encrypt_text("", "pw")
        with self.assertRaises(DecryptionFailedError):
            decrypt_text(ciphertext, "pw")


class FileEncryptionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.data = bytes((i * 7 + 3) % 256 for i in range(10_000))
        self.source = FileBlob(name="report.pdf", data=self.data, mime_type="application/pdf")

    def test_round_trip_is_byte_exact(self) -> None:
        encrypted = encrypt_file(self.source, "pw")
        decrypted = decrypt_file(encrypted, "pw")
        self.assertEqual(decrypted.size, 10_000)
        self.assertEqual(decrypted.data, self.data)
        self.assertEqual(decrypted.name, "report.pdf")

    def test_encrypted_blob_is_ascii_text_named_enc(self) -> None:
        encrypted = encrypt_file(self.source, "pw")
        self.assertEqual(encrypted.name, "report.pdf.enc")
        self.assertEqual(encrypted.mime_type, "application/octet-stream")
        text = encrypted.data.decode("ascii")
        self.assertEqual(decrypt_file(FileBlob(name="x.enc", data=text.encode("ascii")), "pw").data, self.data)

    def test_suffix_is_not_doubled(self) -> None:
        encrypted = encrypt_file(FileBlob(name="archive.enc", data=b"abc"), "pw")
        self.assertEqual(encrypted.name, "archive.enc")
        self.assertEqual(encrypt_file(FileBlob(name="", data=b"abc"), "pw").name, "file.enc")

    def test_file_text_and_text_formats_match(self) -> None:
        encrypted = encrypt_file(FileBlob(name="note.txt", data="hi there".encode("utf-8")), "pw")
        self.assertEqual(decrypt_text(encrypted.data.decode("ascii"), "pw"), "hi there")

    def test_password_required(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            encrypt_file(self.source, "")
        encrypted = encrypt_file(self.source, "pw")
        with self.assertRaises(DecryptionFailedError):
            decrypt_file(encrypted, "")

    def test_wrong_password_or_corruption_fails(self) -> None:
        encrypted = encrypt_file(self.source, "pw")
        try:
            result = decrypt_file(encrypted, "other")
        except DecryptionFailedError:
            pass
        else:
            self.assertNotEqual(result.data, self.data)
        with self.assertRaises(DecryptionFailedError):
            decrypt_file(FileBlob(name="x.enc", data=b"\xff\xfe binary"), "pw")

    def test_empty_payload_is_rejected(self) -> None:
        encrypted = encrypt_file(FileBlob(name="empty.bin", data=b""), "pw")
        with self.assertRaises(DecryptionFailedError):
            decrypt_file(encrypted, "pw")


class MimeTests(unittest.TestCase):
    def test_mime_from_filename_ignores_enc_suffix(self) -> None:
        self.assertEqual(mime_from_filename("photo.PNG.enc"), "image/png")
        self.assertEqual(mime_from_filename("clip.mov"), "video/quicktime")
        self.assertEqual(mime_from_filename("notes"), "application/octet-stream")
        self.assertEqual(strip_encrypted_suffix("a.mp3.enc"), "a.mp3")

    def test_display_mime_prefers_specific_declared_type(self) -> None:
        self.assertEqual(display_mime("audio/webm", "voice.enc"), "audio/webm")
        self.assertEqual(display_mime("application/octet-stream", "voice.ogg.enc"), "audio/ogg")
        self.assertEqual(display_mime(None, "x.webp"), "image/webp")


if __name__ == "__main__":
    unittest.main()
