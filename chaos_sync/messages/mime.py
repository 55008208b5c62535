"""MIME type lookup for attachment previews."""

ENCRYPTED_SUFFIX = ".enc"

_MIME_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
}

DEFAULT_MIME = "application/octet-stream"


def strip_encrypted_suffix(file_name: str) -> str:
    """Drop a trailing `.enc` from a file name."""
    if file_name.endswith(ENCRYPTED_SUFFIX):
        return file_name[: -len(ENCRYPTED_SUFFIX)]
    return file_name


def mime_from_filename(file_name: str) -> str:
    """
    Guess a preview MIME type from a file name.

    Examples:
        "photo.png" -> "image/png"
        "photo.PNG.enc" -> "image/png"
        "notes" -> "application/octet-stream"
    """
    name = strip_encrypted_suffix(file_name or "")
    dot = name.rfind(".")
    if dot == -1:
        return DEFAULT_MIME
    return _MIME_BY_EXTENSION.get(name[dot:].lower(), DEFAULT_MIME)


def display_mime(declared: str | None, file_name: str) -> str:
    """Prefer the declared MIME type unless it is the generic octet-stream."""
    if declared and "octet-stream" not in declared:
        return declared
    return mime_from_filename(file_name)
