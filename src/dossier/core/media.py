"""Media intake: MIME classification and base64 encoding.

The MIME type reported by the browser is the trust boundary. No content
sniffing is performed; a file is accepted or rejected on its reported type
alone, before any bytes are read.

Example:
    >>> category = classify_mime_type("image/jpeg")
    >>> payload = load_media(Path("photo.jpg"), "image/jpeg")
    >>> payload.data[:8]
    '/9j/4AAQ'
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from dossier.core.models import FileCategory

logger = logging.getLogger(__name__)


ACCEPTED_MIME_PREFIXES: dict[str, FileCategory] = {
    "image/": FileCategory.IMAGE,
    "audio/": FileCategory.AUDIO,
    "video/": FileCategory.VIDEO,
}

DOCUMENT_MIME_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "text/html",
    }
)

# Value for the file input's ``accept`` attribute.
ACCEPT_ATTRIBUTE = ",".join(
    ["image/*", "audio/*", "video/*", *sorted(DOCUMENT_MIME_TYPES)]
)

# Shown to the operator next to the upload area.
SUPPORTED_FORMATS: dict[str, str] = {
    "Images": "JPEG, PNG, WEBP, GIF",
    "Audio": "MP3, WAV, OGG",
    "Video": "MP4, WEBM, MOV",
    "Documents": "PDF, DOCX, TXT, HTML",
}

UNSUPPORTED_TYPE_MESSAGE = (
    "Unsupported file type. Supported are images, audio, video and documents "
    "(PDF, Word, TXT, HTML)."
)
EMPTY_SELECTION_MESSAGE = "Please select a file to analyze."


# =============================================================================
# Exceptions
# =============================================================================


class MediaError(Exception):
    """Base exception for media intake errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MediaValidationError(MediaError):
    """The selection cannot be analyzed. Handled locally, never sent upstream."""

    pass


class UnsupportedFileTypeError(MediaValidationError):
    """The reported MIME type is outside the accepted set.

    Attributes:
        mime_type: The rejected MIME type as reported.
    """

    def __init__(self, mime_type: str | None, message: str = UNSUPPORTED_TYPE_MESSAGE) -> None:
        super().__init__(message)
        self.mime_type = mime_type


class EmptySelectionError(MediaValidationError):
    """No file was selected."""

    def __init__(self, message: str = EMPTY_SELECTION_MESSAGE) -> None:
        super().__init__(message)


class MediaReadError(MediaError):
    """The file handle could not be read (unreadable, closed or revoked)."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


# =============================================================================
# Classification
# =============================================================================


def normalize_mime_type(mime_type: str | None) -> str:
    """Lowercase a MIME type and drop any parameters (``; charset=...``)."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def classify_mime_type(mime_type: str | None) -> FileCategory:
    """Map a reported MIME type to its analysis category.

    Args:
        mime_type: MIME type as reported by the client.

    Returns:
        The FileCategory for the type.

    Raises:
        UnsupportedFileTypeError: If the type is not accepted.
    """
    normalized = normalize_mime_type(mime_type)

    for prefix, category in ACCEPTED_MIME_PREFIXES.items():
        if normalized.startswith(prefix) and len(normalized) > len(prefix):
            return category

    if normalized in DOCUMENT_MIME_TYPES:
        return FileCategory.DOCUMENT

    raise UnsupportedFileTypeError(mime_type)


def is_supported_mime_type(mime_type: str | None) -> bool:
    """Check whether a MIME type would be accepted."""
    try:
        classify_mime_type(mime_type)
    except UnsupportedFileTypeError:
        return False
    return True


def wants_preview(category: FileCategory) -> bool:
    """Only images and videos get a rendered preview."""
    return category in (FileCategory.IMAGE, FileCategory.VIDEO)


# =============================================================================
# Encoding
# =============================================================================


@dataclass(frozen=True)
class MediaPayload:
    """A fully read file, ready to be sent for analysis.

    Attributes:
        content: Raw file bytes.
        data: Base64 encoding of ``content``.
        mime_type: MIME type as reported for the file.
    """

    content: bytes = field(repr=False)
    data: str = field(repr=False)
    mime_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.content)


def read_media(handle: BinaryIO | Path | str) -> bytes:
    """Read every byte behind a file handle.

    No size cap is enforced here; large files are read as far as the
    underlying file object allows.

    Args:
        handle: An open binary file object, or a filesystem path.

    Returns:
        The file contents.

    Raises:
        MediaReadError: If the file cannot be read.
    """
    try:
        if isinstance(handle, (str, Path)):
            return Path(handle).read_bytes()

        seekable = getattr(handle, "seekable", None)
        if seekable is not None and seekable():
            handle.seek(0)
        content = handle.read()
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read media: {type(e).__name__}")
        raise MediaReadError(f"Could not read the selected file: {e}", original_error=e) from e

    if not isinstance(content, bytes):
        raise MediaReadError("File handle did not return binary content")
    return content


def encode_media(content: bytes) -> str:
    """Return the complete base64 encoding of ``content`` as ASCII text."""
    return base64.b64encode(content).decode("ascii")


def load_media(handle: BinaryIO | Path | str, mime_type: str) -> MediaPayload:
    """Read and encode a file in one step.

    Args:
        handle: Open binary file object or filesystem path.
        mime_type: MIME type reported for the file.

    Returns:
        MediaPayload holding raw bytes and their base64 encoding.

    Raises:
        MediaReadError: If the file cannot be read.
    """
    content = read_media(handle)
    payload = MediaPayload(content=content, data=encode_media(content), mime_type=mime_type)
    logger.debug(f"Encoded {payload.size_bytes} bytes of {mime_type}")
    return payload
