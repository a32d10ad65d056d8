"""Operator session: the analysis state machine and preview handles.

The console is always in exactly one of four states:

    Idle ──submit──▶ Submitting ──▶ Success
                         │
                         └──────▶ Failed

Success and Failed both accept a new submission. Each state is an immutable
record carrying only the data that state can have, so combinations such as
a result alongside an error cannot be represented.

Preview handles are scoped resources. A handle is acquired when a submission
reads an image or video, is owned by the session entry that created it, and
is released explicitly when superseded by a new submission, when the
submission fails, or when the session is closed.

Example:
    >>> session = AnalysisSession(client)
    >>> state = await session.submit(StagedUpload("cam.jpg", "image/jpeg", fh))
    >>> isinstance(state, Success)
    True
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, BinaryIO, ClassVar, Union

from dossier.ai.client import AnalysisClient, AnalysisError
from dossier.ai.prompts import build_instruction
from dossier.core.media import (
    EmptySelectionError,
    MediaReadError,
    classify_mime_type,
    load_media,
    wants_preview,
)
from dossier.core.models import AnalysisResult, FileCategory

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error. Check the logs for more information."


# =============================================================================
# Preview Handles
# =============================================================================


class PreviewHandle:
    """Reference to preview bytes held in a PreviewStore.

    Usable as a context manager; leaving the block releases the handle.
    Releasing twice is harmless.
    """

    def __init__(self, store: PreviewStore, token: str, mime_type: str) -> None:
        self._store = store
        self.token = token
        self.mime_type = mime_type

    @property
    def url(self) -> str:
        return f"/preview/{self.token}"

    @property
    def released(self) -> bool:
        return not self._store.contains(self.token)

    def release(self) -> None:
        self._store.release(self.token)

    def __enter__(self) -> PreviewHandle:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"PreviewHandle({self.token[:8]}…, {self.mime_type}, {state})"


class PreviewStore:
    """In-memory holder for preview bytes, keyed by unguessable tokens."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[bytes, str]] = {}

    def acquire(self, content: bytes, mime_type: str) -> PreviewHandle:
        token = secrets.token_urlsafe(16)
        self._entries[token] = (content, mime_type)
        logger.debug(f"Preview acquired ({len(content)} bytes, {mime_type})")
        return PreviewHandle(self, token, mime_type)

    def get(self, token: str) -> tuple[bytes, str] | None:
        return self._entries.get(token)

    def contains(self, token: str) -> bool:
        return token in self._entries

    def release(self, token: str) -> None:
        if self._entries.pop(token, None) is not None:
            logger.debug("Preview released")

    def release_all(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# States
# =============================================================================


@dataclass(frozen=True)
class Idle:
    """Nothing submitted yet (a file may be staged in the browser)."""

    kind: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Submitting:
    """An analysis request is in flight."""

    kind: ClassVar[str] = "submitting"

    file_name: str
    category: FileCategory
    mime_type: str
    preview: PreviewHandle | None = None


@dataclass(frozen=True)
class Success:
    """The analysis completed; the result is shown next to the preview."""

    kind: ClassVar[str] = "success"

    file_name: str
    category: FileCategory
    mime_type: str
    preview: PreviewHandle | None
    result: AnalysisResult


@dataclass(frozen=True)
class Failed:
    """The analysis failed; only the error message is shown."""

    kind: ClassVar[str] = "failed"

    file_name: str
    category: FileCategory
    mime_type: str
    error: str
    cause: BaseException | None = field(default=None, repr=False, compare=False)


SessionState = Union[Idle, Submitting, Success, Failed]


@dataclass(frozen=True)
class StagedUpload:
    """A file chosen by the operator, not yet read.

    Attributes:
        file_name: Name reported by the browser.
        mime_type: MIME type reported by the browser.
        handle: Open binary file object or filesystem path.
    """

    file_name: str | None
    mime_type: str | None
    handle: BinaryIO | Path | str | None


# =============================================================================
# Session
# =============================================================================


class AnalysisSession:
    """State machine driving one operator's submissions.

    Only one analysis is ever in flight: a submission arriving while the
    session is Submitting is ignored and the current state is returned.
    """

    def __init__(self, client: AnalysisClient, previews: PreviewStore | None = None) -> None:
        self._client = client
        self._previews = previews if previews is not None else PreviewStore()
        self._state: SessionState = Idle()
        # Bumped by every submission and by close(); stale completions are dropped.
        self._generation = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return isinstance(self._state, Submitting)

    @property
    def previews(self) -> PreviewStore:
        return self._previews

    async def submit(self, upload: StagedUpload | None, directive: str = "") -> SessionState:
        """Validate, encode and analyze one file.

        Args:
            upload: The staged file, or None when nothing was selected.
            directive: Optional operator directive appended to the instruction.

        Returns:
            The resulting state (Success or Failed), or the unchanged current
            state if an analysis was already in flight.

        Raises:
            EmptySelectionError: If no file was selected.
            UnsupportedFileTypeError: If the reported MIME type is not accepted.
        """
        if upload is None or not upload.file_name or upload.handle is None:
            raise EmptySelectionError()
        category = classify_mime_type(upload.mime_type)

        if self.is_busy:
            logger.warning("Submission ignored: an analysis is already in flight")
            return self._state

        self._release_current_preview()
        self._generation += 1
        generation = self._generation
        mime_type = upload.mime_type or ""
        self._state = Submitting(
            file_name=upload.file_name, category=category, mime_type=mime_type
        )
        logger.info(f"Submitting {category.value} file for analysis: {upload.file_name}")

        preview: PreviewHandle | None = None
        try:
            payload = load_media(upload.handle, mime_type)
            if wants_preview(category):
                preview = self._previews.acquire(payload.content, mime_type)
                self._state = replace(self._state, preview=preview)

            instruction = build_instruction(category, directive)
            result = await self._client.analyze_media(payload, instruction)
        except (AnalysisError, MediaReadError) as e:
            user_message = getattr(e, "user_message", None) or e.message
            return self._fail(generation, preview, f"Analysis error: {user_message}", e)
        except BaseException as e:
            self._fail(generation, preview, f"Analysis error: {UNKNOWN_ERROR_MESSAGE}", e)
            raise

        if generation != self._generation:
            # Session was closed or superseded while the request was in flight.
            if preview is not None:
                preview.release()
            return self._state

        self._state = Success(
            file_name=upload.file_name,
            category=category,
            mime_type=mime_type,
            preview=preview,
            result=result,
        )
        return self._state

    def _fail(
        self,
        generation: int,
        preview: PreviewHandle | None,
        message: str,
        cause: BaseException,
    ) -> SessionState:
        if preview is not None:
            preview.release()
        if generation != self._generation:
            return self._state

        current = self._state
        logger.error(f"Analysis failed for {current.file_name}: {type(cause).__name__}: {cause}")
        self._state = Failed(
            file_name=current.file_name,
            category=current.category,
            mime_type=current.mime_type,
            error=message,
            cause=cause,
        )
        return self._state

    def _release_current_preview(self) -> None:
        preview = getattr(self._state, "preview", None)
        if preview is not None:
            preview.release()

    def close(self) -> None:
        """Tear down the session: release the preview and drop any in-flight result."""
        self._release_current_preview()
        self._generation += 1
        self._state = Idle()

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly view of the current state."""
        state = self._state
        data: dict[str, Any] = {"state": state.kind}
        if isinstance(state, Idle):
            return data

        data["fileName"] = state.file_name
        data["fileCategory"] = state.category.value
        data["mimeType"] = state.mime_type
        preview = getattr(state, "preview", None)
        data["previewUrl"] = preview.url if preview is not None else None
        if isinstance(state, Success):
            data["result"] = state.result.to_wire()
        if isinstance(state, Failed):
            data["error"] = state.error
        return data
