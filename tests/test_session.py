"""Tests for dossier.web.session: the operator state machine."""

import asyncio
import io

import httpx
import pytest

from dossier.ai.client import ANALYSIS_FAILED_MESSAGE
from dossier.ai.prompts import OPERATOR_DIRECTIVES_HEADING, build_instruction
from dossier.core.media import EmptySelectionError, UnsupportedFileTypeError
from dossier.core.models import FileCategory, ThreatLevel
from dossier.web.session import (
    Failed,
    Idle,
    PreviewStore,
    StagedUpload,
    Submitting,
    Success,
)

from conftest import make_genai_response, staged


def sent_contents(mock_genai):
    return mock_genai.aio.models.generate_content.call_args.kwargs["contents"]


class TestSubmit:
    def test_starts_idle(self, session) -> None:
        assert isinstance(session.state, Idle)
        assert session.snapshot() == {"state": "idle"}

    def test_image_success(self, session, mock_genai, jpeg_bytes) -> None:
        state = asyncio.run(session.submit(staged("cam.jpg", "image/jpeg", jpeg_bytes)))

        assert isinstance(state, Success)
        assert state is session.state
        assert state.category == FileCategory.IMAGE
        assert state.result.threat_assessment.level == ThreatLevel.HIGH
        assert state.preview is not None
        assert not state.preview.released
        assert session.previews.get(state.preview.token) == (jpeg_bytes, "image/jpeg")

        contents = sent_contents(mock_genai)
        assert contents.parts[0].inline_data.data == jpeg_bytes
        assert contents.parts[1].text == build_instruction(FileCategory.IMAGE)

    def test_audio_has_no_preview(self, session) -> None:
        state = asyncio.run(session.submit(staged("call.mp3", "audio/mpeg", b"ID3audio")))

        assert isinstance(state, Success)
        assert state.preview is None
        assert len(session.previews) == 0

    def test_document_uses_document_instruction(self, session, mock_genai) -> None:
        asyncio.run(
            session.submit(
                staged("memo.pdf", "application/pdf", b"%PDF-1.4"), directive="Flag bank details"
            )
        )

        text = sent_contents(mock_genai).parts[1].text
        assert text.startswith(build_instruction(FileCategory.DOCUMENT))
        assert text.endswith(f"{OPERATOR_DIRECTIVES_HEADING}\nFlag bank details")

    def test_empty_file_is_sent(self, session, mock_genai) -> None:
        state = asyncio.run(session.submit(staged("empty.txt", "text/plain", b"")))

        assert isinstance(state, Success)
        assert sent_contents(mock_genai).parts[0].inline_data.data == b""


class TestValidation:
    def test_unsupported_type_makes_no_call(self, session, mock_genai) -> None:
        with pytest.raises(UnsupportedFileTypeError):
            asyncio.run(session.submit(staged("archive.zip", "application/zip")))

        mock_genai.aio.models.generate_content.assert_not_called()
        assert isinstance(session.state, Idle)

    @pytest.mark.parametrize(
        "upload",
        [None, StagedUpload(file_name="", mime_type="image/png", handle=io.BytesIO(b"x"))],
    )
    def test_empty_selection(self, session, mock_genai, upload) -> None:
        with pytest.raises(EmptySelectionError):
            asyncio.run(session.submit(upload))

        mock_genai.aio.models.generate_content.assert_not_called()

    def test_validation_failure_keeps_previous_result(self, session, jpeg_bytes) -> None:
        first = asyncio.run(session.submit(staged("cam.jpg", "image/jpeg", jpeg_bytes)))

        with pytest.raises(UnsupportedFileTypeError):
            asyncio.run(session.submit(staged("data.csv", "text/csv")))

        assert session.state is first
        assert not first.preview.released


class TestFailure:
    def test_transport_failure(self, session, mock_genai, jpeg_bytes) -> None:
        mock_genai.aio.models.generate_content.side_effect = httpx.ConnectError("refused")

        state = asyncio.run(session.submit(staged("cam.jpg", "image/jpeg", jpeg_bytes)))

        assert isinstance(state, Failed)
        assert state.error == f"Analysis error: {ANALYSIS_FAILED_MESSAGE}"
        assert len(session.previews) == 0
        assert "result" not in session.snapshot()

    def test_schema_failure(self, session, mock_genai, sample_result_body) -> None:
        del sample_result_body["threatAssessment"]
        mock_genai.aio.models.generate_content.return_value = make_genai_response(
            sample_result_body
        )

        state = asyncio.run(session.submit(staged("call.mp3", "audio/mpeg")))

        assert isinstance(state, Failed)
        assert state.error.startswith("Analysis error: ")

    def test_read_failure(self, session, mock_genai) -> None:
        handle = io.BytesIO(b"revoked")
        handle.close()
        upload = StagedUpload(file_name="cam.jpg", mime_type="image/jpeg", handle=handle)

        state = asyncio.run(session.submit(upload))

        assert isinstance(state, Failed)
        assert "Could not read the selected file" in state.error
        mock_genai.aio.models.generate_content.assert_not_called()

    def test_unexpected_error_propagates(self, session) -> None:
        async def explode(*args, **kwargs):
            raise RuntimeError("bug")

        session._client.analyze_media = explode

        with pytest.raises(RuntimeError):
            asyncio.run(session.submit(staged("cam.jpg", "image/jpeg")))

        assert isinstance(session.state, Failed)
        assert "Unknown error" in session.state.error

    def test_resubmit_after_failure(self, session, mock_genai, sample_result_body) -> None:
        mock_genai.aio.models.generate_content.side_effect = [
            httpx.ConnectError("refused"),
            make_genai_response(sample_result_body),
        ]

        assert isinstance(asyncio.run(session.submit(staged("a.png", "image/png"))), Failed)
        assert isinstance(asyncio.run(session.submit(staged("a.png", "image/png"))), Success)


class TestPreviewLifecycle:
    def test_new_submission_releases_previous_preview(self, session, jpeg_bytes) -> None:
        first = asyncio.run(session.submit(staged("one.jpg", "image/jpeg", jpeg_bytes)))
        second = asyncio.run(session.submit(staged("two.mp4", "video/mp4", b"\x00mp4")))

        assert first.preview.released
        assert not second.preview.released
        assert len(session.previews) == 1

    def test_close_releases_preview(self, session, jpeg_bytes) -> None:
        state = asyncio.run(session.submit(staged("cam.jpg", "image/jpeg", jpeg_bytes)))
        session.close()

        assert state.preview.released
        assert isinstance(session.state, Idle)

    def test_handle_as_context_manager(self) -> None:
        store = PreviewStore()
        with store.acquire(b"frame", "image/png") as handle:
            assert store.get(handle.token) == (b"frame", "image/png")
            assert handle.url == f"/preview/{handle.token}"

        assert handle.released
        handle.release()
        assert len(store) == 0

    def test_tokens_are_unique(self) -> None:
        store = PreviewStore()
        tokens = {store.acquire(b"x", "image/png").token for _ in range(50)}
        assert len(tokens) == 50


class TestConcurrency:
    def test_second_submission_is_ignored_while_busy(
        self, session, mock_genai, sample_result_body
    ) -> None:
        async def scenario():
            gate = asyncio.Event()

            async def slow_response(*args, **kwargs):
                await gate.wait()
                return make_genai_response(sample_result_body)

            mock_genai.aio.models.generate_content.side_effect = slow_response

            first = asyncio.create_task(session.submit(staged("one.png", "image/png")))
            for _ in range(5):
                await asyncio.sleep(0)

            assert session.is_busy
            ignored = await session.submit(staged("two.png", "image/png"))
            assert isinstance(ignored, Submitting)
            assert ignored.file_name == "one.png"

            gate.set()
            return await first

        state = asyncio.run(scenario())

        assert isinstance(state, Success)
        assert state.file_name == "one.png"
        assert mock_genai.aio.models.generate_content.await_count == 1

    def test_close_mid_flight_drops_result(self, session, mock_genai, sample_result_body) -> None:
        async def scenario():
            gate = asyncio.Event()

            async def slow_response(*args, **kwargs):
                await gate.wait()
                return make_genai_response(sample_result_body)

            mock_genai.aio.models.generate_content.side_effect = slow_response

            task = asyncio.create_task(session.submit(staged("one.png", "image/png")))
            for _ in range(5):
                await asyncio.sleep(0)

            session.close()
            gate.set()
            return await task

        state = asyncio.run(scenario())

        assert isinstance(state, Idle)
        assert isinstance(session.state, Idle)
        assert len(session.previews) == 0


class TestSnapshot:
    def test_success_snapshot(self, session, sample_result_body) -> None:
        state = asyncio.run(session.submit(staged("cam.jpg", "image/jpeg")))
        snap = session.snapshot()

        assert snap["state"] == "success"
        assert snap["fileName"] == "cam.jpg"
        assert snap["fileCategory"] == "image"
        assert snap["mimeType"] == "image/jpeg"
        assert snap["previewUrl"] == state.preview.url
        assert snap["result"] == sample_result_body
        assert "error" not in snap

    def test_failed_snapshot(self, session, mock_genai) -> None:
        mock_genai.aio.models.generate_content.side_effect = httpx.ReadTimeout("slow")
        asyncio.run(session.submit(staged("call.mp3", "audio/mpeg")))
        snap = session.snapshot()

        assert snap["state"] == "failed"
        assert snap["previewUrl"] is None
        assert snap["error"].startswith("Analysis error: ")
        assert "result" not in snap

