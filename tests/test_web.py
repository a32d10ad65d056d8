"""End-to-end tests for the operator console (FastAPI app)."""

import io
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from dossier.ai.client import ANALYSIS_FAILED_MESSAGE
from dossier.config import APIKeyNotFoundError
from dossier.core.media import EMPTY_SELECTION_MESSAGE, UNSUPPORTED_TYPE_MESSAGE
from dossier.core.models import FileCategory
from dossier.web.app import BUSY_MESSAGE, create_app
from dossier.web.session import Submitting, Success


def upload(client, name, mime_type, content=b"data", directive=""):
    return client.post(
        "/analyze",
        files={"file": (name, content, mime_type)},
        data={"directive": directive},
    )


class TestConsolePage:
    def test_idle_page(self, web_client) -> None:
        response = web_client.get("/")

        assert response.status_code == 200
        assert 'data-state="idle"' in response.text
        assert "Awaiting data for analysis..." in response.text
        assert "START ANALYSIS" in response.text
        assert 'action="/analyze"' in response.text

    def test_health(self, web_client) -> None:
        assert web_client.get("/health").json() == {"status": "ok"}


class TestAnalyze:
    def test_image_report(self, web_client, console_app, mock_genai, jpeg_bytes) -> None:
        response = upload(
            web_client, "cam.jpg", "image/jpeg", jpeg_bytes, directive="Focus on vehicles"
        )

        assert response.status_code == 200
        assert 'data-state="success"' in response.text
        assert 'data-threat-level="HIGH"' in response.text
        assert "threat-high" in response.text
        assert "Gdańsk, Poland" in response.text
        assert "Focus on vehicles</textarea>" in response.text

        state = console_app.state.session.state
        assert isinstance(state, Success)
        assert f'<img src="{state.preview.url}"' in response.text

        preview = web_client.get(state.preview.url)
        assert preview.status_code == 200
        assert preview.content == jpeg_bytes
        assert preview.headers["content-type"].startswith("image/jpeg")

        text = mock_genai.aio.models.generate_content.call_args.kwargs["contents"].parts[1].text
        assert text.endswith("Focus on vehicles")

    def test_session_snapshot(self, web_client, sample_result_body) -> None:
        upload(web_client, "call.mp3", "audio/mpeg")

        snap = web_client.get("/api/session").json()
        assert snap["state"] == "success"
        assert snap["fileCategory"] == "audio"
        assert snap["previewUrl"] is None
        assert snap["result"] == sample_result_body

    def test_unsupported_type(self, web_client, mock_genai) -> None:
        response = upload(web_client, "archive.zip", "application/zip")

        assert response.status_code == 422
        assert UNSUPPORTED_TYPE_MESSAGE in response.text
        assert 'role="alert"' in response.text
        mock_genai.aio.models.generate_content.assert_not_called()

    def test_no_file(self, web_client, mock_genai) -> None:
        response = web_client.post("/analyze", data={"directive": "anything"})

        assert response.status_code == 422
        assert EMPTY_SELECTION_MESSAGE in response.text
        mock_genai.aio.models.generate_content.assert_not_called()

    def test_failure_shows_error_panel(self, web_client, mock_genai) -> None:
        mock_genai.aio.models.generate_content.side_effect = httpx.ConnectError("refused")

        response = upload(web_client, "memo.pdf", "application/pdf", b"%PDF-1.4")

        assert response.status_code == 502
        assert "Transmission Error" in response.text
        assert f"Analysis error: {ANALYSIS_FAILED_MESSAGE}" in response.text
        assert "data-threat-level" not in response.text

    def test_superseded_preview_is_gone(self, web_client, console_app, jpeg_bytes) -> None:
        upload(web_client, "one.jpg", "image/jpeg", jpeg_bytes)
        old_url = console_app.state.session.state.preview.url

        upload(web_client, "two.jpg", "image/jpeg", jpeg_bytes)

        assert web_client.get(old_url).status_code == 404
        assert web_client.get(console_app.state.session.state.preview.url).status_code == 200

    def test_unknown_preview(self, web_client) -> None:
        assert web_client.get("/preview/not-a-token").status_code == 404

    def test_busy_submission_rejected(self, web_client, console_app, mock_genai) -> None:
        console_app.state.session._state = Submitting(
            file_name="inflight.png", category=FileCategory.IMAGE, mime_type="image/png"
        )

        response = upload(web_client, "cam.png", "image/png")

        assert response.status_code == 409
        assert BUSY_MESSAGE in response.text
        assert "<button type=\"submit\" disabled>ANALYZING...</button>" in response.text
        mock_genai.aio.models.generate_content.assert_not_called()


class TestLifecycle:
    def test_shutdown_releases_previews(self, test_config, analysis_client, jpeg_bytes) -> None:
        app = create_app(config=test_config, client=analysis_client)

        with TestClient(app) as client:
            upload(client, "cam.jpg", "image/jpeg", jpeg_bytes)
            assert len(app.state.session.previews) == 1

        assert len(app.state.session.previews) == 0

    def test_missing_api_key_aborts_startup(self, test_config, monkeypatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)

        with pytest.raises(APIKeyNotFoundError):
            create_app(config=test_config)

    def test_client_comes_from_factory(self, test_config, analysis_client) -> None:
        with patch("dossier.web.app.get_client", return_value=analysis_client) as factory:
            app = create_app(config=test_config)

        factory.assert_called_once_with(test_config)
        assert app.state.config is test_config


class TestUploadHandling:
    def test_upload_is_read_before_submission(self, web_client, console_app, jpeg_bytes) -> None:
        session = console_app.state.session
        staged_uploads = []
        original_submit = session.submit

        async def capture(staged_upload, directive=""):
            staged_uploads.append(staged_upload)
            return await original_submit(staged_upload, directive)

        session.submit = capture
        upload(web_client, "cam.jpg", "image/jpeg", jpeg_bytes)

        (staged_upload,) = staged_uploads
        assert isinstance(staged_upload.handle, io.BytesIO)
        assert staged_upload.handle.getvalue() == jpeg_bytes
        assert staged_upload.file_name == "cam.jpg"
        assert staged_upload.mime_type == "image/jpeg"
