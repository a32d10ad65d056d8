"""Central Pytest Fixtures for Dossier Analyst.

This module provides reusable test data, mock objects and app clients
across all test modules.

Fixtures included:
- Core data: sample_result_body, jpeg_bytes
- Config: test_config
- AI Mocks: mock_genai (stand-in for google.genai.Client), analysis_client
- Web: session, console_app, web_client
"""

import io
import json
from copy import deepcopy
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from dossier.ai.client import AnalysisClient
from dossier.config import AIConfig, AppConfig, reset_config
from dossier.web.app import create_app
from dossier.web.session import AnalysisSession, StagedUpload

# =============================================================================
# Helper Functions
# =============================================================================


SAMPLE_RESULT_BODY = {
    "executiveSummary": "A parked van near a checkpoint at dusk.",
    "detailedAnalysis": "A white van is parked beside a barrier.\nTwo people stand nearby.",
    "subjectProfiles": ["Adult male, dark jacket", "Adult female, carrying a bag"],
    "locationAssessment": {
        "potentialLocation": "Gdańsk, Poland",
        "reasoning": "Polish road signs and Baltic architecture.",
    },
    "metadataInsights": "Likely taken at dusk with a smartphone camera.",
    "threatAssessment": {
        "level": "HIGH",
        "justification": "Vehicle positioned at a restricted access point.",
    },
}


def make_genai_response(body) -> MagicMock:
    """Build a mock generate_content response carrying ``body`` as text."""
    response = MagicMock()
    response.text = body if isinstance(body, str) or body is None else json.dumps(body)
    return response


def create_jpeg(width: int = 32, height: int = 24, color: str = "red") -> bytes:
    """Create a small real JPEG image in memory."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buffer, format="JPEG")
    return buffer.getvalue()


def staged(name: str, mime_type: str, content: bytes = b"data") -> StagedUpload:
    """Stage an in-memory upload."""
    return StagedUpload(file_name=name, mime_type=mime_type, handle=io.BytesIO(content))


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the cached configuration around each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sample_result_body() -> dict:
    """A fully populated, valid analysis response body."""
    return deepcopy(SAMPLE_RESULT_BODY)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return create_jpeg()


@pytest.fixture
def test_config() -> AppConfig:
    return AppConfig(ai=AIConfig(model_name="gemini-test", timeout_seconds=30))


# =============================================================================
# AI Mocks
# =============================================================================


@pytest.fixture
def mock_genai(sample_result_body) -> MagicMock:
    """Mock google.genai.Client whose async generate_content returns the sample body."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=make_genai_response(sample_result_body)
    )
    return client


@pytest.fixture
def analysis_client(test_config, mock_genai) -> AnalysisClient:
    return AnalysisClient(config=test_config, genai_client=mock_genai)


# =============================================================================
# Web Fixtures
# =============================================================================


@pytest.fixture
def session(analysis_client) -> AnalysisSession:
    return AnalysisSession(analysis_client)


@pytest.fixture
def console_app(test_config, analysis_client):
    return create_app(config=test_config, client=analysis_client)


@pytest.fixture
def web_client(console_app):
    with TestClient(console_app) as client:
        yield client
