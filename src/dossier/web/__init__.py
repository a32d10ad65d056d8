"""Web console for Dossier Analyst: FastAPI transport and the session state machine."""

from dossier.web.app import create_app
from dossier.web.session import (
    AnalysisSession,
    Failed,
    Idle,
    PreviewHandle,
    PreviewStore,
    SessionState,
    StagedUpload,
    Submitting,
    Success,
)

__all__ = [
    "AnalysisSession",
    "Failed",
    "Idle",
    "PreviewHandle",
    "PreviewStore",
    "SessionState",
    "StagedUpload",
    "Submitting",
    "Success",
    "create_app",
]
