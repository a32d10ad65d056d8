"""Core data models and media intake for Dossier Analyst."""

from dossier.core.media import (
    EmptySelectionError,
    MediaError,
    MediaPayload,
    MediaReadError,
    MediaValidationError,
    UnsupportedFileTypeError,
    classify_mime_type,
    encode_media,
    load_media,
    read_media,
)
from dossier.core.models import (
    AnalysisRequest,
    AnalysisResult,
    FileCategory,
    LocationAssessment,
    ThreatAssessment,
    ThreatLevel,
)

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "EmptySelectionError",
    "FileCategory",
    "LocationAssessment",
    "MediaError",
    "MediaPayload",
    "MediaReadError",
    "MediaValidationError",
    "ThreatAssessment",
    "ThreatLevel",
    "UnsupportedFileTypeError",
    "classify_mime_type",
    "encode_media",
    "load_media",
    "read_media",
]
