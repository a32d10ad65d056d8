"""AI module for Dossier Analyst.

This module provides the interface to Google's Gemini multimodal API. The
client.py module is the SOLE interface to the Gemini API; prompts.py is the
sole source of the text and schema sent with each request.

Exports:
    - AnalysisClient: Performs one analysis call per submission
    - get_client: Factory function to create a configured client
    - build_instruction: Category instruction plus operator directive
    - Exception hierarchy for typed error handling
"""

from dossier.ai.client import (
    AnalysisClient,
    AnalysisError,
    PayloadEncodingError,
    RedactingFilter,
    SchemaViolationError,
    TransportError,
    get_client,
    parse_analysis_result,
)
from dossier.ai.prompts import (
    PROMPT_TABLE,
    RESPONSE_SCHEMA,
    CategoryPrompt,
    build_base_instruction,
    build_instruction,
    build_system_instruction,
)

__all__ = [
    "AnalysisClient",
    "AnalysisError",
    "CategoryPrompt",
    "PayloadEncodingError",
    "PROMPT_TABLE",
    "RESPONSE_SCHEMA",
    "RedactingFilter",
    "SchemaViolationError",
    "TransportError",
    "build_base_instruction",
    "build_instruction",
    "build_system_instruction",
    "get_client",
    "parse_analysis_result",
]
