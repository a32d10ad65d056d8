"""Gemini Analysis Client for Dossier Analyst.

This module is the SOLE INTERFACE to the Gemini API. Every analysis flows
through AnalysisClient, which performs exactly one request per submission:
the media part and the instruction text, a fixed analyst persona as system
instruction, and a strict JSON response schema.

The client provides:
- Fail-fast construction (no API key, no client)
- Typed exceptions for predictable error handling
- Strict response validation into AnalysisResult (no partial results)
- Security-first logging (never logs secrets, prompts or responses)

Example:
    >>> from dossier.ai.client import get_client, AnalysisError
    >>>
    >>> client = get_client()  # raises ConfigurationError without a key
    >>> try:
    ...     result = asyncio.run(client.analyze(request))
    ...     print(result.threat_assessment.level)
    ... except AnalysisError as e:
    ...     print(e.user_message)

There are no automatic retries. A failed analysis is reported once and the
operator decides whether to resubmit.

Security Rules:
- NEVER log API keys (ever, in any form)
- NEVER log the instruction text (may contain operator directives)
- NEVER log response bodies (intelligence content)
"""

from __future__ import annotations

import base64
import json
import logging
import re
import time
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import ValidationError

from dossier.ai.prompts import RESPONSE_SCHEMA, build_system_instruction
from dossier.config import AppConfig, get_api_key, get_config
from dossier.core.media import MediaPayload
from dossier.core.models import AnalysisRequest, AnalysisResult


# =============================================================================
# Secure Logging Filter
# =============================================================================


class RedactingFilter(logging.Filter):
    """Logging filter that redacts sensitive information.

    Scans log messages for patterns that look like API keys or tokens
    and replaces them with [REDACTED].

    Example:
        >>> logger.addFilter(RedactingFilter())
        >>> logger.info("Using api_key=AIzaSy123456789...")
        # Output: "Using api_key=[REDACTED]"
    """

    KEY_VALUE_PATTERNS = [
        re.compile(r'(api_key\s*[=:]\s*)["\']?([a-zA-Z0-9_\-]{20,})["\']?', re.IGNORECASE),
        re.compile(r'(key\s*[=:]\s*)["\']?([a-zA-Z0-9_\-]{20,})["\']?', re.IGNORECASE),
        re.compile(r'(token\s*[=:]\s*)["\']?([a-zA-Z0-9_\-]{20,})["\']?', re.IGNORECASE),
        re.compile(r"(bearer\s+)([a-zA-Z0-9_\-]{20,})", re.IGNORECASE),
    ]
    STANDALONE_PATTERNS = [
        # Gemini keys start with AIza
        re.compile(r"\bAIza[a-zA-Z0-9_\-]{30,}\b"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._redact(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self._redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )

        return True

    def _redact(self, text: str) -> str:
        for pattern in self.KEY_VALUE_PATTERNS:
            text = pattern.sub(r"\1[REDACTED]", text)
        for pattern in self.STANDALONE_PATTERNS:
            text = pattern.sub("[REDACTED]", text)
        return text


logger = logging.getLogger(__name__)
logger.addFilter(RedactingFilter())


# =============================================================================
# Exception Hierarchy
# =============================================================================


ANALYSIS_FAILED_MESSAGE = "Failed to obtain an analysis from the Gemini API."


class AnalysisError(Exception):
    """Base exception for every failed analysis.

    Callers handle a single condition: the analysis failed. The subclass and
    ``original_error`` carry the cause for diagnostics.

    Attributes:
        message: Diagnostic description (safe to log, contains no content).
        user_message: Operator-facing text, identical for every failure.
        original_error: The underlying exception, if any.
    """

    user_message: str = ANALYSIS_FAILED_MESSAGE

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        return self.message


class TransportError(AnalysisError):
    """Network or service failure, including non-2xx responses and timeouts.

    Attributes:
        status_code: HTTP status code reported by the service, if any.
        timeout_seconds: Set when the request timed out.
    """

    def __init__(
        self,
        message: str = "Gemini service request failed.",
        status_code: int | None = None,
        timeout_seconds: float | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error=original_error)
        self.status_code = status_code
        self.timeout_seconds = timeout_seconds


class SchemaViolationError(AnalysisError):
    """The response body is not valid JSON or misses required fields.

    Attributes:
        missing_fields: Dotted paths of required fields that were absent or null.
    """

    def __init__(
        self,
        message: str = "Gemini response does not match the analysis schema.",
        missing_fields: list[str] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error=original_error)
        self.missing_fields = missing_fields or []


class PayloadEncodingError(AnalysisError):
    """The media payload is not valid base64; nothing was sent."""

    def __init__(
        self,
        message: str = "Media payload is not valid base64.",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error=original_error)


# =============================================================================
# Response Parsing
# =============================================================================


def parse_analysis_result(text: str | None) -> AnalysisResult:
    """Parse a raw response body into an AnalysisResult.

    The body is trimmed of surrounding whitespace and must then parse
    directly as a JSON object. No markdown or partial salvage is attempted.

    Args:
        text: The response text returned by the service.

    Returns:
        The validated AnalysisResult.

    Raises:
        SchemaViolationError: If the body is empty, not JSON, not an object,
            or fails validation.
    """
    body = (text or "").strip()
    if not body:
        raise SchemaViolationError("Gemini returned an empty response body.")

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise SchemaViolationError(f"Response is not valid JSON: {e.msg}", original_error=e) from e

    if not isinstance(data, dict):
        raise SchemaViolationError(
            f"Response JSON must be an object, got {type(data).__name__}."
        )

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        missing = [
            ".".join(str(part) for part in err["loc"])
            for err in e.errors()
            if err["type"] == "missing" or err.get("input") is None
        ]
        raise SchemaViolationError(
            f"Response failed schema validation ({e.error_count()} error(s)).",
            missing_fields=missing,
            original_error=e,
        ) from e


def _decode_payload(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError as e:  # binascii.Error, or non-ASCII text
        raise PayloadEncodingError(original_error=e) from e


# =============================================================================
# Main Client Class
# =============================================================================


class AnalysisClient:
    """Client for the multimodal analysis call.

    The API key is resolved during construction. Without a key construction
    raises ConfigurationError, so a misconfigured console never starts.

    Example:
        >>> client = AnalysisClient()
        >>> result = await client.analyze(
        ...     AnalysisRequest(
        ...         instruction_text=build_instruction(FileCategory.IMAGE),
        ...         media_payload=payload.data,
        ...         mime_type="image/jpeg",
        ...     )
        ... )

    Attributes:
        model_name: Gemini model used for every call.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        api_key: str | None = None,
        genai_client: Any = None,
    ) -> None:
        """Initialize the analysis client.

        Args:
            config: Application configuration. If None, loads from get_config().
            api_key: Override API key. If None, read from the environment.
            genai_client: Pre-built google-genai client (used by tests).

        Raises:
            APIKeyNotFoundError: If no API key is available.
        """
        self._config = config or get_config()
        self._logger = logging.getLogger(f"{__name__}.AnalysisClient")
        self._logger.addFilter(RedactingFilter())
        self._system_instruction = build_system_instruction(self._config.ai.response_language)

        if genai_client is None:
            key = api_key or get_api_key().get_secret_value()
            genai_client = genai.Client(
                api_key=key,
                http_options=types.HttpOptions(timeout=self._config.ai.timeout_seconds * 1000),
            )

        self._genai = genai_client
        self._logger.info(f"Analysis client configured with model: {self.model_name}")

    @property
    def model_name(self) -> str:
        return self._config.ai.model_name

    def _build_contents(self, request: AnalysisRequest) -> types.Content:
        """Content parts in fixed order: media first, then instruction text."""
        media_part = types.Part.from_bytes(
            data=_decode_payload(request.media_payload),
            mime_type=request.mime_type,
        )
        text_part = types.Part.from_text(text=request.instruction_text)
        return types.Content(role="user", parts=[media_part, text_part])

    def _build_generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=self._system_instruction,
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
            temperature=self._config.ai.temperature,
        )

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Run one analysis and return the validated result.

        Exactly one request is issued. Nothing is retried.

        Args:
            request: Instruction, base64 media and MIME type.

        Returns:
            The parsed AnalysisResult.

        Raises:
            TransportError: On network or service failure.
            SchemaViolationError: If the response is malformed or incomplete.
            PayloadEncodingError: If the media payload is not valid base64.
        """
        try:
            contents = self._build_contents(request)
        except PayloadEncodingError as e:
            self._logger.error(f"Analysis request not sent: {e.message}")
            raise
        config = self._build_generation_config()

        start_time = time.time()
        try:
            response = await self._genai.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except Exception as e:
            mapped = self._map_exception(e)
            self._logger.error(
                f"Analysis request failed: {type(mapped).__name__} ({type(e).__name__})",
                extra={"model": self.model_name},
            )
            raise mapped from e

        latency_ms = (time.time() - start_time) * 1000

        try:
            result = parse_analysis_result(response.text)
        except SchemaViolationError as e:
            self._logger.error(f"Analysis response rejected: {e.message}")
            raise

        self._logger.info(
            f"Analysis successful: threat level {result.threat_assessment.level.value} "
            f"in {latency_ms:.0f}ms",
            extra={"model": self.model_name, "time_ms": latency_ms},
        )
        return result

    async def analyze_media(self, payload: MediaPayload, instruction: str) -> AnalysisResult:
        """Convenience wrapper building the AnalysisRequest from a MediaPayload."""
        request = AnalysisRequest(
            instruction_text=instruction,
            media_payload=payload.data,
            mime_type=payload.mime_type,
        )
        return await self.analyze(request)

    def _map_exception(self, error: Exception) -> TransportError:
        """Map SDK and network exceptions to TransportError.

        Args:
            error: The original exception.

        Returns:
            TransportError describing the failure.
        """
        if isinstance(error, genai_errors.ServerError):
            return TransportError(
                f"Gemini server error ({error.code}).",
                status_code=error.code,
                original_error=error,
            )

        if isinstance(error, genai_errors.ClientError):
            return TransportError(
                f"Gemini rejected the request ({error.code}).",
                status_code=error.code,
                original_error=error,
            )

        if isinstance(error, genai_errors.APIError):
            return TransportError(
                f"Gemini API error ({error.code}).",
                status_code=error.code,
                original_error=error,
            )

        if isinstance(error, (httpx.TimeoutException, TimeoutError)):
            return TransportError(
                f"Request timed out after {self._config.ai.timeout_seconds} seconds.",
                timeout_seconds=self._config.ai.timeout_seconds,
                original_error=error,
            )

        if isinstance(error, (httpx.HTTPError, OSError)):
            return TransportError(
                "Cannot reach the Gemini API (network failure).",
                original_error=error,
            )

        return TransportError(
            f"Unexpected failure calling Gemini: {type(error).__name__}",
            original_error=error,
        )


def get_client(config: AppConfig | None = None) -> AnalysisClient:
    """Factory returning a configured AnalysisClient.

    Raises:
        APIKeyNotFoundError: If no API key is available.
    """
    return AnalysisClient(config=config)
