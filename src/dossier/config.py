"""Central Configuration System for Dossier Analyst.

This module is the single source of truth for application configuration.
Every other module that needs settings imports from here.

Configuration comes from two sources only (highest wins):
1. Environment variables (DOSSIER_*, nested sections with ``__``)
2. In-code defaults

The Gemini API key is never part of the settings object. It is read from
``GEMINI_API_KEY`` (or the legacy ``API_KEY``) when the analysis client is
created, and its absence is fatal: the application refuses to start.

Example:
    >>> from dossier.config import get_config, get_api_key
    >>>
    >>> cfg = get_config()
    >>> print(cfg.ai.model_name)  # gemini-2.5-flash by default
    >>> key = get_api_key()  # raises APIKeyNotFoundError when unset

Environment variables:
    DOSSIER_AI__MODEL_NAME=gemini-2.5-flash
    DOSSIER_AI__TIMEOUT_SECONDS=120
    DOSSIER_AI__RESPONSE_LANGUAGE=English
    DOSSIER_WEB__HOST=127.0.0.1
    DOSSIER_WEB__PORT=8000
    DOSSIER_DEBUG=false
"""

from __future__ import annotations

import functools
import logging
import os

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

# Configure module logger - never log secrets
logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigurationError(Exception):
    """Base exception for configuration errors.

    Configuration errors are unrecoverable: they are raised while the
    application initializes and halt startup instead of degrading.
    """

    pass


class APIKeyNotFoundError(ConfigurationError):
    """Exception raised when no Gemini API key is present in the environment."""

    pass


# =============================================================================
# Configuration Models
# =============================================================================


class AIConfig(BaseModel):
    """Configuration for the Gemini analysis call.

    Attributes:
        model_name: Gemini model identifier used for every analysis.
        timeout_seconds: Request timeout for the single analysis call.
        temperature: Optional sampling temperature. None keeps the model default.
        response_language: Language the whole structured response is pinned to.
    """

    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for multimodal analysis.",
    )
    timeout_seconds: int = Field(
        default=120, ge=10, le=600, description="Request timeout in seconds."
    )
    temperature: float | None = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Sampling temperature (None = model default).",
    )
    response_language: str = Field(
        default="English",
        min_length=1,
        description="Single output locale for every analysis report.",
    )


class WebConfig(BaseModel):
    """Configuration for the operator console web server."""

    host: str = Field(default="127.0.0.1", description="Interface to bind.")
    port: int = Field(default=8000, ge=1, le=65535, description="Port to bind.")
    title: str = Field(
        default="FIVE EYES // MULTIMODAL ANALYSIS AGENT",
        description="Banner shown in the console header.",
    )


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Combines all configuration sections and supports loading from environment
    variables with the DOSSIER_ prefix.

    Attributes:
        ai: Gemini call settings.
        web: Web console settings.
        debug: Enable debug mode (verbose logging).
        verbose: Enable verbose output to console.

    Example:
        >>> config = AppConfig()
        >>> config.ai.timeout_seconds
        120
    """

    ai: AIConfig = Field(default_factory=AIConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    debug: bool = Field(default=False, description="Enable debug mode.")
    verbose: bool = Field(default=False, description="Enable verbose output.")

    model_config = {
        "env_prefix": "DOSSIER_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }


# =============================================================================
# API Key Lookup
# =============================================================================


ENV_VAR_NAMES: tuple[str, ...] = ("GEMINI_API_KEY", "API_KEY")


def read_api_key_from_environment() -> str | None:
    """Return the first non-blank API key found in the environment.

    Returns:
        The stripped key string, or None if no variable is set.
    """
    for name in ENV_VAR_NAMES:
        key = os.environ.get(name)
        if key and key.strip():
            logger.debug("API key loaded from environment variable %s", name)
            return key.strip()
    return None


def get_api_key() -> SecretStr:
    """Get the Gemini API key from the process environment.

    Returns:
        SecretStr wrapper around the API key.

    Raises:
        APIKeyNotFoundError: If no API key is configured.

    Example:
        >>> key = get_api_key()
        >>> # Use key.get_secret_value() only when building the SDK client
    """
    key = read_api_key_from_environment()
    if key is None:
        raise APIKeyNotFoundError(
            "No API key found. Set the GEMINI_API_KEY (or API_KEY) environment "
            "variable before starting the analysis console."
        )
    return SecretStr(key)


def has_api_key() -> bool:
    """Check whether an API key is present without exposing it."""
    return read_api_key_from_environment() is not None


@functools.lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the cached configuration singleton.

    Returns:
        Cached AppConfig instance.
    """
    return AppConfig()


def reset_config() -> None:
    """Clear the configuration cache for testing.

    After calling this, the next call to get_config() will reload
    configuration from the environment.
    """
    get_config.cache_clear()
