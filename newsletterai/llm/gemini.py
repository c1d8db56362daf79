"""
Gemini Model Manager - process-wide singleton for the generation service.

Supports two backends:
  1. google-generativeai - uses GEMINI_API_KEY (or GOOGLE_API_KEY)
  2. Vertex AI SDK - uses GOOGLE_CLOUD_PROJECT + service account

The model is created lazily on first use. When neither credential is set the
manager reports "not configured" instead of handing out None.
"""

from __future__ import annotations

from functools import lru_cache

from newsletterai.infrastructure.settings import (
    GEMINI_API_KEY,
    GEMINI_LOCATION,
    GEMINI_MODEL,
    GOOGLE_CLOUD_PROJECT,
)
from newsletterai.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when the Gemini model cannot be initialized."""


def is_configured() -> bool:
    """Whether credentials for either backend are present (no API call)."""
    return bool(GEMINI_API_KEY or GOOGLE_CLOUD_PROJECT)


@lru_cache(maxsize=1)
def get_gemini_model():
    """
    Get or create the shared Gemini model instance.

    API-key backend first (matches how deployments are configured), then
    Vertex AI.

    Raises:
        GeminiInitializationError: no credentials, or SDK initialization failed
    """
    if GEMINI_API_KEY:
        try:
            import google.generativeai as genai

            genai.configure(api_key=GEMINI_API_KEY)
            model = genai.GenerativeModel(GEMINI_MODEL)
        except Exception as e:
            logger.error("Failed to initialize Gemini (google-generativeai): %s", e)
            raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

        logger.info("Initialized Gemini model (google-generativeai): model=%s", GEMINI_MODEL)
        return model

    if GOOGLE_CLOUD_PROJECT:
        try:
            import vertexai
            from vertexai.generative_models import GenerativeModel

            vertexai.init(project=GOOGLE_CLOUD_PROJECT, location=GEMINI_LOCATION)
            model = GenerativeModel(GEMINI_MODEL)
        except Exception as e:
            logger.error("Failed to initialize Gemini (Vertex AI): %s", e)
            raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

        logger.info(
            "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
            GOOGLE_CLOUD_PROJECT,
            GEMINI_LOCATION,
            GEMINI_MODEL,
        )
        return model

    raise GeminiInitializationError(
        "Gemini is not configured. Set GEMINI_API_KEY or GOOGLE_CLOUD_PROJECT."
    )


def clear_model_cache() -> None:
    """Clear the cached model instance (tests, reconfiguration)."""
    get_gemini_model.cache_clear()
    logger.info("Cleared Gemini model cache")
