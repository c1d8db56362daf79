"""Generation service client.

One awaitable call: prompt text in, generated text out, bounded by
LLM_TIMEOUT_SECONDS. No retries here; a failed or slow generation surfaces
as an UpstreamError subclass and the caller decides what to do.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from newsletterai.config import LLM_TIMEOUT_SECONDS
from newsletterai.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from newsletterai.llm.gemini import GeminiInitializationError, get_gemini_model
from newsletterai.newsletters.errors import (
    GenerationNotConfiguredError,
    UpstreamError,
    UpstreamTimeoutError,
)
from newsletterai.observability.logging import get_logger
from newsletterai.observability.telemetry import counter

logger = get_logger(__name__)


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


class GeminiTextGenerator:
    """TextGenerator backed by the shared Gemini model."""

    def __init__(self, timeout_seconds: float = LLM_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds

    async def generate(self, prompt: str) -> str:
        """
        Raises:
            GenerationNotConfiguredError: no Gemini credentials
            UpstreamTimeoutError: no answer within timeout_seconds
            UpstreamError: any SDK/service failure
        """
        from google.api_core.exceptions import DeadlineExceeded, GoogleAPIError

        try:
            model = get_gemini_model()
        except GeminiInitializationError as e:
            raise GenerationNotConfiguredError(str(e)) from e

        generation_config = {
            "temperature": GEMINI_TEMPERATURE,
            "max_output_tokens": GEMINI_MAX_TOKENS,
        }

        try:
            response = await asyncio.wait_for(
                model.generate_content_async(prompt, generation_config=generation_config),
                timeout=self.timeout_seconds,
            )
            return response.text
        except (TimeoutError, DeadlineExceeded) as e:
            counter("llm.timeout")
            logger.warning("Generation timed out after %.0fs", self.timeout_seconds)
            raise UpstreamTimeoutError(
                f"Generation timed out after {self.timeout_seconds:.0f}s"
            ) from e
        except GoogleAPIError as e:
            counter("llm.api_error")
            logger.error("Generation service error: %s", e)
            raise UpstreamError(f"Generation service error: {e}") from e
        except ValueError as e:
            # response.text raises ValueError when the candidate was blocked
            counter("llm.blocked")
            logger.error("Generation returned no usable text: %s", e)
            raise UpstreamError(f"Generation returned no usable text: {e}") from e
