"""
Content validator for generated newsletter markup.

The only gate between the generation service and the renderer: nothing that
fails here is rendered or stored.
"""

from __future__ import annotations

import re

from newsletterai.config import CONTENT_DOCUMENT_MARKER, CONTENT_MIN_CHARS
from newsletterai.newsletters.errors import UpstreamContentError
from newsletterai.observability.telemetry import counter

# ```html ... ``` (or bare ```) around the whole response
_FENCE_OPEN = re.compile(r"^\s*```[a-zA-Z]*[ \t]*\r?\n")
_FENCE_CLOSE = re.compile(r"\r?\n?```\s*$")


def strip_code_fence(raw: str) -> str:
    """Remove a markdown code fence wrapping the whole response, if any."""
    text = _FENCE_OPEN.sub("", raw, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def validate_markup(
    raw: str | None,
    min_chars: int = CONTENT_MIN_CHARS,
    marker: str = CONTENT_DOCUMENT_MARKER,
) -> str:
    """
    Return cleaned markup, or raise if it can't be trusted.

    Raises:
        UpstreamContentError: empty, shorter than ``min_chars``, or not
            starting with the document marker (case-insensitive)
    """
    if not raw or not raw.strip():
        counter("validator.rejected.empty")
        raise UpstreamContentError("Generation service returned an empty response")

    markup = strip_code_fence(raw)

    if len(markup) < min_chars:
        counter("validator.rejected.short")
        raise UpstreamContentError(
            f"Generated markup too short ({len(markup)} < {min_chars} chars)"
        )

    if not markup.lower().startswith(marker.lower()):
        counter("validator.rejected.marker")
        raise UpstreamContentError("Generated markup does not start with a document marker")

    return markup
