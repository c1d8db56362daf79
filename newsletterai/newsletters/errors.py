"""
Error taxonomy for the generation and distribution pipeline.

Route handlers translate these into HTTP responses; every other layer
raises them and lets them propagate. ``ValidationError`` here is unrelated
to ``pydantic.ValidationError``.
"""

from __future__ import annotations


class NewsletterError(Exception):
    """Base exception for newsletter pipeline errors."""


class ValidationError(NewsletterError):
    """Required input missing; rejected before any external call."""


class UpstreamError(NewsletterError):
    """The generation service failed or returned something unusable."""


class UpstreamContentError(UpstreamError):
    """Generated markup failed validation."""


class UpstreamTimeoutError(UpstreamError):
    """Generation did not complete within LLM_TIMEOUT_SECONDS."""


class GenerationNotConfiguredError(UpstreamError):
    """No generation credentials configured for this process."""


class RenderError(NewsletterError):
    """Rendering engine failed to produce an artifact."""


class RenderTimeoutError(RenderError):
    """Rendering did not complete within RENDER_TIMEOUT_SECONDS."""


class PersistenceError(NewsletterError):
    """Store read or write failed."""


class DeliveryError(NewsletterError):
    """Delivery provider rejected or failed the dispatch."""


class DeliveryTimeoutError(DeliveryError):
    """Delivery did not complete within DELIVERY_TIMEOUT_SECONDS."""


class NotFoundError(NewsletterError):
    """Unknown newsletter (or user) identity."""


class InvalidStatusError(NewsletterError):
    """Status value outside the enumerated set."""


class IllegalTransitionError(NewsletterError):
    """Transition refused by the active send policy."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move newsletter from '{current}' to '{target}'")
        self.current = current
        self.target = target
