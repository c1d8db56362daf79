"""
Newsletter Service - generation pipeline and distribution workflow.

Orchestrates between:
- Prompt composer / content validator (pure)
- TextGenerator (generation service)
- ArtifactRenderer (headless Chrome)
- NewsletterRepository (persistence)
- Dispatcher (recipient resolution + delivery)
- Notification fan-out (best-effort)

Generation is all-or-nothing: a record is only written once the markup has
been validated and rendered. Distribution records the send (status plus
recipient union) only after delivery succeeded; notifications come last and
can't undo it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from datetime import date
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from newsletterai.config import SEND_POLICY
from newsletterai.distribution.dispatcher import Dispatcher
from newsletterai.infrastructure.idempotency import generation_key
from newsletterai.llm.client import GeminiTextGenerator, TextGenerator
from newsletterai.newsletters.errors import (
    NewsletterError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from newsletterai.newsletters.models import (
    ArticleSummary,
    Newsletter,
    NewsletterSummary,
    SendOutcome,
)
from newsletterai.newsletters.prompt import compose_prompt
from newsletterai.newsletters.renderer import ArtifactRenderer, get_renderer
from newsletterai.newsletters.repository import NewsletterRepository
from newsletterai.newsletters.state import (
    SendPolicy,
    parse_policy,
    parse_status,
    send_transition,
)
from newsletterai.newsletters.validator import validate_markup
from newsletterai.notifications.fanout import notify_generated, notify_recipients
from newsletterai.observability.logging import get_logger
from newsletterai.observability.telemetry import counter, log_event, time_block
from newsletterai.users.models import User
from newsletterai.users.repository import CategoryRepository

logger = get_logger(__name__)

T = TypeVar("T")


async def _store(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking store call off the event loop; storage failures become PersistenceError."""
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except NewsletterError:
        raise
    except Exception as e:
        counter("store.failed")
        logger.error("Store call %s failed: %s", getattr(func, "__name__", func), e)
        raise PersistenceError(f"Store operation failed: {e}") from e


def parse_articles(articles: Iterable[Any]) -> list[ArticleSummary]:
    """
    Raises:
        ValidationError: an article is malformed (e.g. missing title)
    """
    parsed = []
    for index, article in enumerate(articles):
        if isinstance(article, ArticleSummary):
            parsed.append(article)
            continue
        try:
            parsed.append(ArticleSummary.model_validate(article))
        except PydanticValidationError as e:
            raise ValidationError(f"Article {index + 1} is invalid") from e
    return parsed


def article_ref(article: ArticleSummary) -> str:
    return article.id or article.original_url or article.title


class NewsletterService:
    """
    Service layer for newsletter operations.

    Collaborators default to the process-wide singletons; tests pass fakes.
    """

    def __init__(
        self,
        generator: TextGenerator | None = None,
        renderer: ArtifactRenderer | None = None,
        dispatcher: Dispatcher | None = None,
        send_policy: SendPolicy | str = SEND_POLICY,
    ):
        self.repository = NewsletterRepository
        self.generator = generator or GeminiTextGenerator()
        self.renderer = renderer or get_renderer()
        self.dispatcher = dispatcher or Dispatcher()
        self.send_policy = parse_policy(send_policy)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(
        self,
        title: str | None,
        category: str | None,
        articles: list[Any] | None,
        requested_by: str | None = None,
        edition_date: date | None = None,
    ) -> Newsletter:
        """
        Run the generation pipeline and persist the result.

        Args:
            title: Newsletter title
            category: Category name (flyer lookup, listing key)
            articles: Ordered article summaries (dicts or ArticleSummary)
            requested_by: User id to notify once the newsletter is stored
            edition_date: Date printed in the header (defaults to today)

        Returns:
            Created Newsletter (status not_sent, artifact and markup present)

        Raises:
            ValidationError: title, category or articles missing/empty
            UpstreamError: generation failed, timed out, or output rejected
            RenderError: rendering failed or timed out
            PersistenceError: store read/write failed
        """
        title = (title or "").strip()
        category = (category or "").strip()
        missing = [
            name
            for name, value in (("title", title), ("category", category), ("articles", articles))
            if not value
        ]
        if missing:
            counter("generation.rejected")
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        parsed = parse_articles(articles or [])
        refs = [article_ref(a) for a in parsed]

        log_event("generation.started", category=category, articles=len(parsed))

        category_record = await _store(CategoryRepository.get_by_name, category)
        flyer = category_record.flyer_image_url if category_record else None

        prompt = compose_prompt(parsed, title, flyer, edition_date or date.today())

        try:
            with time_block("generation"):
                raw = await self.generator.generate(prompt.text)
            markup = validate_markup(raw)

            artifact = await self.renderer.render(markup)

            newsletter = await _store(
                self.repository.create_generated,
                title=title,
                category=category,
                article_refs=refs,
                markup=markup,
                artifact=artifact,
                content_key=generation_key(title, category, refs),
            )
        except NewsletterError as e:
            counter("generation.failed")
            log_event("generation.failed", category=category, error=type(e).__name__)
            raise

        counter("generation.succeeded")
        log_event(
            "generation.succeeded",
            newsletter_id=newsletter.id,
            category=category,
            artifact_bytes=artifact.size,
        )

        if requested_by:
            try:
                await asyncio.to_thread(notify_generated, requested_by, newsletter.id, title)
            except Exception as e:
                counter("notifications.failed")
                logger.warning(
                    "Failed to notify %s about newsletter %s: %s", requested_by, newsletter.id, e
                )

        return newsletter

    # ------------------------------------------------------------------
    # Distribution
    # ------------------------------------------------------------------

    async def send(self, newsletter_id: str, user_ids: list[str] | None) -> SendOutcome:
        """
        Deliver a newsletter and record the send.

        Order: validate -> load -> policy check -> deliver -> record status
        and recipient union -> notify. Nothing is recorded unless delivery
        succeeded (or was skipped because no provider is configured).

        Raises:
            ValidationError: empty recipient list
            NotFoundError: unknown newsletter
            IllegalTransitionError: guarded policy refuses the current status
            DeliveryError: provider failed
            PersistenceError: store read/write failed
        """
        recipients = [uid.strip() for uid in (user_ids or []) if uid and uid.strip()]
        recipients = list(dict.fromkeys(recipients))
        if not recipients:
            counter("distribution.rejected")
            raise ValidationError("At least one recipient is required")

        newsletter = await _store(self.repository.get_by_id, newsletter_id)
        if newsletter is None:
            raise NotFoundError("Newsletter not found")

        target = send_transition(newsletter.status, self.send_policy)

        log_event(
            "distribution.started",
            newsletter_id=newsletter_id,
            status=newsletter.status.value,
            recipients=len(recipients),
        )

        try:
            result = await self.dispatcher.dispatch(newsletter, recipients)
        except NewsletterError as e:
            counter("distribution.failed")
            log_event("distribution.failed", newsletter_id=newsletter_id, error=type(e).__name__)
            raise

        recorded = await _store(
            self.repository.record_distribution, newsletter_id, target, recipients
        )
        if not recorded:
            # Deleted between load and record
            raise NotFoundError("Newsletter not found")

        counter("distribution.succeeded")

        degraded = False
        try:
            written = await asyncio.to_thread(
                notify_recipients, recipients, newsletter_id, newsletter.title
            )
            degraded = not written.ok
        except Exception as e:
            degraded = True
            counter("notifications.failed")
            logger.warning("Notification fan-out failed for newsletter %s: %s", newsletter_id, e)

        if degraded:
            log_event("distribution.notifications_degraded", newsletter_id=newsletter_id)

        updated = await _store(self.repository.get_by_id, newsletter_id, include_payload=False)
        if updated is None:
            raise NotFoundError("Newsletter not found")

        return SendOutcome(
            newsletter=updated,
            requested=len(recipients),
            delivered=result.delivered,
            delivery_skipped=result.skipped,
            notifications_degraded=degraded,
        )

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    async def update_status(self, newsletter_id: str, status: Any) -> Newsletter:
        """
        Set status unconditionally (any enumerated value).

        Raises:
            InvalidStatusError: value outside the enumerated set
            NotFoundError: unknown newsletter
        """
        target = parse_status(status)

        updated = await _store(self.repository.update_status, newsletter_id, target)
        if not updated:
            raise NotFoundError("Newsletter not found")

        newsletter = await _store(self.repository.get_by_id, newsletter_id, include_payload=False)
        if newsletter is None:
            raise NotFoundError("Newsletter not found")
        return newsletter

    async def delete(self, newsletter_id: str) -> None:
        deleted = await _store(self.repository.delete, newsletter_id)
        if not deleted:
            raise NotFoundError("Newsletter not found")

    async def download(self, newsletter_id: str) -> Newsletter:
        """
        Raises:
            NotFoundError: unknown newsletter, or one without an artifact
        """
        newsletter = await _store(self.repository.get_by_id, newsletter_id)
        if newsletter is None or not newsletter.has_artifact:
            raise NotFoundError("Newsletter not found")
        return newsletter

    async def list_for_user(self, user: User, limit: int | None = None) -> list[NewsletterSummary]:
        return await _store(self.repository.list_by_categories, user.categories, limit)


_service: NewsletterService | None = None


def get_newsletter_service() -> NewsletterService:
    """Get singleton service instance."""
    global _service
    if _service is None:
        _service = NewsletterService()
    return _service
