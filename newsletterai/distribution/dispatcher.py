"""
Recipient resolver and dispatcher.

Turns recipient user ids into email addresses and hands the stored markup to
the delivery provider. Either every batch is accepted or the dispatch fails;
the caller only records the send after this returns.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from newsletterai.distribution.mailer import DeliveryProvider, EmailMessage, get_mailer
from newsletterai.newsletters.errors import PersistenceError
from newsletterai.newsletters.models import Newsletter
from newsletterai.observability.logging import get_logger
from newsletterai.observability.telemetry import log_event
from newsletterai.users.repository import UserRepository

logger = get_logger(__name__)


def subject_for(title: str) -> str:
    return f"Your Newsletter: {title}"


def resolve_addresses(user_ids: list[str]) -> list[str]:
    """Email addresses for known users, deduplicated, unknown ids skipped."""
    users = UserRepository.get_many(user_ids)
    return list(dict.fromkeys(user.email for user in users if user.email))


@dataclass
class DispatchResult:
    requested: int
    resolved: int
    delivered: int
    skipped: bool = False


class Dispatcher:
    def __init__(self, provider: DeliveryProvider | None = None):
        self.provider = provider or get_mailer()

    async def dispatch(self, newsletter: Newsletter, user_ids: list[str]) -> DispatchResult:
        """
        Deliver the newsletter's markup to the given users.

        Raises:
            PersistenceError: recipient lookup failed
            DeliveryError: provider rejected or failed any batch
        """
        unique_ids = list(dict.fromkeys(user_ids))

        try:
            addresses = await asyncio.to_thread(resolve_addresses, unique_ids)
        except Exception as e:
            raise PersistenceError(f"Failed to resolve recipients: {e}") from e

        result = DispatchResult(requested=len(unique_ids), resolved=len(addresses), delivered=0)

        if not self.provider.is_configured:
            result.skipped = True
            logger.warning("Delivery provider not configured, skipping email for %s", newsletter.id)
            log_event("distribution.delivery_skipped", newsletter_id=newsletter.id)
            return result

        if not addresses:
            logger.info("No resolvable addresses for newsletter %s", newsletter.id)
            return result

        message = EmailMessage(subject=subject_for(newsletter.title), html=newsletter.markup or "")
        result.delivered = await self.provider.deliver(message, addresses)

        log_event(
            "distribution.delivered",
            newsletter_id=newsletter.id,
            requested=result.requested,
            resolved=result.resolved,
            delivered=result.delivered,
        )
        return result
