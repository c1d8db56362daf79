"""
Delivery provider client (Resend).

Address-isolated: every resolved address gets its own envelope, submitted to
the provider's batch endpoint in chunks of DELIVERY_BATCH_SIZE. No recipient
ever sees another recipient's address.

With no RESEND_API_KEY the mailer reports itself as not configured and the
dispatcher skips delivery entirely.
"""

from __future__ import annotations

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Protocol

from newsletterai.config import (
    DELIVERY_BATCH_SIZE,
    DELIVERY_TIMEOUT_SECONDS,
    FROM_EMAIL,
    FROM_NAME,
    RESEND_API_KEY,
)
from newsletterai.newsletters.errors import DeliveryError, DeliveryTimeoutError
from newsletterai.observability.logging import get_logger
from newsletterai.observability.telemetry import counter
from newsletterai.utils.redaction import redact_email

logger = get_logger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    html: str


class DeliveryProvider(Protocol):
    @property
    def is_configured(self) -> bool: ...

    async def deliver(self, message: EmailMessage, addresses: list[str]) -> int: ...


def chunked(items: list[str], size: int) -> list[list[str]]:
    size = max(1, size)
    return [items[i : i + size] for i in range(0, len(items), size)]


def _log_late_batch(task: asyncio.Future, index: int, size: int) -> None:
    """Report how a batch abandoned on timeout actually ended."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning("Timed-out delivery batch %d failed late: %s", index, error)
        return
    counter("delivery.late_accepted", size)
    logger.warning(
        "Timed-out delivery batch %d was accepted late (%d envelopes delivered, send not recorded)",
        index,
        size,
    )


class ResendMailer:
    """DeliveryProvider backed by the Resend batch API."""

    def __init__(
        self,
        api_key: str | None = RESEND_API_KEY,
        from_email: str = FROM_EMAIL,
        from_name: str = FROM_NAME,
        batch_size: int = DELIVERY_BATCH_SIZE,
        timeout_seconds: float = DELIVERY_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.sender = f"{from_name} <{from_email}>"
        self.batch_size = batch_size
        self.timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _envelopes(self, message: EmailMessage, addresses: list[str]) -> list[dict[str, Any]]:
        return [
            {
                "from": self.sender,
                "to": [address],
                "subject": message.subject,
                "html": message.html,
            }
            for address in addresses
        ]

    def _send_batch(self, envelopes: list[dict[str, Any]]) -> Any:
        import resend

        resend.api_key = self.api_key
        return resend.Batch.send(envelopes)

    async def deliver(self, message: EmailMessage, addresses: list[str]) -> int:
        """
        Send one envelope per address.

        Returns:
            Number of envelopes accepted by the provider

        Raises:
            DeliveryError: provider not configured, or any batch rejected
            DeliveryTimeoutError: a batch exceeded timeout_seconds
        """
        if not self.is_configured:
            raise DeliveryError("Delivery provider is not configured")

        delivered = 0
        batches = chunked(addresses, self.batch_size)
        for index, batch in enumerate(batches, start=1):
            task = asyncio.ensure_future(
                asyncio.to_thread(self._send_batch, self._envelopes(message, batch))
            )
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=self.timeout_seconds)
            except TimeoutError as e:
                counter("delivery.timeout")
                logger.error(
                    "Delivery batch %d/%d timed out (%d already delivered); "
                    "its %d envelopes may still be accepted by the provider",
                    index,
                    len(batches),
                    delivered,
                    len(batch),
                )
                task.add_done_callback(
                    functools.partial(_log_late_batch, index=index, size=len(batch))
                )
                raise DeliveryTimeoutError(
                    f"Delivery timed out after {self.timeout_seconds:.0f}s"
                ) from e
            except Exception as e:
                counter("delivery.failed")
                logger.error(
                    "Delivery batch %d/%d failed (%d already delivered): %s",
                    index,
                    len(batches),
                    delivered,
                    e,
                )
                raise DeliveryError(f"Delivery provider error: {e}") from e

            delivered += len(batch)
            logger.info(
                "Delivered batch %d/%d (%d envelopes), first=%s",
                index,
                len(batches),
                len(batch),
                redact_email(batch[0]),
            )

        counter("delivery.envelopes", delivered)
        return delivered


_mailer: ResendMailer | None = None


def get_mailer() -> ResendMailer:
    """Get singleton mailer instance."""
    global _mailer
    if _mailer is None:
        _mailer = ResendMailer()
    return _mailer
