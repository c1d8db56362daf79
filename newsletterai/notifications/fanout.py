"""
Notification fan-out.

One notification per recipient, written as a single unordered batch. These
functions raise on total failure (e.g. database unavailable); the caller
decides whether that matters. Distribution treats it as non-fatal.
"""

from __future__ import annotations

from collections.abc import Iterable

from newsletterai.config import GENERATED_ACTION_URL
from newsletterai.notifications.models import Notification
from newsletterai.notifications.repository import BatchWriteResult, NotificationRepository
from newsletterai.observability.telemetry import counter


def received_message(title: str) -> str:
    return f'You received the "{title}" newsletter.'


def generated_message(title: str) -> str:
    return (
        f'New newsletter "{title}" generated. '
        'Check it out in "Newsletter History" to share and view.'
    )


def notify_recipients(
    user_ids: Iterable[str], newsletter_id: str, title: str
) -> BatchWriteResult:
    notifications = [
        Notification(user_id=user_id, newsletter_id=newsletter_id, message=received_message(title))
        for user_id in dict.fromkeys(user_ids)
    ]
    result = NotificationRepository.insert_many(notifications)
    counter("notifications.written", result.written)
    if result.failed:
        counter("notifications.failed", result.failed)
    return result


def notify_generated(user_id: str, newsletter_id: str, title: str) -> BatchWriteResult:
    notification = Notification(
        user_id=user_id,
        newsletter_id=newsletter_id,
        message=generated_message(title),
        action_url=GENERATED_ACTION_URL,
    )
    result = NotificationRepository.insert_many([notification])
    counter("notifications.written", result.written)
    if result.failed:
        counter("notifications.failed", result.failed)
    return result
