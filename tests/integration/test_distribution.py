"""Integration tests for the distribution workflow"""

from __future__ import annotations

import asyncio

import pytest

from newsletterai.distribution.dispatcher import Dispatcher
from newsletterai.newsletters.errors import (
    DeliveryError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from newsletterai.newsletters.models import NewsletterStatus
from newsletterai.newsletters.repository import NewsletterRepository
from newsletterai.newsletters.service import NewsletterService
from newsletterai.notifications.repository import NotificationRepository

from conftest import FakeGenerator, FakeProvider, FakeRenderer


@pytest.fixture
def newsletter(service, users, article):
    return asyncio.run(service.generate("Weekly Digest", "Tech", [article]))


def _service_with(provider, policy="override"):
    return NewsletterService(
        generator=FakeGenerator(),
        renderer=FakeRenderer(),
        dispatcher=Dispatcher(provider=provider),
        send_policy=policy,
    )


@pytest.mark.parametrize("user_ids", [[], None, ["", "  "]])
def test_empty_recipient_list_rejected(service, newsletter, provider, user_ids):
    with pytest.raises(ValidationError):
        asyncio.run(service.send(newsletter.id, user_ids))

    assert NewsletterRepository.get_by_id(newsletter.id).status is NewsletterStatus.NOT_SENT
    assert provider.deliveries == []


def test_unknown_newsletter(service, users):
    with pytest.raises(NotFoundError):
        asyncio.run(service.send("missing", ["u1"]))


def test_send_marks_sent_and_delivers_isolated(service, newsletter, provider):
    outcome = asyncio.run(service.send(newsletter.id, ["u1", "u2"]))

    assert outcome.newsletter.status is NewsletterStatus.SENT
    assert outcome.newsletter.recipients == ["u1", "u2"]
    assert outcome.requested == 2
    assert outcome.delivered == 2
    assert not outcome.notifications_degraded

    message, addresses = provider.deliveries[0]
    assert message.subject == "Your Newsletter: Weekly Digest"
    assert message.html == NewsletterRepository.get_by_id(newsletter.id).markup
    assert addresses == ["ada@example.com", "grace@example.com"]


def test_repeated_send_unions_recipients(service, newsletter):
    asyncio.run(service.send(newsletter.id, ["u1", "u2"]))
    asyncio.run(service.send(newsletter.id, ["u2", "u3", "u3"]))

    stored = NewsletterRepository.get_by_id(newsletter.id)
    assert stored.status is NewsletterStatus.SENT
    assert stored.recipients == ["u1", "u2", "u3"]


def test_unknown_users_are_recorded_but_not_emailed(service, newsletter, provider):
    outcome = asyncio.run(service.send(newsletter.id, ["u1", "ghost"]))

    assert outcome.requested == 2
    assert provider.deliveries[0][1] == ["ada@example.com"]
    assert NewsletterRepository.get_by_id(newsletter.id).recipients == ["ghost", "u1"]


def test_delivery_failure_changes_nothing(newsletter):
    service = _service_with(FakeProvider(error=DeliveryError("provider down")))

    with pytest.raises(DeliveryError):
        asyncio.run(service.send(newsletter.id, ["u1"]))

    stored = NewsletterRepository.get_by_id(newsletter.id)
    assert stored.status is NewsletterStatus.NOT_SENT
    assert stored.recipients == []
    assert NotificationRepository.list_for_user("u1") == []


def test_unconfigured_provider_skips_delivery_but_records_send(newsletter):
    provider = FakeProvider(configured=False)
    service = _service_with(provider)

    outcome = asyncio.run(service.send(newsletter.id, ["u1"]))

    assert outcome.delivery_skipped
    assert provider.deliveries == []
    assert outcome.newsletter.status is NewsletterStatus.SENT
    assert outcome.newsletter.recipients == ["u1"]


def test_recipients_are_notified(service, newsletter):
    asyncio.run(service.send(newsletter.id, ["u1", "u2"]))

    for user_id in ("u1", "u2"):
        notifications = NotificationRepository.list_for_user(user_id)
        assert [n.message for n in notifications] == ['You received the "Weekly Digest" newsletter.']
        assert notifications[0].newsletter_id == newsletter.id


def test_notification_failure_does_not_revert_send(service, newsletter, monkeypatch):
    def broken(notifications):
        raise RuntimeError("notifications collection unavailable")

    monkeypatch.setattr(NotificationRepository, "insert_many", staticmethod(broken))

    outcome = asyncio.run(service.send(newsletter.id, ["u1", "u2"]))

    assert outcome.notifications_degraded
    stored = NewsletterRepository.get_by_id(newsletter.id)
    assert stored.status is NewsletterStatus.SENT
    assert stored.recipients == ["u1", "u2"]


def test_declined_then_send_forces_sent_under_override(service, newsletter):
    asyncio.run(service.update_status(newsletter.id, "declined"))

    outcome = asyncio.run(service.send(newsletter.id, ["u1"]))

    assert outcome.newsletter.status is NewsletterStatus.SENT


def test_declined_then_send_refused_under_guarded_policy(newsletter):
    provider = FakeProvider()
    service = _service_with(provider, policy="guarded")
    asyncio.run(service.update_status(newsletter.id, "declined"))

    with pytest.raises(IllegalTransitionError):
        asyncio.run(service.send(newsletter.id, ["u1"]))

    assert provider.deliveries == []
    assert NewsletterRepository.get_by_id(newsletter.id).status is NewsletterStatus.DECLINED


def test_guarded_policy_sends_approved(newsletter):
    service = _service_with(FakeProvider(), policy="guarded")
    asyncio.run(service.update_status(newsletter.id, "approved"))

    outcome = asyncio.run(service.send(newsletter.id, ["u1"]))

    assert outcome.newsletter.status is NewsletterStatus.SENT


def test_update_status_unknown_newsletter(service, temp_db):
    with pytest.raises(NotFoundError):
        asyncio.run(service.update_status("missing", "pending"))


def test_delete_then_download(service, newsletter):
    asyncio.run(service.delete(newsletter.id))

    with pytest.raises(NotFoundError):
        asyncio.run(service.download(newsletter.id))
    with pytest.raises(NotFoundError):
        asyncio.run(service.delete(newsletter.id))
