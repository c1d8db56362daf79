"""Tests for the Resend delivery client"""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from newsletterai.distribution.mailer import EmailMessage, ResendMailer, chunked
from newsletterai.newsletters.errors import DeliveryError, DeliveryTimeoutError
from newsletterai.observability.telemetry import get_counter

MESSAGE = EmailMessage(subject="Your Newsletter: Weekly Digest", html="<!DOCTYPE html><p>x</p>")


@pytest.fixture
def sent_batches(monkeypatch):
    batches: list[list[dict]] = []

    def fake_send(envelopes):
        batches.append(envelopes)
        return {"data": [{"id": str(i)} for i in range(len(envelopes))]}

    monkeypatch.setattr("resend.Batch.send", fake_send)
    return batches


def test_chunked():
    assert chunked(["a", "b", "c"], 2) == [["a", "b"], ["c"]]
    assert chunked([], 2) == []
    assert chunked(["a"], 0) == [["a"]]


def test_one_envelope_per_address_in_batches(sent_batches):
    mailer = ResendMailer(api_key="re_test", from_email="news@example.com", batch_size=2)
    addresses = [f"user{i}@example.com" for i in range(5)]

    delivered = asyncio.run(mailer.deliver(MESSAGE, addresses))

    assert delivered == 5
    assert [len(batch) for batch in sent_batches] == [2, 2, 1]
    envelopes = [envelope for batch in sent_batches for envelope in batch]
    assert [envelope["to"] for envelope in envelopes] == [[address] for address in addresses]
    assert all(envelope["from"] == "NewsLetterAI <news@example.com>" for envelope in envelopes)
    assert all(envelope["subject"] == MESSAGE.subject for envelope in envelopes)
    assert all(envelope["html"] == MESSAGE.html for envelope in envelopes)


def test_batch_failure_raises_delivery_error(monkeypatch):
    calls = []

    def flaky_send(envelopes):
        calls.append(envelopes)
        if len(calls) == 2:
            raise RuntimeError("provider rejected request")
        return {"data": []}

    monkeypatch.setattr("resend.Batch.send", flaky_send)
    mailer = ResendMailer(api_key="re_test", batch_size=1)

    with pytest.raises(DeliveryError, match="provider rejected"):
        asyncio.run(mailer.deliver(MESSAGE, ["a@example.com", "b@example.com", "c@example.com"]))

    assert len(calls) == 2


def test_timeout_raises_delivery_timeout(monkeypatch):
    mailer = ResendMailer(api_key="re_test", timeout_seconds=0.01)
    monkeypatch.setattr(mailer, "_send_batch", lambda envelopes: time.sleep(0.2))

    with pytest.raises(DeliveryTimeoutError):
        asyncio.run(mailer.deliver(MESSAGE, ["a@example.com"]))


def test_not_configured():
    mailer = ResendMailer(api_key=None)

    assert not mailer.is_configured
    with pytest.raises(DeliveryError):
        asyncio.run(mailer.deliver(MESSAGE, ["a@example.com"]))


def test_batch_accepted_after_timeout_is_counted(monkeypatch):
    unblock = threading.Event()

    def slow_send(envelopes):
        unblock.wait(5)
        return {"data": [{"id": "1"} for _ in envelopes]}

    monkeypatch.setattr("resend.Batch.send", slow_send)
    mailer = ResendMailer(api_key="re_test", timeout_seconds=0.05)

    async def scenario():
        with pytest.raises(DeliveryTimeoutError):
            await mailer.deliver(MESSAGE, ["a@example.com", "b@example.com"])
        unblock.set()
        for _ in range(200):
            if get_counter("delivery.late_accepted"):
                break
            await asyncio.sleep(0.01)

    asyncio.run(scenario())

    assert get_counter("delivery.timeout") == 1
    assert get_counter("delivery.late_accepted") == 2
