"""
Distribution state machine.

    not_sent -> pending -> approved -> sent
    any non-terminal state -> declined   (terminal)

Two entry points move a newsletter between states:

- ``status_update``: the administrative PATCH. Accepts any member of the
  enumerated set and applies it unconditionally; only unknown values are
  rejected.
- ``send_transition``: what a successful send does. Under the ``override``
  policy it forces ``sent`` from any state (including ``declined``); under
  ``guarded`` only ``approved`` and ``sent`` (a re-send) may be sent.
"""

from __future__ import annotations

from enum import Enum

from newsletterai.newsletters.errors import IllegalTransitionError, InvalidStatusError
from newsletterai.newsletters.models import NewsletterStatus

INITIAL_STATE = NewsletterStatus.NOT_SENT
TERMINAL_STATES = frozenset({NewsletterStatus.DECLINED})

# Forward edges of the approval workflow (documentation and guarded policy)
WORKFLOW_EDGES: dict[NewsletterStatus, frozenset[NewsletterStatus]] = {
    NewsletterStatus.NOT_SENT: frozenset(
        {NewsletterStatus.PENDING, NewsletterStatus.DECLINED}
    ),
    NewsletterStatus.PENDING: frozenset(
        {NewsletterStatus.APPROVED, NewsletterStatus.DECLINED}
    ),
    NewsletterStatus.APPROVED: frozenset({NewsletterStatus.SENT, NewsletterStatus.DECLINED}),
    NewsletterStatus.SENT: frozenset({NewsletterStatus.SENT, NewsletterStatus.DECLINED}),
    NewsletterStatus.DECLINED: frozenset(),
}


class SendPolicy(str, Enum):
    OVERRIDE = "override"
    GUARDED = "guarded"


def parse_status(value: object) -> NewsletterStatus:
    """Map a client-supplied value onto the enumerated set."""
    if isinstance(value, NewsletterStatus):
        return value
    try:
        return NewsletterStatus(value)
    except ValueError:
        raise InvalidStatusError(f"Unknown newsletter status: {value!r}") from None


def parse_policy(value: str | SendPolicy) -> SendPolicy:
    try:
        return SendPolicy(value)
    except ValueError:
        raise ValueError(f"Unknown send policy: {value!r}") from None


def status_update(current: NewsletterStatus, target: object) -> NewsletterStatus:
    """Administrative status change: any enumerated target, applied unconditionally."""
    return parse_status(target)


def is_legal(current: NewsletterStatus, target: NewsletterStatus) -> bool:
    """Whether ``target`` is a forward edge of the approval workflow."""
    return target in WORKFLOW_EDGES[current]


def can_send(current: NewsletterStatus, policy: SendPolicy) -> bool:
    if policy is SendPolicy.OVERRIDE:
        return True
    return is_legal(current, NewsletterStatus.SENT)


def send_transition(current: NewsletterStatus, policy: SendPolicy) -> NewsletterStatus:
    """
    State a successful send moves the newsletter to.

    Raises:
        IllegalTransitionError: policy is guarded and ``current`` can't be sent
    """
    if not can_send(current, policy):
        raise IllegalTransitionError(current.value, NewsletterStatus.SENT.value)
    return NewsletterStatus.SENT
