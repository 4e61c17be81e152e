"""Stored subscription status vocabulary and the single mapping into it."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union


class SubscriptionStatus(str, Enum):
    """Subscription status as stored on ``profiles.subscription_status``.

    The members are Stripe's own subscription statuses; nothing outside this
    set is ever written.
    """

    ACTIVE = "active"
    TRIALING = "trialing"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    PAUSED = "paused"


class UnknownSubscriptionStatus(ValueError):
    """Raised when a processor status has no stored counterpart."""


PAID_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})

# Stripe statuses that collapse onto a stored member.
_PROCESSOR_ALIASES = {
    "incomplete_expired": SubscriptionStatus.INCOMPLETE,
}


def normalize_status(value: Any) -> SubscriptionStatus:
    """Map a Stripe subscription status onto the stored enumeration.

    Every branch of the webhook reconciler goes through this function. Values
    Stripe does not document (``pending``, empty strings, ``None``) raise
    ``UnknownSubscriptionStatus`` instead of being guessed.
    """

    if isinstance(value, SubscriptionStatus):
        return value
    if not isinstance(value, str) or not value.strip():
        raise UnknownSubscriptionStatus(f"Unrecognized subscription status: {value!r}")
    normalised = value.strip().lower()
    try:
        return SubscriptionStatus(normalised)
    except ValueError:
        alias = _PROCESSOR_ALIASES.get(normalised)
        if alias is None:
            raise UnknownSubscriptionStatus(f"Unrecognized subscription status: {value!r}") from None
        return alias


def is_paid(value: Optional[Union[SubscriptionStatus, str]]) -> bool:
    """Return True when the status allows publishing a listing."""

    if value is None:
        return False
    try:
        return normalize_status(value) in PAID_STATUSES
    except UnknownSubscriptionStatus:
        return False
