"""Typed decoding of Stripe webhook events.

Each event type the reconciler cares about is decoded into its own dataclass
before any database work happens. Payloads that do not have the expected
shape raise ``EventDecodeError`` so nothing is applied from a half-understood
event.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from .status import SubscriptionStatus, UnknownSubscriptionStatus, normalize_status

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_CREATED = "customer.subscription.created"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
INVOICE_PAID = "invoice.paid"
INVOICE_PAYMENT_FAILED = "invoice.payment_failed"

SUBSCRIPTION_EVENTS = frozenset({SUBSCRIPTION_CREATED, SUBSCRIPTION_UPDATED, SUBSCRIPTION_DELETED})
INVOICE_EVENTS = frozenset({INVOICE_PAID, INVOICE_PAYMENT_FAILED})

# Metadata keys checked, in order, for the owning profile id.
USER_ID_METADATA_KEYS = ("supabase_user_id", "user_id")


class EventDecodeError(ValueError):
    """Raised when a known event type carries a payload we cannot interpret."""


@dataclass(frozen=True)
class CheckoutCompleted:
    event_id: str
    user_id: Optional[str]
    customer_id: Optional[str]
    subscription_id: Optional[str]
    payment_status: Optional[str]


@dataclass(frozen=True)
class SubscriptionChanged:
    event_id: str
    event_type: str
    subscription_id: str
    customer_id: Optional[str]
    status: SubscriptionStatus
    current_period_end: Optional[datetime]
    user_id: Optional[str] = None

    @property
    def deleted(self) -> bool:
        return self.event_type == SUBSCRIPTION_DELETED


@dataclass(frozen=True)
class InvoiceOutcome:
    event_id: str
    event_type: str
    invoice_id: Optional[str]
    customer_id: Optional[str]
    subscription_id: Optional[str]

    @property
    def paid(self) -> bool:
        return self.event_type == INVOICE_PAID


@dataclass(frozen=True)
class IgnoredEvent:
    event_id: str
    event_type: str


BillingEvent = Union[CheckoutCompleted, SubscriptionChanged, InvoiceOutcome, IgnoredEvent]


def decode_event(event: Dict[str, Any]) -> BillingEvent:
    """Turn a verified Stripe event payload into a typed billing event."""

    if not isinstance(event, dict):
        raise EventDecodeError("Event payload must be a JSON object")
    event_type = event.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise EventDecodeError("Event is missing its type")
    event_id = event.get("id")
    if not isinstance(event_id, str) or not event_id:
        raise EventDecodeError("Event is missing its id")

    if event_type == CHECKOUT_COMPLETED:
        return _decode_checkout_session(event_id, _data_object(event))
    if event_type in SUBSCRIPTION_EVENTS:
        return decode_subscription(_data_object(event), event_id=event_id, event_type=event_type)
    if event_type in INVOICE_EVENTS:
        return _decode_invoice(event_id, event_type, _data_object(event))
    return IgnoredEvent(event_id=event_id, event_type=event_type)


def decode_subscription(
    subscription: Dict[str, Any],
    *,
    event_id: str,
    event_type: str = SUBSCRIPTION_UPDATED,
) -> SubscriptionChanged:
    """Decode a Stripe subscription object, from an event or a direct retrieval."""

    if not isinstance(subscription, dict):
        raise EventDecodeError("Subscription payload must be an object")
    if subscription.get("object") not in (None, "subscription"):
        raise EventDecodeError(f"Expected a subscription object, got {subscription.get('object')!r}")

    subscription_id = _as_id(subscription.get("id"), "subscription.id")
    if not subscription_id:
        raise EventDecodeError("Subscription object is missing its id")

    if event_type == SUBSCRIPTION_DELETED:
        # A deleted subscription is canceled whatever its last status says.
        status = SubscriptionStatus.CANCELED
    else:
        try:
            status = normalize_status(subscription.get("status"))
        except UnknownSubscriptionStatus as exc:
            raise EventDecodeError(str(exc)) from exc

    return SubscriptionChanged(
        event_id=event_id,
        event_type=event_type,
        subscription_id=subscription_id,
        customer_id=_as_id(subscription.get("customer"), "subscription.customer"),
        status=status,
        current_period_end=_subscription_period_end(subscription),
        user_id=_metadata_user_id(subscription.get("metadata")),
    )


def timestamp_to_datetime(value: Any) -> Optional[datetime]:
    """Convert Stripe's epoch-seconds timestamps into aware UTC datetimes."""

    if value is None:
        return None
    if isinstance(value, bool):
        raise EventDecodeError(f"Invalid timestamp: {value!r}")
    if isinstance(value, str) and value.strip().isdigit():
        value = value.strip()
    elif not isinstance(value, (int, float)):
        raise EventDecodeError(f"Invalid timestamp: {value!r}")
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise EventDecodeError(f"Timestamp out of range: {value!r}") from exc


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def _data_object(event: Dict[str, Any]) -> Dict[str, Any]:
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        raise EventDecodeError(f"Event {event.get('id')} has no data.object")
    return obj


def _as_id(value: Any, field_name: str) -> Optional[str]:
    """Return a Stripe id whether the field holds the id or an expanded object."""

    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("id"), str) and value["id"]:
        return value["id"]
    raise EventDecodeError(f"Unrecognized value for {field_name}")


def _metadata_user_id(metadata: Any) -> Optional[str]:
    if metadata is None:
        return None
    if not isinstance(metadata, dict):
        raise EventDecodeError("metadata must be an object")
    for key in USER_ID_METADATA_KEYS:
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _decode_checkout_session(event_id: str, session: Dict[str, Any]) -> CheckoutCompleted:
    user_id = _metadata_user_id(session.get("metadata"))
    if user_id is None:
        reference = session.get("client_reference_id")
        if isinstance(reference, str) and reference.strip():
            user_id = reference.strip()

    payment_status = session.get("payment_status")
    if payment_status is not None and not isinstance(payment_status, str):
        raise EventDecodeError("checkout session payment_status must be a string")

    return CheckoutCompleted(
        event_id=event_id,
        user_id=user_id,
        customer_id=_as_id(session.get("customer"), "session.customer"),
        subscription_id=_as_id(session.get("subscription"), "session.subscription"),
        payment_status=payment_status,
    )


def _decode_invoice(event_id: str, event_type: str, invoice: Dict[str, Any]) -> InvoiceOutcome:
    subscription_id = _as_id(invoice.get("subscription"), "invoice.subscription")
    if subscription_id is None:
        # Newer API versions nest the subscription under invoice.parent.
        parent = invoice.get("parent")
        if isinstance(parent, dict):
            details = parent.get("subscription_details")
            if isinstance(details, dict):
                subscription_id = _as_id(details.get("subscription"), "invoice.parent.subscription")

    return InvoiceOutcome(
        event_id=event_id,
        event_type=event_type,
        invoice_id=_as_id(invoice.get("id"), "invoice.id"),
        customer_id=_as_id(invoice.get("customer"), "invoice.customer"),
        subscription_id=subscription_id,
    )


def _subscription_period_end(subscription: Dict[str, Any]) -> Optional[datetime]:
    period_end = timestamp_to_datetime(subscription.get("current_period_end"))
    if period_end is not None:
        return period_end

    # Since the 2025-03-31 API version the period lives on each subscription item.
    items = subscription.get("items")
    if isinstance(items, dict):
        for item in items.get("data") or []:
            if isinstance(item, dict) and item.get("current_period_end") is not None:
                return timestamp_to_datetime(item.get("current_period_end"))
    return None
