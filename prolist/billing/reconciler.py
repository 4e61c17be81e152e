"""Reconcile Stripe webhook events into the profile's stored subscription state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from prolist.db import DatabaseClient

from .events import (
    SUBSCRIPTION_UPDATED,
    CheckoutCompleted,
    IgnoredEvent,
    InvoiceOutcome,
    SubscriptionChanged,
    decode_event,
    decode_subscription,
)
from .providers import BillingProvider
from .status import SubscriptionStatus

logger = logging.getLogger(__name__)

# Checkout payment states that mean the first invoice is settled.
SETTLED_PAYMENT_STATUSES = frozenset({"paid", "no_payment_required"})


class CheckoutCompletedPolicy(str, Enum):
    """What ``checkout.session.completed`` may do to the stored status."""

    DEFER = "defer"
    ACTIVATE = "activate"


@dataclass
class ReconcileResult:
    event_id: str
    event_type: str
    handled: bool
    duplicate: bool = False
    profile_id: Optional[str] = None
    matched_by: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return {
            "received": True,
            "handled": self.handled,
            "event_type": self.event_type,
            "duplicate": self.duplicate,
        }


class SubscriptionReconciler:
    """Applies verified Stripe events to ``profiles`` rows.

    Every update touches only the fields its event is about, so replaying an
    event or applying two events concurrently converges on the last write.
    """

    def __init__(
        self,
        db: DatabaseClient,
        provider: BillingProvider,
        *,
        checkout_policy: Union[CheckoutCompletedPolicy, str] = CheckoutCompletedPolicy.DEFER,
    ):
        self._db = db
        self._provider = provider
        self._checkout_policy = CheckoutCompletedPolicy(checkout_policy)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def reconcile(self, event: Dict[str, Any]) -> ReconcileResult:
        """Decode and apply one verified event.

        Raises ``EventDecodeError`` for malformed payloads before anything is
        written. Store and provider failures propagate so the delivery is
        answered with an error and retried by Stripe.
        """

        decoded = decode_event(event)
        if isinstance(decoded, IgnoredEvent):
            logger.info("Ignoring Stripe event %s (%s)", decoded.event_id, decoded.event_type)
            return ReconcileResult(event_id=decoded.event_id, event_type=decoded.event_type, handled=False)

        event_type = event["type"]
        if self._db.has_billing_event(decoded.event_id):
            logger.info("Stripe event %s (%s) already applied", decoded.event_id, event_type)
            return ReconcileResult(event_id=decoded.event_id, event_type=event_type, handled=False, duplicate=True)

        if isinstance(decoded, CheckoutCompleted):
            result = self._apply_checkout_completed(decoded)
        elif isinstance(decoded, SubscriptionChanged):
            result = self.apply_subscription(decoded)
        else:
            result = self._apply_invoice(decoded)

        if result.handled:
            self._db.record_billing_event(
                stripe_event_id=result.event_id,
                event_type=result.event_type,
                profile_id=result.profile_id,
                payload=(event.get("data") or {}).get("object") or {},
            )
        else:
            logger.warning(
                "Stripe event %s (%s) matched no profile; acknowledging without changes",
                result.event_id,
                result.event_type,
            )
        return result

    # ------------------------------------------------------------------
    # Event branches
    # ------------------------------------------------------------------
    def apply_subscription(
        self,
        change: SubscriptionChanged,
        *,
        profile_id: Optional[str] = None,
    ) -> ReconcileResult:
        """Store a subscription's ids, status and period end.

        With ``profile_id`` the row is targeted directly; otherwise it is
        resolved by subscription id, then customer id, then the user id
        embedded in the subscription metadata at checkout.
        """

        updates: Dict[str, Any] = {
            "stripe_subscription_id": change.subscription_id,
            "subscription_status": change.status.value,
        }
        if change.customer_id:
            updates["stripe_customer_id"] = change.customer_id
        if change.current_period_end is not None:
            updates["current_period_end"] = change.current_period_end.isoformat()

        if profile_id:
            candidates = [("id", profile_id)]
        else:
            candidates = [
                ("stripe_subscription_id", change.subscription_id),
                ("stripe_customer_id", change.customer_id),
                ("id", change.user_id),
            ]
        rows, matched_by = self._update_first_match(candidates, updates)
        return self._result(change.event_id, change.event_type, rows, matched_by)

    def _apply_checkout_completed(self, checkout: CheckoutCompleted) -> ReconcileResult:
        event_type = "checkout.session.completed"
        if not checkout.user_id:
            logger.warning("Checkout session in event %s carries no user id", checkout.event_id)
            return ReconcileResult(event_id=checkout.event_id, event_type=event_type, handled=False)

        updates: Dict[str, Any] = {}
        if checkout.customer_id:
            updates["stripe_customer_id"] = checkout.customer_id
        if checkout.subscription_id:
            updates["stripe_subscription_id"] = checkout.subscription_id
        if (
            self._checkout_policy is CheckoutCompletedPolicy.ACTIVATE
            and checkout.payment_status in SETTLED_PAYMENT_STATUSES
        ):
            updates["subscription_status"] = SubscriptionStatus.ACTIVE.value

        if not updates:
            return ReconcileResult(event_id=checkout.event_id, event_type=event_type, handled=False)

        rows, matched_by = self._update_first_match([("id", checkout.user_id)], updates)
        return self._result(checkout.event_id, event_type, rows, matched_by)

    def _apply_invoice(self, invoice: InvoiceOutcome) -> ReconcileResult:
        if invoice.paid:
            if not invoice.subscription_id:
                logger.info("Invoice %s is not tied to a subscription; nothing to corroborate", invoice.invoice_id)
                return ReconcileResult(event_id=invoice.event_id, event_type=invoice.event_type, handled=False)

            # The invoice only says money moved; the subscription says what it bought.
            subscription = self._provider.retrieve_subscription(invoice.subscription_id)
            change = decode_subscription(subscription, event_id=invoice.event_id, event_type=SUBSCRIPTION_UPDATED)
            if change.customer_id is None and invoice.customer_id:
                change = replace(change, customer_id=invoice.customer_id)
            result = self.apply_subscription(change)
            result.event_type = invoice.event_type
            return result

        updates = {"subscription_status": SubscriptionStatus.PAST_DUE.value}
        rows, matched_by = self._update_first_match(
            [
                ("stripe_subscription_id", invoice.subscription_id),
                ("stripe_customer_id", invoice.customer_id),
            ],
            updates,
        )
        return self._result(invoice.event_id, invoice.event_type, rows, matched_by)

    # ------------------------------------------------------------------
    # Manual sync
    # ------------------------------------------------------------------
    def sync_profile(self, profile: Dict[str, Any]) -> Optional[ReconcileResult]:
        """Pull the profile's subscription from Stripe and store it.

        Returns None when the profile has nothing on file or Stripe has no
        subscription for it.
        """

        subscription_id = profile.get("stripe_subscription_id")
        customer_id = profile.get("stripe_customer_id")
        if subscription_id:
            subscription = self._provider.retrieve_subscription(subscription_id)
        elif customer_id:
            subscription = self._provider.find_subscription_for_customer(customer_id)
        else:
            return None
        if not subscription:
            return None

        change = decode_subscription(subscription, event_id=f"sync:{profile['id']}")
        return self.apply_subscription(change, profile_id=str(profile["id"]))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _update_first_match(
        self,
        candidates: List[Tuple[str, Optional[str]]],
        updates: Dict[str, Any],
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        for column, value in candidates:
            if not value:
                continue
            rows = self._db.update_profile_where(column, value, updates)
            if rows:
                return rows, column
        return [], None

    @staticmethod
    def _result(
        event_id: str,
        event_type: str,
        rows: List[Dict[str, Any]],
        matched_by: Optional[str],
    ) -> ReconcileResult:
        if not rows:
            return ReconcileResult(event_id=event_id, event_type=event_type, handled=False)
        profile_id = rows[0].get("id")
        logger.info("Applied Stripe event %s (%s) to profile %s via %s", event_id, event_type, profile_id, matched_by)
        return ReconcileResult(
            event_id=event_id,
            event_type=event_type,
            handled=True,
            profile_id=str(profile_id) if profile_id is not None else None,
            matched_by=matched_by,
        )
