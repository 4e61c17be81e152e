"""Stripe billing: checkout, webhook reconciliation and the stored status vocabulary."""

from .checkout import (
    CheckoutError,
    CheckoutInitiator,
    CheckoutSettings,
    ProfileIntegrityError,
    load_checkout_settings,
)
from .events import EventDecodeError, decode_event, decode_subscription
from .providers import (
    BillingProvider,
    ProviderNotConfiguredError,
    StripeBillingProvider,
    build_billing_provider,
)
from .reconciler import CheckoutCompletedPolicy, ReconcileResult, SubscriptionReconciler
from .status import PAID_STATUSES, SubscriptionStatus, UnknownSubscriptionStatus, is_paid, normalize_status
from .stripe_service import BillingProviderError, StripeBillingService, WebhookSignatureError

__all__ = [
    "BillingProvider",
    "BillingProviderError",
    "CheckoutCompletedPolicy",
    "CheckoutError",
    "CheckoutInitiator",
    "CheckoutSettings",
    "EventDecodeError",
    "PAID_STATUSES",
    "ProfileIntegrityError",
    "ProviderNotConfiguredError",
    "ReconcileResult",
    "StripeBillingProvider",
    "StripeBillingService",
    "SubscriptionReconciler",
    "SubscriptionStatus",
    "UnknownSubscriptionStatus",
    "WebhookSignatureError",
    "build_billing_provider",
    "decode_event",
    "decode_subscription",
    "is_paid",
    "load_checkout_settings",
    "normalize_status",
]
