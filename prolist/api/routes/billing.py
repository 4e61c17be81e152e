"""Billing endpoints: Stripe checkout, webhook reconciliation and subscription state."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from prolist.api.dependencies import (
    get_billing_provider,
    get_checkout_settings,
    get_current_user_id,
    get_database,
)
from prolist.api.schemas import SubscriptionSummary, WebhookAck
from prolist.billing import (
    BillingProvider,
    BillingProviderError,
    CheckoutError,
    CheckoutInitiator,
    CheckoutSettings,
    EventDecodeError,
    SubscriptionReconciler,
    WebhookSignatureError,
    is_paid,
)
from prolist.config import CONFIG, ConfigurationError
from prolist.db import DatabaseClient

logger = logging.getLogger(__name__)

router = APIRouter()


def _subscription_summary(profile: Dict[str, Any]) -> SubscriptionSummary:
    status_value = profile.get("subscription_status")
    return SubscriptionSummary(
        status=status_value,
        is_paid=is_paid(status_value),
        current_period_end=profile.get("current_period_end"),
        stripe_customer_id=profile.get("stripe_customer_id"),
        stripe_subscription_id=profile.get("stripe_subscription_id"),
    )


def _require_profile(db: DatabaseClient, user_id: str) -> Dict[str, Any]:
    profile = db.get_profile(user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


def _build_reconciler(db: DatabaseClient, provider: BillingProvider) -> SubscriptionReconciler:
    return SubscriptionReconciler(db, provider, checkout_policy=CONFIG.checkout_completed_policy)


# Dependencies resolve in order: configuration is checked before the caller is authenticated.
@router.post(
    "/billing/checkout",
    status_code=status.HTTP_303_SEE_OTHER,
    response_class=RedirectResponse,
)
def start_checkout(
    settings: CheckoutSettings = Depends(get_checkout_settings),
    provider: BillingProvider = Depends(get_billing_provider),
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> RedirectResponse:
    """Redirect the signed-in user to a hosted Stripe checkout page."""

    initiator = CheckoutInitiator(db, provider, settings)
    try:
        url = initiator.start(user_id)
    except CheckoutError as exc:
        logger.error("Checkout failed for user %s: %s", user_id, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except BillingProviderError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


@router.post("/billing/webhook", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    provider: BillingProvider = Depends(get_billing_provider),
    db: DatabaseClient = Depends(get_database),
) -> Dict[str, Any]:
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature")

    try:
        event = provider.parse_event(payload, signature)
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except WebhookSignatureError as exc:
        logger.warning("Rejected Stripe webhook: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    reconciler = _build_reconciler(db, provider)
    try:
        result = await asyncio.to_thread(reconciler.reconcile, event)
    except EventDecodeError as exc:
        logger.warning("Rejected Stripe event %s: %s", event.get("id"), exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unrecognized event payload: {exc}") from exc
    except Exception as exc:
        logger.exception("Webhook handling failed for event %s", event.get("id"))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Webhook handling failed: {exc}",
        ) from exc

    return result.to_response()


@router.post("/billing/sync", response_model=SubscriptionSummary, status_code=status.HTTP_200_OK)
def sync_billing_subscription(
    provider: BillingProvider = Depends(get_billing_provider),
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> SubscriptionSummary:
    """Pull the caller's subscription from Stripe and store it."""

    profile = _require_profile(db, user_id)
    try:
        result = _build_reconciler(db, provider).sync_profile(profile)
    except (BillingProviderError, EventDecodeError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stripe subscription not found")

    return _subscription_summary(db.get_profile(user_id) or profile)


@router.get("/billing/subscription", response_model=SubscriptionSummary, status_code=status.HTTP_200_OK)
def get_subscription(
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> SubscriptionSummary:
    return _subscription_summary(_require_profile(db, user_id))
