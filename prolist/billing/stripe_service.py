"""Thin wrapper around the Stripe SDK used for subscription checkout and webhooks."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

import stripe

from prolist.config import ConfigurationError

logger = logging.getLogger(__name__)


class BillingProviderError(RuntimeError):
    """Raised when a Stripe API call fails; carries Stripe's own message."""


class WebhookSignatureError(ValueError):
    """Raised when a webhook delivery cannot be authenticated or parsed."""


class StripeBillingService:
    """Handles Stripe interactions required for hosted checkout and webhooks.

    Each service owns its own ``StripeClient``; the module-level
    ``stripe.api_key`` is never touched.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        webhook_secret: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        if not secret_key:
            raise ValueError("Stripe secret key is required")
        self._client = client if client is not None else stripe.StripeClient(secret_key)
        self._webhook_secret = webhook_secret

    # ------------------------------------------------------------------
    # Customers & Checkout
    # ------------------------------------------------------------------
    def create_customer(self, *, email: str, user_id: str) -> Dict[str, Any]:
        customer = self._call(
            "customer creation",
            self._client.v1.customers.create,
            params={
                "email": email,
                "metadata": {"supabase_user_id": user_id},
            },
        )
        return _as_dict(customer)

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        """Create a hosted subscription checkout for one unit of ``price_id``."""

        metadata = {"supabase_user_id": user_id}
        session = self._call(
            "checkout session creation",
            self._client.v1.checkout.sessions.create,
            params={
                "mode": "subscription",
                "customer": customer_id,
                "line_items": [
                    {
                        "price": price_id,
                        "quantity": 1,
                    }
                ],
                "allow_promotion_codes": True,
                "client_reference_id": user_id,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "subscription_data": {
                    "metadata": metadata,
                },
                "metadata": metadata,
            },
        )
        return _as_dict(session)

    # ------------------------------------------------------------------
    # Webhooks & subscriptions
    # ------------------------------------------------------------------
    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Validate the Stripe signature, then decode the JSON event body."""

        if not self._webhook_secret:
            raise ConfigurationError("Missing STRIPE_WEBHOOK_SECRET")
        if not signature:
            raise WebhookSignatureError("Missing stripe-signature header")

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookSignatureError("Webhook payload is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                text,
                signature,
                self._webhook_secret,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError(f"Webhook signature verification failed: {exc}") from exc

        try:
            event = json.loads(text)
        except ValueError as exc:
            raise WebhookSignatureError(f"Invalid webhook payload: {exc}") from exc
        if not isinstance(event, dict):
            raise WebhookSignatureError("Invalid webhook payload: expected a JSON object")
        return event

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        subscription = self._call(
            "subscription retrieval",
            self._client.v1.subscriptions.retrieve,
            subscription_id,
        )
        return _as_dict(subscription)

    def find_subscription_for_customer(self, customer_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not customer_id:
            return None
        result = self._call(
            "subscription listing",
            self._client.v1.subscriptions.list,
            params={"customer": customer_id, "status": "all", "limit": 1},
        )
        data = _as_dict(result).get("data")
        if isinstance(data, list) and data:
            return data[0]
        return None

    @staticmethod
    def _call(action: str, method: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return method(*args, **kwargs)
        except stripe.StripeError as exc:
            message = getattr(exc, "user_message", None) or str(exc) or type(exc).__name__
            logger.warning("Stripe %s failed: %s", action, message)
            raise BillingProviderError(message) from exc


def _as_dict(value: Any) -> Dict[str, Any]:
    """Return a plain ``dict`` for a Stripe object (or a dict already)."""

    if value is None:
        return {}
    if type(value) is dict:
        return value
    # StripeObject renders itself as JSON, including nested objects.
    return json.loads(str(value))
