"""Stripe implementation of the billing provider interface."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..stripe_service import StripeBillingService
from .base import BillingProvider, ProviderNotConfiguredError


class StripeBillingProvider(BillingProvider):
    key = "stripe"

    def __init__(
        self,
        *,
        secret_key: Optional[str],
        webhook_secret: Optional[str],
        client: Optional[Any] = None,
    ) -> None:
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._client = client
        self._service: Optional[StripeBillingService] = None

    def is_configured(self) -> bool:
        return bool(self._secret_key)

    def _ensure_service(self) -> StripeBillingService:
        if not self.is_configured():
            raise ProviderNotConfiguredError("Missing STRIPE_SECRET_KEY")
        if self._service is None:
            self._service = StripeBillingService(
                self._secret_key,
                webhook_secret=self._webhook_secret,
                client=self._client,
            )
        return self._service

    def create_customer(self, *, email: str, user_id: str) -> Dict[str, Any]:
        return self._ensure_service().create_customer(email=email, user_id=user_id)

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        service = self._ensure_service()
        return service.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            user_id=user_id,
            success_url=success_url,
            cancel_url=cancel_url,
        )

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return self._ensure_service().retrieve_subscription(subscription_id)

    def find_subscription_for_customer(self, customer_id: Optional[str]) -> Optional[Dict[str, Any]]:
        return self._ensure_service().find_subscription_for_customer(customer_id)

    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        return self._ensure_service().parse_event(payload, signature)


__all__ = [
    "StripeBillingProvider",
]
