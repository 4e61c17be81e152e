"""Provider abstraction for handling billing operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ProviderNotConfiguredError(RuntimeError):
    """Raised when a billing provider is missing required configuration."""


class BillingProvider(ABC):
    """Interface the checkout initiator and the event reconciler depend on."""

    key: str

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True when the provider has the secrets it needs."""

    @abstractmethod
    def create_customer(self, *, email: str, user_id: str) -> Dict[str, Any]:
        """Create a payment customer for the given user."""

    @abstractmethod
    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        """Create a hosted subscription checkout; the result carries its ``url``."""

    @abstractmethod
    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Fetch the latest subscription object from the provider."""

    @abstractmethod
    def find_subscription_for_customer(self, customer_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Lookup the most recent subscription for the given customer, if any."""

    @abstractmethod
    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Validate and decode webhook payloads for the provider."""
