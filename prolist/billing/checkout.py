"""Start a hosted Stripe checkout for the signed-in user."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Optional

from prolist.config import CONFIG, ConfigurationError, validate_site_url
from prolist.db import DatabaseClient
from prolist.db.client import DataStoreError

from .providers import BillingProvider

logger = logging.getLogger(__name__)

SUCCESS_PATH = "/dashboard?checkout=success"
CANCEL_PATH = "/pricing?checkout=cancel"


class CheckoutError(RuntimeError):
    """Raised when checkout cannot proceed because of server-side state."""


class ProfileIntegrityError(CheckoutError):
    """Raised when the profile row is missing or unusable for billing."""


@dataclass(frozen=True)
class CheckoutSettings:
    price_id: str
    site_url: str

    @property
    def success_url(self) -> str:
        return f"{self.site_url}{SUCCESS_PATH}"

    @property
    def cancel_url(self) -> str:
        return f"{self.site_url}{CANCEL_PATH}"


def load_checkout_settings(config: Optional[SimpleNamespace] = None) -> CheckoutSettings:
    """Read and validate the price id and return URL; never defaults either."""

    source = config if config is not None else CONFIG
    price_id = getattr(source, "stripe_price_id", None)
    if not price_id:
        raise ConfigurationError("Missing STRIPE_PRICE_ID")
    site_url = validate_site_url(getattr(source, "site_url", None))
    return CheckoutSettings(price_id=price_id, site_url=site_url)


class CheckoutInitiator:
    """Ensures a Stripe customer exists for the user, then opens a checkout session."""

    def __init__(self, db: DatabaseClient, provider: BillingProvider, settings: CheckoutSettings):
        self._db = db
        self._provider = provider
        self._settings = settings

    def start(self, user_id: str) -> str:
        """Return the hosted checkout URL for ``user_id``."""

        profile = self._db.get_profile(user_id)
        if not profile:
            raise ProfileIntegrityError("Profile not found for the signed-in user")
        email = (profile.get("email") or "").strip()
        if not email:
            raise ProfileIntegrityError("Profile has no email address")

        customer_id = profile.get("stripe_customer_id") or self._create_customer(user_id, email)

        session = self._provider.create_checkout_session(
            customer_id=customer_id,
            price_id=self._settings.price_id,
            user_id=user_id,
            success_url=self._settings.success_url,
            cancel_url=self._settings.cancel_url,
        )
        url = session.get("url")
        if not url:
            raise CheckoutError("Stripe checkout session has no URL")
        logger.info("Created checkout session %s for user %s", session.get("id"), user_id)
        return url

    def _create_customer(self, user_id: str, email: str) -> str:
        customer = self._provider.create_customer(email=email, user_id=user_id)
        customer_id = customer.get("id")
        if not customer_id:
            raise CheckoutError("Stripe customer has no id")

        # Webhooks fall back to the customer id, so it must be stored before checkout.
        try:
            row = self._db.update_profile(user_id, {"stripe_customer_id": customer_id})
        except DataStoreError as exc:
            raise ProfileIntegrityError(f"Failed to save Stripe customer id: {exc}") from exc
        if not row:
            raise ProfileIntegrityError("Failed to save Stripe customer id: profile row not updated")
        logger.info("Created Stripe customer %s for user %s", customer_id, user_id)
        return customer_id
