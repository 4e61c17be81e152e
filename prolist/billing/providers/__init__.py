"""Billing provider registry and helpers."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Callable, Dict, Optional

from prolist.config import CONFIG

from .base import BillingProvider, ProviderNotConfiguredError
from .stripe_provider import StripeBillingProvider


def _build_stripe(config: SimpleNamespace) -> BillingProvider:
    return StripeBillingProvider(
        secret_key=getattr(config, "stripe_secret_key", None),
        webhook_secret=getattr(config, "stripe_webhook_secret", None),
    )


_REGISTRY_FACTORIES: Dict[str, Callable[[SimpleNamespace], BillingProvider]] = {
    "stripe": _build_stripe,
}


def build_billing_provider(
    config: Optional[SimpleNamespace] = None,
    provider_key: str = "stripe",
) -> BillingProvider:
    """Construct a provider from settings; callers own the returned instance."""

    factory = _REGISTRY_FACTORIES.get(provider_key.strip().lower())
    if factory is None:
        raise KeyError(f"Unknown billing provider: {provider_key}")
    return factory(config if config is not None else CONFIG)


__all__ = [
    "BillingProvider",
    "ProviderNotConfiguredError",
    "StripeBillingProvider",
    "build_billing_provider",
]
