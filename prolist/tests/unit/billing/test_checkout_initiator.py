"""Tests for starting a hosted checkout."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from prolist.billing import BillingProviderError
from prolist.billing.checkout import (
    CheckoutError,
    CheckoutInitiator,
    CheckoutSettings,
    ProfileIntegrityError,
    load_checkout_settings,
)
from prolist.config import ConfigurationError

SETTINGS = CheckoutSettings(price_id="price_123", site_url="https://prolist.example.com")


def test_new_customer_is_created_and_saved_before_the_session(db, provider) -> None:
    db.add_profile("user-1", email="owner@example.com")

    url = CheckoutInitiator(db, provider, SETTINGS).start("user-1")

    assert url == provider.session_url
    assert len(provider.customers) == 1
    assert provider.customers[0]["metadata"] == {"supabase_user_id": "user-1"}
    assert db.profiles["user-1"]["stripe_customer_id"] == "cus_1"
    assert db.calls == [
        "get_profile",
        "create_customer",
        "update_profile_where:id",
        "create_checkout_session",
    ]


def test_session_carries_price_user_and_return_urls(db, provider) -> None:
    db.add_profile("user-1", stripe_customer_id="cus_existing")

    CheckoutInitiator(db, provider, SETTINGS).start("user-1")

    session = provider.sessions[0]
    assert provider.customers == []
    assert session["customer"] == "cus_existing"
    assert session["price"] == "price_123"
    assert session["user_id"] == "user-1"
    assert session["success_url"] == "https://prolist.example.com/dashboard?checkout=success"
    assert session["cancel_url"] == "https://prolist.example.com/pricing?checkout=cancel"


def test_missing_profile_is_an_integrity_error(db, provider) -> None:
    with pytest.raises(ProfileIntegrityError):
        CheckoutInitiator(db, provider, SETTINGS).start("ghost")
    assert provider.customers == []


def test_profile_without_email_is_an_integrity_error(db, provider) -> None:
    db.add_profile("user-1", email="  ")

    with pytest.raises(ProfileIntegrityError):
        CheckoutInitiator(db, provider, SETTINGS).start("user-1")


def test_unsaved_customer_id_stops_checkout(db, provider) -> None:
    db.add_profile("user-1")
    db.fail_profile_updates = True

    with pytest.raises(ProfileIntegrityError):
        CheckoutInitiator(db, provider, SETTINGS).start("user-1")

    assert provider.sessions == []


def test_profile_vanishing_before_update_stops_checkout(db, provider, monkeypatch) -> None:
    db.add_profile("user-1")
    monkeypatch.setattr(db, "update_profile", lambda profile_id, updates: None)

    with pytest.raises(ProfileIntegrityError):
        CheckoutInitiator(db, provider, SETTINGS).start("user-1")

    assert provider.sessions == []


def test_stripe_errors_surface_as_provider_errors(db, provider) -> None:
    db.add_profile("user-1", stripe_customer_id="cus_1")
    provider.error = "Your card was declined."

    with pytest.raises(BillingProviderError, match="declined"):
        CheckoutInitiator(db, provider, SETTINGS).start("user-1")


def test_session_without_url_is_an_error(db, provider) -> None:
    db.add_profile("user-1", stripe_customer_id="cus_1")
    provider.session_url = None

    with pytest.raises(CheckoutError):
        CheckoutInitiator(db, provider, SETTINGS).start("user-1")


def test_load_checkout_settings_strips_trailing_slash() -> None:
    settings = load_checkout_settings(SimpleNamespace(stripe_price_id="price_1", site_url="http://localhost:3000/"))

    assert settings.site_url == "http://localhost:3000"
    assert settings.success_url == "http://localhost:3000/dashboard?checkout=success"


@pytest.mark.parametrize(
    ("config", "message"),
    [
        (SimpleNamespace(stripe_price_id=None, site_url="https://x.example.com"), "STRIPE_PRICE_ID"),
        (SimpleNamespace(stripe_price_id="price_1", site_url=None), "Missing SITE_URL"),
        (SimpleNamespace(stripe_price_id="price_1", site_url="http://prolist.example.com"), "https://"),
    ],
)
def test_load_checkout_settings_never_defaults(config, message) -> None:
    with pytest.raises(ConfigurationError, match=message):
        load_checkout_settings(config)
