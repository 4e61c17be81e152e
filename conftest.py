"""Repository-wide pytest fixtures."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from prolist.config import reload_config

TEST_ENV = {
    "ENV": "test",
    "SUPABASE_URL": "https://project.supabase.co",
    "SUPABASE_ANON_KEY": "anon-key",
    "SUPABASE_SERVICE_ROLE_KEY": "service-role-key",
    "SUPABASE_JWT_SECRET": "jwt-test-secret",
    "STRIPE_SECRET_KEY": "sk_test_123",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
    "STRIPE_PRICE_ID": "price_123",
    "SITE_URL": "https://prolist.example.com",
    "CHECKOUT_COMPLETED_POLICY": "defer",
}


@pytest.fixture(autouse=True)
def _set_default_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Give every test the same settings, independent of the developer's shell."""

    for name in ("STRIPE_PRICE_SUBSCRIPTION", "NEXT_PUBLIC_SITE_URL", "API_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    for name, value in TEST_ENV.items():
        monkeypatch.setenv(name, value)
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()
