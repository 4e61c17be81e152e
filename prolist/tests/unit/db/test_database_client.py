"""Tests for the Supabase database client query shapes."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, List

import pytest

from prolist.config import reload_config
from prolist.db import client as db_client
from prolist.db.client import DataStoreError, SupabaseDatabaseClient, is_uuid


class FakeQuery:
    def __init__(self, table: str, log: List[Any], data: Any = None, error: Exception | None = None):
        self.table = table
        self.ops: List[Any] = []
        self._data = data if data is not None else []
        self._error = error
        log.append(self)

    def __getattr__(self, name: str):
        def _record(*args, **kwargs):
            self.ops.append((name, args, kwargs))
            return self

        return _record

    def execute(self):
        if self._error is not None:
            raise self._error
        return SimpleNamespace(data=self._data)


class FakeSupabase:
    def __init__(self) -> None:
        self.queries: List[FakeQuery] = []
        self.next_data: Any = None
        self.next_error: Exception | None = None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(name, self.queries, data=self.next_data, error=self.next_error)


@pytest.fixture
def fake_supabase(monkeypatch: pytest.MonkeyPatch) -> FakeSupabase:
    fake = FakeSupabase()
    monkeypatch.setattr(db_client, "create_client", lambda url, key: fake)
    return fake


def test_client_prefers_service_role_key(fake_supabase) -> None:
    client = SupabaseDatabaseClient()

    assert client.using_service_role is True
    assert client.supabase_key == "service-role-key"


def test_client_requires_url(monkeypatch: pytest.MonkeyPatch, fake_supabase) -> None:
    monkeypatch.delenv("SUPABASE_URL")
    reload_config()

    with pytest.raises(ValueError):
        SupabaseDatabaseClient()


def test_update_profile_where_filters_on_single_column(fake_supabase) -> None:
    fake_supabase.next_data = [{"id": "user-1"}]
    client = SupabaseDatabaseClient()

    rows = client.update_profile_where("stripe_customer_id", "cus_1", {"subscription_status": "active"})

    query = fake_supabase.queries[-1]
    assert rows == [{"id": "user-1"}]
    assert query.table == "profiles"
    (update_name, update_args, _), (eq_name, eq_args, _) = query.ops
    assert update_name == "update"
    assert update_args[0]["subscription_status"] == "active"
    assert "updated_at" in update_args[0]
    assert (eq_name, eq_args) == ("eq", ("stripe_customer_id", "cus_1"))


def test_update_profile_where_rejects_other_columns(fake_supabase) -> None:
    client = SupabaseDatabaseClient()

    with pytest.raises(ValueError):
        client.update_profile_where("email", "a@example.com", {"subscription_status": "active"})


def test_update_profile_where_skips_empty_values(fake_supabase) -> None:
    client = SupabaseDatabaseClient()

    assert client.update_profile_where("stripe_subscription_id", None, {"subscription_status": "active"}) == []
    assert fake_supabase.queries == []


def test_query_failures_become_data_store_errors(fake_supabase) -> None:
    fake_supabase.next_error = RuntimeError("connection reset")
    client = SupabaseDatabaseClient()

    with pytest.raises(DataStoreError, match="connection reset"):
        client.get_profile("user-1")


def test_ledger_failures_are_logged_not_raised(fake_supabase) -> None:
    fake_supabase.next_error = RuntimeError("relation billing_events does not exist")
    client = SupabaseDatabaseClient()

    assert client.has_billing_event("evt_1") is False
    client.record_billing_event(stripe_event_id="evt_1", event_type="invoice.paid", profile_id=None, payload={})


def test_record_billing_event_upserts_on_event_id(fake_supabase) -> None:
    client = SupabaseDatabaseClient()

    client.record_billing_event(stripe_event_id="evt_1", event_type="invoice.paid", profile_id="user-1", payload={"id": "in_1"})

    name, args, kwargs = fake_supabase.queries[-1].ops[0]
    assert name == "upsert"
    assert args[0]["stripe_event_id"] == "evt_1"
    assert kwargs == {"on_conflict": "stripe_event_id"}


def test_published_listing_lookup_uses_id_or_slug(fake_supabase) -> None:
    client = SupabaseDatabaseClient()
    listing_id = "0b7c3c1e-6f0e-4a53-9d8e-2f1d3f0d9a11"

    client.get_published_listing(listing_id)
    client.get_published_listing("acme-roofing")

    by_id, by_slug = fake_supabase.queries
    assert ("eq", ("id", listing_id), {}) in by_id.ops
    assert ("eq", ("slug", "acme-roofing"), {}) in by_slug.ops
    assert ("eq", ("is_published", True), {}) in by_slug.ops


def test_is_uuid() -> None:
    assert is_uuid("0B7C3C1E-6F0E-4A53-9D8E-2F1D3F0D9A11") is True
    assert is_uuid("acme-roofing") is False
