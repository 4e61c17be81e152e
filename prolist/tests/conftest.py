"""In-memory stand-ins for Supabase and Stripe shared by the test suite."""

from __future__ import annotations

import copy
import json
import uuid
from typing import Any, Dict, List, Optional

import pytest

from prolist.billing import BillingProvider, BillingProviderError, WebhookSignatureError
from prolist.db import PROFILE_MATCH_COLUMNS, DataStoreError, is_uuid


class InMemoryDatabase:
    """Mimics ``SupabaseDatabaseClient`` over plain dicts."""

    def __init__(self) -> None:
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.listings: Dict[str, Dict[str, Any]] = {}
        self.quote_requests: List[Dict[str, Any]] = []
        self.reviews: Dict[str, Dict[str, Any]] = {}
        self.billing_events: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.fail_profile_updates = False

    # Profiles -----------------------------------------------------------
    def add_profile(self, profile_id: str, **fields: Any) -> Dict[str, Any]:
        row = {
            "id": profile_id,
            "email": f"{profile_id}@example.com",
            "stripe_customer_id": None,
            "stripe_subscription_id": None,
            "subscription_status": None,
            "current_period_end": None,
        }
        row.update(fields)
        self.profiles[profile_id] = row
        return row

    def get_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        self.calls.append("get_profile")
        row = self.profiles.get(profile_id)
        return copy.deepcopy(row) if row else None

    def update_profile_where(self, column: str, value: str, updates: Dict[str, Any]) -> List[Dict[str, Any]]:
        assert column in PROFILE_MATCH_COLUMNS
        self.calls.append(f"update_profile_where:{column}")
        if self.fail_profile_updates:
            raise DataStoreError("profile update failed")
        if not value:
            return []
        matched = []
        for row in self.profiles.values():
            if row.get(column) == value:
                row.update(updates)
                matched.append(copy.deepcopy(row))
        return matched

    def update_profile(self, profile_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self.update_profile_where("id", profile_id, updates)
        return rows[0] if rows else None

    # Ledger -------------------------------------------------------------
    def has_billing_event(self, stripe_event_id: str) -> bool:
        return stripe_event_id in self.billing_events

    def record_billing_event(self, *, stripe_event_id, event_type, profile_id, payload) -> None:
        self.billing_events[stripe_event_id] = {
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
            "profile_id": profile_id,
            "payload": payload,
        }

    # Listings -----------------------------------------------------------
    def add_listing(self, owner_id: str, **fields: Any) -> Dict[str, Any]:
        row = {
            "id": str(uuid.uuid4()),
            "owner_id": owner_id,
            "slug": "acme-roofing",
            "business_name": "Acme Roofing",
            "is_published": True,
        }
        row.update(fields)
        self.listings[row["id"]] = row
        return row

    def get_listing_by_owner(self, owner_id: str) -> Optional[Dict[str, Any]]:
        for row in self.listings.values():
            if row["owner_id"] == owner_id:
                return copy.deepcopy(row)
        return None

    def get_published_listing(self, key: str) -> Optional[Dict[str, Any]]:
        column = "id" if is_uuid(key) else "slug"
        for row in self.listings.values():
            if row.get(column) == key and row.get("is_published") is True:
                return copy.deepcopy(row)
        return None

    def insert_listing(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = {"id": str(uuid.uuid4()), **payload}
        self.listings[row["id"]] = row
        return copy.deepcopy(row)

    def update_listing(self, listing_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = self.listings.get(listing_id)
        if row is None:
            return None
        row.update(payload)
        return copy.deepcopy(row)

    # Quote requests ---------------------------------------------------------
    def insert_quote_request(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = {
            "id": str(uuid.uuid4()),
            "created_at": f"2025-01-01T00:00:{len(self.quote_requests):02d}+00:00",
            **payload,
        }
        self.quote_requests.append(row)
        return copy.deepcopy(row)

    def list_quote_requests(self, listing_id: str, *, limit: int = 20) -> List[Dict[str, Any]]:
        rows = [row for row in self.quote_requests if row["listing_id"] == listing_id]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return copy.deepcopy(rows[:limit])

    # Reviews ------------------------------------------------------------
    def insert_review(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = {
            "id": str(uuid.uuid4()),
            "created_at": f"2025-01-01T00:00:{len(self.reviews):02d}+00:00",
            **payload,
        }
        self.reviews[row["id"]] = row
        return copy.deepcopy(row)

    def get_review(self, review_id: str) -> Optional[Dict[str, Any]]:
        row = self.reviews.get(review_id)
        return copy.deepcopy(row) if row else None

    def list_reviews(self, listing_id: str, *, approved_only: bool = True, limit: int = 50) -> List[Dict[str, Any]]:
        rows = [
            row
            for row in self.reviews.values()
            if row["listing_id"] == listing_id and (row.get("is_approved") or not approved_only)
        ]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return copy.deepcopy(rows[:limit])

    def approve_review(self, review_id: str) -> Optional[Dict[str, Any]]:
        row = self.reviews.get(review_id)
        if row is None:
            return None
        row["is_approved"] = True
        return copy.deepcopy(row)


class FakeBillingProvider(BillingProvider):
    """Records every Stripe call; subscriptions are served from ``subscriptions``."""

    key = "stripe"

    def __init__(self, db: Optional[InMemoryDatabase] = None) -> None:
        self._db = db
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.customers: List[Dict[str, Any]] = []
        self.sessions: List[Dict[str, Any]] = []
        self.session_url: Optional[str] = "https://checkout.stripe.com/c/pay/cs_test_1"
        self.error: Optional[str] = None

    def is_configured(self) -> bool:
        return True

    def _log(self, name: str) -> None:
        if self._db is not None:
            self._db.calls.append(name)

    def create_customer(self, *, email: str, user_id: str) -> Dict[str, Any]:
        self._log("create_customer")
        if self.error:
            raise BillingProviderError(self.error)
        customer = {"id": f"cus_{len(self.customers) + 1}", "email": email, "metadata": {"supabase_user_id": user_id}}
        self.customers.append(customer)
        return customer

    def create_checkout_session(self, *, customer_id, price_id, user_id, success_url, cancel_url) -> Dict[str, Any]:
        self._log("create_checkout_session")
        if self.error:
            raise BillingProviderError(self.error)
        session = {
            "id": f"cs_test_{len(self.sessions) + 1}",
            "url": self.session_url,
            "customer": customer_id,
            "price": price_id,
            "user_id": user_id,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        self.sessions.append(session)
        return session

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        self._log("retrieve_subscription")
        if self.error:
            raise BillingProviderError(self.error)
        if subscription_id not in self.subscriptions:
            raise BillingProviderError(f"No such subscription: '{subscription_id}'")
        return copy.deepcopy(self.subscriptions[subscription_id])

    def find_subscription_for_customer(self, customer_id: Optional[str]) -> Optional[Dict[str, Any]]:
        for subscription in self.subscriptions.values():
            if subscription.get("customer") == customer_id:
                return copy.deepcopy(subscription)
        return None

    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if signature != "valid":
            raise WebhookSignatureError("Webhook signature verification failed")
        return json.loads(payload)


def subscription_event(
    event_type: str,
    *,
    event_id: str = "evt_sub_1",
    subscription_id: str = "sub_1",
    customer_id: str = "cus_1",
    status: str = "active",
    period_end: Optional[int] = 1767225600,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    subscription: Dict[str, Any] = {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer_id,
        "status": status,
        "metadata": metadata or {},
    }
    if period_end is not None:
        subscription["current_period_end"] = period_end
    return {"id": event_id, "type": event_type, "data": {"object": subscription}}


@pytest.fixture
def db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def provider(db: InMemoryDatabase) -> FakeBillingProvider:
    return FakeBillingProvider(db)


@pytest.fixture
def make_subscription_event():
    return subscription_event
