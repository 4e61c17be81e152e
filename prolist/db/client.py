"""
Database client for the directory.
Handles profiles, listings, quote requests, reviews and the billing event ledger.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from ..config import CONFIG
from ..logger import log

PROFILE_MATCH_COLUMNS = frozenset({"id", "stripe_subscription_id", "stripe_customer_id"})

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


class DataStoreError(RuntimeError):
    """Raised when a Supabase query fails."""


def is_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value or ""))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseDatabaseClient:
    """Database client for Supabase operations."""

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None):
        self.supabase_url = url or CONFIG.supabase_url

        # Prefer service role key when available to bypass RLS for server-side operations
        service_key = CONFIG.supabase_service_role_key
        self.using_service_role = bool(key is None and service_key)
        self.supabase_key = key or service_key or CONFIG.supabase_anon_key

        if not self.supabase_url or not self.supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) environment variables are required")

        if not self.using_service_role:
            log("DatabaseClient: service role key not set; row-level security applies to server queries", level=logging.WARNING)

        self.client: Client = create_client(self.supabase_url, self.supabase_key)

    @staticmethod
    def _execute(query: Any, action: str) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except Exception as exc:
            log(f"Error during {action}: {exc}", level=logging.ERROR)
            raise DataStoreError(f"{action} failed: {exc}") from exc
        data = getattr(result, "data", None)
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            return [data]
        return []

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------
    def get_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("profiles").select("*").eq("id", profile_id).limit(1),
            "profile lookup",
        )
        return rows[0] if rows else None

    def update_profile_where(self, column: str, value: str, updates: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update the profile row(s) whose ``column`` equals ``value`` and return them.

        Only exact-match predicates on the id, subscription id or customer id
        columns are allowed; an empty list means no row matched.
        """
        if column not in PROFILE_MATCH_COLUMNS:
            raise ValueError(f"Profiles cannot be matched on column {column!r}")
        if not value:
            return []
        payload = dict(updates)
        payload["updated_at"] = _now_iso()
        rows = self._execute(
            self.client.table("profiles").update(payload).eq(column, value),
            f"profile update by {column}",
        )
        log("profile update", column=column, matched=len(rows), fields=sorted(updates))
        return rows

    def update_profile(self, profile_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self.update_profile_where("id", profile_id, updates)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Billing event ledger
    # ------------------------------------------------------------------
    def has_billing_event(self, stripe_event_id: str) -> bool:
        if not stripe_event_id:
            return False
        try:
            result = (
                self.client.table("billing_events")
                .select("id")
                .eq("stripe_event_id", stripe_event_id)
                .limit(1)
                .execute()
            )
            return bool(result and result.data)
        except Exception as exc:
            log(f"Error checking billing event {stripe_event_id}: {exc}", level=logging.WARNING)
            return False

    def record_billing_event(
        self,
        *,
        stripe_event_id: str,
        event_type: str,
        profile_id: Optional[str],
        payload: Dict[str, Any],
    ) -> None:
        if not stripe_event_id:
            return
        body = {
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
            "profile_id": profile_id,
            "payload": payload,
        }
        try:
            (
                self.client.table("billing_events")
                .upsert(body, on_conflict="stripe_event_id")
                .execute()
            )
        except Exception as exc:
            log(f"Error recording billing event {stripe_event_id}: {exc}", level=logging.WARNING)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def get_listing_by_owner(self, owner_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("listings").select("*").eq("owner_id", owner_id).limit(1),
            "listing lookup by owner",
        )
        return rows[0] if rows else None

    def get_published_listing(self, key: str) -> Optional[Dict[str, Any]]:
        """Find a published listing by id (UUID keys) or by slug."""
        column = "id" if is_uuid(key) else "slug"
        rows = self._execute(
            self.client.table("listings")
            .select("*")
            .eq(column, key)
            .eq("is_published", True)
            .limit(1),
            f"published listing lookup by {column}",
        )
        return rows[0] if rows else None

    def insert_listing(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._execute(self.client.table("listings").insert(payload), "listing insert")
        return rows[0] if rows else None

    def update_listing(self, listing_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("listings").update(payload).eq("id", listing_id),
            "listing update",
        )
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Quote requests
    # ------------------------------------------------------------------
    def insert_quote_request(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._execute(self.client.table("quote_requests").insert(payload), "quote request insert")
        return rows[0] if rows else None

    def list_quote_requests(self, listing_id: str, *, limit: int = 20) -> List[Dict[str, Any]]:
        return self._execute(
            self.client.table("quote_requests")
            .select("*")
            .eq("listing_id", listing_id)
            .order("created_at", desc=True)
            .limit(limit),
            "quote request listing",
        )

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------
    def insert_review(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._execute(self.client.table("reviews").insert(payload), "review insert")
        return rows[0] if rows else None

    def get_review(self, review_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("reviews").select("*").eq("id", review_id).limit(1),
            "review lookup",
        )
        return rows[0] if rows else None

    def list_reviews(self, listing_id: str, *, approved_only: bool = True, limit: int = 50) -> List[Dict[str, Any]]:
        query = self.client.table("reviews").select("*").eq("listing_id", listing_id)
        if approved_only:
            query = query.eq("is_approved", True)
        return self._execute(query.order("created_at", desc=True).limit(limit), "review listing")

    def approve_review(self, review_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("reviews").update({"is_approved": True}).eq("id", review_id),
            "review approval",
        )
        return rows[0] if rows else None


# Global database client instance
_database_client: Optional[SupabaseDatabaseClient] = None


def get_database_client() -> SupabaseDatabaseClient:
    """Get the global database client instance."""
    global _database_client
    if _database_client is None:
        _database_client = SupabaseDatabaseClient()
    return _database_client


# Simple alias for readability
DatabaseClient = SupabaseDatabaseClient
