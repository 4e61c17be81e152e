"""Listing endpoints: the owner's single business page and its public view."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from prolist.api.dependencies import get_current_user_id, get_database
from prolist.api.schemas import ListingResponse, ListingSaveResponse, ListingUpdateRequest
from prolist.billing import is_paid
from prolist.db import DatabaseClient

logger = logging.getLogger(__name__)

router = APIRouter()

_slug_re = re.compile(r"[^a-z0-9\s-]")

DEFAULT_STATE = "NC"
DEFAULT_ACCOUNT_TYPE = "contractor"


def slugify(value: str) -> str:
    value = (value or "").strip().lower()
    value = _slug_re.sub("", value)
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"-{2,}", "-", value).strip("-")
    return value[:60] or "business"


def load_visible_listing(db: DatabaseClient, key: str) -> Dict[str, Any]:
    """Return a published listing whose owner is currently paid, or raise 404.

    ``key`` is either the listing id or its slug.
    """

    listing = db.get_published_listing(key)
    if listing:
        owner = db.get_profile(str(listing["owner_id"]))
        if owner and is_paid(owner.get("subscription_status")):
            return listing
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")


def require_owner_listing(db: DatabaseClient, user_id: str) -> Dict[str, Any]:
    listing = db.get_listing_by_owner(user_id)
    if not listing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="You have no listing yet")
    return listing


@router.get("/listings/me", response_model=ListingResponse, status_code=status.HTTP_200_OK)
def get_my_listing(
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> ListingResponse:
    return ListingResponse(**require_owner_listing(db, user_id))


@router.put("/listings/me", response_model=ListingSaveResponse, status_code=status.HTTP_200_OK)
def save_my_listing(
    payload: ListingUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> ListingSaveResponse:
    """Create or update the caller's listing.

    Publishing only sticks while the subscription is active or trialing; the
    response reports when the request to publish was refused.
    """

    profile = db.get_profile(user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User profile not found")

    can_publish = is_paid(profile.get("subscription_status"))
    fields = payload.model_dump(exclude={"publish"})
    fields["state"] = fields.get("state") or DEFAULT_STATE
    fields["account_type"] = fields.get("account_type") or DEFAULT_ACCOUNT_TYPE
    record: Dict[str, Any] = {
        **fields,
        "owner_id": user_id,
        "slug": slugify(payload.business_name or "business"),
        "is_published": payload.publish and can_publish,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    existing = db.get_listing_by_owner(user_id)
    if existing:
        saved = db.update_listing(str(existing["id"]), record)
    else:
        saved = db.insert_listing(record)
    if not saved:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Listing was not saved")

    blocked = payload.publish and not can_publish
    if blocked:
        logger.info("Publish refused for user %s: subscription is %s", user_id, profile.get("subscription_status"))
    return ListingSaveResponse(listing=ListingResponse(**saved), publish_blocked=blocked)


@router.get("/listings/{key}", response_model=ListingResponse, status_code=status.HTTP_200_OK)
def get_public_listing(key: str, db: DatabaseClient = Depends(get_database)) -> ListingResponse:
    return ListingResponse(**load_visible_listing(db, key))
