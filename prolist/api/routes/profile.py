"""User profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from prolist.api.dependencies import get_database_with_user
from prolist.api.schemas import ProfileResponse
from prolist.billing import is_paid

router = APIRouter()


@router.get("/profile", response_model=ProfileResponse, status_code=status.HTTP_200_OK)
def get_profile(context=Depends(get_database_with_user)) -> ProfileResponse:
    """Return the authenticated user's profile and whether they may publish."""

    user_id, db = context
    profile = db.get_profile(user_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found",
        )

    return ProfileResponse(
        id=str(profile["id"]),
        email=profile.get("email"),
        full_name=profile.get("full_name"),
        account_type=profile.get("account_type"),
        subscription_status=profile.get("subscription_status"),
        current_period_end=profile.get("current_period_end"),
        can_publish=is_paid(profile.get("subscription_status")),
    )
