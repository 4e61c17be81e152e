"""Account sign-up endpoint."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from prolist.api.schemas import SignUpRequest, SignUpResponse
from prolist.auth import SignUpError, get_auth_manager
from prolist.config import CONFIG

router = APIRouter()


@router.post("/auth/signup", response_model=SignUpResponse, status_code=status.HTTP_200_OK)
def sign_up(payload: SignUpRequest) -> SignUpResponse:
    """Register a contractor or realtor account with Supabase Auth."""

    redirect_to = f"{CONFIG.site_url.rstrip('/')}/dashboard" if CONFIG.site_url else None
    try:
        result = get_auth_manager().sign_up(
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            account_type=payload.account_type,
            redirect_to=redirect_to,
        )
    except SignUpError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if not result.get("access_token"):
        # Email confirmation is on; Supabase sends the link.
        return SignUpResponse(status="check_email", user_id=result.get("user_id"))

    return SignUpResponse(
        status="signed_in",
        user_id=result.get("user_id"),
        access_token=result.get("access_token"),
        refresh_token=result.get("refresh_token"),
    )
