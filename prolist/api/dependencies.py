"""FastAPI dependencies shared across the public API."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from ..auth import require_auth
from ..billing import BillingProvider, CheckoutSettings, load_checkout_settings
from ..config import CONFIG, ConfigurationError
from ..db import DatabaseClient, get_database_client


def get_current_user_id(authorization: str = Header(None)) -> str:
    """Resolve the authenticated Supabase user from the Authorization header."""

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return require_auth(authorization)


def get_database() -> DatabaseClient:
    """Return the shared database client instance."""

    try:
        return get_database_client()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


def get_database_with_user(
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> tuple[str, DatabaseClient]:
    """Convenience helper that returns both user id and database client."""

    return user_id, db


def get_billing_provider(request: Request) -> BillingProvider:
    """Return the provider built at startup; 500 when Stripe is not configured."""

    provider = getattr(request.app.state, "billing_provider", None)
    if provider is None or not provider.is_configured():
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Missing STRIPE_SECRET_KEY",
        )
    return provider


def get_checkout_settings() -> CheckoutSettings:
    """Validated checkout price and return URLs, read from CONFIG per request."""

    try:
        return load_checkout_settings(CONFIG)
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
