"""Environment-driven runtime settings for the directory API."""

from __future__ import annotations

import os
from types import SimpleNamespace
from typing import List, Optional, Sequence, Tuple


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or malformed."""


def _env_str(
    name: str,
    default: Optional[str] = None,
    *,
    alias: Optional[str] = None,
    empty_to_none: bool = True,
) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    value = raw.strip()
    if not value and empty_to_none:
        return None if default is None else default
    return value if value else default


def _env_tuple(name: str, default: Sequence[str]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return tuple(default)
    items = tuple(part.strip().rstrip("/") for part in raw.split(",") if part.strip())
    return items or tuple(default)


class Settings(SimpleNamespace):
    """Simple attribute container used throughout the codebase."""

CONFIG = Settings()

CHECKOUT_POLICIES = ("defer", "activate")


def _compute_values() -> dict[str, object]:
    # -----------------------------------------------------------------------
    # RUNTIME ENVIRONMENT
    # -----------------------------------------------------------------------
    environment = _env_str("ENV", "prod", empty_to_none=False).lower()
    if environment not in {"dev", "test", "prod"}:
        environment = "prod"
    is_development = environment == "dev"

    # -----------------------------------------------------------------------
    # SUPABASE (IDENTITY + DATA STORE)
    # -----------------------------------------------------------------------
    supabase_url = _env_str("SUPABASE_URL", None)
    supabase_anon_key = _env_str("SUPABASE_ANON_KEY", None)
    supabase_service_role_key = _env_str("SUPABASE_SERVICE_ROLE_KEY", None)
    supabase_jwt_secret = _env_str("SUPABASE_JWT_SECRET", None)

    # -----------------------------------------------------------------------
    # BILLING / STRIPE
    # -----------------------------------------------------------------------
    stripe_secret_key = _env_str("STRIPE_SECRET_KEY", None)
    stripe_webhook_secret = _env_str("STRIPE_WEBHOOK_SECRET", None)
    stripe_price_id = _env_str("STRIPE_PRICE_ID", None, alias="STRIPE_PRICE_SUBSCRIPTION")
    site_url = _env_str("SITE_URL", None, alias="NEXT_PUBLIC_SITE_URL")

    # Unknown values fall back to the safe policy rather than activating.
    checkout_completed_policy = _env_str("CHECKOUT_COMPLETED_POLICY", "defer", empty_to_none=False).lower()
    if checkout_completed_policy not in CHECKOUT_POLICIES:
        checkout_completed_policy = "defer"

    # -----------------------------------------------------------------------
    # HTTP
    # -----------------------------------------------------------------------
    cors_origins = _env_tuple("API_CORS_ORIGINS", ())

    return {
        "environment": environment,
        "is_development": is_development,
        "supabase_url": supabase_url,
        "supabase_anon_key": supabase_anon_key,
        "supabase_service_role_key": supabase_service_role_key,
        "supabase_jwt_secret": supabase_jwt_secret,
        "stripe_secret_key": stripe_secret_key,
        "stripe_webhook_secret": stripe_webhook_secret,
        "stripe_price_id": stripe_price_id,
        "site_url": site_url,
        "checkout_completed_policy": checkout_completed_policy,
        "cors_origins": cors_origins,
    }


def reload_config() -> None:
    CONFIG.__dict__.update(_compute_values())


def load_envs(global_dir: str) -> None:
    """Load environment variables from the project ``.env`` file and refresh CONFIG."""
    from dotenv import load_dotenv

    load_dotenv(os.path.join(global_dir, ".env"))
    reload_config()


_REQUIRED_BILLING_SETTINGS = (
    ("stripe_secret_key", "STRIPE_SECRET_KEY"),
    ("stripe_webhook_secret", "STRIPE_WEBHOOK_SECRET"),
    ("stripe_price_id", "STRIPE_PRICE_ID"),
    ("site_url", "SITE_URL"),
)


def missing_billing_settings(config: Optional[SimpleNamespace] = None) -> List[str]:
    """Return the env var names of every required billing setting that is unset."""

    source = config if config is not None else CONFIG
    return [env_name for attr, env_name in _REQUIRED_BILLING_SETTINGS if not getattr(source, attr, None)]


def validate_site_url(url: Optional[str]) -> str:
    """Return the base return URL without a trailing slash.

    Only ``https://`` URLs are accepted, plus ``http://localhost`` for local
    development.
    """

    if not url:
        raise ConfigurationError("Missing SITE_URL")
    candidate = url.strip()
    if not (candidate.startswith("https://") or candidate.startswith("http://localhost")):
        raise ConfigurationError("SITE_URL must be https:// (or http://localhost for dev)")
    return candidate.rstrip("/")


# Load once on import so downstream modules can use CONFIG immediately.
reload_config()
