"""Route modules for the public API."""

from . import auth, billing, listings, profile, quotes, reviews

__all__ = ["auth", "billing", "listings", "profile", "quotes", "reviews"]
