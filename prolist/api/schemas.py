"""Pydantic schemas for the public API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


# ---------------------------------------------------------------------------
# Accounts & profile
# ---------------------------------------------------------------------------

class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)
    account_type: Literal["contractor", "realtor"]

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("full_name must not be blank")
        return stripped


class SignUpResponse(BaseModel):
    status: Literal["check_email", "signed_in"]
    user_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    account_type: Optional[str] = None
    subscription_status: Optional[str] = None
    current_period_end: Optional[datetime] = None
    can_publish: bool = False


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------

class SubscriptionSummary(BaseModel):
    status: Optional[str] = None
    is_paid: bool = False
    current_period_end: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None


class WebhookAck(BaseModel):
    received: bool = True
    handled: bool
    event_type: str
    duplicate: bool = False


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

class ListingUpdateRequest(BaseModel):
    business_name: str = Field(default="", max_length=200)
    category: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None
    service_area: Optional[str] = None
    account_type: Optional[Literal["contractor", "realtor"]] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    email_public: Optional[str] = None
    logo_url: Optional[str] = None
    cover_url: Optional[str] = None
    publish: bool = False

    @field_validator("business_name", mode="before")
    @classmethod
    def strip_business_name(cls, value: Optional[str]) -> str:
        return (value or "").strip()

    @field_validator(
        "category",
        "city",
        "county",
        "state",
        "service_area",
        "headline",
        "description",
        "phone",
        "website",
        "email_public",
        "logo_url",
        "cover_url",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class ListingResponse(BaseModel):
    id: str
    owner_id: str
    slug: str
    business_name: str
    is_published: bool = False
    category: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None
    service_area: Optional[str] = None
    account_type: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    email_public: Optional[str] = None
    logo_url: Optional[str] = None
    cover_url: Optional[str] = None
    updated_at: Optional[datetime] = None


class ListingSaveResponse(BaseModel):
    listing: ListingResponse
    publish_blocked: bool = False


# ---------------------------------------------------------------------------
# Quote requests
# ---------------------------------------------------------------------------

class QuoteRequestCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = None
    message: str = Field(..., min_length=1)

    @field_validator("name", "message")
    @classmethod
    def require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("phone", mode="before")
    @classmethod
    def blank_phone(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class QuoteRequestResponse(BaseModel):
    id: str
    listing_id: str
    requester_name: str
    requester_email: str
    requester_phone: Optional[str] = None
    message: str
    status: str = "new"
    created_at: Optional[datetime] = None


class QuoteRequestList(BaseModel):
    items: List[QuoteRequestResponse]


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

class ReviewCreate(BaseModel):
    body: str = Field(..., min_length=1)
    rating: int = 5
    title: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewer_email: Optional[EmailStr] = None

    @field_validator("body")
    @classmethod
    def require_body(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("body must not be blank")
        return stripped

    @field_validator("rating", mode="before")
    @classmethod
    def clamp_rating(cls, value: Optional[object]) -> int:
        if value in (None, ""):
            return 5
        try:
            rating = int(value)
        except (TypeError, ValueError):
            return 5
        return max(1, min(5, rating))

    @field_validator("title", "reviewer_name", "reviewer_email", mode="before")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class ReviewResponse(BaseModel):
    id: str
    listing_id: str
    rating: int
    body: str
    title: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewer_email: Optional[str] = None
    is_approved: bool = False
    created_at: Optional[datetime] = None


class PublicReviewResponse(BaseModel):
    id: str
    rating: int
    body: str
    title: Optional[str] = None
    reviewer_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ReviewList(BaseModel):
    items: List[ReviewResponse]


class PublicReviewList(BaseModel):
    items: List[PublicReviewResponse]
