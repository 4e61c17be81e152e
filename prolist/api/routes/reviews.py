"""Review endpoints: anonymous submission, owner moderation and the public feed."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from prolist.api.dependencies import get_current_user_id, get_database
from prolist.api.routes.listings import load_visible_listing, require_owner_listing
from prolist.api.schemas import (
    PublicReviewList,
    PublicReviewResponse,
    ReviewCreate,
    ReviewList,
    ReviewResponse,
)
from prolist.db import DatabaseClient, is_uuid

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/listings/{key}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_review(
    key: str,
    payload: ReviewCreate,
    db: DatabaseClient = Depends(get_database),
) -> ReviewResponse:
    """Store a review; it stays hidden until the listing owner approves it."""

    listing = load_visible_listing(db, key)
    row = db.insert_review(
        {
            "listing_id": listing["id"],
            "rating": payload.rating,
            "title": payload.title,
            "body": payload.body,
            "reviewer_name": payload.reviewer_name,
            "reviewer_email": payload.reviewer_email,
            "is_approved": False,
        }
    )
    if not row:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Review was not saved")
    return ReviewResponse(**row)


@router.get("/listings/{key}/reviews", response_model=PublicReviewList, status_code=status.HTTP_200_OK)
def list_public_reviews(key: str, db: DatabaseClient = Depends(get_database)) -> PublicReviewList:
    listing = load_visible_listing(db, key)
    rows = db.list_reviews(str(listing["id"]), approved_only=True)
    return PublicReviewList(items=[PublicReviewResponse(**row) for row in rows])


@router.get("/reviews", response_model=ReviewList, status_code=status.HTTP_200_OK)
def list_my_reviews(
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> ReviewList:
    listing = require_owner_listing(db, user_id)
    rows = db.list_reviews(str(listing["id"]), approved_only=False)
    return ReviewList(items=[ReviewResponse(**row) for row in rows])


@router.post("/reviews/{review_id}/approve", response_model=ReviewResponse, status_code=status.HTTP_200_OK)
def approve_review(
    review_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> ReviewResponse:
    # Review ids are uuid columns; anything else cannot match a row.
    review = db.get_review(review_id) if is_uuid(review_id) else None
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")

    listing = db.get_listing_by_owner(user_id)
    if not listing or str(listing["id"]) != str(review["listing_id"]):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Review belongs to another listing")

    if review.get("is_approved"):
        return ReviewResponse(**review)

    approved = db.approve_review(review_id) or {**review, "is_approved": True}
    logger.info("Review %s approved by %s", review_id, user_id)
    return ReviewResponse(**approved)
