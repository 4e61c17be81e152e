"""Quote request endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from prolist.api.dependencies import get_current_user_id, get_database
from prolist.api.routes.listings import load_visible_listing, require_owner_listing
from prolist.api.schemas import QuoteRequestCreate, QuoteRequestList, QuoteRequestResponse
from prolist.db import DatabaseClient

logger = logging.getLogger(__name__)

router = APIRouter()

RECENT_QUOTES_LIMIT = 20


@router.post(
    "/listings/{key}/quotes",
    response_model=QuoteRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_quote_request(
    key: str,
    payload: QuoteRequestCreate,
    db: DatabaseClient = Depends(get_database),
) -> QuoteRequestResponse:
    """Anonymous visitors ask a published listing for a quote."""

    listing = load_visible_listing(db, key)
    row = db.insert_quote_request(
        {
            "listing_id": listing["id"],
            "requester_name": payload.name,
            "requester_email": payload.email,
            "requester_phone": payload.phone,
            "message": payload.message,
            "status": "new",
        }
    )
    if not row:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Quote request was not saved")
    logger.info("Quote request %s created for listing %s", row.get("id"), listing["id"])
    return QuoteRequestResponse(**row)


@router.get("/quotes", response_model=QuoteRequestList, status_code=status.HTTP_200_OK)
def list_quote_requests(
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> QuoteRequestList:
    listing = require_owner_listing(db, user_id)
    rows = db.list_quote_requests(str(listing["id"]), limit=RECENT_QUOTES_LIMIT)
    return QuoteRequestList(items=[QuoteRequestResponse(**row) for row in rows])
