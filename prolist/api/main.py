"""FastAPI application exposing the public JSON API."""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from ..billing import build_billing_provider
from ..config import CONFIG, missing_billing_settings, reload_config
from ..db.client import DataStoreError
from .routes import auth, billing, listings, profile, quotes, reviews


logger = logging.getLogger(__name__)


def _configure_cors(api_app: FastAPI) -> None:
    origins = list(CONFIG.cors_origins)
    if not origins:
        return

    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


async def _data_store_error_handler(request: Request, exc: DataStoreError) -> JSONResponse:
    logger.error("Data store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


def create_app() -> FastAPI:
    """Build the API with one billing provider constructed from the current settings."""

    api_app = FastAPI(
        title=os.getenv("API_TITLE", "ProList Public API"),
        version=os.getenv("API_VERSION", "1.0.0"),
        description=(
            "Directory API for contractors and realtors. "
            "Authenticate using a Supabase JWT in the Authorization header."
        ),
    )

    missing = missing_billing_settings(CONFIG)
    if missing:
        logger.warning("Billing is not fully configured; missing %s", ", ".join(missing))
    api_app.state.billing_provider = build_billing_provider(CONFIG)

    _configure_cors(api_app)
    api_app.add_exception_handler(DataStoreError, _data_store_error_handler)

    @api_app.get("/health", tags=["health"])  # pragma: no cover - trivial fast check
    def healthcheck() -> dict[str, str]:
        """Simple health endpoint for load balancers and smoke tests."""

        return {"status": "ok"}

    api_app.include_router(auth.router, prefix="/v1", tags=["auth"])
    api_app.include_router(profile.router, prefix="/v1", tags=["profile"])
    api_app.include_router(billing.router, prefix="/v1", tags=["billing"])
    api_app.include_router(listings.router, prefix="/v1", tags=["listings"])
    api_app.include_router(quotes.router, prefix="/v1", tags=["quotes"])
    api_app.include_router(reviews.router, prefix="/v1", tags=["reviews"])
    return api_app


load_dotenv()
reload_config()

app = create_app()
