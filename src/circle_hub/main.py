# src/circle_hub/main.py
"""Main entry point for the Circle Hub application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from circle_hub.api.v1 import (
    communities_router,
    diagnostics_router,
    payments_router,
    submissions_router,
)
from circle_hub.core.logging import setup_logging
from circle_hub.core.settings import settings
from circle_hub.db.session import create_tables
from circle_hub.services.listing import get_listing_refresher
from circle_hub.services.payments import get_payment_service
from circle_hub.services.remote_store import SupabaseSubmissionStore, get_submission_store

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Community discovery with submission review and approval sync",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(submissions_router, prefix="/api/v1")
app.include_router(communities_router, prefix="/api/v1")
app.include_router(diagnostics_router, prefix="/api/v1")
app.include_router(payments_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    setup_logging()
    create_tables()
    if settings.listing_refresh_enabled:
        await get_listing_refresher().mount()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_listing_refresher().unmount()
    store = get_submission_store()
    if isinstance(store, SupabaseSubmissionStore):
        await store.close()
    payments = get_payment_service()
    if payments is not None:
        await payments.gateway.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Community discovery with submission review and approval sync",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("circle_hub.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
