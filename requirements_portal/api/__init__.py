"""
FastAPI application factory and API package.

Run with:
    uvicorn requirements_portal.api:app --reload --port 8000

Or via main.py:
    python -m requirements_portal --serve
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from requirements_portal.config import get_settings
from requirements_portal.api.routes import files_router, health_router, requirements_router
from requirements_portal.persistence.blob_store import BlobStore
from requirements_portal.persistence.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)


def create_app(
    submissions: SubmissionRepository | None = None,
    blobs: BlobStore | None = None,
) -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title="Requirements API",
        description="In-memory requirements submission server",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS — allow the frontend (adjust origins in production)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.state.submissions = submissions or SubmissionRepository()
    application.state.blobs = blobs or BlobStore()

    application.include_router(health_router, tags=["Health"])
    application.include_router(requirements_router, prefix="/api/requirements", tags=["Requirements"])
    application.include_router(files_router, tags=["Files"])

    logger.debug(f"Created {settings.app_name} API app")
    return application


# Module-level instance for `uvicorn requirements_portal.api:app`
app = create_app()
