"""
Study Group FastAPI Application Entry Point.

Run with: uvicorn studygroup.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studygroup import __version__
from studygroup.api.routes import ai, auth, classes, documents, enrollments
from studygroup.config import get_settings
from studygroup.services import cache_notifier

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    logger.info("%s starting; AI service at %s", settings.app_name, settings.ai_service_url)
    yield
    # Let detached cache invalidations finish before the loop closes
    await cache_notifier.drain()


app = FastAPI(
    title=settings.app_name,
    description="Classroom document sharing and AI study assistant API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(classes.router)
app.include_router(enrollments.router)
app.include_router(documents.router)
app.include_router(ai.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root() -> dict[str, str]:
    """Service name and version."""
    return {"service": settings.app_name, "version": __version__}
