"""
Intake Links Backend - FastAPI Application

Main entry point for the application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import close_db
from app.core.logging import configure_logging
from app.api.v1 import router as api_v1_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting Intake Links Backend (%s)", settings.ENVIRONMENT)
    if not settings.INTAKE_FORM_SECRET:
        logger.error("INTAKE_FORM_SECRET is not set; intake links will fail with 500")
    yield
    logger.info("Shutting down Intake Links Backend")
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Intake Links Backend",
    description="Signed patient intake links for healthcare practices.",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns:
        dict: Health status and environment info.
    """
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "intake_links_configured": bool(settings.INTAKE_FORM_SECRET),
        "version": "0.1.0",
    }


@app.get("/", tags=["Root"])
async def root() -> dict:
    """Welcome message and API documentation links."""
    return {
        "message": "Welcome to the Intake Links Backend API",
        "docs": "/docs",
        "health": "/health",
    }
