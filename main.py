"""FastAPI application factory and ASGI entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.v1.router import api_router
from src.core.config import settings
from src.core.exceptions import register_exception_handlers
from src.core.logging import setup_logging
from src.db.session import dispose_engine
from src.services.limits import close_client


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENV})")
    yield
    await close_client()
    await dispose_engine()
    logger.info("Shutdown complete")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    setup_logging()

    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
    )
    register_exception_handlers(application)
    application.include_router(api_router, prefix=f"{settings.API_PREFIX}/v1")

    @application.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    return application


app = create_application()
