"""
FastAPI application entrypoint for the session token service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from authsession.api.routes import router as api_router
from authsession.core.config import get_settings
from authsession.core.logging import configure_logging
from authsession.dependencies import get_primary_session_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Report the primary store on startup and release its pool on shutdown."""
    primary_store = get_primary_session_store()
    if primary_store is None:
        logger.warning("No Redis URL configured; sessions live in process memory only")
    elif not await primary_store.ping():
        logger.warning("Redis is not answering at startup; using the in-memory store until it does")

    yield

    if primary_store is not None:
        await primary_store.close()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="OIDC Session Token Service",
        version="0.1.0",
        description="Caches OpenID-Connect token pairs per user and refreshes them on demand.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app", "lifespan"]
