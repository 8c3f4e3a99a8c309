"""
FastAPI application for the Activity Clock API.

PURPOSE: Application factory and server runner.
AI CONTEXT: Creates the app with data and auth routes registered.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ..__version__ import __version__
from ..config import Config
from .routes import auth_router, router

__all__ = ["create_app", "run_server"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:  # noqa: ARG001
    """
    Log startup and shutdown of the API.

    Startup logging records the storage directory and whether login is
    required, the two settings most often wrong on a fresh install.

    Args:
        app: The FastAPI application instance (provided by FastAPI).

    Yields:
        None. Control returns to FastAPI to handle requests.
    """
    logger.info("Activity Clock API starting (v%s)", __version__)
    logger.info(
        "Storage: %s; auth %s",
        Config.get_storage_dir(),
        "enabled" if Config.is_auth_enabled() else "disabled",
    )
    yield
    logger.info("Activity Clock API shutting down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Factory function so tests get a fresh app and uvicorn can build one
    per worker.

    Returns:
        FastAPI instance with data routes (guarded by require_auth) and
        the login/auth-check routes.

    Example:
        >>> from fastapi.testclient import TestClient
        >>> client = TestClient(create_app())
        >>> client.get('/api/activityLogs', params={'date': '2025-12-01'}).json()
        {'date': '2025-12-01', 'sessions': []}
    """
    app = FastAPI(
        title="Activity Clock",
        description="Time and habit tracking API",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(auth_router)
    app.include_router(router)
    return app


def run_server(
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """
    Launch the API under uvicorn.

    Args:
        host: Interface to bind. '127.0.0.1' for local-only access.
        port: TCP port. Default 8000.
        reload: Auto-reload on code changes (development only).
        log_level: Uvicorn logging verbosity.

    Returns:
        None. Blocks until the server is stopped (Ctrl+C).

    Raises:
        OSError: If the port is already in use.
    """
    uvicorn.run(
        "activity_clock.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )
