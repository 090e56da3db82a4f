"""
HTTP Application Entry Point

This module defines the FastAPI application exposing the Cosense tools over
HTTP, registers all routers, configures global exception handling, and
provides a test-friendly application factory.

Design Goals
------------
- Deterministic startup (config directory exists before the first request)
- Centralized router registration
- Global exception safety net
- Browser released on shutdown
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from fastapi import FastAPI

from .config import settings, ensure_config_dir
from .core.errors import unhandled_exception_handler

from .api import (
    health_routes,
    tool_routes,
)
from .api.dependencies import get_cosense_client


logger = logging.getLogger("mcp.app")


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="cosense-mcp-server",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(tool_routes.router)

    # --------------------------------------------------------------
    # Startup Hook
    # --------------------------------------------------------------

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info("Starting cosense-mcp-server (%s)", settings.origin)
        config_dir = ensure_config_dir(settings)
        logger.info("Using config directory %s", config_dir)

    # --------------------------------------------------------------
    # Shutdown Hook
    # --------------------------------------------------------------

    @app.on_event("shutdown")
    async def _shutdown_cleanup() -> None:
        logger.info("Shutting down cosense-mcp-server")
        await get_cosense_client().cleanup()

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
