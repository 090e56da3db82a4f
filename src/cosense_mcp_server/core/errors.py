"""
Error Taxonomy and Global Error Handling

This module defines the exception hierarchy shared by the Cosense client and
the tool layer, plus the application-wide exception handler for the HTTP
tool surface.

Design Goals
------------
- One distinguished error for "not logged in" so callers can react to it
- Never leak internal exception details to HTTP clients
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("mcp.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class CosenseError(RuntimeError):
    """Base exception for Cosense client failures."""


class NotLoggedInError(CosenseError):
    """Raised when the Cosense API reports unauthenticated access (HTTP 401)."""

    def __init__(self, message: str = "User is not logged in to Cosense") -> None:
        super().__init__(message)


class CosenseRequestError(CosenseError):
    """Raised when a read endpoint answers with a non-success status."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"Cosense API returned HTTP {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class SessionClosedError(CosenseError):
    """The automated page or browser went away underneath a command."""


class EditorScriptError(CosenseError):
    """A call into the in-page Cosense editor threw."""


# ---------------------------------------------------------------------
# Public Exception Handler
# ---------------------------------------------------------------------

async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled MCP exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
