"""
Cosense Tool Layer

This module defines the MCP-callable tools that interact with Cosense through
CosenseClient.

Responsibilities
----------------
- Validate tool input before any side-effecting call.
- Wrap CosenseClient operations with stable, predictable failure semantics:
  every tool returns text, failures included.
- Point the caller at `cosense_authenticate` when the session is not logged in.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Set

from ..core.errors import NotLoggedInError
from ..cosense.client import CosenseClient
from ..cosense.models import ActionResult
from .definitions import DEFAULT_N_HOP_LINKS, TOOL_AUTHENTICATE

logger = logging.getLogger("mcp.tools")

LOGIN_PROMPT = (
    "You are not logged in. "
    "Please log in through the browser that has been launched."
)

# Strong references so background logins are not garbage collected mid-flight
_background_tasks: Set["asyncio.Task[ActionResult]"] = set()


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _error_text(action: str, exc: Exception) -> str:
    if isinstance(exc, NotLoggedInError):
        logger.warning("Error %s: not logged in", action)
        return (
            f"Error {action}: {exc}. "
            f"Run the {TOOL_AUTHENTICATE} tool, finish logging in, then retry."
        )
    logger.exception("Error %s", action, exc_info=exc)
    return f"Error {action}: {exc}"


def _has_line_break(text: str) -> bool:
    return "\n" in text or "\r" in text


def _log_login_outcome(task: "asyncio.Task[ActionResult]") -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.info("Interactive login cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Interactive login failed", exc_info=exc)
        return
    result = task.result()
    if result.success:
        logger.info("Interactive login completed")
    else:
        logger.warning("Interactive login failed: %s", result.message)


# ---------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------

async def tool_authenticate(client: CosenseClient) -> str:
    """
    Start an interactive login in the background.

    Returns immediately so the caller can tell the user to finish logging in
    through the browser window that opens.
    """
    task = asyncio.create_task(client.authenticate())
    _background_tasks.add(task)
    task.add_done_callback(_log_login_outcome)
    return LOGIN_PROMPT


async def tool_list_projects(client: CosenseClient) -> str:
    try:
        projects = await client.list_projects()
    except Exception as exc:
        return _error_text("listing projects", exc)
    return _to_json([p.to_json_dict() for p in projects])


async def tool_get_project(client: CosenseClient, project: str) -> str:
    try:
        data = await client.retrieve_project(project)
    except Exception as exc:
        return _error_text("retrieving project", exc)
    return _to_json(data.to_json_dict())


async def tool_list_pages(client: CosenseClient, project: str) -> str:
    try:
        data = await client.list_pages(project)
    except Exception as exc:
        return _error_text("listing pages", exc)
    return _to_json(data.to_json_dict())


async def tool_retrieve_page(
    client: CosenseClient,
    project: str,
    page_title: str,
    include_n_hop_links: int = DEFAULT_N_HOP_LINKS,
) -> str:
    """
    Return a page as text.

    With ``include_n_hop_links == 0`` this is the raw page text; otherwise
    the page id is looked up and the N-hop context export is returned.
    """
    try:
        if include_n_hop_links == 0:
            return await client.retrieve_page_text(project, page_title)
        page = await client.retrieve_page(project, page_title)
        return await client.retrieve_smart_context(project, page.id, include_n_hop_links)
    except Exception as exc:
        return _error_text("retrieving page", exc)


async def tool_search_page(client: CosenseClient, project: str, query: str) -> str:
    try:
        results = await client.search_pages(project, query)
    except Exception as exc:
        return _error_text("searching pages", exc)
    return _to_json(results)


async def tool_insert_line(
    client: CosenseClient,
    project: str,
    page_title: str,
    text: str,
    index: int,
) -> str:
    if _has_line_break(text):
        return (
            "Text cannot include newlines. Split the text into multiple lines "
            "and insert each line separately."
        )

    try:
        result = await client.insert_line(project, page_title, text, index)
    except Exception as exc:
        return _error_text("inserting line", exc)

    if result.success:
        return "Successfully inserted line."
    return f"Failed to insert line: {result.message}"


async def tool_update_line(
    client: CosenseClient,
    project: str,
    page_title: str,
    text: str,
    index: int,
) -> str:
    if _has_line_break(text):
        return (
            "Text cannot include newlines. Split the text into multiple lines "
            "and update each line separately."
        )

    try:
        result = await client.update_line(project, page_title, text, index)
    except Exception as exc:
        return _error_text("updating line", exc)

    if result.success:
        return "Successfully updated line."
    return f"Failed to update line: {result.message}"
