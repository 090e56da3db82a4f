"""
Tool Dispatch Layer

This module defines the central, authoritative dispatch mechanism for all
tool calls, whichever transport they arrive on (MCP stdio or HTTP). It
enforces:

- Explicit tool allow-listing
- Argument validation before any client call
- Dependency injection of the CosenseClient for testability

No tool should be callable unless it is explicitly registered here.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from ..cosense.client import CosenseClient
from . import cosense_tools
from .definitions import (
    DEFAULT_N_HOP_LINKS,
    TOOL_AUTHENTICATE,
    TOOL_GET_PROJECT,
    TOOL_INSERT_LINE,
    TOOL_LIST_PAGES,
    TOOL_LIST_PROJECTS,
    TOOL_RETRIEVE_PAGE,
    TOOL_SEARCH_PAGE,
    TOOL_UPDATE_LINE,
)


# ---------------------------------------------------------------------
# Tool Type Definitions
# ---------------------------------------------------------------------

ToolHandler = Callable[[Dict[str, Any], CosenseClient], Awaitable[str]]


class UnknownToolError(ValueError):
    """Raised when a caller names a tool that is not registered."""


# ---------------------------------------------------------------------
# Argument Validation
# ---------------------------------------------------------------------

def _require_str(args: Dict[str, Any], key: str, tool: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{tool} requires a non-empty '{key}' argument.")
    return value


def _require_text(args: Dict[str, Any], tool: str) -> str:
    # Empty text is a legitimate edit (blank line).
    value = args.get("text")
    if not isinstance(value, str):
        raise ValueError(f"{tool} requires a 'text' argument.")
    return value


def _require_index(args: Dict[str, Any], key: str, tool: str) -> int:
    value = args.get(key)
    # JSON clients may send whole numbers as floats (1.0).
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{tool} requires a non-negative integer '{key}' argument.")
    return value


# ---------------------------------------------------------------------
# Tool Registry (AUTHORITATIVE)
# ---------------------------------------------------------------------

async def _handle_authenticate(args: Dict[str, Any], client: CosenseClient) -> str:
    return await cosense_tools.tool_authenticate(client)


async def _handle_list_projects(args: Dict[str, Any], client: CosenseClient) -> str:
    return await cosense_tools.tool_list_projects(client)


async def _handle_get_project(args: Dict[str, Any], client: CosenseClient) -> str:
    project = _require_str(args, "project", TOOL_GET_PROJECT)
    return await cosense_tools.tool_get_project(client, project)


async def _handle_list_pages(args: Dict[str, Any], client: CosenseClient) -> str:
    project = _require_str(args, "project", TOOL_LIST_PAGES)
    return await cosense_tools.tool_list_pages(client, project)


async def _handle_retrieve_page(args: Dict[str, Any], client: CosenseClient) -> str:
    project = _require_str(args, "project", TOOL_RETRIEVE_PAGE)
    page_title = _require_str(args, "pageTitle", TOOL_RETRIEVE_PAGE)

    hops = DEFAULT_N_HOP_LINKS
    if args.get("includeNHopLinks") is not None:
        hops = _require_index(args, "includeNHopLinks", TOOL_RETRIEVE_PAGE)

    return await cosense_tools.tool_retrieve_page(client, project, page_title, hops)


async def _handle_search_page(args: Dict[str, Any], client: CosenseClient) -> str:
    project = _require_str(args, "project", TOOL_SEARCH_PAGE)
    query = _require_str(args, "query", TOOL_SEARCH_PAGE)
    return await cosense_tools.tool_search_page(client, project, query)


async def _handle_insert_line(args: Dict[str, Any], client: CosenseClient) -> str:
    return await cosense_tools.tool_insert_line(
        client,
        project=_require_str(args, "project", TOOL_INSERT_LINE),
        page_title=_require_str(args, "pageTitle", TOOL_INSERT_LINE),
        text=_require_text(args, TOOL_INSERT_LINE),
        index=_require_index(args, "index", TOOL_INSERT_LINE),
    )


async def _handle_update_line(args: Dict[str, Any], client: CosenseClient) -> str:
    return await cosense_tools.tool_update_line(
        client,
        project=_require_str(args, "project", TOOL_UPDATE_LINE),
        page_title=_require_str(args, "pageTitle", TOOL_UPDATE_LINE),
        text=_require_text(args, TOOL_UPDATE_LINE),
        index=_require_index(args, "index", TOOL_UPDATE_LINE),
    )


TOOL_REGISTRY: Dict[str, ToolHandler] = {
    TOOL_AUTHENTICATE: _handle_authenticate,
    TOOL_LIST_PROJECTS: _handle_list_projects,
    TOOL_GET_PROJECT: _handle_get_project,
    TOOL_LIST_PAGES: _handle_list_pages,
    TOOL_RETRIEVE_PAGE: _handle_retrieve_page,
    TOOL_SEARCH_PAGE: _handle_search_page,
    TOOL_INSERT_LINE: _handle_insert_line,
    TOOL_UPDATE_LINE: _handle_update_line,
}


# ---------------------------------------------------------------------
# Public Dispatch API
# ---------------------------------------------------------------------

async def dispatch_tool_call(
    tool_name: str,
    args: Dict[str, Any],
    client: CosenseClient,
) -> str:
    """
    Dispatch a tool call.

    Parameters
    ----------
    tool_name : str
        The symbolic tool name requested by the caller.

    args : Dict[str, Any]
        Parsed JSON arguments for the tool.

    client : CosenseClient
        Active Cosense client (injected).

    Returns
    -------
    str
        Text payload for the caller.

    Raises
    ------
    UnknownToolError
        If the tool name is not registered.

    ValueError
        If required arguments are missing or malformed.
    """

    handler = TOOL_REGISTRY.get(tool_name)
    if not handler:
        raise UnknownToolError(f"Unknown tool requested: {tool_name}")

    return await handler(args or {}, client)
