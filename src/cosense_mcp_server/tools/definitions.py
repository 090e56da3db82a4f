"""
Tool Definitions

This module defines the authoritative tool schemas exposed to MCP clients
and to the HTTP tool surface. These definitions must remain strictly
synchronized with:

- tools/base.py (TOOL_REGISTRY)
- The tool adapter implementations in tools/cosense_tools.py

Only tools defined here can ever be invoked.
"""

from __future__ import annotations

from typing import Dict, List, Any, Final


# ---------------------------------------------------------------------
# Tool Name Constants (Single Source of Truth)
# ---------------------------------------------------------------------

TOOL_AUTHENTICATE: Final[str] = "cosense_authenticate"
TOOL_LIST_PROJECTS: Final[str] = "cosense_list_projects"
TOOL_GET_PROJECT: Final[str] = "cosense_get_project"
TOOL_LIST_PAGES: Final[str] = "cosense_list_pages"
TOOL_RETRIEVE_PAGE: Final[str] = "cosense_retrieve_page"
TOOL_SEARCH_PAGE: Final[str] = "cosense_search_page"
TOOL_INSERT_LINE: Final[str] = "cosense_insert_line"
TOOL_UPDATE_LINE: Final[str] = "cosense_update_line"

DEFAULT_N_HOP_LINKS: Final[int] = 2


_PROJECT_PROPERTY: Dict[str, Any] = {
    "type": "string",
    "description": "Cosense project name",
    "minLength": 1,
}


def _line_edit_schema(text_description: str, index_description: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "project": _PROJECT_PROPERTY,
            "pageTitle": {
                "type": "string",
                "description": "Title of the page to modify",
                "minLength": 1,
            },
            "text": {
                "type": "string",
                "description": text_description,
            },
            "index": {
                "type": "integer",
                "description": index_description,
                "minimum": 0,
            },
        },
        "required": ["project", "pageTitle", "text", "index"],
        "additionalProperties": False,
    }


# ---------------------------------------------------------------------
# Tool Definitions
# ---------------------------------------------------------------------

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": TOOL_AUTHENTICATE,
        "description": (
            "Authenticates the user with Cosense. "
            "Use this tool if a NotLoggedInError is thrown."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {},
            "additionalProperties": False,
        },
    },
    {
        "name": TOOL_LIST_PROJECTS,
        "description": "Lists all projects the user has access to",
        "inputSchema": {
            "type": "object",
            "properties": {},
            "additionalProperties": False,
        },
    },
    {
        "name": TOOL_GET_PROJECT,
        "description": "Retrieves the settings and metadata of a single project",
        "inputSchema": {
            "type": "object",
            "properties": {"project": _PROJECT_PROPERTY},
            "required": ["project"],
            "additionalProperties": False,
        },
    },
    {
        "name": TOOL_LIST_PAGES,
        "description": "Lists the pages of a project, most relevant first",
        "inputSchema": {
            "type": "object",
            "properties": {"project": _PROJECT_PROPERTY},
            "required": ["project"],
            "additionalProperties": False,
        },
    },
    {
        "name": TOOL_RETRIEVE_PAGE,
        "description": "Retrieves the content of a page with optional n-hop links",
        "inputSchema": {
            "type": "object",
            "properties": {
                "project": _PROJECT_PROPERTY,
                "pageTitle": {
                    "type": "string",
                    "description": "Title of the page to retrieve",
                    "minLength": 1,
                },
                "includeNHopLinks": {
                    "type": "integer",
                    "description": (
                        "Number of hop links to include. "
                        "0 returns the plain page text."
                    ),
                    "minimum": 0,
                    "default": DEFAULT_N_HOP_LINKS,
                },
            },
            "required": ["project", "pageTitle"],
            "additionalProperties": False,
        },
    },
    {
        "name": TOOL_SEARCH_PAGE,
        "description": "Searches for pages matching a query",
        "inputSchema": {
            "type": "object",
            "properties": {
                "project": _PROJECT_PROPERTY,
                "query": {
                    "type": "string",
                    "description": "Search query",
                    "minLength": 1,
                },
            },
            "required": ["project", "query"],
            "additionalProperties": False,
        },
    },
    {
        "name": TOOL_INSERT_LINE,
        "description": (
            "Inserts a new line at a specified position in a page. "
            "Note the line with index 0 is the title of the page."
        ),
        "inputSchema": _line_edit_schema(
            "Text to insert",
            "Line index where to insert. Note the line with index 0 is the title of the page.",
        ),
    },
    {
        "name": TOOL_UPDATE_LINE,
        "description": (
            "Updates an existing line at a specified position in a page. "
            "Note the line with index 0 is the title of the page."
        ),
        "inputSchema": _line_edit_schema(
            "New text for the line",
            "Line index to update. Note the line with index 0 is the title of the page.",
        ),
    },
]

TOOL_NAMES: Final[frozenset] = frozenset(d["name"] for d in TOOL_DEFINITIONS)
