"""
Tool Routes

This module exposes the Cosense tools over HTTP for clients that do not
speak MCP over stdio. Every route delegates to the same dispatch layer the
MCP server uses, so behavior is identical across transports.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import Annotated, List

from .models import TextContent, ToolCallRequest, ToolCallResponse, ToolInfo
from .dependencies import get_cosense_client
from ..cosense.client import CosenseClient
from ..tools.base import UnknownToolError, dispatch_tool_call
from ..tools.definitions import TOOL_DEFINITIONS

router = APIRouter(prefix="/tools", tags=["tools"])


@router.get(
    "/",
    response_model=List[ToolInfo],
    summary="List available tools",
)
async def list_tools() -> List[ToolInfo]:
    return [ToolInfo(**definition) for definition in TOOL_DEFINITIONS]


@router.post(
    "/{tool_name}",
    response_model=ToolCallResponse,
    status_code=status.HTTP_200_OK,
    summary="Invoke a Cosense tool",
)
async def call_tool(
    tool_name: str,
    req: ToolCallRequest,
    client: Annotated[CosenseClient, Depends(get_cosense_client)],
) -> ToolCallResponse:
    """
    Invoke a registered tool.

    Parameters
    ----------
    tool_name : str
        Registered tool name, e.g. ``cosense_retrieve_page``.

    req : ToolCallRequest
        Tool arguments.

    Returns
    -------
    ToolCallResponse
        Text payload produced by the tool.
    """
    try:
        text = await dispatch_tool_call(tool_name, req.arguments, client)
    except UnknownToolError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )

    return ToolCallResponse(tool=tool_name, content=[TextContent(text=text)])
