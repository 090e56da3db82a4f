"""
API Models for the HTTP Tool Surface

Pydantic models used for request/response validation on the tool routes.
The response shape mirrors an MCP tool result: a list of text content items.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal
from pydantic import BaseModel, Field, ConfigDict


class ToolCallRequest(BaseModel):
    """
    Tool invocation payload.
    """
    arguments: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str

    model_config = ConfigDict(extra="forbid")


class ToolCallResponse(BaseModel):
    """
    Tool invocation result. Tool failures are reported inside the text, not
    through the HTTP status.
    """
    tool: str
    content: List[TextContent] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class ToolInfo(BaseModel):
    name: str
    description: str
    inputSchema: Dict[str, Any]
