"""
MCP Server Entry Point

Serves the Cosense tools to an MCP client over stdio. Tool listing comes
straight from TOOL_DEFINITIONS and every call goes through the shared
dispatch layer, so stdio and HTTP behave the same.

stdout carries the protocol; all logging goes to stderr.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from .config import Settings, settings, ensure_config_dir
from .cosense.browser import PortAllocator
from .cosense.client import CosenseClient
from .tools.base import dispatch_tool_call
from .tools.definitions import TOOL_DEFINITIONS

logger = logging.getLogger("mcp.server")

SERVER_NAME = "cosense"


async def handle_call_tool(
    name: str,
    arguments: Optional[Dict[str, Any]],
    client: CosenseClient,
) -> List[types.TextContent]:
    """Run one tool call and wrap its text as MCP content."""
    try:
        text = await dispatch_tool_call(name, arguments or {}, client)
    except ValueError as exc:
        logger.warning("Rejected tool call %s: %s", name, exc)
        text = str(exc)
    return [types.TextContent(type="text", text=text)]


def create_server(client: CosenseClient) -> Server:
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def _list_tools() -> List[types.Tool]:
        return [types.Tool(**definition) for definition in TOOL_DEFINITIONS]

    @server.call_tool()
    async def _call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        return await handle_call_tool(name, arguments, client)

    return server


async def serve(cfg: Settings = settings) -> None:
    ensure_config_dir(cfg)
    client = CosenseClient(cfg, ports=PortAllocator(cfg.debugging_port_start))
    server = create_server(client)

    async with client:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Cosense MCP Server running on stdio")
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.exception("Fatal error in main()")
        sys.exit(1)


if __name__ == "__main__":
    main()
