"""MCP resources and tools on top of a :class:`SessionClient`.

:class:`ToolDispatcher` holds the request handling logic and is independent
of the transport; :func:`build_server` registers it on a low-level MCP
``Server``.  Session errors are never swallowed here: they propagate to the
MCP server, which turns tool failures into ``isError`` results and resource
failures into JSON-RPC errors, and keeps serving the next request.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents

from . import __version__
from .bot_client import SessionClient
from .errors import MinecraftMCPError, ResourceUnavailable, UnknownResource, UnknownTool
from .protocol import LOCATION_URI, SERVER_NAME, STATUS_URI
from .tools import CATALOG_VERSION, TOOLS, TOOLS_BY_NAME

logger = logging.getLogger("minecraft-mcp.dispatch")

JSON_MIME = "application/json"

RESOURCES: tuple[types.Resource, ...] = (
    types.Resource(
        uri=LOCATION_URI,
        name="Bot Location",
        mimeType=JSON_MIME,
        description="Current bot location in the Minecraft world",
    ),
    types.Resource(
        uri=STATUS_URI,
        name="Bot Status",
        mimeType=JSON_MIME,
        description="Current status of the bot",
    ),
)


def _as_text(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2)


class ToolDispatcher:
    """Route resource reads and tool calls to the bot session."""

    def __init__(self, session: SessionClient) -> None:
        self._session = session

    # -- Resources ----------------------------------------------------------

    def list_resources(self) -> list[types.Resource]:
        return list(RESOURCES)

    async def read_resource(self, uri: str) -> list[ReadResourceContents]:
        """Read one of the two fixed resources.

        Raises:
            ResourceUnavailable: If the location is requested before the bot
                has a position.
            UnknownResource: For any other URI.
        """
        if uri == LOCATION_URI:
            position = await asyncio.to_thread(self._session.get_position)
            if position is None:
                raise ResourceUnavailable("Position not available")
            payload: dict[str, Any] = position.rounded()
        elif uri == STATUS_URI:
            payload = {"connected": self._session.is_connected()}
        else:
            raise UnknownResource(uri)
        return [ReadResourceContents(content=json.dumps(payload), mime_type=JSON_MIME)]

    # -- Tools --------------------------------------------------------------

    def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
            for tool in TOOLS
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        """Validate arguments, run the matching session method, wrap the result.

        Raises:
            UnknownTool: If ``name`` is not in the catalog.
            InvalidArguments: If the arguments do not match the tool schema.
            MinecraftMCPError: Whatever the session method raised.
        """
        tool = TOOLS_BY_NAME.get(name)
        if tool is None:
            raise UnknownTool(name)

        kwargs = tool.parse(arguments)
        handler = getattr(self._session, tool.handler)
        logger.info("Tool call: %s %s", name, kwargs or "")
        try:
            result = await handler(**kwargs)
        except MinecraftMCPError as exc:
            logger.warning("Tool %s failed: %s", name, exc)
            raise

        if result is None:
            result = tool.confirmation or "OK"
        return [types.TextContent(type="text", text=_as_text(result))]


def build_server(dispatcher: ToolDispatcher) -> Server:
    """Create the low-level MCP server and register the four handlers."""
    server = Server(
        SERVER_NAME,
        version=__version__,
        instructions=f"Controls a Minecraft bot. Tool catalog version {CATALOG_VERSION}.",
    )

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return dispatcher.list_resources()

    @server.read_resource()
    async def read_resource(uri) -> list[ReadResourceContents]:
        return await dispatcher.read_resource(str(uri))

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return dispatcher.list_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        return await dispatcher.call_tool(name, arguments)

    return server
