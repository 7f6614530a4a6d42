"""Assembly of the Google Maps MCP server.

``create_server`` registers the protocol methods on a ``LowLevelServer``;
``create_app`` wraps it in the Streamable HTTP Starlette app with a lifespan
that owns the shared Google Maps client.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from starlette.applications import Starlette

from gmaps_mcp import __version__
from gmaps_mcp.config import Settings
from gmaps_mcp.context import RequestContext
from gmaps_mcp.providers import GoogleMapsClient
from gmaps_mcp.runner import Lifespan
from gmaps_mcp.server import LowLevelServer
from gmaps_mcp.tools.maps import build_registry
from gmaps_mcp.tools.registry import ToolRegistry
from gmaps_mcp.transport.starlette import create_starlette_app
from gmaps_mcp.types.base import EmptyResult
from gmaps_mcp.types.json_rpc import JSONRPCNotification, JSONRPCRequest
from gmaps_mcp.types.tools import CallToolRequestParams, CallToolResult, ListToolsResult, SetLevelRequestParams

logger = logging.getLogger(__name__)

SERVER_NAME = "google-maps-mcp-server"


@dataclass
class AppState:
    """Process-wide state shared by every session, available as ``ctx.server_state``."""

    maps: GoogleMapsClient


def create_server(registry: ToolRegistry | None = None) -> LowLevelServer:
    """Build the server with the Google Maps tools registered."""
    tools = registry if registry is not None else build_registry()
    server = LowLevelServer(name=SERVER_NAME, version=__version__)

    @server.request_handler("ping")
    async def ping(ctx: RequestContext, request: JSONRPCRequest) -> EmptyResult:
        return EmptyResult()

    @server.request_handler("tools/list")
    async def list_tools(ctx: RequestContext, request: JSONRPCRequest) -> ListToolsResult:
        return ListToolsResult(tools=tools.list_tools())

    @server.request_handler("tools/call")
    async def call_tool(ctx: RequestContext, request: JSONRPCRequest) -> CallToolResult:
        params = CallToolRequestParams.model_validate(request.params or {})
        return await tools.call(ctx, params)

    @server.request_handler("logging/setLevel")
    async def set_level(ctx: RequestContext, request: JSONRPCRequest) -> EmptyResult:
        params = SetLevelRequestParams.model_validate(request.params or {})
        if ctx.session is not None:
            ctx.session.log_level = params.level
        return EmptyResult()

    @server.notification_handler("notifications/cancelled")
    async def cancelled(ctx: RequestContext, notification: JSONRPCNotification) -> None:
        logger.debug("Client cancelled request: %s", notification.params)

    return server


def maps_lifespan(settings: Settings, http_client: httpx.AsyncClient | None = None) -> Lifespan:
    """Lifespan that opens one Google Maps client for the whole process."""

    @asynccontextmanager
    async def lifespan(server: LowLevelServer) -> AsyncIterator[AppState]:
        async with GoogleMapsClient(
            settings.google_maps_api_key,
            timeout=settings.request_timeout,
            http_client=http_client,
        ) as maps:
            yield AppState(maps=maps)

    return lifespan


def create_app(
    settings: Settings,
    *,
    http_client: httpx.AsyncClient | None = None,
    debug: bool = False,
) -> Starlette:
    """Create the ASGI application served by uvicorn."""
    return create_starlette_app(
        create_server(),
        lifespan=maps_lifespan(settings, http_client),
        path=settings.mcp_path,
        debug=debug,
    )
