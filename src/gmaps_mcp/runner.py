"""ServerRunner and RunningServer.

The runner bridges the LowLevelServer (pure dispatch) with transports.
It manages lifecycle (lifespan), handles the init handshake, and dispatches
messages to the server.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from gmaps_mcp.context import RequestContext, ResponseSink
from gmaps_mcp.server import LowLevelServer
from gmaps_mcp.session import SessionInfo
from gmaps_mcp.types.base import LATEST_PROTOCOL_VERSION, SUPPORTED_PROTOCOL_VERSIONS, ProgressToken
from gmaps_mcp.types.initialize import InitializeRequestParams, InitializeResult
from gmaps_mcp.types.json_rpc import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResultResponse,
    error_response,
)

if TYPE_CHECKING:
    from gmaps_mcp.transport.session_manager import SessionEngine

logger = logging.getLogger(__name__)

Lifespan = Callable[[LowLevelServer], AbstractAsyncContextManager[Any]]


@asynccontextmanager
async def _default_lifespan(server: LowLevelServer) -> AsyncIterator[dict[str, Any]]:
    yield {}


def _progress_token(params: dict[str, Any] | None) -> ProgressToken | None:
    meta = (params or {}).get("_meta")
    if isinstance(meta, dict):
        token = meta.get("progressToken")
        if isinstance(token, str | int):
            return token
    return None


class ServerRunner:
    """Manages lifecycle and produces a RunningServer.

    Usage:
        runner = ServerRunner(server, lifespan=my_lifespan)
        async with runner.run() as running:
            # Use running.handle_message() with your transport
            ...
    """

    def __init__(self, server: LowLevelServer, *, lifespan: Lifespan | None = None) -> None:
        self.server = server
        self._lifespan = lifespan or _default_lifespan

    @asynccontextmanager
    async def run(self) -> AsyncIterator[RunningServer]:
        """Enter server lifespan once, yield a running server."""
        async with self._lifespan(self.server) as server_state:
            yield RunningServer(self.server, server_state)


class RunningServer:
    """A server with active lifespan, ready to handle requests.

    Handles the init handshake internally; the LowLevelServer never sees
    'initialize' as a request.
    """

    def __init__(self, server: LowLevelServer, server_state: Any) -> None:
        self._server = server
        self._server_state = server_state

    async def handle_message(
        self,
        sink: ResponseSink,
        message: JSONRPCMessage,
        *,
        session: SessionEngine | None = None,
    ) -> SessionInfo | None:
        """Dispatch a single message. Returns SessionInfo if this was a successful init handshake.

        For init requests: handles the handshake, responds via sink, returns new SessionInfo.
        For regular requests: dispatches to server, responds via sink, returns None.
        For notifications: dispatches to server, returns None.
        """
        if isinstance(message, JSONRPCRequest):
            if message.method == "initialize":
                return await self._handle_initialize(sink, message, session)

            ctx = RequestContext(
                server_state=self._server_state,
                session=session,
                request_id=message.id,
                _sink=sink,
                progress_token=_progress_token(message.params),
            )
            response = await self._server.dispatch_request(ctx, message)
            await sink.send_result(response)
            return None

        if isinstance(message, JSONRPCNotification):
            if message.method == "notifications/initialized":
                return None
            ctx = RequestContext(
                server_state=self._server_state,
                session=session,
                request_id="notification",
                _sink=sink,
            )
            await self._server.dispatch_notification(ctx, message)
            return None

        # Responses from the client are not expected; this server never sends requests.
        logger.debug("Ignoring client response message")
        return None

    async def _handle_initialize(
        self,
        sink: ResponseSink,
        request: JSONRPCRequest,
        session: SessionEngine | None,
    ) -> SessionInfo | None:
        """Handle the initialize handshake. Returns the new SessionInfo, or None on failure."""
        if session is not None and session.initialized:
            await sink.send_result(error_response(INVALID_REQUEST, "Server already initialized", request.id))
            return None

        try:
            params = InitializeRequestParams.model_validate(request.params)
        except ValidationError as e:
            await sink.send_result(error_response(INVALID_PARAMS, f"Invalid initialize params: {e}", request.id))
            return None

        if params.protocol_version in SUPPORTED_PROTOCOL_VERSIONS:
            protocol_version = params.protocol_version
        else:
            protocol_version = LATEST_PROTOCOL_VERSION

        result = InitializeResult.model_validate(
            {
                "protocolVersion": protocol_version,
                "capabilities": self._server.get_capabilities().model_dump(by_alias=True, exclude_none=True),
                "serverInfo": {"name": self._server.name, "version": self._server.version},
                "instructions": self._server.instructions,
            }
        )
        session_info = SessionInfo(
            client_info=params.client_info,
            client_capabilities=params.capabilities,
            protocol_version=protocol_version,
        )
        # Bind before replying: the client may send its next request as soon as it reads the result.
        if session is not None:
            session.bind(session_info)

        response = JSONRPCResultResponse(
            id=request.id,
            result=result.model_dump(by_alias=True, exclude_none=True),
        )
        await sink.send_result(response)
        return session_info
