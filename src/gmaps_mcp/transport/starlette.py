"""Starlette adapter - thin wrapper around RequestRouter.

This is the only module with a Starlette dependency. It converts HTTP
requests/responses to and from the framework-agnostic RequestRouter.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Final

import anyio
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from gmaps_mcp.exceptions import ListenerConflict, MissingSessionId, SessionNotFound
from gmaps_mcp.runner import Lifespan, ServerRunner
from gmaps_mcp.server import LowLevelServer
from gmaps_mcp.transport.router import AcceptedResponse, JSONResult, RequestRouter, SSEStream
from gmaps_mcp.transport.session_manager import SessionManager
from gmaps_mcp.types.json_rpc import (
    INVALID_REQUEST,
    PARSE_ERROR,
    SERVER_ERROR,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
)

logger = logging.getLogger(__name__)

MCP_SESSION_ID_HEADER: Final[str] = "mcp-session-id"
# Headers accepted on input, in order of preference.
SESSION_ID_HEADERS: Final[tuple[str, ...]] = (MCP_SESSION_ID_HEADER, "session-id")

INVALID_SESSION_TEXT: Final[str] = "Invalid or missing session ID"


def _session_id(request: Request) -> str | None:
    for name in SESSION_ID_HEADERS:
        value = request.headers.get(name)
        if value:
            return value
    return None


def _jsonrpc_error(status_code: int, code: int, message: str) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
    )


def _sse_event(message: JSONRPCMessage) -> dict[str, Any]:
    return {"event": "message", "data": message.model_dump_json(by_alias=True, exclude_none=True)}


def create_starlette_app(
    server: LowLevelServer,
    *,
    lifespan: Lifespan | None = None,
    path: str = "/mcp",
    debug: bool = False,
) -> Starlette:
    """Create a Starlette ASGI app from a LowLevelServer.

    The app lifespan owns the session registry: it starts empty, and every
    session still alive at shutdown is destroyed.

    Usage:
        app = create_starlette_app(server)
        uvicorn.run(app, host="0.0.0.0", port=3000)
    """

    @asynccontextmanager
    async def app_lifespan(app: Starlette) -> AsyncIterator[None]:
        runner = ServerRunner(server, lifespan=lifespan)
        async with runner.run() as running:
            async with anyio.create_task_group() as tg:
                sessions = SessionManager(running)
                app.state.router = RequestRouter(sessions, tg)
                logger.info("Streamable HTTP endpoint ready at %s", path)
                try:
                    yield
                finally:
                    logger.info("Shutting down, destroying %d session(s)", len(sessions))
                    sessions.destroy_all()
                    tg.cancel_scope.cancel()

    async def handle_post(request: Request) -> Response:
        router: RequestRouter = request.app.state.router

        try:
            body = await request.json()
        except ValueError:
            return _jsonrpc_error(400, PARSE_ERROR, "Parse error")
        try:
            message = JSONRPCMessageAdapter.validate_python(body)
        except ValidationError:
            return _jsonrpc_error(400, INVALID_REQUEST, "Invalid Request")

        try:
            result = await router.handle_post(session_id=_session_id(request), message=message)
        except MissingSessionId:
            return _jsonrpc_error(400, SERVER_ERROR, "Bad Request: No valid session ID provided")
        except SessionNotFound:
            return _jsonrpc_error(400, SERVER_ERROR, "Bad Request: Session not found")

        match result:
            case AcceptedResponse(session_id=sid):
                return Response(status_code=202, headers={MCP_SESSION_ID_HEADER: sid})

            case JSONResult(body=response_body, session_id=sid):
                headers = {MCP_SESSION_ID_HEADER: sid} if sid else None
                return JSONResponse(
                    content=response_body.model_dump(by_alias=True, exclude_none=True),
                    headers=headers,
                )

            case SSEStream(first_event=first, event_stream=stream, session_id=sid):

                async def generate() -> AsyncIterator[dict[str, Any]]:
                    yield _sse_event(first.message)
                    async with stream:
                        async for event in stream:
                            yield _sse_event(event.message)

                return EventSourceResponse(
                    generate(),
                    headers={MCP_SESSION_ID_HEADER: sid, "Cache-Control": "no-cache, no-transform"},
                )

        return Response(status_code=500)  # unreachable but satisfies type checker

    async def handle_get(request: Request) -> Response:
        router: RequestRouter = request.app.state.router
        try:
            listen = router.handle_get(_session_id(request))
        except SessionNotFound:
            return PlainTextResponse(INVALID_SESSION_TEXT, status_code=400)
        except ListenerConflict:
            return PlainTextResponse("Conflict: Only one listen stream is allowed per session", status_code=409)

        async def generate() -> AsyncIterator[dict[str, Any]]:
            try:
                async with listen.stream:
                    async for message in listen.stream:
                        yield _sse_event(message)
            finally:
                listen.close()

        return EventSourceResponse(
            generate(),
            headers={MCP_SESSION_ID_HEADER: listen.session_id, "Cache-Control": "no-cache, no-transform"},
        )

    async def handle_delete(request: Request) -> Response:
        router: RequestRouter = request.app.state.router
        try:
            router.handle_delete(_session_id(request))
        except SessionNotFound:
            return PlainTextResponse(INVALID_SESSION_TEXT, status_code=400)
        return Response(status_code=200)

    return Starlette(
        debug=debug,
        lifespan=app_lifespan,
        routes=[
            Route(path, handle_post, methods=["POST"]),
            Route(path, handle_get, methods=["GET"]),
            Route(path, handle_delete, methods=["DELETE"]),
        ],
    )
