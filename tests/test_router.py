"""Routing tests for RequestRouter, exercised without any HTTP framework."""

from typing import Any

import anyio
import pytest

from gmaps_mcp.exceptions import ListenerConflict, MissingSessionId, SessionNotFound
from gmaps_mcp.transport.router import AcceptedResponse, JSONResult, PostResult, RequestRouter, SSEStream
from gmaps_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPCErrorResponse,
    JSONRPCMessageAdapter,
    JSONRPCNotification,
    JSONRPCResultResponse,
)
from tests.test_helpers import init_request, tool_call

pytestmark = pytest.mark.anyio


async def _post(router: RequestRouter, session_id: str | None, body: dict[str, Any]) -> PostResult:
    return await router.handle_post(session_id, JSONRPCMessageAdapter.validate_python(body))


async def _init(router: RequestRouter) -> str:
    result = await _post(router, None, init_request())
    assert isinstance(result, JSONResult)
    assert result.session_id is not None
    return result.session_id


async def test_initialize_creates_session(router: RequestRouter):
    result = await _post(router, None, init_request())

    assert isinstance(result, JSONResult)
    assert isinstance(result.body, JSONRPCResultResponse)
    assert result.body.result["serverInfo"]["name"] == "google-maps-mcp-server"
    session = router.sessions.get_session(result.session_id)
    assert session is not None
    assert session.engine.initialized
    assert session.engine.info is not None
    assert session.engine.info.client_info.name == "test-client"


async def test_each_initialize_gets_a_fresh_session(router: RequestRouter):
    first = await _init(router)
    second = await _init(router)

    assert first != second
    assert len(router.sessions) == 2


async def test_request_without_session_id(router: RequestRouter):
    with pytest.raises(MissingSessionId):
        await _post(router, None, {"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

    assert len(router.sessions) == 0


async def test_request_with_unknown_session_id(router: RequestRouter):
    with pytest.raises(SessionNotFound):
        await _post(router, "never-issued", {"jsonrpc": "2.0", "id": 1, "method": "ping"})


async def test_notification_is_accepted(router: RequestRouter):
    session_id = await _init(router)

    result = await _post(router, session_id, {"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert result == AcceptedResponse(session_id=session_id)


async def test_request_is_routed_to_existing_session(router: RequestRouter):
    session_id = await _init(router)

    result = await _post(router, session_id, {"jsonrpc": "2.0", "id": 2, "method": "ping"})

    assert isinstance(result, JSONResult)
    assert result.session_id == session_id
    assert isinstance(result.body, JSONRPCResultResponse)
    assert len(router.sessions) == 1


async def test_second_initialize_on_live_session(router: RequestRouter):
    session_id = await _init(router)

    result = await _post(router, session_id, init_request(request_id=5))

    assert isinstance(result, JSONResult)
    assert isinstance(result.body, JSONRPCErrorResponse)
    assert result.body.error.code == INVALID_REQUEST
    assert result.session_id == session_id
    assert session_id in router.sessions


async def test_failed_initialize_leaves_no_session(router: RequestRouter):
    result = await _post(router, None, {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})

    assert isinstance(result, JSONResult)
    assert isinstance(result.body, JSONRPCErrorResponse)
    assert result.body.error.code == INVALID_PARAMS
    assert result.session_id is None
    assert len(router.sessions) == 0


async def test_engine_failure_destroys_session(router: RequestRouter):
    session_id = await _init(router)
    session = router.sessions.get_session(session_id)
    assert session is not None
    # A closed engine fails its next write, as a dropped channel would.
    session.engine.close()

    result = await _post(router, session_id, {"jsonrpc": "2.0", "id": 2, "method": "ping"})

    assert isinstance(result, JSONResult)
    assert isinstance(result.body, JSONRPCErrorResponse)
    assert result.body.error.code == INTERNAL_ERROR
    assert result.session_id is None
    assert session_id not in router.sessions


async def test_delete_session(router: RequestRouter):
    session_id = await _init(router)

    router.handle_delete(session_id)

    assert session_id not in router.sessions
    with pytest.raises(SessionNotFound):
        router.handle_delete(session_id)
    with pytest.raises(SessionNotFound):
        await _post(router, session_id, {"jsonrpc": "2.0", "id": 2, "method": "ping"})


async def test_delete_without_session_id(router: RequestRouter):
    with pytest.raises(SessionNotFound):
        router.handle_delete(None)


async def test_get_requires_known_session(router: RequestRouter):
    with pytest.raises(SessionNotFound):
        router.handle_get(None)
    with pytest.raises(SessionNotFound):
        router.handle_get("never-issued")


async def test_second_listen_stream_is_rejected(router: RequestRouter):
    session_id = await _init(router)
    listen = router.handle_get(session_id)

    with pytest.raises(ListenerConflict):
        router.handle_get(session_id)

    listen.close()
    second = router.handle_get(session_id)
    assert second.session_id == session_id


async def test_listen_stream_ends_when_session_is_deleted(router: RequestRouter):
    session_id = await _init(router)
    listen = router.handle_get(session_id)

    router.handle_delete(session_id)

    with pytest.raises(anyio.EndOfStream):
        await listen.stream.receive()


async def test_tool_logs_reach_listen_stream(router: RequestRouter):
    session_id = await _init(router)
    await _post(router, session_id, {"jsonrpc": "2.0", "id": 2, "method": "logging/setLevel", "params": {"level": "info"}})
    listen = router.handle_get(session_id)

    result = await _post(router, session_id, tool_call("geocode", {"address": "Eiffel Tower"}, request_id=3))

    assert isinstance(result, JSONResult)
    message = listen.stream.receive_nowait()
    assert isinstance(message, JSONRPCNotification)
    assert message.method == "notifications/message"
    assert message.params is not None
    assert message.params["level"] == "info"
    assert message.params["logger"] == "tools.geocode"


async def test_progress_token_switches_to_stream(router: RequestRouter):
    session_id = await _init(router)

    result = await _post(
        router, session_id, tool_call("geocode", {"address": "Eiffel Tower"}, request_id=3, progressToken="p-1")
    )

    assert isinstance(result, SSEStream)
    assert result.session_id == session_id
    assert isinstance(result.first_event.message, JSONRPCNotification)
    assert result.first_event.message.method == "notifications/progress"
    async with result.event_stream:
        events = [event async for event in result.event_stream]
    assert events[-1].is_final
    assert isinstance(events[-1].message, JSONRPCResultResponse)
    assert events[-1].message.id == 3
