"""Common test utilities for the Google Maps MCP server tests."""

from collections.abc import Callable
from typing import Any

import httpx

from gmaps_mcp.types.json_rpc import JSONRPCMessage, JSONRPCResponse

API_KEY = "test-key"

EIFFEL_TOWER_GEOCODE = {
    "status": "OK",
    "results": [
        {
            "formatted_address": "Av. Gustave Eiffel, 75007 Paris, France",
            "place_id": "ChIJLU7jZClu5kcR4PcOOO6p3I0",
            "geometry": {"location": {"lat": 48.8583701, "lng": 2.2944813}},
        }
    ],
}

Handler = Callable[[httpx.Request], httpx.Response]


class FakeGoogle:
    """Stand-in for the Google Maps endpoints, routed by URL path."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handlers: dict[str, Handler] = {}

    def respond(self, path: str, json: Any = None, status_code: int = 200) -> None:
        self.handlers[path] = lambda request: httpx.Response(status_code, json=json)

    def on(self, path: str, handler: Handler) -> None:
        self.handlers[path] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.handlers.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"error": {"code": 404, "message": "Not found", "status": "NOT_FOUND"}})
        return handler(request)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


class RecordingSink:
    """ResponseSink that keeps everything it is given."""

    def __init__(self) -> None:
        self.intermediate: list[JSONRPCMessage] = []
        self.results: list[JSONRPCResponse] = []
        self.closed = False

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        self.intermediate.append(message)

    async def send_result(self, response: JSONRPCResponse) -> None:
        self.results.append(response)

    async def close(self) -> None:
        self.closed = True


def init_request(request_id: int = 1, protocol_version: str = "2025-06-18") -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "initialize",
        "params": {
            "protocolVersion": protocol_version,
            "capabilities": {},
            "clientInfo": {"name": "test-client", "version": "1.0"},
        },
    }


def tool_call(name: str, arguments: dict[str, Any], request_id: int = 2, **meta: Any) -> dict[str, Any]:
    params: dict[str, Any] = {"name": name, "arguments": arguments}
    if meta:
        params["_meta"] = meta
    return {"jsonrpc": "2.0", "id": request_id, "method": "tools/call", "params": params}
