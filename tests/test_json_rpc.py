import pytest
from pydantic import ValidationError

from gmaps_mcp.types.json_rpc import (
    INVALID_REQUEST,
    JSONRPCErrorResponse,
    JSONRPCMessageAdapter,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResultResponse,
    error_response,
    is_initialize_request,
)
from tests.test_helpers import init_request


def test_request_and_notification_are_distinguished():
    request = JSONRPCMessageAdapter.validate_python({"jsonrpc": "2.0", "id": 7, "method": "ping"})
    notification = JSONRPCMessageAdapter.validate_python({"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert isinstance(request, JSONRPCRequest)
    assert request.id == 7
    assert isinstance(notification, JSONRPCNotification)


def test_responses_are_recognized():
    result = JSONRPCMessageAdapter.validate_python({"jsonrpc": "2.0", "id": "a", "result": {}})
    error = JSONRPCMessageAdapter.validate_python(
        {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}}
    )

    assert isinstance(result, JSONRPCResultResponse)
    assert isinstance(error, JSONRPCErrorResponse)


def test_non_message_is_rejected():
    with pytest.raises(ValidationError):
        JSONRPCMessageAdapter.validate_python({"hello": "world"})


def test_is_initialize_request():
    assert is_initialize_request(JSONRPCMessageAdapter.validate_python(init_request()))
    assert not is_initialize_request(JSONRPCRequest(id=1, method="ping"))
    assert not is_initialize_request(JSONRPCNotification(method="initialize"))


def test_error_response_serialization():
    response = error_response(INVALID_REQUEST, "Invalid Request", 3)

    assert response.model_dump(exclude_none=True) == {
        "jsonrpc": "2.0",
        "id": 3,
        "error": {"code": -32600, "message": "Invalid Request"},
    }
