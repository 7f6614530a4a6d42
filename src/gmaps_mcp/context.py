"""RequestContext and the ResponseSink protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from gmaps_mcp.types.base import LoggingLevel, ProgressToken
from gmaps_mcp.types.json_rpc import (
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCResponse,
    RequestId,
)

if TYPE_CHECKING:
    from gmaps_mcp.transport.session_manager import SessionEngine


@runtime_checkable
class ResponseSink(Protocol):
    """Transport-specific sink for outgoing messages during request processing.

    One per incoming request. The HTTP transport uses ``ChannelSink``, which
    writes events to a memory channel so the HTTP layer can pick SSE or JSON.
    """

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        """Send a notification during processing."""
        ...

    async def send_result(self, response: JSONRPCResponse) -> None:
        """Send the final result. After this, the sink is done."""
        ...

    async def close(self) -> None:
        """Ensure the sink is closed (e.g., on handler error)."""
        ...


@dataclass
class RequestContext:
    """What handlers receive.

    Notifications sent through ``send_notification`` travel on the request's
    own response stream; log messages travel on the session's listen stream.
    """

    server_state: Any
    session: SessionEngine | None
    request_id: RequestId
    _sink: ResponseSink
    progress_token: ProgressToken | None = None

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification to the client during request processing.

        In HTTP this forces the response to be an SSE stream.
        """
        notification = JSONRPCNotification(method=method, params=params)
        await self._sink.send_intermediate(notification)

    async def report_progress(self, progress: float, total: float | None = None, message: str | None = None) -> None:
        """Send a progress notification if the caller asked for one."""
        if self.progress_token is None:
            return
        params: dict[str, Any] = {"progressToken": self.progress_token, "progress": progress}
        if total is not None:
            params["total"] = total
        if message is not None:
            params["message"] = message
        await self.send_notification("notifications/progress", params)

    async def log(self, level: LoggingLevel, data: Any, logger_name: str | None = None) -> None:
        """Send a log message to the client's listen stream, subject to its log level."""
        if self.session is not None:
            await self.session.send_log_message(level, data, logger_name=logger_name)
