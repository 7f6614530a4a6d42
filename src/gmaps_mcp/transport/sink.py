"""ResponseSink implementations."""

from __future__ import annotations

from dataclasses import dataclass

import anyio
from anyio.streams.memory import MemoryObjectSendStream

from gmaps_mcp.exceptions import TransportError
from gmaps_mcp.types.json_rpc import JSONRPCMessage, JSONRPCResponse


@dataclass
class SinkEvent:
    """An event produced by a ResponseSink for the transport layer to consume."""

    message: JSONRPCMessage
    is_final: bool = False


class ChannelSink:
    """ResponseSink that writes events to a memory channel.

    The router reads the other end of the channel to decide between an SSE
    stream and a plain JSON response. If the reading side has gone away
    (client disconnect), writes raise ``TransportError``.
    """

    def __init__(self, send_stream: MemoryObjectSendStream[SinkEvent]) -> None:
        self._send = send_stream
        self._closed = False

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        """Send an intermediate message (a notification)."""
        if self._closed:
            return
        await self._write(SinkEvent(message=message))

    async def send_result(self, response: JSONRPCResponse) -> None:
        """Send the final result and close the channel."""
        if self._closed:
            return
        try:
            await self._write(SinkEvent(message=response, is_final=True))
        finally:
            await self.close()

    async def close(self) -> None:
        """Close the channel without sending a result (e.g., on handler error)."""
        if self._closed:
            return
        self._closed = True
        with anyio.CancelScope(shield=True):
            await self._send.aclose()

    async def _write(self, event: SinkEvent) -> None:
        try:
            await self._send.send(event)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError) as e:
            raise TransportError("Response channel closed by peer") from e
