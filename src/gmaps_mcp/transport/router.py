"""RequestRouter - framework-agnostic Streamable HTTP routing.

Classifies each inbound request by verb and session id, resolves or creates
the session, and hands the payload to that session's engine. Knows nothing
about Starlette: the adapter turns the returned ``PostResult`` or
``ListenStream`` into HTTP responses, and routing failures are raised as
``SessionError`` subclasses for the adapter to map onto status codes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream

from gmaps_mcp.exceptions import MissingSessionId, SessionNotFound, TransportError
from gmaps_mcp.transport.session_manager import Session, SessionEngine, SessionManager
from gmaps_mcp.transport.sink import ChannelSink, SinkEvent
from gmaps_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCRequest,
    JSONRPCResponse,
    error_response,
    is_initialize_request,
)

logger = logging.getLogger(__name__)


class _NoOpSink:
    """A sink that does nothing. Used for notifications which don't produce responses."""

    async def send_intermediate(self, message: JSONRPCMessage) -> None:
        pass

    async def send_result(self, response: JSONRPCResponse) -> None:
        pass

    async def close(self) -> None:
        pass


# --- Post result types ---


@dataclass
class AcceptedResponse:
    """Notification or client response accepted. Ack with 202."""

    session_id: str


@dataclass
class JSONResult:
    """Handler completed without intermediate messages. Return as JSON.

    ``session_id`` is None when a new session's handshake failed and the
    session was discarded.
    """

    body: JSONRPCResponse
    session_id: str | None


@dataclass
class SSEStream:
    """Handler is streaming. First event already available."""

    first_event: SinkEvent
    event_stream: MemoryObjectReceiveStream[SinkEvent]
    session_id: str


PostResult = AcceptedResponse | JSONResult | SSEStream


@dataclass
class ListenStream:
    """A server-to-client channel attached to a session by a GET request."""

    session_id: str
    stream: MemoryObjectReceiveStream[JSONRPCMessage]
    _engine: SessionEngine

    def close(self) -> None:
        self._engine.detach_listener(self.stream)


class RequestRouter:
    """Routes POST/GET/DELETE requests to sessions.

    Testable without any HTTP framework: call ``handle_post()`` with a session
    id and a ``JSONRPCMessage``.

    Args:
        sessions: the session registry, owned by the application lifespan
        tg: task group in which message handlers run
    """

    def __init__(self, sessions: SessionManager, tg: TaskGroup) -> None:
        self._sessions = sessions
        self._tg = tg

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    async def handle_post(self, session_id: str | None, message: JSONRPCMessage) -> PostResult:
        """Handle a POST request. Returns a PostResult telling the framework what to respond with."""
        created = False
        if session_id is None:
            if not is_initialize_request(message):
                raise MissingSessionId("Bad Request: No valid session ID provided")
            session = self._sessions.create_session()
            created = True
        else:
            session = self._require_session(session_id)

        # Notifications and client responses don't produce responses
        if not isinstance(message, JSONRPCRequest):
            self._tg.start_soon(self._run_notification, message, session)
            return AcceptedResponse(session_id=session.session_id)

        send, recv = anyio.create_memory_object_stream[SinkEvent](16)
        sink = ChannelSink(send)
        self._tg.start_soon(self._run_handler, sink, message, session)

        # Read first event to decide response format
        try:
            first = await recv.receive()
        except anyio.EndOfStream:
            # Handler closed the sink without a result; the session was torn down.
            recv.close()
            self._sessions.destroy_session(session.session_id)
            return JSONResult(body=error_response(INTERNAL_ERROR, "Internal error", message.id), session_id=None)

        if first.is_final:
            # Handler completed without sending intermediate messages → JSON
            async with recv:
                pass
            if created and isinstance(first.message, JSONRPCErrorResponse):
                logger.info("Initialize failed, discarding session %s", session.session_id)
                self._sessions.destroy_session(session.session_id)
                return JSONResult(body=first.message, session_id=None)  # type: ignore[arg-type]
            return JSONResult(body=first.message, session_id=session.session_id)  # type: ignore[arg-type]

        # Handler sent intermediate messages → SSE stream
        return SSEStream(first_event=first, event_stream=recv, session_id=session.session_id)

    def handle_get(self, session_id: str | None) -> ListenStream:
        """Attach a listen stream to an existing session."""
        session = self._require_session(session_id)
        stream = session.engine.attach_listener()
        return ListenStream(session_id=session.session_id, stream=stream, _engine=session.engine)

    def handle_delete(self, session_id: str | None) -> None:
        """Terminate an existing session."""
        session = self._require_session(session_id)
        self._sessions.destroy_session(session.session_id)

    def _require_session(self, session_id: str | None) -> Session:
        session = self._sessions.get_session(session_id)
        if session is None:
            logger.debug("No session for id %r", session_id)
            raise SessionNotFound(session_id)
        return session

    async def _run_notification(self, message: JSONRPCMessage, session: Session) -> None:
        """Run a notification handler (no response needed)."""
        try:
            await session.engine.handle_message(_NoOpSink(), message)
        except TransportError:
            logger.warning("Transport failure in session %s, destroying it", session.session_id)
            self._sessions.destroy_session(session.session_id)
        except Exception:
            logger.exception("Notification handler error in session %s", session.session_id)

    async def _run_handler(self, sink: ChannelSink, message: JSONRPCRequest, session: Session) -> None:
        """Run the handler and close the sink when done.

        Any failure that escapes the engine is fatal for the session.
        """
        try:
            await session.engine.handle_message(sink, message)
        except TransportError:
            logger.warning("Transport failure in session %s, destroying it", session.session_id)
            self._sessions.destroy_session(session.session_id)
        except Exception:
            logger.exception("Session %s crashed", session.session_id)
            self._sessions.destroy_session(session.session_id)
        finally:
            await sink.close()
