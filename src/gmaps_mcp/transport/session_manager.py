"""Session registry and the per-session protocol engine.

The ``SessionManager`` is the only shared mutable structure in the server: a
mapping from session id to ``Session``. All of its operations are synchronous
and never suspend, so on a single event loop each insert, lookup and delete is
atomic with respect to every other request. A lookup that runs after a destroy
always observes the session as absent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Final
from uuid import uuid4

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from gmaps_mcp.context import ResponseSink
from gmaps_mcp.exceptions import ListenerConflict, SessionNotFound, TransportError
from gmaps_mcp.runner import RunningServer
from gmaps_mcp.session import SessionInfo
from gmaps_mcp.types.base import LoggingLevel
from gmaps_mcp.types.json_rpc import JSONRPCMessage, JSONRPCNotification

logger = logging.getLogger(__name__)

# Server-initiated messages buffered for a slow listener before new ones are dropped.
LISTEN_BUFFER_SIZE: Final[int] = 64

_LOG_LEVEL_ORDER: Final[tuple[str, ...]] = (
    "debug",
    "info",
    "notice",
    "warning",
    "error",
    "critical",
    "alert",
    "emergency",
)


class SessionEngine:
    """Protocol engine bound to one session.

    Holds the handshake result, the client's requested log level and the
    optional listen channel used to push server-initiated messages. Message
    dispatch itself is delegated to the shared ``RunningServer``.
    """

    def __init__(self, running: RunningServer, session_id: str) -> None:
        self.session_id = session_id
        self.info: SessionInfo | None = None
        self.log_level: LoggingLevel | None = None
        self._running = running
        self._listener: MemoryObjectSendStream[JSONRPCMessage] | None = None
        self._listener_reader: MemoryObjectReceiveStream[JSONRPCMessage] | None = None
        self._closed = False

    @property
    def initialized(self) -> bool:
        return self.info is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_listener(self) -> bool:
        return self._listener is not None

    def bind(self, info: SessionInfo) -> None:
        """Record the result of a successful initialize handshake."""
        self.info = info

    async def handle_message(self, sink: ResponseSink, message: JSONRPCMessage) -> None:
        """Hand one inbound message to the protocol handlers."""
        if self._closed:
            raise TransportError(f"Session {self.session_id} is closed")
        try:
            await self._running.handle_message(sink, message, session=self)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError) as e:
            raise TransportError(f"Channel for session {self.session_id} closed") from e

    def attach_listener(self) -> MemoryObjectReceiveStream[JSONRPCMessage]:
        """Open the server-to-client channel. Only one listener may be attached at a time."""
        if self._closed:
            raise SessionNotFound(self.session_id)
        if self._listener is not None:
            raise ListenerConflict(self.session_id)
        send, receive = anyio.create_memory_object_stream[JSONRPCMessage](LISTEN_BUFFER_SIZE)
        self._listener = send
        self._listener_reader = receive
        logger.debug("Listener attached to session %s", self.session_id)
        return receive

    def detach_listener(self, reader: MemoryObjectReceiveStream[JSONRPCMessage]) -> None:
        """Drop the listener previously returned by ``attach_listener``."""
        reader.close()
        if reader is not self._listener_reader:
            return
        if self._listener is not None:
            self._listener.close()
        self._listener = None
        self._listener_reader = None
        logger.debug("Listener detached from session %s", self.session_id)

    def push(self, message: JSONRPCMessage) -> bool:
        """Queue a server-initiated message on the listen channel.

        Returns False when there is no listener or the message was dropped.
        """
        if self._listener is None:
            return False
        try:
            self._listener.send_nowait(message)
        except anyio.WouldBlock:
            logger.warning("Listen buffer full for session %s, dropping message", self.session_id)
            return False
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            # The GET client is gone; it may reconnect with a new listener.
            self._listener = None
            self._listener_reader = None
            return False
        return True

    async def send_log_message(self, level: LoggingLevel, data: Any, logger_name: str | None = None) -> None:
        """Push a notifications/message if ``level`` passes the client's threshold."""
        if self.log_level is None:
            return
        if _LOG_LEVEL_ORDER.index(level) < _LOG_LEVEL_ORDER.index(self.log_level):
            return
        params: dict[str, Any] = {"level": level, "data": data}
        if logger_name is not None:
            params["logger"] = logger_name
        self.push(JSONRPCNotification(method="notifications/message", params=params))

    def close(self) -> None:
        """Release the engine's channels. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._listener is not None:
            self._listener.close()
        self._listener = None
        self._listener_reader = None


@dataclass
class Session:
    """One long-lived channel between a caller and this server."""

    session_id: str
    engine: SessionEngine
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def closed(self) -> bool:
        return self.engine.closed


class SessionManager:
    """Owns every live session.

    Created empty when the application starts and emptied with
    ``destroy_all()`` when it stops; sessions do not survive a restart.

    Args:
        running: the server every session's engine dispatches to
    """

    def __init__(self, running: RunningServer) -> None:
        self._running = running
        self._sessions: dict[str, Session] = {}

    def create_session(self) -> Session:
        """Register a new session under a fresh random identifier."""
        session_id = uuid4().hex
        while session_id in self._sessions:
            session_id = uuid4().hex
        session = Session(session_id=session_id, engine=SessionEngine(self._running, session_id))
        self._sessions[session_id] = session
        logger.info("Created session %s", session_id)
        return session

    def get_session(self, session_id: str | None) -> Session | None:
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def destroy_session(self, session_id: str) -> None:
        """Remove a session and close its engine. Unknown ids are ignored."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        session.engine.close()
        logger.info("Destroyed session %s", session_id)

    def destroy_all(self) -> None:
        for session_id in list(self._sessions):
            self.destroy_session(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
