"""Error taxonomy for the Google Maps MCP server.

Errors fall into four groups, each handled at a different boundary:

- ``ConfigurationError`` aborts startup.
- ``SessionError`` subclasses are per-request routing failures, answered with
  HTTP 400 (or 409) without affecting other sessions.
- ``ToolError`` subclasses are caught at the tool-handler boundary and returned
  as a failed tool result; the session stays alive.
- ``TransportError`` means a session's channel broke; the session is destroyed.
"""

from __future__ import annotations


class GMapsMCPError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(GMapsMCPError):
    """Required configuration is missing or invalid."""


class SessionError(GMapsMCPError):
    """A request could not be routed to a session."""


class MissingSessionId(SessionError):
    """A non-initialize message arrived without a session id."""


class SessionNotFound(SessionError):
    """The presented session id was never issued or has been destroyed."""

    def __init__(self, session_id: str | None = None):
        super().__init__(f"Session not found: {session_id}" if session_id else "Session id missing")
        self.session_id = session_id


class ListenerConflict(SessionError):
    """A listen stream is already attached to the session."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} already has an active listen stream")
        self.session_id = session_id


class ToolError(GMapsMCPError):
    """A tool call failed; reported to the caller as an error result."""


class InvalidArguments(ToolError):
    """Tool arguments failed validation against the tool's input schema."""

    def __init__(self, tool_name: str, details: str):
        super().__init__(f"Invalid arguments for tool {tool_name}: {details}")
        self.tool_name = tool_name
        self.details = details


class ProviderError(ToolError):
    """The mapping provider returned an error status, a malformed body, or timed out.

    Attributes:
        status: the provider's status string (e.g. ``REQUEST_DENIED``,
                ``INVALID_ARGUMENT``, ``TIMEOUT``)
    """

    def __init__(self, message: str, status: str | None = None):
        super().__init__(f"{status}: {message}" if status else message)
        self.status = status
        self.provider_message = message


class TransportError(GMapsMCPError):
    """Reading from or writing to a session channel failed."""
