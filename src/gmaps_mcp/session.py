"""Protocol-level session state from the init handshake."""

from __future__ import annotations

from dataclasses import dataclass

from gmaps_mcp.types.initialize import ClientCapabilities, Implementation


@dataclass(frozen=True)
class SessionInfo:
    """Immutable protocol-level session state, created during the init handshake.

    Transport-level state (the session id, listen channel, log level) lives on
    the session's engine, not here.
    """

    client_info: Implementation
    client_capabilities: ClientCapabilities
    protocol_version: str
