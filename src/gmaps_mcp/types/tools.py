"""Types for tool listing and invocation."""

from typing import Annotated, Any, Literal

from pydantic import Field

from gmaps_mcp.types.base import LoggingLevel, MCPModel, RequestParams, Result


class TextContent(MCPModel):
    """Text provided to or from an LLM."""

    type: Literal["text"] = "text"
    text: str


class Tool(MCPModel):
    """Definition of a tool the server provides."""

    name: str
    input_schema: Annotated[dict[str, Any], Field(alias="inputSchema")]
    title: str | None = None
    description: str | None = None
    output_schema: Annotated[dict[str, Any] | None, Field(alias="outputSchema")] = None


class ListToolsResult(Result):
    """Server's response to a tools/list request."""

    tools: list[Tool]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class CallToolRequestParams(RequestParams):
    """Parameters for tools/call request."""

    name: str
    arguments: dict[str, Any] | None = None


class CallToolResult(Result):
    """Server's response to a tools/call request."""

    content: list[TextContent]
    structured_content: Annotated[dict[str, Any] | None, Field(alias="structuredContent")] = None
    is_error: Annotated[bool, Field(alias="isError")] = False


class SetLevelRequestParams(RequestParams):
    """Parameters for logging/setLevel request."""

    level: LoggingLevel
