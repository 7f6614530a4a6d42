"""Static tool table and the tools/call boundary.

A ``ToolSpec`` pairs a handler with pydantic input and output models. The
``ToolRegistry`` is built once at startup and never mutated. It validates
arguments before any handler runs and turns every ``ToolError`` into an
``isError`` result, so a failing tool never takes its session down.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from gmaps_mcp.context import RequestContext
from gmaps_mcp.exceptions import InvalidArguments, ProviderError, ToolError
from gmaps_mcp.types.tools import CallToolRequestParams, CallToolResult, TextContent, Tool

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)

ToolHandler = Callable[[RequestContext, InputT], Awaitable[OutputT]]


def _describe_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


@dataclass(frozen=True)
class ToolSpec(Generic[InputT, OutputT]):
    """Everything the server needs to list and invoke one tool."""

    name: str
    title: str
    description: str
    input_model: type[InputT]
    output_model: type[OutputT]
    handler: ToolHandler[InputT, OutputT]

    def to_tool(self) -> Tool:
        return Tool(
            name=self.name,
            title=self.title,
            description=self.description,
            input_schema=self.input_model.model_json_schema(),
            output_schema=self.output_model.model_json_schema(),
        )

    def validate_arguments(self, arguments: dict[str, Any] | None) -> InputT:
        try:
            return self.input_model.model_validate(arguments or {})
        except ValidationError as e:
            raise InvalidArguments(self.name, _describe_validation_error(e)) from e

    async def run(self, ctx: RequestContext, arguments: dict[str, Any] | None) -> OutputT:
        """Validate ``arguments``, invoke the handler and check its output."""
        validated = self.validate_arguments(arguments)
        try:
            output = await self.handler(ctx, validated)
        except ValidationError as e:
            # The handler builds its output model from provider data.
            raise ProviderError(
                f"Provider response does not match the {self.name} output schema: {_describe_validation_error(e)}",
                status="MALFORMED_RESPONSE",
            ) from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ProviderError(
                f"Could not read the provider response for {self.name}: {type(e).__name__}: {e}",
                status="MALFORMED_RESPONSE",
            ) from e
        if not isinstance(output, self.output_model):
            raise TypeError(f"Tool {self.name} returned {type(output).__name__}, expected {self.output_model.__name__}")
        return output


class ToolRegistry:
    """Immutable mapping from tool name to ``ToolSpec``."""

    def __init__(self, tools: Iterable[ToolSpec[Any, Any]]) -> None:
        table: dict[str, ToolSpec[Any, Any]] = {}
        for tool in tools:
            if tool.name in table:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            table[tool.name] = tool
        self._tools = MappingProxyType(table)

    def get(self, name: str) -> ToolSpec[Any, Any] | None:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolSpec[Any, Any]]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> list[Tool]:
        return [tool.to_tool() for tool in self._tools.values()]

    async def call(self, ctx: RequestContext, params: CallToolRequestParams) -> CallToolResult:
        """Run one tool call and package its outcome."""
        tool = self._tools.get(params.name)
        if tool is None:
            return _error_result(f"Unknown tool: {params.name}")

        await ctx.report_progress(0, 1)
        try:
            output = await tool.run(ctx, params.arguments)
        except ToolError as e:
            logger.warning("Tool %s failed: %s", params.name, e)
            await ctx.log("error", str(e), logger_name=f"tools.{params.name}")
            return _error_result(str(e))
        await ctx.report_progress(1, 1)

        structured = output.model_dump(mode="json", exclude_none=True)
        await ctx.log("info", f"{params.name} completed", logger_name=f"tools.{params.name}")
        return CallToolResult(
            content=[TextContent(text=json.dumps(structured, indent=2))],
            structured_content=structured,
        )


def _error_result(message: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(text=message)], is_error=True)
