"""Tool catalog for the SolidWorks MCP Server.

Tools are contributed by the domain modules (modeling, drawing, export,
analysis, vba) at startup. The registry is append-only and keeps
registration order, which is the order clients see when listing tools.
"""

import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from solidworks_mcp.errors import DuplicateToolError, UnknownToolError
from solidworks_mcp.schemas import tool_input_schema

logger = logging.getLogger(__name__)

Handler = Callable[[Any, Any], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    """A named, schema-validated operation exposed to MCP clients.

    Attributes:
        name: Unique tool name.
        description: Human-readable description shown to clients.
        input_schema: Pydantic model the arguments are validated against.
        handler: Coroutine ``handler(arguments, session)``.
        category: Domain module that contributed the tool.
        requires_session: Whether SolidWorks must be connected first.
    """

    name: str
    description: str
    input_schema: type[BaseModel]
    handler: Handler
    category: str = "general"
    requires_session: bool = True

    def describe(self) -> dict[str, Any]:
        """Discovery entry for the tool listing."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": tool_input_schema(self.input_schema),
        }


class ToolRegistry:
    """Append-only catalog of tools keyed by name."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Add a tool.

        Raises:
            DuplicateToolError: If a tool with the same name exists.
        """
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool
        logger.debug("Registered tool %s (%s)", tool.name, tool.category)

    def register_all(self, tools: list[Tool]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> Tool:
        """Look up a tool.

        Raises:
            UnknownToolError: If no tool has that name.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def list(self) -> Iterator[Tool]:
        """Registered tools in registration order.

        Each call returns a fresh iterator.
        """
        yield from list(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
