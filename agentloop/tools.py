"""Tool capability interface and the registry that dispatches tool calls.

Provides:
- Tool: base class for a typed tool. The argument type is a pydantic model,
  which doubles as the JSON schema advertised to the model.
- FunctionTool: wraps a plain async callable as a Tool.
- ToolRegistry: owns tool instances by name and dispatches raw tool calls.

Dispatch errors are typed: UnknownTool and SchemaMismatch are raised for
bad calls from the model; anything a tool raises itself propagates unchanged.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from agentloop.errors import SchemaMismatch, UnknownTool
from agentloop.schemas import ToolDescriptor

logger = logging.getLogger(__name__)

ArgsT = TypeVar("ArgsT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


class Tool(ABC, Generic[ArgsT]):
    """A named capability the model can call.

    Subclasses set ``name``, ``arguments`` (pydantic model) and optionally
    ``description`` and ``strict``, then implement ``invoke``.
    """

    name: str
    arguments: type[BaseModel]
    description: str | None = None
    strict: bool = False

    def schema(self) -> dict[str, Any]:
        return self.arguments.model_json_schema()

    def describe(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameters=self.schema(),
            strict=self.strict,
        )

    def parse_arguments(self, raw: str) -> ArgsT:
        """Validate raw JSON argument text. Raises SchemaMismatch."""
        try:
            return self.arguments.model_validate_json(raw or "{}")  # type: ignore[return-value]
        except ValidationError as e:
            raise SchemaMismatch(self.schema(), raw, str(e)) from e

    async def call(self, raw: str) -> str:
        return await self.invoke(self.parse_arguments(raw))

    @abstractmethod
    async def invoke(self, args: ArgsT) -> str:
        """Run the tool. Tool-specific failures propagate to the caller."""
        ...


class FunctionTool(Tool[BaseModel]):
    """Adapts an async callable into a Tool.

    The callable receives the parsed argument model fields as keyword
    arguments and returns the text result.
    """

    def __init__(
        self,
        name: str,
        handler: Callable[..., Awaitable[str]],
        arguments: type[BaseModel],
        description: str | None = None,
        strict: bool = False,
    ) -> None:
        self.name = name
        self.arguments = arguments
        self.description = description
        self.strict = strict
        self._handler = handler

    async def invoke(self, args: BaseModel) -> str:
        return await self._handler(**dict(args))


# ---------------------------------------------------------------------------
# ToolRegistry
# ---------------------------------------------------------------------------


class ToolRegistry:
    """Registers tools by name and dispatches tool calls from the model.

    Registering a second tool under an existing name replaces the first
    (last registration wins). The registry is read-only once a conversation
    starts.
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool[Any]] = {}

    def register(self, tool: Tool[Any]) -> None:
        """Register a tool instance under its name."""
        if tool.name in self._tools:
            logger.warning("Tool %s registered twice, replacing previous entry", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool[Any] | None:
        return self._tools.get(name)

    def catalog(self) -> list[ToolDescriptor]:
        """Return all tool descriptors for advertisement to the model."""
        return [tool.describe() for tool in self._tools.values()]

    async def dispatch(self, name: str, raw_args: str) -> str:
        """Dispatch a tool call and return its text result.

        Raises:
            UnknownTool: no tool registered under ``name``.
            SchemaMismatch: ``raw_args`` does not match the tool schema.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownTool(name)
        logger.debug("Invoking tool %s with arguments %s", name, raw_args)
        return await tool.call(raw_args)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
