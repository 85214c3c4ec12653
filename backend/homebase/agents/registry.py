"""
Tool registry primitives.

A ToolSpec binds a tool name to a pydantic argument model and an async
handler. A Toolset is the immutable, role-scoped collection the model is
offered for a turn; each spec is wrapped in a LangChain StructuredTool so
the same object is bound to the model and invoked by the executor.
Handlers are checked against their argument model when the toolset is
built, so a mis-wired tool fails at import time rather than in the middle
of a conversation.
"""

import inspect
import typing
from collections.abc import Awaitable, Callable, Iterator
from types import MappingProxyType
from typing import Any

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict

from homebase.models.chat import UIToolResult, UserRole

# Key under config["configurable"] carrying the turn's ToolContext
TOOL_CONTEXT_KEY = "tool_context"


class ToolOutcome(BaseModel):
    """What a handler returns: the model payload plus an optional UI card."""

    payload: dict[str, Any]
    ui: UIToolResult | None = None


ToolHandler = Callable[[Any, Any], Awaitable[ToolOutcome]]


class ToolSpec(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler


def as_structured_tool(spec: ToolSpec) -> StructuredTool:
    """
    Wrap a spec as a StructuredTool. The handler's ToolContext is read from
    config["configurable"][TOOL_CONTEXT_KEY] at invocation time.
    """

    async def _run(config: RunnableConfig, **kwargs: Any) -> ToolOutcome:
        ctx = (config.get("configurable") or {})[TOOL_CONTEXT_KEY]
        return await spec.handler(spec.args_model.model_validate(kwargs), ctx)

    return StructuredTool.from_function(
        coroutine=_run,
        name=spec.name,
        description=spec.description,
        args_schema=spec.args_model,
    )


def _check_handler(spec: ToolSpec) -> None:
    if not inspect.iscoroutinefunction(spec.handler):
        raise TypeError(f"Handler for tool '{spec.name}' must be an async function")

    params = list(inspect.signature(spec.handler).parameters.values())
    if len(params) != 2:
        raise TypeError(f"Handler for tool '{spec.name}' must accept (args, ctx)")

    hints = typing.get_type_hints(spec.handler)
    declared = hints.get(params[0].name)
    if declared is not spec.args_model:
        raise TypeError(
            f"Handler for tool '{spec.name}' takes {declared!r}, "
            f"expected {spec.args_model.__name__}"
        )


class Toolset:
    """Immutable, role-scoped set of tools."""

    def __init__(self, role: UserRole, specs: list[ToolSpec]):
        by_name: dict[str, ToolSpec] = {}
        for spec in specs:
            if spec.name in by_name:
                raise ValueError(f"Duplicate tool name '{spec.name}' in {role.value} toolset")
            _check_handler(spec)
            by_name[spec.name] = spec

        self.role = role
        self._specs = MappingProxyType(by_name)
        self._tools = MappingProxyType({name: as_structured_tool(spec) for name, spec in by_name.items()})

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self._specs)

    @property
    def tools(self) -> list[StructuredTool]:
        """LangChain tools in registration order, ready for bind_tools."""
        return list(self._tools.values())

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def tool(self, name: str) -> StructuredTool | None:
        return self._tools.get(name)

    def validate_args(self, name: str, args: dict) -> BaseModel:
        """Parse raw model arguments. Raises KeyError or pydantic.ValidationError."""
        return self._specs[name].args_model.model_validate(args)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)
