"""
Tool executor.

Runs one round of model-requested tool calls concurrently and returns
exactly one ToolResult per call, in request order. Nothing a handler does
escapes as an exception: unknown tools, invalid arguments, timeouts and
handler failures all become error results the model can read.

Only tool names and argument keys are logged, never argument values.
"""

import asyncio

import structlog
from pydantic import ValidationError

from homebase.agents.registry import TOOL_CONTEXT_KEY, Toolset
from homebase.agents.state import ToolContext
from homebase.errors import ToolExecutionError
from homebase.models.chat import ToolCall, ToolResult

logger = structlog.get_logger(__name__)

GENERIC_TOOL_ERROR = "The tool failed unexpectedly. Please try a different approach."


class ToolExecutor:
    def __init__(self, toolset: Toolset, context: ToolContext, timeout_seconds: float = 20.0):
        self.toolset = toolset
        self.context = context
        self.timeout_seconds = timeout_seconds

    async def execute(self, call: ToolCall) -> ToolResult:
        log = logger.bind(
            session_id=self.context["session_id"],
            tool=call.name,
            call_id=call.id,
            arg_keys=sorted(call.args),
        )

        if call.error:
            log.info("tool_args_rejected")
            return ToolResult.failure(call.id, call.name, call.error)

        spec = self.toolset.get(call.name)
        tool = self.toolset.tool(call.name)
        if spec is None or tool is None:
            log.warning("tool_unknown")
            return ToolResult.failure(call.id, call.name, f"Unknown tool '{call.name}'")

        try:
            spec.args_model.model_validate(call.args)
        except ValidationError as exc:
            log.info("tool_args_invalid", error_count=exc.error_count())
            return ToolResult.failure(call.id, call.name, f"Invalid arguments for '{call.name}': {exc.errors()[0]['msg']}")

        try:
            outcome = await asyncio.wait_for(
                tool.ainvoke(call.args, config={"configurable": {TOOL_CONTEXT_KEY: self.context}}),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            log.warning("tool_timeout", timeout_seconds=self.timeout_seconds)
            return ToolResult.failure(call.id, call.name, f"Tool '{call.name}' timed out")
        except ToolExecutionError as exc:
            log.warning("tool_failed", error=exc.message)
            return ToolResult.failure(call.id, call.name, exc.message)
        except Exception:
            log.exception("tool_crashed")
            return ToolResult.failure(call.id, call.name, GENERIC_TOOL_ERROR)

        log.info("tool_completed", has_ui=outcome.ui is not None)
        return ToolResult(call_id=call.id, name=call.name, ok=True, payload=outcome.payload, ui=outcome.ui)

    async def execute_round(self, calls: list[ToolCall]) -> list[ToolResult]:
        """Run all calls concurrently. Results keep the order of `calls`."""
        if not calls:
            return []
        return list(await asyncio.gather(*(self.execute(call) for call in calls)))
