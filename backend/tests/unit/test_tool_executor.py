"""
Unit tests for the ToolExecutor: one result per call, in call order, and
every failure mode converted into an error result.
"""

import asyncio

import pytest
from pydantic import BaseModel

from homebase.agents.executor import GENERIC_TOOL_ERROR, ToolExecutor
from homebase.agents.registry import ToolOutcome, ToolSpec, Toolset
from homebase.errors import ToolExecutionError
from homebase.models.chat import ToolCall, UserRole


class _Args(BaseModel):
    value: int


async def _ok(args: _Args, ctx) -> ToolOutcome:
    return ToolOutcome(payload={"doubled": args.value * 2})


async def _slow(args: _Args, ctx) -> ToolOutcome:
    await asyncio.sleep(args.value / 100)
    return ToolOutcome(payload={"slept": args.value})


async def _expected_failure(args: _Args, ctx) -> ToolOutcome:
    raise ToolExecutionError("Client 'c-9' not found")


async def _crash(args: _Args, ctx) -> ToolOutcome:
    raise RuntimeError("database password leaked in message")


_handler_calls: list[int] = []


async def _recording(args: _Args, ctx) -> ToolOutcome:
    _handler_calls.append(args.value)
    return ToolOutcome(payload={})


TOOLSET = Toolset(
    UserRole.HOMEOWNER,
    [
        ToolSpec(name="ok", description="", args_model=_Args, handler=_ok),
        ToolSpec(name="slow", description="", args_model=_Args, handler=_slow),
        ToolSpec(name="fails", description="", args_model=_Args, handler=_expected_failure),
        ToolSpec(name="crash", description="", args_model=_Args, handler=_crash),
        ToolSpec(name="record", description="", args_model=_Args, handler=_recording),
    ],
)


@pytest.fixture
def executor(make_tool_context) -> ToolExecutor:
    return ToolExecutor(TOOLSET, make_tool_context(), timeout_seconds=1.0)


class TestExecute:
    @pytest.mark.asyncio
    async def test_success(self, executor):
        result = await executor.execute(ToolCall(id="c1", name="ok", args={"value": 21}))
        assert result.ok
        assert result.call_id == "c1"
        assert result.payload == {"doubled": 42}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, executor):
        result = await executor.execute(ToolCall(id="c1", name="delete_everything", args={}))
        assert not result.ok
        assert result.payload["tool"] == "delete_everything"
        assert "Unknown tool" in result.payload["error"]

    @pytest.mark.asyncio
    async def test_invalid_args_never_reach_handler(self, executor):
        _handler_calls.clear()
        result = await executor.execute(ToolCall(id="c1", name="record", args={"value": "many"}))
        assert not result.ok
        assert "Invalid arguments" in result.payload["error"]
        assert _handler_calls == []

    @pytest.mark.asyncio
    async def test_call_flagged_by_model_client_is_rejected(self, executor):
        _handler_calls.clear()
        call = ToolCall(id="c1", name="record", args={"value": 1}, error="Could not parse arguments")
        result = await executor.execute(call)
        assert not result.ok
        assert result.payload["error"] == "Could not parse arguments"
        assert _handler_calls == []

    @pytest.mark.asyncio
    async def test_expected_failure_message_is_returned(self, executor):
        result = await executor.execute(ToolCall(id="c1", name="fails", args={"value": 1}))
        assert not result.ok
        assert result.payload == {"error": "Client 'c-9' not found", "tool": "fails"}

    @pytest.mark.asyncio
    async def test_crash_is_contained_and_generic(self, executor):
        result = await executor.execute(ToolCall(id="c1", name="crash", args={"value": 1}))
        assert not result.ok
        assert result.payload["error"] == GENERIC_TOOL_ERROR
        assert "password" not in result.payload["error"]

    @pytest.mark.asyncio
    async def test_timeout(self, make_tool_context):
        executor = ToolExecutor(TOOLSET, make_tool_context(), timeout_seconds=0.01)
        result = await executor.execute(ToolCall(id="c1", name="slow", args={"value": 50}))
        assert not result.ok
        assert "timed out" in result.payload["error"]


class TestExecuteRound:
    @pytest.mark.asyncio
    async def test_one_result_per_call_in_call_order(self, executor):
        calls = [
            ToolCall(id="a", name="slow", args={"value": 5}),
            ToolCall(id="b", name="unknown", args={}),
            ToolCall(id="c", name="slow", args={"value": 1}),
            ToolCall(id="d", name="crash", args={"value": 1}),
        ]
        results = await executor.execute_round(calls)
        assert [r.call_id for r in results] == ["a", "b", "c", "d"]
        assert [r.ok for r in results] == [True, False, True, False]

    @pytest.mark.asyncio
    async def test_calls_run_concurrently(self, executor):
        calls = [ToolCall(id=str(i), name="slow", args={"value": 20}) for i in range(5)]
        loop = asyncio.get_running_loop()
        started = loop.time()
        await executor.execute_round(calls)
        # Five 0.2s calls complete well under their 1s sequential total
        assert loop.time() - started < 0.8

    @pytest.mark.asyncio
    async def test_empty_round(self, executor):
        assert await executor.execute_round([]) == []
