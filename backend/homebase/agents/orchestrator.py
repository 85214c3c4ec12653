"""
Turn controller LangGraph pipeline.

Graph topology:
    START → init → model_round ⟷ tool_execution → [model_final] → synthesize → persist → END

Nodes:
    init           : create or load the session, merge context, load history,
                     log the user message, assemble the initial messages
    model_round    : model call with the role's tools offered
    tool_execution : run the round's tool calls, append tool messages
    model_final    : tool-less model call once the round ceiling is reached
    synthesize     : replace an empty or too-short reply from the last tool result
    persist        : log the assistant reply and refresh the session

Routing:
    model_round → tool_execution (if tool calls were requested)
    model_round → synthesize (otherwise)
    tool_execution → model_round (while tool_round < max_tool_rounds)
    tool_execution → model_final (ceiling reached)

Collaborators (data store, model client, service clients, settings) are
passed per invocation through config["configurable"]; the compiled graph
is shared across requests.
"""

import json
from typing import Any

import structlog
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from homebase.agents.context import (
    CONTEXT_MESSAGE_NAME,
    build_context_block,
    history_to_messages,
    merge_context,
)
from homebase.agents.executor import ToolExecutor
from homebase.agents.prompts import EMPTY_REPLY_NUDGE, build_system_prompt
from homebase.agents.state import ToolContext, TurnState
from homebase.agents.summaries import synthesize_reply
from homebase.agents.tools import tools_for
from homebase.config import Settings
from homebase.errors import InputValidationError, ModelClientError, SessionNotFoundError
from homebase.models.chat import MessageRole, ToolCall, TurnResult, UserRole

logger = structlog.get_logger(__name__)


def _deps(config: RunnableConfig) -> dict[str, Any]:
    return config.get("configurable") or {}


def _ai_tool_call_message(content: str, calls: list[ToolCall]) -> AIMessage:
    return AIMessage(
        content=content,
        tool_calls=[{"id": c.id, "name": c.name, "args": c.args} for c in calls],
    )


# ---------------------------------------------------------------------------
# Node: init
# ---------------------------------------------------------------------------


async def init_node(state: TurnState, config: RunnableConfig) -> dict:
    """
    Runs once at turn start. Creates the session on a first turn, otherwise
    loads it and checks ownership. Unknown or foreign sessions abort the
    turn before any model call.
    """
    deps = _deps(config)
    store = deps["store"]
    settings: Settings = deps["settings"]

    user_id = state["user_id"]
    session_id = state["session_id"]
    inbound = state["context"]

    if session_id:
        session = await store.get_session(session_id)
        if not session or session.get("user_id") != user_id:
            logger.warning("session_rejected", session_id=session_id)
            raise SessionNotFoundError("Conversation not found", code="session_not_found")
        stored = session.get("context") or {}
        context = merge_context(stored, inbound)
        context_changed = context != stored
        is_new = False
    else:
        context = merge_context({"role": state["role"]}, inbound)
        session = await store.create_session(user_id, state["profile_id"], context)
        session_id = session["id"]
        context_changed = False
        is_new = True

    log = logger.bind(session_id=session_id)

    history = []
    if not is_new:
        history = await store.recent_messages(session_id, settings.orchestrator.history_window)

    await store.append_message(session_id, MessageRole.USER.value, state["user_message"])

    messages = [SystemMessage(content=build_system_prompt(state["role"]))]
    context_block = build_context_block(context)
    if context_block:
        messages.append(SystemMessage(content=context_block, name=CONTEXT_MESSAGE_NAME))
    messages.extend(history_to_messages(history))
    messages.append(HumanMessage(content=state["user_message"]))

    log.info(
        "turn_initialized",
        is_new_session=is_new,
        history_count=len(history),
        context_keys=sorted(context),
    )

    return {
        "session_id": session_id,
        "is_new_session": is_new,
        "context": context,
        "context_changed": context_changed,
        "messages": messages,
    }


# ---------------------------------------------------------------------------
# Node: model_round
# ---------------------------------------------------------------------------


async def model_round_node(state: TurnState, config: RunnableConfig) -> dict:
    """
    Model call with tools offered. An empty first response (no text and no
    tool calls) is retried once without tools and with a nudge.
    """
    deps = _deps(config)
    model_client = deps["model_client"]
    cfg = deps["settings"].orchestrator
    toolset = tools_for(state["role"])
    tool_round = state["tool_round"]
    log = logger.bind(session_id=state["session_id"])

    tool_choice = None
    if cfg.clarify_first_turn and state["is_new_session"] and tool_round == 0:
        tool_choice = "none"

    new_messages = []
    try:
        reply = await model_client.complete(state["messages"], toolset, tool_choice)
        if tool_round == 0 and not reply.content.strip() and not reply.tool_calls:
            log.info("model_empty_reply_retry")
            nudge = SystemMessage(content=EMPTY_REPLY_NUDGE)
            reply = await model_client.complete([*state["messages"], nudge])
            new_messages.append(nudge)
    except ModelClientError as exc:
        log.error("model_call_failed", error_code=exc.code, tool_round=tool_round)
        raise

    if reply.tool_calls:
        log.info(
            "tool_calls_requested",
            round=tool_round + 1,
            tools=[c.name for c in reply.tool_calls],
        )
        new_messages.append(_ai_tool_call_message(reply.content, reply.tool_calls))
    else:
        new_messages.append(AIMessage(content=reply.content))

    return {
        "messages": new_messages,
        "pending_calls": reply.tool_calls,
        "reply": reply.content,
    }


# ---------------------------------------------------------------------------
# Node: tool_execution
# ---------------------------------------------------------------------------


async def tool_execution_node(state: TurnState, config: RunnableConfig) -> dict:
    deps = _deps(config)
    cfg = deps["settings"].orchestrator

    ctx: ToolContext = {
        "store": deps["store"],
        "property_lookup": deps["property_lookup"],
        "provider_matcher": deps["provider_matcher"],
        "user_id": state["user_id"],
        "profile_id": state["profile_id"],
        "role": state["role"],
        "session_id": state["session_id"],
        "context": state["context"],
        "match_limit": cfg.match_limit,
    }
    executor = ToolExecutor(tools_for(state["role"]), ctx, timeout_seconds=cfg.tool_timeout_seconds)
    results = await executor.execute_round(state["pending_calls"])

    tool_messages = [
        ToolMessage(
            content=json.dumps(result.payload, default=str),
            tool_call_id=result.call_id,
            name=result.name,
            status="success" if result.ok else "error",
        )
        for result in results
    ]

    logger.info(
        "tool_round_completed",
        session_id=state["session_id"],
        round=state["tool_round"] + 1,
        failed=sum(1 for r in results if not r.ok),
    )

    return {
        "messages": tool_messages,
        "tool_results": results,
        "tool_round": state["tool_round"] + 1,
        "pending_calls": [],
    }


# ---------------------------------------------------------------------------
# Node: model_final
# ---------------------------------------------------------------------------


async def model_final_node(state: TurnState, config: RunnableConfig) -> dict:
    """Tool-less call after the round ceiling. The model can only answer."""
    try:
        reply = await _deps(config)["model_client"].complete(state["messages"])
    except ModelClientError as exc:
        logger.error("model_call_failed", session_id=state["session_id"], error_code=exc.code, final=True)
        raise
    return {"messages": [AIMessage(content=reply.content)], "reply": reply.content}


# ---------------------------------------------------------------------------
# Node: synthesize
# ---------------------------------------------------------------------------


def synthesize_node(state: TurnState, config: RunnableConfig) -> dict:
    min_length = _deps(config)["settings"].orchestrator.min_reply_length
    reply = (state.get("reply") or "").strip()
    if len(reply) >= min_length:
        return {"reply": reply, "synthesized": False}

    results = state.get("tool_results") or []
    last_result = results[-1] if results else None
    logger.info(
        "reply_synthesized",
        session_id=state["session_id"],
        model_reply_length=len(reply),
        last_tool=last_result.name if last_result else None,
    )
    return {"reply": synthesize_reply(last_result, state["role"]), "synthesized": True}


# ---------------------------------------------------------------------------
# Node: persist
# ---------------------------------------------------------------------------


async def persist_node(state: TurnState, config: RunnableConfig) -> dict:
    """
    Logs the assistant reply with the turn's UI results and refreshes the
    session. The reply is already decided, so failures here are logged only.
    """
    store = _deps(config)["store"]
    session_id = state["session_id"]
    ui_results = [r.ui.model_dump() for r in state["tool_results"] if r.ui is not None]
    log = logger.bind(session_id=session_id)

    try:
        await store.append_message(
            session_id, MessageRole.ASSISTANT.value, state["reply"], tool_calls=ui_results or None
        )
    except Exception:
        log.exception("persist_assistant_message_failed")

    try:
        await store.touch_session(session_id, state["context"] if state["context_changed"] else None)
    except Exception:
        log.exception("persist_touch_session_failed")

    return {}


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


def route_after_model(state: TurnState) -> str:
    if state.get("pending_calls"):
        return "tool_execution"
    return "synthesize"


def route_after_tools(state: TurnState) -> str:
    if state["tool_round"] < state["max_tool_rounds"]:
        return "model_round"
    return "model_final"


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------


def build_turn_graph():
    """
    Build and compile the turn graph.

    Compiled once at startup and stored on app.state. Per-request
    collaborators are passed via the `configurable` dict.
    """
    graph = StateGraph(TurnState)

    graph.add_node("init", init_node)
    graph.add_node("model_round", model_round_node)
    graph.add_node("tool_execution", tool_execution_node)
    graph.add_node("model_final", model_final_node)
    graph.add_node("synthesize", synthesize_node)
    graph.add_node("persist", persist_node)

    graph.set_entry_point("init")
    graph.add_edge("init", "model_round")
    graph.add_conditional_edges(
        "model_round",
        route_after_model,
        {"tool_execution": "tool_execution", "synthesize": "synthesize"},
    )
    graph.add_conditional_edges(
        "tool_execution",
        route_after_tools,
        {"model_round": "model_round", "model_final": "model_final"},
    )
    graph.add_edge("model_final", "synthesize")
    graph.add_edge("synthesize", "persist")
    graph.add_edge("persist", END)

    return graph.compile()


async def run_turn(
    graph,
    *,
    store,
    model_client,
    property_lookup,
    provider_matcher,
    settings: Settings,
    user_id: str,
    profile_id: str | None,
    role: str | UserRole,
    message: str | None,
    session_id: str | None = None,
    context: dict | None = None,
) -> TurnResult:
    """
    Run one conversation turn end to end.

    Raises:
        InputValidationError: blank message, or unknown/foreign session
        ModelClientError: the model call failed (nothing is persisted for
            the assistant side)
    """
    if not message or not message.strip():
        raise InputValidationError("Message is required", code="message_required")

    role_value = role.value if isinstance(role, UserRole) else str(role)
    logger.info("turn_started", role=role_value, has_session=bool(session_id), message=message)

    initial: TurnState = {
        "messages": [],
        "user_id": user_id,
        "profile_id": profile_id,
        "role": role_value,
        "session_id": session_id or "",
        "is_new_session": False,
        "context": dict(context or {}),
        "context_changed": False,
        "user_message": message.strip(),
        "tool_round": 0,
        "max_tool_rounds": settings.orchestrator.max_tool_rounds,
        "pending_calls": [],
        "tool_results": [],
        "reply": "",
        "synthesized": False,
    }
    config: RunnableConfig = {
        "configurable": {
            "store": store,
            "model_client": model_client,
            "property_lookup": property_lookup,
            "provider_matcher": provider_matcher,
            "settings": settings,
        }
    }

    final = await graph.ainvoke(initial, config=config)

    ui_results = [r.ui for r in final["tool_results"] if r.ui is not None]
    logger.info(
        "turn_completed",
        session_id=final["session_id"],
        tool_rounds=final["tool_round"],
        tool_calls=len(final["tool_results"]),
        synthesized=final["synthesized"],
        reply=final["reply"],
    )
    return TurnResult(reply=final["reply"], session_id=final["session_id"], tool_results=ui_results)
