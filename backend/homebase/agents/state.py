"""
Turn state definitions.

TurnState is the single shared state dict that flows through the turn
graph. Its `messages` field is the conversation accumulator: nodes only
ever append to it (via the add_messages reducer), so every phase sees the
full ordered context the model was given.

ToolContext is what tool handlers receive. It carries the caller's
identity, the session context bag and the request-scoped collaborators.
"""

import operator
from typing import Annotated, Any, TypedDict

from langchain_core.messages import BaseMessage
from langgraph.graph import add_messages

from homebase.models.chat import ToolCall, ToolResult


class TurnState(TypedDict):
    """
    Full state for one conversation turn.

    Flows through: init → model_round ⟷ tool_execution → [model_final] →
    synthesize → persist
    """

    # Conversation accumulator (append-only via add_messages reducer)
    messages: Annotated[list[BaseMessage], add_messages]

    # Identity
    user_id: str
    profile_id: str | None
    role: str

    # Session ("" until init creates or loads it)
    session_id: str
    is_new_session: bool
    # Context bag after merging the stored bag with the inbound one
    context: dict[str, Any]
    context_changed: bool

    # Incoming user message text
    user_message: str

    # Completed tool rounds in this turn, and the ceiling for it
    tool_round: int
    max_tool_rounds: int
    # Calls requested by the latest model round, not yet executed
    pending_calls: list[ToolCall]
    # Every result produced this turn, in execution order
    tool_results: Annotated[list[ToolResult], operator.add]

    # Model text from the last model call, then the final reply
    reply: str
    synthesized: bool


class ToolContext(TypedDict):
    """Per-turn context handed to every tool handler."""

    store: Any               # DataStore
    property_lookup: Any     # PropertyLookupService
    provider_matcher: Any    # ProviderMatchingService
    user_id: str
    profile_id: str | None
    role: str
    session_id: str
    context: dict[str, Any]
    match_limit: int
