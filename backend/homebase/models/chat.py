"""
Data models for the HomeBase AI chat turn.

Request/response shapes match the existing UI consumers (field names are
snake_case on the wire). ToolCall and ToolResult are transient, per-turn
values that are never persisted as first-class rows.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """Role that selects the system prompt and toolset for a turn."""

    HOMEOWNER = "homeowner"
    PROVIDER = "provider"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class UIResultType(str, Enum):
    """Tool result types the chat widget renders as rich cards."""

    PROPERTY = "property"
    SERVICE_REQUEST = "service_request"


# ---------------------------------------------------------------------------
# Tool calls and results
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str = Field(description="Call identifier used to correlate the result")
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    # Set by the model client when the arguments failed schema validation
    error: str | None = None


class UIToolResult(BaseModel):
    """Payload returned to the caller for rich rendering."""

    type: str
    data: dict[str, Any]


class ToolResult(BaseModel):
    """Outcome of exactly one ToolCall."""

    call_id: str
    name: str
    ok: bool = True
    payload: dict[str, Any] = Field(default_factory=dict, description="Fed back to the model")
    ui: UIToolResult | None = None

    @classmethod
    def failure(cls, call_id: str, name: str, error: str) -> "ToolResult":
        return cls(call_id=call_id, name=name, ok=False, payload={"error": error, "tool": name})


# ---------------------------------------------------------------------------
# External service records
# ---------------------------------------------------------------------------


class HomeDetails(BaseModel):
    beds: float | None = None
    baths: float | None = None
    sqft: float | None = None
    lot_acres: float | None = None
    year_built: int | None = None
    zpid: str | None = None


class PropertyRecord(BaseModel):
    """Normalized property returned by the lookup-home service."""

    address_std: str
    zip: str = ""
    home: HomeDetails = Field(default_factory=HomeDetails)
    cached: bool = False


class MatchedProvider(BaseModel):
    """A provider organization returned by match_providers."""

    org_id: str
    name: str
    trust_score: float | None = None
    match_score: float | None = None
    distance_miles: float | None = None


# ---------------------------------------------------------------------------
# HTTP request / response
# ---------------------------------------------------------------------------


class HistoryItem(BaseModel):
    role: str
    content: str = ""


class ChatRequest(BaseModel):
    """Request body for the chat endpoint."""

    message: str | None = None
    session_id: str | None = None
    # Client-side echo of the conversation; the stored message log is authoritative
    history: list[HistoryItem] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class ChatResponse(BaseModel):
    reply: str
    session_id: str
    tool_results: list[UIToolResult] | None = None


class TurnResult(BaseModel):
    """What one turn of the orchestrator produces."""

    reply: str
    session_id: str
    tool_results: list[UIToolResult] = Field(default_factory=list)
