"""
Context block builder and history conversion.

The session context bag (selected home, provider org, UI hints) is rendered
as a SystemMessage with name="session_context" and placed right after the
role prompt. Persisted message rows are converted back to LangChain
messages for the model window.
"""

from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from homebase.models.chat import MessageRole

# Marker used to identify the context message in the message list
CONTEXT_MESSAGE_NAME = "session_context"

# Human-readable labels for well-known context keys
_CONTEXT_LABELS = {
    "homeId": "Active home ID",
    "homeAddress": "Active home address",
    "orgId": "Organization ID",
    "page": "Current app page",
}


def merge_context(stored: dict[str, Any] | None, inbound: dict[str, Any] | None) -> dict[str, Any]:
    """Merge the inbound context over the stored bag. Inbound keys win."""
    merged = dict(stored or {})
    merged.update(inbound or {})
    return merged


def _render_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def build_context_block(context: dict[str, Any]) -> str | None:
    """
    Render the context bag for the model.

    Returns None when there is nothing worth telling the model, so no empty
    system message is sent.
    """
    lines = []
    for key, value in sorted(context.items()):
        if value is None or value == "" or isinstance(value, dict):
            continue
        label = _CONTEXT_LABELS.get(key, key)
        lines.append(f"- {label}: {_render_value(value)}")

    if not lines:
        return None
    return "# Session context\n" + "\n".join(lines)


def history_to_messages(rows: list[dict]) -> list[BaseMessage]:
    """
    Convert persisted rows (oldest first) into chat messages.

    Only user and assistant text is replayed. Tool rows and empty rows are
    skipped since their tool_call ids belong to earlier turns.
    """
    messages: list[BaseMessage] = []
    for row in rows:
        content = row.get("content") or ""
        if not content.strip():
            continue
        if row.get("role") == MessageRole.USER.value:
            messages.append(HumanMessage(content=content))
        elif row.get("role") == MessageRole.ASSISTANT.value:
            messages.append(AIMessage(content=content))
    return messages
