"""
Chat completion client for the turn engine.

Wraps a single ChatOpenAI instance (built once at startup) and converts
its output into plain (content, tool_calls) replies. Upstream OpenAI
errors are mapped onto the ModelClientError family so the API layer can
answer with the right status code.

Tool calls are validated against the toolset that was offered:
  - unknown tool names pass through untouched (the executor reports them)
  - arguments that fail the tool's argument model are kept, with `error` set
  - calls the provider could not parse (invalid JSON) become error calls
"""

import uuid
from typing import Literal

import openai
import structlog
from langchain_core.messages import AIMessage, BaseMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field, ValidationError

from homebase.agents.registry import Toolset
from homebase.config import Settings
from homebase.errors import ModelClientError, ModelPaymentRequiredError, ModelRateLimitError
from homebase.models.chat import ToolCall

logger = structlog.get_logger(__name__)

ToolChoice = Literal["auto", "none", "required"]


class ModelReply(BaseModel):
    """One completion: text content and zero or more tool calls."""

    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)


def _content_text(content) -> str:
    """Flatten message content (str or list of content blocks) into text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text") or "")
        return "".join(parts)
    return ""


def _validation_message(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        problems.append(f"{loc}: {err['msg']}")
    return "Invalid arguments: " + "; ".join(problems)


def _call_id(raw_id: str | None) -> str:
    return raw_id or f"call_{uuid.uuid4().hex[:24]}"


def convert_tool_calls(message: AIMessage, toolset: Toolset) -> list[ToolCall]:
    """Turn an AIMessage's tool calls into validated ToolCall records."""
    calls: list[ToolCall] = []

    for raw in message.tool_calls or []:
        call = ToolCall(id=_call_id(raw.get("id")), name=raw.get("name") or "", args=raw.get("args") or {})
        if call.name in toolset:
            try:
                toolset.validate_args(call.name, call.args)
            except ValidationError as exc:
                call.error = _validation_message(exc)
        calls.append(call)

    for raw in message.invalid_tool_calls or []:
        calls.append(
            ToolCall(
                id=_call_id(raw.get("id")),
                name=raw.get("name") or "",
                args={},
                error=f"Could not parse arguments: {raw.get('error') or 'malformed JSON'}",
            )
        )

    return calls


class ModelClient:
    """Async chat completion client bound to one model configuration."""

    def __init__(self, llm: ChatOpenAI):
        self.llm = llm

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelClient":
        cfg = settings.orchestrator
        llm = ChatOpenAI(
            model=cfg.model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url or None,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            timeout=cfg.turn_timeout_seconds,
            max_retries=1,
        )
        return cls(llm)

    async def complete(
        self,
        messages: list[BaseMessage],
        toolset: Toolset | None = None,
        tool_choice: ToolChoice | None = None,
    ) -> ModelReply:
        """
        Run one completion.

        Without a toolset the model is called tool-less and any tool calls
        it still produces are ignored.

        Raises:
            ModelRateLimitError: upstream 429
            ModelPaymentRequiredError: upstream 402
            ModelClientError: any other upstream failure or unusable response
        """
        runnable = self.llm
        if toolset is not None and len(toolset):
            runnable = self.llm.bind_tools(toolset.tools, tool_choice=tool_choice or "auto")

        try:
            response = await runnable.ainvoke(messages)
        except openai.RateLimitError as exc:
            logger.warning("model_rate_limited", status=exc.status_code)
            raise ModelRateLimitError("Rate limit exceeded. Please try again in a moment.") from exc
        except openai.APIStatusError as exc:
            logger.error("model_api_error", status=exc.status_code)
            if exc.status_code == 402:
                raise ModelPaymentRequiredError("AI service credits exhausted.") from exc
            raise ModelClientError(f"AI service error (HTTP {exc.status_code})") from exc
        except openai.APIError as exc:
            logger.error("model_api_error", error_type=type(exc).__name__)
            raise ModelClientError("AI service unavailable") from exc

        if not isinstance(response, AIMessage):
            raise ModelClientError(f"Unexpected model response type: {type(response).__name__}")

        tool_calls = convert_tool_calls(response, toolset) if toolset is not None else []
        reply = ModelReply(content=_content_text(response.content), tool_calls=tool_calls)
        logger.debug(
            "model_completed",
            tool_call_count=len(reply.tool_calls),
            content_length=len(reply.content),
        )
        return reply
