"""
Chat API endpoint.

Conversational interface to the HomeBase AI turn engine.

Endpoint:
    POST /api/v1/chat

Request body:
    { "message": string, "session_id": string | null,
      "history": [...] (ignored, the stored log is used), "context": {...} }

Response body:
    { "reply": string, "session_id": string,
      "tool_results": [{"type": "property" | "service_request", "data": {...}}] }

Errors are returned as {"error": code, "message": text}:
    400 message_required   404 session_not_found   429 rate_limit
    402 payment_required   502 model_error         504 timeout
"""

import asyncio

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from homebase.agents.orchestrator import run_turn
from homebase.agents.store import SupabaseDataStore
from homebase.auth import CurrentUser
from homebase.config import get_settings
from homebase.errors import (
    InputValidationError,
    ModelClientError,
    ModelPaymentRequiredError,
    ModelRateLimitError,
    SessionNotFoundError,
)
from homebase.models.chat import ChatRequest, ChatResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

MODEL_ERROR_NOTICE = "The assistant is temporarily unavailable. Please try again in a moment."


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "message": message})


@router.post("", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(body: ChatRequest, request: Request, user: CurrentUser):
    """
    Run one conversation turn for the authenticated user.

    Homeowners get the diagnose-and-request toolset; providers get the
    client, schedule and job tools. `tool_results` is omitted when no tool
    produced a UI result.
    """
    if not body.message or not body.message.strip():
        return _error(400, "message_required", "Message is required")

    settings = get_settings()
    state = request.app.state
    graph = getattr(state, "turn_graph", None)
    supabase = getattr(state, "supabase", None)
    if graph is None or supabase is None:
        return _error(503, "unavailable", "Assistant not available")

    structlog.contextvars.bind_contextvars(user_id=user.id, role=user.role.value)

    try:
        result = await asyncio.wait_for(
            run_turn(
                graph,
                store=SupabaseDataStore(supabase),
                model_client=state.model_client,
                property_lookup=state.property_lookup,
                provider_matcher=state.provider_matcher,
                settings=settings,
                user_id=user.id,
                profile_id=user.profile_id,
                role=user.role,
                message=body.message,
                session_id=body.session_id,
                context=body.context,
            ),
            timeout=settings.orchestrator.turn_timeout_seconds,
        )
    except SessionNotFoundError as e:
        return _error(404, e.code, e.message)
    except InputValidationError as e:
        return _error(400, e.code, e.message)
    except ModelRateLimitError as e:
        return _error(429, e.code, e.message)
    except ModelPaymentRequiredError as e:
        return _error(402, e.code, e.message)
    except ModelClientError as e:
        logger.error("chat_model_error", error=e.message, session_id=body.session_id)
        return _error(502, e.code, MODEL_ERROR_NOTICE)
    except asyncio.TimeoutError:
        logger.error(
            "chat_turn_timeout",
            session_id=body.session_id,
            timeout_seconds=settings.orchestrator.turn_timeout_seconds,
        )
        return _error(504, "timeout", "The assistant took too long to respond. Please try again.")

    return ChatResponse(
        reply=result.reply,
        session_id=result.session_id,
        tool_results=result.tool_results or None,
    )


@router.get("/health")
async def health_check() -> dict:
    """Health check for the chat service."""
    return {"status": "healthy", "service": "homebase-chat"}
