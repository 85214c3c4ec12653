"""
HomeBase AI Backend - Main FastAPI Application.

Entry point for the HomeBase AI assistant API: a conversational turn engine
that diagnoses home problems, creates service requests and matches
providers for homeowners, and answers client/schedule/job questions for
providers.

Run with:
    uvicorn homebase.main:app --reload
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from supabase import acreate_client
from supabase._async.client import AsyncClient as AsyncSupabaseClient

from homebase.agents.orchestrator import build_turn_graph
from homebase.api.v1.chat import router as chat_router
from homebase.config import get_settings
from homebase.constants import API_DESCRIPTION, API_TITLE, API_VERSION
from homebase.logging_config import setup_logging
from homebase.middleware import RequestContextMiddleware
from homebase.services.model_client import ModelClient
from homebase.services.property_lookup import PropertyLookupService
from homebase.services.provider_matching import ProviderMatchingService

# Get settings before logging setup so we know the debug flag
settings = get_settings()

# Propagate LangSmith settings into os.environ so the SDK can find them.
# pydantic-settings reads .env into the Settings model but does NOT inject
# values into os.environ, which is where langsmith looks.
if settings.langchain_tracing_v2 and settings.langsmith_api_key:
    os.environ["LANGCHAIN_TRACING_V2"] = "true"
    os.environ["LANGSMITH_API_KEY"] = settings.langsmith_api_key
    os.environ["LANGSMITH_PROJECT"] = settings.langsmith_project

# Configure logging
setup_logging(settings.debug, settings.log_message_content)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan event handler for startup and shutdown."""
    logger.info("api_startup", cors_origins=settings.cors_origins)

    if settings.openai_base_url:
        logger.info("openai_configured", base_url=settings.openai_base_url)
    else:
        logger.info("openai_configured")

    # Initialize Supabase async client
    supabase_client: AsyncSupabaseClient | None = None
    if settings.supabase_url and settings.supabase_secret_key:
        try:
            supabase_client = await acreate_client(
                settings.supabase_url,
                settings.supabase_secret_key,
            )
            logger.info("supabase_configured")
        except Exception as e:
            logger.warning("supabase_init_failed", error=str(e))
    else:
        logger.warning("supabase_not_configured", detail="Chat endpoints will return 503")

    _app.state.supabase = supabase_client

    # Create services once at startup
    property_lookup = PropertyLookupService(
        settings.supabase_url,
        settings.supabase_secret_key,
        settings.property_lookup,
    )
    _app.state.model_client = ModelClient.from_settings(settings)
    _app.state.property_lookup = property_lookup
    _app.state.provider_matcher = (
        ProviderMatchingService(supabase_client) if supabase_client is not None else None
    )

    # Compile graph once and store on app state
    _app.state.turn_graph = build_turn_graph()

    logger.info(
        "services_initialized",
        model=settings.orchestrator.model,
        max_tool_rounds=settings.orchestrator.max_tool_rounds,
    )

    yield

    await property_lookup.close()
    logger.info("api_shutdown")


# Create FastAPI app
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Request context middleware must come before CORS so every response gets
# the X-Request-ID header (including preflight OPTIONS responses).
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error envelopes. Every error response is {"error": code, "message": text}.
HTTP_ERROR_CODES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    503: "unavailable",
}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": code, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies answer 400. A bad `message` field gets message_required."""
    errors = exc.errors()
    if any(tuple(err.get("loc") or ())[-1:] == ("message",) for err in errors):
        code, message = "message_required", "Message must be a non-empty string"
    else:
        code, message = "invalid_request", "Request body is invalid"
    logger.info("request_validation_failed", code=code, error_count=len(errors))
    return JSONResponse(status_code=400, content={"error": code, "message": message})


# Include routers
app.include_router(chat_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint with API info."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "description": API_DESCRIPTION,
        "docs": "/docs",
    }


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}
