"""
HomeBase AI tools.

Each tool is an async handler bound to a pydantic argument model. Handlers
receive validated arguments plus the turn's ToolContext and return a
ToolOutcome (model payload + optional UI card). Expected failures are
raised as ToolExecutionError; the executor turns every failure into an
error tool result.

Toolsets:
  Homeowner:  lookup_home, create_service_request
  Provider:   get_client_details, check_schedule, prioritize_jobs
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Literal

import structlog
from pydantic import BaseModel, Field, field_validator, model_validator

from homebase.agents.registry import ToolOutcome, ToolSpec, Toolset
from homebase.agents.state import ToolContext
from homebase.agents.summaries import format_cost_range
from homebase.errors import ToolExecutionError
from homebase.models.chat import UIResultType, UIToolResult, UserRole

logger = structlog.get_logger(__name__)

DEFAULT_TRUST_SCORE = 5.0
UI_PROVIDER_COUNT = 3
MAX_PRIORITIZED_JOBS = 20

# Bookings in these states are not part of a provider's open workload
CLOSED_JOB_STATUSES = ["completed", "cancelled", "invoiced", "paid"]

URGENCY_ORDER = {"emergency": 0, "urgent": 1, "high": 2, "moderate": 3, "medium": 3, "low": 4}


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class LookupHomeArgs(BaseModel):
    address: str = Field(min_length=1, description="Street address including city and state or ZIP")


class CreateServiceRequestArgs(BaseModel):
    service_type: str = Field(min_length=1, description="Service category, e.g. HVAC, Plumbing, Electrical")
    ai_summary: str = Field(min_length=1, description="One-sentence summary of the problem")
    severity_level: Literal["low", "moderate", "high", "emergency"]
    likely_cause: str = Field(description="Most likely cause of the problem")
    confidence_score: float = Field(ge=0.0, le=1.0, description="Confidence in the diagnosis, 0-1")
    estimated_min_cost: float = Field(ge=0, description="Low end of the cost estimate in USD")
    estimated_max_cost: float = Field(ge=0, description="High end of the cost estimate in USD")
    scope_includes: list[str] = Field(description="Work included in the estimate")
    scope_excludes: list[str] = Field(description="Work explicitly not included")
    home_id: str | None = Field(default=None, description="Home to service; defaults to the active or primary home")
    description: str | None = Field(default=None, description="The homeowner's own description of the issue")

    @model_validator(mode="after")
    def _check_cost_order(self) -> "CreateServiceRequestArgs":
        if self.estimated_max_cost < self.estimated_min_cost:
            raise ValueError("estimated_max_cost must be >= estimated_min_cost")
        return self


class GetClientDetailsArgs(BaseModel):
    client_id: str = Field(min_length=1, description="ID of the client in the provider's CRM")


class CheckScheduleArgs(BaseModel):
    date_range: str = Field(
        description="'today', 'tomorrow', 'week', 'month', a single day 'YYYY-MM-DD' "
        "or an inclusive range 'YYYY-MM-DD..YYYY-MM-DD'"
    )

    @field_validator("date_range")
    @classmethod
    def _check_date_range(cls, value: str) -> str:
        value = value.strip().lower()
        resolve_date_range(value, datetime.now(timezone.utc))
        return value


class PrioritizeJobsArgs(BaseModel):
    criteria: Literal["urgency", "date", "value"] = Field(
        description="Rank open jobs by urgency, by soonest date, or by job value"
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def resolve_date_range(date_range: str, now: datetime) -> tuple[datetime, datetime]:
    """
    Turn a date_range argument into a UTC [start, end) window.

    'week' and 'month' are rolling windows starting today (7 and 30 days).
    """
    today = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    key = date_range.strip().lower()

    if key == "today":
        return today, today + timedelta(days=1)
    if key == "tomorrow":
        return today + timedelta(days=1), today + timedelta(days=2)
    if key == "week":
        return today, today + timedelta(days=7)
    if key == "month":
        return today, today + timedelta(days=30)

    if ".." in key:
        first, _, last = key.partition("..")
        start_day, end_day = _parse_day(first), _parse_day(last)
    else:
        start_day = end_day = _parse_day(key)

    if end_day < start_day:
        raise ValueError("date_range end is before its start")
    start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_day, time.min, tzinfo=timezone.utc) + timedelta(days=1)
    return start, end


def _job_value(job: dict) -> float:
    for key in ("final_price", "estimated_price_high", "estimated_price_low"):
        if job.get(key) is not None:
            return float(job[key])
    return 0.0


def rank_jobs(jobs: list[dict], criteria: str) -> list[dict]:
    """Order open jobs by the given criteria. Ties fall back to soonest start."""
    def start_of(job: dict) -> str:
        return job.get("date_time_start") or ""

    if criteria == "value":
        ranked = sorted(jobs, key=lambda j: (-_job_value(j), start_of(j)))
    elif criteria == "date":
        ranked = sorted(jobs, key=start_of)
    else:
        ranked = sorted(
            jobs,
            key=lambda j: (URGENCY_ORDER.get((j.get("urgency_level") or "").lower(), 5), start_of(j)),
        )
    return [{**job, "rank": i + 1} for i, job in enumerate(ranked)]


async def _require_provider_org(ctx: ToolContext) -> dict:
    org = await ctx["store"].get_provider_org(ctx["user_id"])
    if not org:
        raise ToolExecutionError("No organization found for this provider account")
    return org


async def _resolve_home_id(args: CreateServiceRequestArgs, ctx: ToolContext) -> str | None:
    """Explicit home_id, then the session's homeId, then the caller's primary home."""
    if args.home_id:
        return args.home_id
    if ctx["context"].get("homeId"):
        return str(ctx["context"]["homeId"])
    if not ctx["profile_id"]:
        return None
    try:
        home = await ctx["store"].get_primary_home(ctx["profile_id"])
    except Exception:
        logger.warning("primary_home_lookup_failed", session_id=ctx["session_id"], exc_info=True)
        return None
    return home["id"] if home else None


# ---------------------------------------------------------------------------
# Homeowner tools
# ---------------------------------------------------------------------------


async def lookup_home(args: LookupHomeArgs, ctx: ToolContext) -> ToolOutcome:
    record = await ctx["property_lookup"].lookup(args.address)
    data = record.model_dump()
    return ToolOutcome(
        payload=data,
        ui=UIToolResult(type=UIResultType.PROPERTY.value, data=data),
    )


async def create_service_request(args: CreateServiceRequestArgs, ctx: ToolContext) -> ToolOutcome:
    store = ctx["store"]
    log = logger.bind(session_id=ctx["session_id"], tool="create_service_request")

    home_id = await _resolve_home_id(args, ctx)
    if home_id is None:
        log.info("service_request_without_home")

    row = {
        "homeowner_id": ctx["profile_id"],
        "home_id": home_id,
        "service_type": args.service_type,
        "description": args.description or args.ai_summary,
        "ai_summary": args.ai_summary,
        "severity_level": args.severity_level,
        "likely_cause": args.likely_cause,
        "confidence_score": args.confidence_score,
        "estimated_min_cost": args.estimated_min_cost,
        "estimated_max_cost": args.estimated_max_cost,
        "ai_scope_json": {"includes": args.scope_includes, "excludes": args.scope_excludes},
        "ai_metadata": {
            "created_by_ai": True,
            "session_id": ctx["session_id"],
            "created_at": datetime.now(timezone.utc).isoformat(),
            "source": "homebase_ai",
        },
        "status": "pending",
    }

    try:
        request = await store.insert_service_request(row)
    except Exception as exc:
        log.exception("service_request_insert_failed", home_id=home_id)
        raise ToolExecutionError("Could not create the service request") from exc

    try:
        matches = await ctx["provider_matcher"].match(args.service_type, home_id, ctx["match_limit"])
    except Exception:
        log.exception("provider_matching_failed", request_id=request["id"])
        matches = []

    snapshot = [
        {
            "org_id": m.org_id,
            "name": m.name,
            "trust_score": m.trust_score if m.trust_score is not None else DEFAULT_TRUST_SCORE,
        }
        for m in matches
    ]
    if snapshot:
        try:
            await store.update_service_request(request["id"], {"matched_providers": snapshot})
        except Exception:
            log.exception("matched_providers_update_failed", request_id=request["id"])

    log.info(
        "service_request_created",
        request_id=request["id"],
        home_id=home_id,
        matched_count=len(snapshot),
    )

    data = {
        "request_id": request["id"],
        "summary": args.ai_summary,
        "severity": args.severity_level,
        "cost_range": format_cost_range(args.estimated_min_cost, args.estimated_max_cost),
        "matched_count": len(snapshot),
        "providers": snapshot[:UI_PROVIDER_COUNT],
    }
    payload = {**data, "status": "pending", "home_id": home_id, "likely_cause": args.likely_cause}
    return ToolOutcome(
        payload=payload,
        ui=UIToolResult(type=UIResultType.SERVICE_REQUEST.value, data=data),
    )


# ---------------------------------------------------------------------------
# Provider tools
# ---------------------------------------------------------------------------


async def get_client_details(args: GetClientDetailsArgs, ctx: ToolContext) -> ToolOutcome:
    org = await _require_provider_org(ctx)
    client = await ctx["store"].get_client(org["id"], args.client_id)
    if not client:
        raise ToolExecutionError(f"Client '{args.client_id}' not found")

    recent_bookings: list[dict] = []
    if client.get("homeowner_profile_id"):
        recent_bookings = await ctx["store"].client_bookings(org["id"], client["homeowner_profile_id"])

    return ToolOutcome(payload={"client": client, "recent_bookings": recent_bookings})


async def check_schedule(args: CheckScheduleArgs, ctx: ToolContext) -> ToolOutcome:
    org = await _require_provider_org(ctx)
    start, end = resolve_date_range(args.date_range, datetime.now(timezone.utc))
    jobs = await ctx["store"].list_bookings(
        org["id"], start.isoformat(), end.isoformat(), exclude_statuses=["cancelled"]
    )
    return ToolOutcome(
        payload={
            "date_range": args.date_range,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "job_count": len(jobs),
            "jobs": jobs,
        }
    )


async def prioritize_jobs(args: PrioritizeJobsArgs, ctx: ToolContext) -> ToolOutcome:
    org = await _require_provider_org(ctx)
    today = datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)
    jobs = await ctx["store"].list_bookings(
        org["id"], start=today.isoformat(), exclude_statuses=CLOSED_JOB_STATUSES
    )
    ranked = rank_jobs(jobs, args.criteria)
    return ToolOutcome(
        payload={
            "criteria": args.criteria,
            "open_job_count": len(ranked),
            "jobs": ranked[:MAX_PRIORITIZED_JOBS],
        }
    )


# ---------------------------------------------------------------------------
# Toolsets
# ---------------------------------------------------------------------------

HOMEOWNER_TOOLSET = Toolset(
    UserRole.HOMEOWNER,
    [
        ToolSpec(
            name="lookup_home",
            description="Normalize a home address and return property details "
            "(standardized address, ZIP, beds, baths, square footage, year built).",
            args_model=LookupHomeArgs,
            handler=lookup_home,
        ),
        ToolSpec(
            name="create_service_request",
            description="Create a service request once the problem is understood. "
            "Includes a diagnosis summary, severity, likely cause, a USD cost range and "
            "the work scope. Matches trusted providers automatically.",
            args_model=CreateServiceRequestArgs,
            handler=create_service_request,
        ),
    ],
)

PROVIDER_TOOLSET = Toolset(
    UserRole.PROVIDER,
    [
        ToolSpec(
            name="get_client_details",
            description="Get a client's contact details, notes, lifetime value and recent bookings.",
            args_model=GetClientDetailsArgs,
            handler=get_client_details,
        ),
        ToolSpec(
            name="check_schedule",
            description="List the provider's booked jobs for a date range.",
            args_model=CheckScheduleArgs,
            handler=check_schedule,
        ),
        ToolSpec(
            name="prioritize_jobs",
            description="Rank the provider's open upcoming jobs by urgency, date or value.",
            args_model=PrioritizeJobsArgs,
            handler=prioritize_jobs,
        ),
    ],
)


def tools_for(role: str | UserRole) -> Toolset:
    """Select the toolset for a role. Anything other than provider is a homeowner."""
    if role == UserRole.PROVIDER:
        return PROVIDER_TOOLSET
    return HOMEOWNER_TOOLSET
