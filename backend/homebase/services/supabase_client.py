"""
Async Supabase client for HomeBase AI DB operations.

Provides typed wrappers around the Supabase async client for all tables
used by the turn engine: ai_chat_sessions, ai_chat_messages, profiles,
homes, service_requests, organizations, clients, bookings, and the
match_providers RPC.
"""

from datetime import datetime, timezone
from typing import Any

import structlog
from supabase._async.client import AsyncClient as AsyncSupabaseClient

logger = structlog.get_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(data: list[dict] | None) -> dict | None:
    return data[0] if data else None


# ---------------------------------------------------------------------------
# ai_chat_sessions
# ---------------------------------------------------------------------------


async def create_session(
    client: AsyncSupabaseClient,
    user_id: str,
    profile_id: str | None,
    context: dict,
) -> dict:
    """Start a new chat session with its context bag."""
    data = {"user_id": user_id, "profile_id": profile_id, "context": context}
    response = await client.table("ai_chat_sessions").insert(data).execute()
    return response.data[0]


async def get_session(client: AsyncSupabaseClient, session_id: str) -> dict | None:
    """Fetch a session row. Returns None if not found."""
    response = (
        await client.table("ai_chat_sessions")
        .select("*")
        .eq("id", session_id)
        .limit(1)
        .execute()
    )
    return _first(response.data)


async def touch_session(
    client: AsyncSupabaseClient, session_id: str, context: dict | None = None
) -> None:
    """Refresh updated_at, optionally replacing the context bag."""
    updates: dict[str, Any] = {"updated_at": _now()}
    if context is not None:
        updates["context"] = context
    await client.table("ai_chat_sessions").update(updates).eq("id", session_id).execute()


# ---------------------------------------------------------------------------
# ai_chat_messages
# ---------------------------------------------------------------------------


async def save_message(
    client: AsyncSupabaseClient,
    session_id: str,
    role: str,
    content: str,
    tool_calls: list | None = None,
) -> dict:
    """Persist a single message to the ai_chat_messages table."""
    data: dict[str, Any] = {"session_id": session_id, "role": role, "content": content}
    if tool_calls:
        data["tool_calls"] = tool_calls
    response = await client.table("ai_chat_messages").insert(data).execute()
    return response.data[0]


async def get_recent_messages(
    client: AsyncSupabaseClient, session_id: str, limit: int
) -> list[dict]:
    """Load the most recent `limit` messages, returned oldest-first."""
    response = (
        await client.table("ai_chat_messages")
        .select("id, role, content, created_at")
        .eq("session_id", session_id)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return list(reversed(response.data or []))


# ---------------------------------------------------------------------------
# profiles / homes
# ---------------------------------------------------------------------------


async def get_profile_by_user(client: AsyncSupabaseClient, user_id: str) -> dict | None:
    """Fetch the profile (id, user_type) for an auth user."""
    response = (
        await client.table("profiles")
        .select("id, user_type, full_name")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    return _first(response.data)


async def get_primary_home(client: AsyncSupabaseClient, owner_id: str) -> dict | None:
    """The owner's primary home, falling back to the default, then any home."""
    response = (
        await client.table("homes")
        .select("id, name, address, city, zip, is_primary, is_default")
        .eq("owner_id", owner_id)
        .order("is_primary", desc=True)
        .order("is_default", desc=True)
        .order("created_at", desc=False)
        .limit(1)
        .execute()
    )
    return _first(response.data)


# ---------------------------------------------------------------------------
# service_requests
# ---------------------------------------------------------------------------


async def create_service_request(client: AsyncSupabaseClient, data: dict) -> dict:
    """Insert a service request and return the created row."""
    response = await client.table("service_requests").insert(data).execute()
    return response.data[0]


async def update_service_request(
    client: AsyncSupabaseClient, request_id: str, updates: dict
) -> dict | None:
    """Update a service request by its ID."""
    updates["updated_at"] = _now()
    response = (
        await client.table("service_requests")
        .update(updates)
        .eq("id", request_id)
        .execute()
    )
    return _first(response.data)


# ---------------------------------------------------------------------------
# organizations / provider matching
# ---------------------------------------------------------------------------


async def get_owned_organization(client: AsyncSupabaseClient, user_id: str) -> dict | None:
    """The provider organization owned by an auth user."""
    response = (
        await client.table("organizations")
        .select("id, name, service_type")
        .eq("owner_id", user_id)
        .limit(1)
        .execute()
    )
    return _first(response.data)


async def get_organizations(client: AsyncSupabaseClient, org_ids: list[str]) -> list[dict]:
    """Load organization names and trust scores for a set of org IDs."""
    if not org_ids:
        return []
    response = (
        await client.table("organizations")
        .select("id, name, provider_metrics(trust_score)")
        .in_("id", org_ids)
        .execute()
    )
    return response.data or []


async def match_providers(
    client: AsyncSupabaseClient, service_type: str, home_id: str | None, limit: int
) -> list[dict]:
    """Call the match_providers RPC (provider_org_id, trust_score, match_score, distance_miles)."""
    response = await client.rpc(
        "match_providers",
        {"p_service_type": service_type, "p_home_id": home_id, "p_limit": limit},
    ).execute()
    return response.data or []


# ---------------------------------------------------------------------------
# clients / bookings (provider-scoped, read-only)
# ---------------------------------------------------------------------------


async def get_client(client: AsyncSupabaseClient, org_id: str, client_id: str) -> dict | None:
    """Fetch one client row within an organization."""
    response = (
        await client.table("clients")
        .select("id, homeowner_profile_id, name, email, phone, address, status, tags, notes, lifetime_value, last_contact_at")
        .eq("organization_id", org_id)
        .eq("id", client_id)
        .limit(1)
        .execute()
    )
    return _first(response.data)


async def get_client_bookings(
    client: AsyncSupabaseClient, org_id: str, homeowner_profile_id: str, limit: int = 5
) -> list[dict]:
    """Most recent bookings between an organization and a homeowner."""
    response = (
        await client.table("bookings")
        .select("id, service_name, status, date_time_start, final_price")
        .eq("provider_org_id", org_id)
        .eq("homeowner_profile_id", homeowner_profile_id)
        .order("date_time_start", desc=True)
        .limit(limit)
        .execute()
    )
    return response.data or []


async def list_bookings(
    client: AsyncSupabaseClient,
    org_id: str,
    start: str | None = None,
    end: str | None = None,
    exclude_statuses: list[str] | None = None,
) -> list[dict]:
    """Bookings for an organization, optionally within [start, end), oldest-first."""
    query = (
        client.table("bookings")
        .select(
            "id, service_name, address, status, date_time_start, date_time_end, "
            "urgency_level, estimated_price_low, estimated_price_high, final_price"
        )
        .eq("provider_org_id", org_id)
    )
    if start:
        query = query.gte("date_time_start", start)
    if end:
        query = query.lt("date_time_start", end)
    if exclude_statuses:
        query = query.not_.in_("status", exclude_statuses)
    response = await query.order("date_time_start", desc=False).execute()
    return response.data or []
