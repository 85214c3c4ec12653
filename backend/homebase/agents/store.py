"""
Data store interface consumed by the turn engine.

The orchestrator and tool handlers only talk to a DataStore. The production
implementation binds one async Supabase client per request; tests substitute
an in-memory fake.
"""

from typing import Protocol

from supabase._async.client import AsyncClient as AsyncSupabaseClient

from homebase.services import supabase_client as db


class DataStore(Protocol):
    # Session store
    async def create_session(self, user_id: str, profile_id: str | None, context: dict) -> dict: ...
    async def get_session(self, session_id: str) -> dict | None: ...
    async def touch_session(self, session_id: str, context: dict | None = None) -> None: ...

    # Message log
    async def append_message(
        self, session_id: str, role: str, content: str, tool_calls: list | None = None
    ) -> dict: ...
    async def recent_messages(self, session_id: str, limit: int) -> list[dict]: ...

    # Homeowner side
    async def get_primary_home(self, profile_id: str) -> dict | None: ...
    async def insert_service_request(self, data: dict) -> dict: ...
    async def update_service_request(self, request_id: str, updates: dict) -> dict | None: ...

    # Provider side (read-only, organization-scoped)
    async def get_provider_org(self, user_id: str) -> dict | None: ...
    async def get_client(self, org_id: str, client_id: str) -> dict | None: ...
    async def client_bookings(self, org_id: str, homeowner_profile_id: str, limit: int = 5) -> list[dict]: ...
    async def list_bookings(
        self,
        org_id: str,
        start: str | None = None,
        end: str | None = None,
        exclude_statuses: list[str] | None = None,
    ) -> list[dict]: ...


class SupabaseDataStore:
    """DataStore backed by the async Supabase client."""

    def __init__(self, client: AsyncSupabaseClient):
        self.client = client

    async def create_session(self, user_id: str, profile_id: str | None, context: dict) -> dict:
        return await db.create_session(self.client, user_id, profile_id, context)

    async def get_session(self, session_id: str) -> dict | None:
        return await db.get_session(self.client, session_id)

    async def touch_session(self, session_id: str, context: dict | None = None) -> None:
        await db.touch_session(self.client, session_id, context)

    async def append_message(
        self, session_id: str, role: str, content: str, tool_calls: list | None = None
    ) -> dict:
        return await db.save_message(self.client, session_id, role, content, tool_calls)

    async def recent_messages(self, session_id: str, limit: int) -> list[dict]:
        return await db.get_recent_messages(self.client, session_id, limit)

    async def get_primary_home(self, profile_id: str) -> dict | None:
        return await db.get_primary_home(self.client, profile_id)

    async def insert_service_request(self, data: dict) -> dict:
        return await db.create_service_request(self.client, data)

    async def update_service_request(self, request_id: str, updates: dict) -> dict | None:
        return await db.update_service_request(self.client, request_id, updates)

    async def get_provider_org(self, user_id: str) -> dict | None:
        return await db.get_owned_organization(self.client, user_id)

    async def get_client(self, org_id: str, client_id: str) -> dict | None:
        return await db.get_client(self.client, org_id, client_id)

    async def client_bookings(self, org_id: str, homeowner_profile_id: str, limit: int = 5) -> list[dict]:
        return await db.get_client_bookings(self.client, org_id, homeowner_profile_id, limit)

    async def list_bookings(
        self,
        org_id: str,
        start: str | None = None,
        end: str | None = None,
        exclude_statuses: list[str] | None = None,
    ) -> list[dict]:
        return await db.list_bookings(self.client, org_id, start, end, exclude_statuses)
