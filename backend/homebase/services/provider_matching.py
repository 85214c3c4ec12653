"""
Provider matching over the match_providers RPC.

The RPC ranks provider organizations for a service type near a home and
returns ids with scores. Names and trust scores are resolved with a second
query so callers get display-ready MatchedProvider records in RPC order.
"""

import structlog
from supabase._async.client import AsyncClient as AsyncSupabaseClient

from homebase.models.chat import MatchedProvider
from homebase.services import supabase_client as db

logger = structlog.get_logger(__name__)


def _trust_score(org: dict, rpc_row: dict) -> float | None:
    """Prefer the RPC's trust score, then provider_metrics on the org row."""
    if rpc_row.get("trust_score") is not None:
        return float(rpc_row["trust_score"])
    metrics = org.get("provider_metrics")
    if isinstance(metrics, list):
        metrics = metrics[0] if metrics else None
    if isinstance(metrics, dict) and metrics.get("trust_score") is not None:
        return float(metrics["trust_score"])
    return None


class ProviderMatchingService:
    """Matches provider organizations to a service request."""

    def __init__(self, client: AsyncSupabaseClient):
        self.client = client

    async def match(self, service_type: str, home_id: str | None, limit: int) -> list[MatchedProvider]:
        rows = await db.match_providers(self.client, service_type, home_id, limit)
        if not rows:
            return []

        org_ids = [row["provider_org_id"] for row in rows if row.get("provider_org_id")]
        orgs = {org["id"]: org for org in await db.get_organizations(self.client, org_ids)}

        matches: list[MatchedProvider] = []
        for row in rows:
            org_id = row.get("provider_org_id")
            if not org_id:
                continue
            org = orgs.get(org_id, {})
            matches.append(
                MatchedProvider(
                    org_id=org_id,
                    name=org.get("name") or "Provider",
                    trust_score=_trust_score(org, row),
                    match_score=row.get("match_score"),
                    distance_miles=row.get("distance_miles"),
                )
            )

        logger.info(
            "providers_matched",
            service_type=service_type,
            home_id=home_id,
            match_count=len(matches),
        )
        return matches[:limit]
