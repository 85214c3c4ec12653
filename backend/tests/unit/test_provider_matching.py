"""Unit tests for ProviderMatchingService with the db layer mocked out."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from homebase.services.provider_matching import ProviderMatchingService


@pytest.fixture
def service() -> ProviderMatchingService:
    return ProviderMatchingService(MagicMock())


class TestMatch:
    @pytest.mark.asyncio
    async def test_resolves_names_in_rpc_order(self, service):
        rpc_rows = [
            {"provider_org_id": "org-2", "trust_score": None, "match_score": 0.9, "distance_miles": 3.2},
            {"provider_org_id": "org-1", "trust_score": 9.1, "match_score": 0.7, "distance_miles": 8.0},
        ]
        orgs = [
            {"id": "org-1", "name": "Cool Air Co", "provider_metrics": [{"trust_score": 4.0}]},
            {"id": "org-2", "name": "Polar HVAC", "provider_metrics": {"trust_score": 7.5}},
        ]
        with (
            patch("homebase.services.provider_matching.db.match_providers", AsyncMock(return_value=rpc_rows)) as rpc,
            patch("homebase.services.provider_matching.db.get_organizations", AsyncMock(return_value=orgs)),
        ):
            matches = await service.match("HVAC", "home-1", 5)

        rpc.assert_awaited_once_with(service.client, "HVAC", "home-1", 5)
        assert [m.org_id for m in matches] == ["org-2", "org-1"]
        assert matches[0].name == "Polar HVAC"
        # RPC score wins; provider_metrics is the fallback
        assert matches[0].trust_score == 7.5
        assert matches[1].trust_score == 9.1
        assert matches[0].distance_miles == 3.2

    @pytest.mark.asyncio
    async def test_no_rows_skips_org_lookup(self, service):
        orgs = AsyncMock()
        with (
            patch("homebase.services.provider_matching.db.match_providers", AsyncMock(return_value=[])),
            patch("homebase.services.provider_matching.db.get_organizations", orgs),
        ):
            assert await service.match("Plumbing", None, 5) == []
        orgs.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_org_gets_placeholder_name(self, service):
        with (
            patch(
                "homebase.services.provider_matching.db.match_providers",
                AsyncMock(return_value=[{"provider_org_id": "org-x"}]),
            ),
            patch("homebase.services.provider_matching.db.get_organizations", AsyncMock(return_value=[])),
        ):
            matches = await service.match("Roofing", "home-1", 5)
        assert matches[0].name == "Provider"
        assert matches[0].trust_score is None
