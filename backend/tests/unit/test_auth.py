"""
Unit tests for the auth dependency (get_current_user) and role resolution.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from homebase.auth import AuthenticatedUser, get_current_user, role_from_profile
from homebase.models.chat import UserRole


def _make_request(supabase_client=None):
    """Create a mock FastAPI Request with app.state.supabase set."""
    request = MagicMock()
    request.app.state.supabase = supabase_client
    return request


def _make_credentials(token: str = "valid-token") -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def _mock_supabase(profile_rows: list[dict] | None = None, profile_error: Exception | None = None):
    mock_user = MagicMock()
    mock_user.id = "user-123"
    mock_user.email = "test@example.com"

    mock_response = MagicMock()
    mock_response.user = mock_user

    mock_supabase = MagicMock()
    mock_supabase.auth.get_user = AsyncMock(return_value=mock_response)

    query = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
    if profile_error is not None:
        query.execute = AsyncMock(side_effect=profile_error)
    else:
        query.execute = AsyncMock(return_value=MagicMock(data=profile_rows or []))
    return mock_supabase


class TestGetCurrentUser:
    """Tests for the get_current_user dependency."""

    @pytest.mark.asyncio
    async def test_valid_token_returns_homeowner(self):
        mock_supabase = _mock_supabase([{"id": "profile-1", "user_type": "homeowner"}])
        request = _make_request(supabase_client=mock_supabase)

        result = await get_current_user(request, _make_credentials("valid-token"))

        assert isinstance(result, AuthenticatedUser)
        assert result.id == "user-123"
        assert result.email == "test@example.com"
        assert result.profile_id == "profile-1"
        assert result.role == UserRole.HOMEOWNER
        mock_supabase.auth.get_user.assert_awaited_once_with("valid-token")
        mock_supabase.table.assert_called_with("profiles")

    @pytest.mark.asyncio
    async def test_provider_profile_gets_provider_role(self):
        mock_supabase = _mock_supabase([{"id": "profile-9", "user_type": "provider"}])
        result = await get_current_user(_make_request(mock_supabase), _make_credentials())
        assert result.role == UserRole.PROVIDER

    @pytest.mark.asyncio
    async def test_profile_lookup_failure_defaults_to_homeowner(self):
        mock_supabase = _mock_supabase(profile_error=Exception("db down"))
        result = await get_current_user(_make_request(mock_supabase), _make_credentials())
        assert result.role == UserRole.HOMEOWNER
        assert result.profile_id is None

    @pytest.mark.asyncio
    async def test_missing_token_raises_401(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_make_request(MagicMock()), None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token_raises_401(self):
        """A token that returns no user raises 401."""
        mock_response = MagicMock()
        mock_response.user = None

        mock_supabase = MagicMock()
        mock_supabase.auth.get_user = AsyncMock(return_value=mock_response)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_make_request(mock_supabase), _make_credentials("bad-token"))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_token_raises_401(self):
        """A token that causes an exception raises 401."""
        mock_supabase = MagicMock()
        mock_supabase.auth.get_user = AsyncMock(side_effect=Exception("Token expired"))

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_make_request(mock_supabase), _make_credentials("expired-token"))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_no_supabase_raises_503(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_make_request(None), _make_credentials())
        assert exc_info.value.status_code == 503


class TestRoleFromProfile:
    @pytest.mark.parametrize(
        "profile,expected",
        [
            ({"user_type": "provider"}, UserRole.PROVIDER),
            ({"user_type": "homeowner"}, UserRole.HOMEOWNER),
            ({"user_type": None}, UserRole.HOMEOWNER),
            (None, UserRole.HOMEOWNER),
        ],
    )
    def test_role_from_profile(self, profile, expected):
        assert role_from_profile(profile) == expected
