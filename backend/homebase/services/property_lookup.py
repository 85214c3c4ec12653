"""
Property lookup service using the lookup-home edge function.

The edge function normalizes a free-text address and returns property
details (beds, baths, sqft, lot size, year built). It caches lookups on its
side, so this client only handles transport, retries and parsing into the
PropertyRecord pydantic model.

Usage:
    service = PropertyLookupService(supabase_url="...", api_key="...")
    record = await service.lookup("123 Main St, Austin TX")
"""

import asyncio
import logging

import httpx

from homebase.config import PropertyLookupConfig
from homebase.errors import ToolExecutionError
from homebase.models.chat import HomeDetails, PropertyRecord

logger = logging.getLogger(__name__)


class PropertyLookupService:
    """Client for the lookup-home Supabase edge function."""

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        lookup_config: PropertyLookupConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the lookup service.

        Args:
            supabase_url:  Project URL; the function lives at /functions/v1/<name>
            api_key:       Key sent as bearer token and apikey header
            lookup_config: Function name, retries, timeouts.
            http_client:   Optional pre-built client (tests pass a MockTransport client).
        """
        self.lookup_config = lookup_config or PropertyLookupConfig()
        self.function_url = (
            f"{supabase_url.rstrip('/')}/functions/v1/{self.lookup_config.function_name}"
        )
        self.api_key = api_key
        self._client = http_client or httpx.AsyncClient(
            timeout=self.lookup_config.request_timeout_seconds
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request_with_retry(self, payload: dict) -> httpx.Response:
        """
        POST to the edge function, retrying 5xx, timeout and connection errors
        with exponential backoff. 4xx responses are returned to the caller.
        """
        last_exception: Exception | None = None
        max_retries = self.lookup_config.max_retries
        retry_base_delay = self.lookup_config.retry_base_delay_seconds

        for attempt in range(max_retries):
            try:
                response = await self._client.post(
                    self.function_url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "apikey": self.api_key,
                    },
                )
                if response.status_code < 500:
                    return response
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                last_exception = exc
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_exception = exc

            if attempt == max_retries - 1:
                break
            delay = retry_base_delay * (2 ** attempt)
            logger.warning(
                "lookup-home attempt %d/%d failed: %s. Retrying in %.1fs...",
                attempt + 1,
                max_retries,
                last_exception,
                delay,
            )
            await asyncio.sleep(delay)

        raise last_exception  # type: ignore[misc]

    @staticmethod
    def _parse_record(data: dict, address: str) -> PropertyRecord:
        """Build a PropertyRecord from the edge function's JSON body."""
        home = data.get("home") or {}
        return PropertyRecord(
            address_std=data.get("address_std") or address,
            zip=str(data.get("zip") or ""),
            home=HomeDetails(**{k: v for k, v in home.items() if k in HomeDetails.model_fields}),
            cached=bool(data.get("cached", False)),
        )

    async def lookup(self, address: str) -> PropertyRecord:
        """
        Look up a property by address.

        Raises:
            ToolExecutionError: Blank address, address not found, or a 4xx reply.
            httpx.HTTPError: If the function keeps failing after retries.
        """
        address = (address or "").strip()
        if not address:
            raise ToolExecutionError("Address is required")

        response = await self._request_with_retry({"address": address})
        data = response.json() if response.content else {}

        if response.status_code == 404:
            raise ToolExecutionError(data.get("message") or "No property found for that address")
        if response.status_code >= 400:
            raise ToolExecutionError(
                data.get("message") or data.get("error") or f"lookup-home returned {response.status_code}"
            )

        return self._parse_record(data, address)
