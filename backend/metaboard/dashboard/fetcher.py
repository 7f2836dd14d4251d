"""HTTP client the dashboard uses to talk to the metaboard API.

The dashboard goes through the public endpoints exactly like a browser
would, so it sees the same payloads and the same error bodies.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..schemas import AdRecord, MetaAdsResponse
from .session import DashboardCredentials

logger = logging.getLogger(__name__)

GENERIC_FETCH_ERROR = "Could not reach the server. Please try again."


class DashboardApiError(Exception):
    """User-facing failure of a dashboard API call."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DashboardApi:
    """Async client for /api/meta-ads and /api/sync-to-sheets."""

    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, transport=self.transport, timeout=self.timeout)

    async def fetch_ads(self, credentials: DashboardCredentials) -> List[AdRecord]:
        """Return the ads for the given credentials.

        Raises:
            DashboardApiError: non-2xx answer (message taken from the body)
            or network/parse failure (generic message).
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    "/api/meta-ads",
                    params={"token": credentials.access_token, "accountId": credentials.account_id},
                )
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[DASHBOARD] Fetch failed: %s", e)
            raise DashboardApiError(GENERIC_FETCH_ERROR) from e

        if response.is_error:
            raise DashboardApiError(_error_message(body, "Error fetching data"))

        try:
            return MetaAdsResponse.model_validate(body).data
        except ValueError as e:
            logger.warning("[DASHBOARD] Unexpected response body: %s", e)
            raise DashboardApiError(GENERIC_FETCH_ERROR) from e

    async def sync_to_sheets(self, records: List[AdRecord], account_id: str) -> Dict[str, Any]:
        """Post the loaded ads to the Sheets export and return its response body."""
        payload = {
            "adsData": [record.model_dump() for record in records],
            "accountId": account_id,
        }
        try:
            async with self._client() as client:
                response = await client.post("/api/sync-to-sheets", json=payload)
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[DASHBOARD] Sheets sync failed: %s", e)
            raise DashboardApiError(GENERIC_FETCH_ERROR) from e

        if response.is_error:
            raise DashboardApiError(_error_message(body, "Error syncing with Google Sheets"))
        return body


def _error_message(body: Any, default: str) -> str:
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default
