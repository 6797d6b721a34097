"""
Meevo Public API Client

HTTP client for the salon system. Exposes:
- OAuth client-credentials token (cached until shortly before expiry)
- Employee roster for a location
- Service opening scan (v2), capped at a handful of openings per call
"""

import logging
from typing import Any, Optional

import httpx

from app.config import Settings, get_settings
from app.core.scheduling.models import DateRange, DiscoveryWindow
from app.infra.cache import ExpiringValue

logger = logging.getLogger(__name__)


class MeevoAuthError(Exception):
    """Raised when an access token cannot be obtained."""
    pass


class MeevoClient:
    """
    Async client for the Meevo public API.

    The token cache belongs to the client instance; share one client per
    process to reuse tokens across requests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        token_cache: Optional[ExpiringValue[str]] = None,
    ):
        """Initialize client.

        Args:
            settings: Application settings (defaults to cached settings)
            token_cache: Cache for the access token
        """
        self.settings = settings or get_settings()
        self._token_cache = token_cache if token_cache is not None else ExpiringValue()
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                # Queued requests wait for a pooled connection without a deadline
                timeout=httpx.Timeout(self.settings.http_timeout_seconds, pool=None),
                limits=httpx.Limits(max_connections=self.settings.http_max_connections),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # === Auth ===

    async def get_token(self) -> str:
        """Return a valid access token, fetching a new one if needed.

        Raises:
            MeevoAuthError: If credentials are missing or the token call fails
        """
        cached = self._token_cache.get()
        if cached:
            return cached

        if not self.settings.has_credentials:
            raise MeevoAuthError("Meevo credentials not configured")

        logger.info("Requesting new Meevo access token")
        client = await self._get_client()

        try:
            response = await client.post(
                self.settings.meevo_auth_url,
                json={
                    "client_id": self.settings.meevo_client_id,
                    "client_secret": self.settings.meevo_client_secret,
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Token request failed: {e}")
            raise MeevoAuthError(f"Token request failed: {e}") from e
        except ValueError as e:
            raise MeevoAuthError("Token response was not JSON") from e

        token = data.get("access_token")
        if not token:
            raise MeevoAuthError("Token response did not include access_token")

        expires_in = float(data.get("expires_in") or 0)
        ttl = max(0.0, expires_in - self.settings.token_refresh_margin_seconds)
        self._token_cache.set(token, ttl)
        return token

    async def _headers(self) -> dict[str, str]:
        token = await self.get_token()
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    # === Employees ===

    async def list_employees(self, location_id: Optional[str] = None) -> list[dict[str, Any]]:
        """Fetch raw employee records for a location.

        Args:
            location_id: Location to query (defaults to settings)

        Returns:
            Employee dicts as returned by Meevo

        Raises:
            MeevoAuthError: If no token can be obtained
            httpx.HTTPError: On transport errors or non-2xx responses
        """
        client = await self._get_client()
        location_id = location_id or self.settings.meevo_location_id

        response = await client.get(
            f"{self.settings.meevo_api_url}/employees",
            params={
                "tenantid": self.settings.meevo_tenant_id,
                "locationid": location_id,
                "ItemsPerPage": 100,
            },
            headers=await self._headers(),
            timeout=self.settings.roster_timeout_seconds,
        )
        response.raise_for_status()
        return response.json().get("data") or []

    # === Openings ===

    def build_scan_request(
        self,
        service_id: str,
        employee_id: str,
        date_range: DateRange,
        window: DiscoveryWindow,
        location_id: str,
    ) -> dict[str, Any]:
        """Build the v2 scan body for one provider, service and window."""
        return {
            "LocationId": int(location_id),
            "TenantId": int(self.settings.meevo_tenant_id),
            "ScanDateType": 1,
            "StartDate": date_range.start.isoformat(),
            "EndDate": date_range.end.isoformat(),
            "ScanTimeType": 1,
            "StartTime": f"{window.start:%H:%M}",
            "EndTime": f"{window.end:%H:%M}",
            "ScanServices": [{"ServiceId": service_id, "EmployeeIds": [employee_id]}],
        }

    async def scan_openings(
        self,
        service_id: str,
        employee_id: str,
        date_range: DateRange,
        window: DiscoveryWindow,
        location_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Scan one window for openings.

        Returns:
            Raw serviceOpenings entries (at most scan_result_cap)

        Raises:
            MeevoAuthError: If no token can be obtained
            httpx.HTTPError: On transport errors or non-2xx responses
            ValueError: If the response body is not JSON
        """
        client = await self._get_client()
        location_id = location_id or self.settings.meevo_location_id

        headers = await self._headers()
        headers["Content-Type"] = "application/json"

        response = await client.post(
            f"{self.settings.meevo_api_url_v2}/scan/openings",
            params={"TenantId": self.settings.meevo_tenant_id, "LocationId": location_id},
            json=self.build_scan_request(service_id, employee_id, date_range, window, location_id),
            headers=headers,
        )
        response.raise_for_status()

        items = response.json().get("data") or []
        openings: list[dict[str, Any]] = []
        for item in items:
            openings.extend(item.get("serviceOpenings") or [])
        return openings

    async def check_health(self) -> bool:
        """True if a token can be obtained."""
        try:
            await self.get_token()
            return True
        except MeevoAuthError as e:
            logger.warning(f"Meevo health check failed: {e}")
            return False


# Singleton
_client: Optional[MeevoClient] = None


def get_meevo_client() -> MeevoClient:
    """Get singleton MeevoClient."""
    global _client
    if _client is None:
        _client = MeevoClient()
    return _client


async def close_meevo_client() -> None:
    """Close the singleton client, if one was created."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None
