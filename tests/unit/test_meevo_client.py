"""Tests for the Meevo HTTP client."""

from datetime import date, time
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.config import Settings
from app.core.scheduling.models import DateRange, DiscoveryWindow
from app.infra.cache import ExpiringValue
from app.infra.meevo import MeevoAuthError, MeevoClient


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def json_response(payload) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


class TestTokenAcquisition:
    """Test MeevoClient.get_token."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def client(self, test_settings, clock):
        client = MeevoClient(settings=test_settings, token_cache=ExpiringValue(clock=clock))
        client._client = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_fetches_and_caches_token(self, client):
        """Test a token is reused until shortly before expiry."""
        client._client.post = AsyncMock(
            return_value=json_response({"access_token": "tok-1", "expires_in": 3600})
        )

        assert await client.get_token() == "tok-1"
        assert await client.get_token() == "tok-1"

        client._client.post.assert_called_once()
        call = client._client.post.call_args
        assert call.kwargs["json"] == {
            "client_id": "client-id",
            "client_secret": "client-secret",
        }

    @pytest.mark.asyncio
    async def test_refreshes_inside_safety_margin(self, client, clock):
        """Test the token is refetched 300 seconds before it expires."""
        client._client.post = AsyncMock(
            side_effect=[
                json_response({"access_token": "tok-1", "expires_in": 3600}),
                json_response({"access_token": "tok-2", "expires_in": 3600}),
            ]
        )

        await client.get_token()
        clock.now = 3299
        assert await client.get_token() == "tok-1"

        clock.now = 3300
        assert await client.get_token() == "tok-2"
        assert client._client.post.call_count == 2

    @pytest.mark.asyncio
    async def test_pool_wait_has_no_deadline(self, test_settings):
        """Test queued requests are not failed by the request timeout."""
        client = MeevoClient(settings=test_settings)

        http = await client._get_client()
        try:
            assert http.timeout.pool is None
            assert http.timeout.read == test_settings.http_timeout_seconds
            assert http.timeout.connect == test_settings.http_timeout_seconds
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        """Test no request is made without credentials."""
        client = MeevoClient(settings=Settings(_env_file=None))
        client._client = AsyncMock()

        with pytest.raises(MeevoAuthError):
            await client.get_token()

        client._client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_error(self, client):
        client._client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(MeevoAuthError, match="Token request failed"):
            await client.get_token()

    @pytest.mark.asyncio
    async def test_response_without_token(self, client):
        client._client.post = AsyncMock(return_value=json_response({"error": "invalid_client"}))

        with pytest.raises(MeevoAuthError):
            await client.get_token()

    @pytest.mark.asyncio
    async def test_check_health(self, client):
        client._client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))

        assert await client.check_health() is False


class TestEmployeesAndOpenings:
    """Test roster and scan calls."""

    @pytest.fixture
    def client(self, test_settings):
        cache = ExpiringValue()
        cache.set("tok", ttl_seconds=3600)
        client = MeevoClient(settings=test_settings, token_cache=cache)
        client._client = AsyncMock()
        return client

    @pytest.fixture
    def window(self):
        return DiscoveryWindow(start=time(8, 0), end=time(10, 0))

    @pytest.fixture
    def date_range(self):
        return DateRange(start=date(2026, 1, 21), end=date(2026, 1, 23))

    @pytest.mark.asyncio
    async def test_list_employees(self, client):
        """Test roster request parameters and payload."""
        client._client.get = AsyncMock(
            return_value=json_response({"data": [{"id": "e1", "firstName": "Maria"}]})
        )

        employees = await client.list_employees("201664")

        assert employees == [{"id": "e1", "firstName": "Maria"}]
        call = client._client.get.call_args
        assert call.args[0].endswith("/employees")
        assert call.kwargs["params"]["locationid"] == "201664"
        assert call.kwargs["params"]["ItemsPerPage"] == 100
        assert call.kwargs["headers"]["Authorization"] == "Bearer tok"
        assert call.kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_list_employees_missing_data(self, client):
        client._client.get = AsyncMock(return_value=json_response({}))

        assert await client.list_employees() == []

    def test_build_scan_request(self, client, date_range, window):
        """Test the scan body for one provider, service and window."""
        body = client.build_scan_request("svc-1", "e1", date_range, window, "201664")

        assert body == {
            "LocationId": 201664,
            "TenantId": 200507,
            "ScanDateType": 1,
            "StartDate": "2026-01-21",
            "EndDate": "2026-01-23",
            "ScanTimeType": 1,
            "StartTime": "08:00",
            "EndTime": "10:00",
            "ScanServices": [{"ServiceId": "svc-1", "EmployeeIds": ["e1"]}],
        }

    @pytest.mark.asyncio
    async def test_scan_openings_flattens_results(self, client, date_range, window):
        """Test openings from every data entry are returned."""
        client._client.post = AsyncMock(
            return_value=json_response(
                {
                    "data": [
                        {"serviceOpenings": [{"startTime": "2026-01-21T08:00:00"}]},
                        {"serviceOpenings": [{"startTime": "2026-01-21T08:30:00"}]},
                        {"serviceOpenings": None},
                    ]
                }
            )
        )

        openings = await client.scan_openings("svc-1", "e1", date_range, window)

        assert [o["startTime"] for o in openings] == [
            "2026-01-21T08:00:00",
            "2026-01-21T08:30:00",
        ]
        call = client._client.post.call_args
        assert call.args[0].endswith("/v2/scan/openings")
        assert call.kwargs["params"] == {"TenantId": "200507", "LocationId": "201664"}
        assert call.kwargs["headers"]["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_scan_openings_http_error_propagates(self, client, date_range, window):
        response = MagicMock()
        response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError("500", request=MagicMock(), response=MagicMock())
        )
        client._client.post = AsyncMock(return_value=response)

        with pytest.raises(httpx.HTTPStatusError):
            await client.scan_openings("svc-1", "e1", date_range, window)
