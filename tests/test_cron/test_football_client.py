"""Tests for FootballSyncClient against an httpx.MockTransport."""
import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from conftest import BASE_URL

from predictions_cron.core.exceptions import CollaboratorError
from predictions_cron.services.cron.football_client import FootballSyncClient


def _client(football_api, **kwargs) -> FootballSyncClient:
    return FootballSyncClient(BASE_URL + "/", transport=football_api.transport(), **kwargs)


class TestFootballSyncClient:

    @pytest.mark.asyncio
    async def test_invoke_sends_action_and_returns_json(self, football_api):
        async with _client(football_api) as client:
            payload = await client.invoke("sync-fixtures")

        assert payload == {"success": True, "count": 5}
        request = football_api.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"{BASE_URL}/api/football?action=sync-fixtures"

    @pytest.mark.asyncio
    async def test_list_payload_is_returned_as_is(self, football_api):
        football_api.respond("sync-live", json=[{"match": 1}, {"match": 2}])

        async with _client(football_api) as client:
            payload = await client.invoke("sync-live")

        assert payload == [{"match": 1}, {"match": 2}]

    @pytest.mark.asyncio
    async def test_error_status_uses_body_error_field(self, football_api):
        football_api.respond("sync-results", json={"error": "Failed to sync data from API Football"}, status_code=500)

        async with _client(football_api) as client:
            with pytest.raises(CollaboratorError) as exc_info:
                await client.invoke("sync-results")

        assert exc_info.value.http_status == 500
        assert str(exc_info.value) == (
            "Football API 'sync-results' failed with HTTP 500: Failed to sync data from API Football"
        )

    @pytest.mark.asyncio
    async def test_error_status_without_json_body(self, football_api):
        football_api.respond("sync-live", text="upstream timeout", status_code=504)

        async with _client(football_api) as client:
            with pytest.raises(CollaboratorError, match="HTTP 504$"):
                await client.invoke("sync-live")

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, football_api):
        football_api.respond("sync-fixtures", text="OK")

        async with _client(football_api) as client:
            with pytest.raises(CollaboratorError, match="non-JSON"):
                await client.invoke("sync-fixtures")

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self, football_api):
        football_api.fail("sync-live", httpx.ConnectError, "connection refused")

        async with _client(football_api) as client:
            with pytest.raises(httpx.ConnectError, match="connection refused"):
                await client.invoke("sync-live")

    @pytest.mark.asyncio
    async def test_status_action(self, football_api):
        async with _client(football_api) as client:
            status = await client.status()

        assert status["counts"]["leagues"] == 6
        assert football_api.calls == ["status"]

    @pytest.mark.asyncio
    async def test_extra_headers_are_sent(self, football_api):
        async with _client(football_api, headers={"X-Correlation-ID": "abc-123"}) as client:
            await client.invoke("sync-fixtures")

        assert football_api.requests[0].headers["X-Correlation-ID"] == "abc-123"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, football_api):
        client = _client(football_api)
        await client.invoke("sync-fixtures")
        await client.close()
        await client.close()

        assert client._client is None

    def test_endpoint_strips_trailing_slash(self):
        client = FootballSyncClient("https://example.com/", api_path="/api/football")

        assert client.endpoint == "https://example.com/api/football"
