"""
HTTP client for the football sync API.

The football sync API (``GET /api/football?action=...``) lives on the same
deployment as the cron endpoint and does the actual work: pulling fixtures
and live scores from API-Football and settling predictions. This client
only calls it and hands back the decoded JSON body.

No retries are performed and no timeout is imposed unless one is
configured; overlapping or repeated triggers are the football API's
concern.
"""
import logging
from typing import Any, Optional

import httpx

from predictions_cron.core.exceptions import CollaboratorError

logger = logging.getLogger(__name__)

DEFAULT_API_PATH = "/api/football"


class FootballSyncClient:
    """
    Client for the football sync API actions.

    Usage:
        async with FootballSyncClient("https://example.com") as client:
            fixtures = await client.invoke("sync-fixtures")
    """

    def __init__(
        self,
        base_url: str,
        api_path: str = DEFAULT_API_PATH,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[dict] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Origin of the deployment, e.g. https://example.com
            api_path: Path of the football sync endpoint
            timeout: Request timeout in seconds, None for no timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
            headers: Extra headers sent with every call
        """
        self.base_url = base_url.rstrip("/")
        self.api_path = api_path
        self.timeout = timeout
        self._transport = transport
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self.api_path}"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FootballSyncClient":
        self._get_client()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def invoke(self, action: str) -> Any:
        """
        Run one football sync API action.

        Args:
            action: Remote action name (sync-fixtures, sync-live, sync-results, status)

        Returns:
            Decoded JSON body

        Raises:
            CollaboratorError: On a non-2xx status or a body that is not JSON
            httpx.HTTPError: On network errors and timeouts
        """
        client = self._get_client()

        logger.debug(f"Calling football sync API: action={action}")
        response = await client.get(self.endpoint, params={"action": action})

        if response.is_error:
            raise CollaboratorError(
                _describe_error_response(action, response),
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise CollaboratorError(
                f"Football API returned a non-JSON body for '{action}' (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

    async def status(self) -> Any:
        """Fetch league/team/match counts from the football sync API."""
        return await self.invoke("status")


def _describe_error_response(action: str, response: httpx.Response) -> str:
    """Build an error message from a failed response, using its JSON ``error`` field when present."""
    message = f"Football API '{action}' failed with HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return message

    if isinstance(body, dict) and body.get("error"):
        return f"{message}: {body['error']}"
    return message
