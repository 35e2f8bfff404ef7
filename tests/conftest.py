"""Shared pytest fixtures for predictions-cron tests."""
import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx
import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Settings are read once at import time; pin the test environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")

CRON_SECRET = "test-cron-secret"
BASE_URL = "https://predictz.test"


class FakeFootballApi:
    """
    In-memory stand-in for the football sync API.

    Plug ``handler`` into ``httpx.MockTransport``. Each request is recorded
    in ``calls`` (the ``action`` query parameter) and ``requests``.

    Usage:
        api = FakeFootballApi()
        api.respond("sync-fixtures", json={"count": 5})
        api.fail("sync-live", httpx.ReadTimeout, "timeout")
    """

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: List[str] = []
        self.requests: List[httpx.Request] = []

    def respond(self, action: str, json=None, status_code: int = 200, text: Optional[str] = None):
        if text is not None:
            self.routes[action] = lambda request: httpx.Response(status_code, text=text)
        else:
            self.routes[action] = lambda request: httpx.Response(status_code, json=json)

    def fail(self, action: str, error_type=httpx.ConnectError, message: str = "connection refused"):
        def raise_error(request: httpx.Request):
            raise error_type(message, request=request)
        self.routes[action] = raise_error

    def handler(self, request: httpx.Request) -> httpx.Response:
        action = request.url.params.get("action")
        self.calls.append(action)
        self.requests.append(request)

        route = self.routes.get(action)
        if route is None:
            return httpx.Response(400, json={"error": "Invalid action"})
        return route(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def football_api() -> FakeFootballApi:
    """Football sync API double with successful responses for all three actions."""
    api = FakeFootballApi()
    api.respond("sync-fixtures", json={"success": True, "count": 5})
    api.respond("sync-live", json={"success": True, "updated": 3})
    api.respond("sync-results", json={"success": True, "settled": 2})
    api.respond("status", json={"success": True, "counts": {"leagues": 6, "teams": 120, "upcomingMatches": 40}})
    return api


@pytest.fixture
def make_orchestrator(football_api):
    """
    Factory for orchestrators wired to the fake football API.

    Usage:
        orchestrator = make_orchestrator(cron_secret="s3cret")
    """
    from predictions_cron.core.config import CronConfig
    from predictions_cron.services.cron.football_client import FootballSyncClient
    from predictions_cron.services.cron.orchestrator import CronOrchestrator

    def _make(**config_kwargs):
        config_kwargs.setdefault("base_url", BASE_URL)
        config = CronConfig(**config_kwargs)

        def client_factory(base_url: str) -> FootballSyncClient:
            return FootballSyncClient(
                base_url,
                api_path=config.football_api_path,
                transport=football_api.transport(),
            )

        return CronOrchestrator(config, client_factory=client_factory)

    return _make


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture(scope="function")
def test_client(make_orchestrator):
    """
    FastAPI TestClient with the cron orchestrator wired to the fake football API.

    CRON_SECRET is set to ``CRON_SECRET`` and no base URL is configured, so
    collaborator calls go to the request origin (http://testserver).

    Note: the client is not used as a context manager, so the lifespan
    (scheduler, tracing) does not run.
    """
    from fastapi.testclient import TestClient
    from predictions_cron.main import app
    from predictions_cron.api.routes.cron import get_orchestrator

    orchestrator = make_orchestrator(cron_secret=CRON_SECRET, base_url=None)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {CRON_SECRET}"}
