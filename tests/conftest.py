from datetime import datetime, timezone

import httpx
import pytest

from powerplatform_assessment.api.client import AdminApiClient
from powerplatform_assessment.config import CollectionConfig
from powerplatform_assessment.safety.guardian import SafetyGuardian

FIXED_NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def collection_config():
    return CollectionConfig()


@pytest.fixture
def sleeps():
    """Backoff delays requested by clients, recorded instead of slept."""
    return []


@pytest.fixture
def router():
    """
    Build an httpx handler that answers by host + path.

    A route value is a JSON body, a (status, body) tuple, or a callable taking
    the request. Unknown routes answer 404.
    """
    def build(routes: dict):
        def handler(request: httpx.Request) -> httpx.Response:
            key = f"{request.url.host}{request.url.path}"
            if key not in routes:
                return httpx.Response(404, json={"error": {"code": "NotFound"}})
            value = routes[key]
            if callable(value):
                return value(request)
            if isinstance(value, tuple):
                status, body = value
                return httpx.Response(status, json=body)
            return httpx.Response(200, json=value)
        return handler
    return build


@pytest.fixture
def make_client(sleeps):
    clients = []

    def factory(handler, name="power_platform", token_provider=None, guardian=None):
        client = AdminApiClient(
            token_provider=token_provider or (lambda scope: "test-token"),
            guardian=guardian or SafetyGuardian(),
            name=name,
            transport=httpx.MockTransport(handler),
            sleep=sleeps.append,
        )
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()
