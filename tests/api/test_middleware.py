import pytest
from httpx import AsyncClient

from eventos.core.middleware import extract_event_id, should_skip_logging


@pytest.mark.parametrize("path,expected", [
    ("/api/v1/events/0b6c7c1e-1111-4a4a-9999-000000000001", "0b6c7c1e-1111-4a4a-9999-000000000001"),
    ("/api/v1/events/0b6c7c1e/files/42", "0b6c7c1e"),
    ("/api/v1/events/wizard/advance", ""),
    ("/api/v1/events/statistics", ""),
    ("/api/v1/admin/events/review-queue", ""),
    ("/api/v1/auth/me", ""),
])
def test_extract_event_id(path, expected):
    assert extract_event_id(path) == expected


def test_health_checks_are_not_logged():
    assert should_skip_logging("/health")
    assert not should_skip_logging("/api/v1/events")


@pytest.mark.asyncio
async def test_request_id_is_propagated(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc12345"})

    assert response.headers["X-Request-ID"] == "abc12345"
    assert response.headers["X-Response-Time"].endswith("ms")
    assert response.headers["X-Content-Type-Options"] == "nosniff"

