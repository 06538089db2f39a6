"""Request context middleware tests."""

import pytest


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Every response should carry an X-Request-ID header."""
    r = await client.get("/health")
    assert "x-request-id" in r.headers
    assert len(r.headers["x-request-id"]) == 36  # UUID4


@pytest.mark.asyncio
async def test_request_id_forwarded(client):
    """A client-supplied X-Request-ID is echoed back unchanged."""
    r = await client.get("/health", headers={"X-Request-ID": "trace-abc-123"})
    assert r.headers["x-request-id"] == "trace-abc-123"


@pytest.mark.asyncio
async def test_request_id_present_on_errors(client):
    r = await client.post("/api/events", json={"id": "x", "category": "Nope", "points": 1})
    assert r.status_code == 400
    assert "x-request-id" in r.headers


@pytest.mark.asyncio
async def test_cors_preflight(client):
    r = await client.options(
        "/api/leaderboard",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "http://localhost:3000"
