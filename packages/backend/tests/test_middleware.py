"""Tests for security middleware — headers, request IDs, error envelope.

Learn: These run against real routes; nothing here is mocked.
"""

import uuid
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from catalog.config import settings
from catalog.ratelimit import InMemoryRateLimitStore


@pytest.mark.asyncio
async def test_security_headers(client):
    r = await client.get("/api/health")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert r.headers["Cross-Origin-Resource-Policy"] == "cross-origin"
    assert "img-src 'self' data: https://res.cloudinary.com" in r.headers[
        "Content-Security-Policy"
    ]


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/api/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "trace-12345"})
    assert r.headers["X-Request-ID"] == "trace-12345"


@pytest.mark.asyncio
async def test_malformed_request_id_replaced(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "bad id <script>"})
    assert r.headers["X-Request-ID"] != "bad id <script>"


@pytest.mark.asyncio
async def test_unknown_route_envelope(client):
    r = await client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Route not found"}


@pytest.mark.asyncio
async def test_requests_reach_access_and_error_logs(client):
    """Every request lands in access.log; unknown routes also land in error.log."""
    known = f"/api/category/missing-{uuid.uuid4().hex[:8]}"
    unknown = f"/api/nowhere-{uuid.uuid4().hex[:8]}"

    assert (await client.get(known)).status_code == 404
    assert (await client.get(unknown)).status_code == 404

    log_dir = Path(settings.log_dir)
    access = (log_dir / "access.log").read_text(encoding="utf-8")
    errors = (log_dir / "error.log").read_text(encoding="utf-8")

    assert known in access and unknown in access
    assert "request.completed" in access
    assert unknown in errors
    assert "request.route_not_found" in errors


@pytest.mark.asyncio
async def test_malformed_body_is_400(client):
    r = await client.post(
        "/api/auth/login",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_unexpected_error_is_500(db_session):
    """Unhandled exceptions become the generic 500 envelope."""
    from catalog.db.engine import get_db
    from catalog.main import create_app

    app = create_app(rate_limit_store=InMemoryRateLimitStore())

    async def broken_db():
        raise RuntimeError("database exploded")
        yield  # pragma: no cover

    app.dependency_overrides[get_db] = broken_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/api/categories")

    assert r.status_code == 500
    assert r.json()["success"] is False
    assert r.json()["message"] == "Something went wrong!"
    # Development mode exposes the error text
    assert r.json()["error"] == "database exploded"
