from __future__ import annotations

import asyncio
import uuid

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from app.core.config import settings
from app.domain.audit import AuditTrail
from app.middleware.audit import AuditMiddleware, entity_from_path
from app.middleware.rate_limit import RateLimitMiddleware, RateRule, default_rules
from app.middleware.request_context import RequestContextMiddleware
from app.middleware.security_headers import CONTENT_SECURITY_POLICY, SecurityHeadersMiddleware


def _tiny_app() -> FastAPI:
    app = FastAPI()

    @app.get("/api/ping")
    async def ping():
        return {"pong": True}

    @app.get("/health")
    async def health():
        return {"ok": True}

    app.add_middleware(
        RateLimitMiddleware,
        rules=[RateRule("test", ("/api/",), 60, 2, "Too many API requests")],
        enabled=True,
    )
    app.add_middleware(SecurityHeadersMiddleware, csp=True, hsts=True)
    return app


@pytest.fixture
async def tiny_client():
    async with AsyncClient(transport=ASGITransport(app=_tiny_app()), base_url="http://test") as ac:
        yield ac


async def test_rate_limit_returns_429_after_quota(tiny_client):
    first = await tiny_client.get("/api/ping")
    assert first.headers["X-Rate-Limit-Remaining"] == "1"
    await tiny_client.get("/api/ping")

    resp = await tiny_client.get("/api/ping")
    assert resp.status_code == 429
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Too many requests"
    assert body["message"] == "Too many API requests. Please try again later."
    assert 0 < body["retryAfter"] <= 60
    assert resp.headers["Retry-After"] == str(body["retryAfter"])
    assert resp.headers["X-Rate-Limit-Remaining"] == "0"


async def test_rate_limit_is_per_client_and_skips_health(tiny_client):
    for _ in range(3):
        await tiny_client.get("/api/ping")
    other = await tiny_client.get("/api/ping", headers={"X-Forwarded-For": "203.0.113.9"})
    assert other.status_code == 200

    for _ in range(5):
        assert (await tiny_client.get("/health")).status_code == 200


async def test_security_headers(tiny_client):
    resp = await tiny_client.get("/health")
    assert resp.headers["Content-Security-Policy"] == CONTENT_SECURITY_POLICY
    assert resp.headers["Strict-Transport-Security"].startswith("max-age=31536000")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert resp.headers["Referrer-Policy"] == "same-origin"


async def test_request_id_is_echoed_or_generated(client):
    resp = await client.get("/live", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"

    resp = await client.get("/live")
    assert len(resp.headers["X-Request-ID"]) == 36
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


async def test_unknown_route_uses_error_envelope(client):
    resp = await client.get("/api/nope")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Route /api/nope not found"
    assert body["statusCode"] == 404
    assert body["path"] == "/api/nope"
    assert body["method"] == "GET"


async def test_malformed_json_body(client):
    resp = await client.post(
        "/api/auth/login", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid JSON in request body"


async def test_cors_preflight(client):
    resp = await client.options(
        "/api/auth/login",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-max-age"] == "86400"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/api/v2/vehicles/0f8fad5b-d9cb-469f-a165-70867728950e/checkout", ("vehicle", "0f8fad5b-d9cb-469f-a165-70867728950e")),
        ("/api/v2/stock-movements", ("stock-movement", None)),
        ("/", ("unknown", None)),
    ],
)
def test_entity_from_path(path, expected):
    assert entity_from_path(path) == expected


def _catch_all_app(rules: list[RateRule]) -> FastAPI:
    app = FastAPI()

    @app.api_route("/api/{path:path}", methods=["GET", "POST"])
    async def anything(path: str):
        return {"path": path}

    app.add_middleware(RateLimitMiddleware, rules=rules, enabled=True)
    return app


async def _hammer(ac: AsyncClient, method: str, path: str, times: int) -> list[int]:
    return [(await ac.request(method, path)).status_code for _ in range(times)]


async def test_default_rules_in_production(monkeypatch):
    monkeypatch.setattr(settings, "app_env", "production")
    rules = default_rules()
    limits = {r.name: r.max_requests for r in rules}
    assert limits == {
        "auth": 5,
        "two_factor": 5,
        "upload": 10,
        "general": settings.rate_limit_max_requests,
    }

    transport = ASGITransport(app=_catch_all_app(rules))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        # setup flow is not throttled by the 2FA rule
        for path in ("/api/auth/2fa/status", "/api/auth/2fa/setup", "/api/auth/2fa/backup-codes"):
            assert 429 not in await _hammer(ac, "GET", path, 6)

        assert await _hammer(ac, "POST", "/api/auth/2fa/verify", 6) == [200] * 5 + [429]
        resp = await ac.post("/api/auth/2fa/enable")
        assert resp.status_code == 429
        assert resp.json()["message"] == "Too many 2FA attempts. Please try again later."

        assert await _hammer(ac, "POST", "/api/auth/login", 6) == [200] * 5 + [429]
        assert (await ac.post("/api/auth/register")).json()["message"] == (
            "Too many authentication attempts. Please try again later."
        )

        statuses = await _hammer(ac, "POST", "/api/v2/uploads/single", 11)
        assert statuses == [200] * 10 + [429]


async def test_general_rule_and_development_multiplier(monkeypatch):
    monkeypatch.setattr(settings, "app_env", "development")
    monkeypatch.setattr(settings, "rate_limit_max_requests", 3)
    limits = {r.name: r.max_requests for r in default_rules()}
    assert limits == {"auth": 50, "two_factor": 50, "upload": 100, "general": 30}

    monkeypatch.setattr(settings, "app_env", "production")
    transport = ASGITransport(app=_catch_all_app(default_rules()))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        assert await _hammer(ac, "GET", "/api/v2/vehicles", 4) == [200, 200, 200, 429]
        resp = await ac.get("/api/v2/stock-movements")
        assert resp.json()["message"] == "Too many API requests. Please try again later."


async def test_audit_row_written_for_write_requests(session_factory, monkeypatch):
    monkeypatch.setattr("app.db.base.async_session_factory", session_factory)
    app = FastAPI()

    @app.get("/api/v2/vehicles")
    async def listing():
        return []

    @app.post("/api/v2/vehicles/{vehicle_id}/checkout")
    async def checkout(vehicle_id: str, request: Request):
        request.state.user_id = "user-1"
        request.state.company_id = "company-1"
        return {"id": vehicle_id}

    app.add_middleware(AuditMiddleware, enabled=True)
    app.add_middleware(RequestContextMiddleware)

    vehicle_id = str(uuid.uuid4())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        await ac.get("/api/v2/vehicles")
        resp = await ac.post(
            f"/api/v2/vehicles/{vehicle_id}/checkout",
            headers={"X-Request-ID": "req-audit", "User-Agent": "gate-terminal"},
        )
    assert resp.status_code == 200

    rows: list[AuditTrail] = []
    for _ in range(100):
        async with session_factory() as s:
            rows = list((await s.execute(select(AuditTrail))).scalars().all())
        if rows:
            break
        await asyncio.sleep(0.01)

    assert len(rows) == 1
    row = rows[0]
    assert row.action == "POST:200"
    assert (row.entity_type, row.entity_id) == ("vehicle", vehicle_id)
    assert (row.user_id, row.company_id, row.request_id) == ("user-1", "company-1", "req-audit")
    assert row.user_agent == "gate-terminal"
    assert row.description.startswith(f"POST /api/v2/vehicles/{vehicle_id}/checkout -> 200")
