from __future__ import annotations


async def test_simple_health(client):
    resp = await client.get("/api/v2-simple/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "API v2 Simple is healthy"
    assert body["version"] == "2.0.0-simple"
    assert "timestamp" in body


async def test_simple_info_and_protected(client, tenant):
    info = (await client.get("/api/v2-simple/info")).json()["data"]
    assert info["endpoints"]["vehicles"] == "/api/v2/vehicles"

    assert (await client.get("/api/v2-simple/protected")).status_code == 401
    resp = await client.get("/api/v2-simple/protected", headers=tenant.headers)
    assert resp.json()["data"]["companyId"] == tenant.company.id
    assert resp.json()["data"]["role"] == "owner"


async def test_health_reports_database(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["database"] == "connected"
    assert body["uptimeSeconds"] >= 0


async def test_ready_and_live(client):
    assert (await client.get("/ready")).json() == {"success": True, "status": "ready"}
    assert (await client.get("/live")).json() == {"success": True, "status": "alive"}
