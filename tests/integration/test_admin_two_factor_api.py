from __future__ import annotations


async def test_requires_super_admin(client, tenant):
    resp = await client.get("/api/admin/users/2fa-status", headers=tenant.headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Super admin access required"


async def test_status_and_adoption_stats(client, make_tenant):
    admin = await make_tenant("root", is_super_admin=True)
    await make_tenant("bob")

    resp = await client.get("/api/admin/users/2fa-status", headers=admin.headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert {u["username"] for u in data["users"]} == {"root", "bob"}
    assert data["stats"] == {"totalUsers": 2, "twoFactorEnabled": 0, "twoFactorDisabled": 2, "adoptionRate": 0}


async def test_enable_reset_force_disable_and_audit_log(client, make_tenant):
    admin = await make_tenant("root", is_super_admin=True)
    bob = await make_tenant("bob")
    base = f"/api/admin/users/{bob.user.id}"

    resp = await client.post(f"{base}/enable-2fa", headers=admin.headers)
    assert resp.status_code == 200, resp.text
    assert len(resp.json()["data"]["backupCodes"]) == 10

    resp = await client.post(f"{base}/enable-2fa", headers=admin.headers)
    assert resp.status_code == 400

    resp = await client.get("/api/admin/users/2fa-status", headers=admin.headers)
    assert resp.json()["data"]["stats"]["adoptionRate"] == 50

    resp = await client.post(f"{base}/reset-2fa", headers=admin.headers)
    assert resp.status_code == 200
    resp = await client.post(f"{base}/force-disable-2fa", headers=admin.headers)
    assert resp.status_code == 200

    resp = await client.get("/api/admin/2fa-audit-log?limit=2", headers=admin.headers)
    assert resp.status_code == 200
    assert resp.headers["X-Total-Count"] == "3"
    assert resp.headers["X-Page-Count"] == "2"
    body = resp.json()
    assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}
    assert all(entry["entityId"] == bob.user.id for entry in body["data"])


async def test_unknown_user(client, make_tenant):
    admin = await make_tenant("root", is_super_admin=True)
    resp = await client.post("/api/admin/users/missing/enable-2fa", headers=admin.headers)
    assert resp.status_code == 404
