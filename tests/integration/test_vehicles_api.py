from __future__ import annotations

URL = "/api/v2/vehicles"
TRUCK = {
    "vehicleNumber": "mh12ab1234",
    "driverName": "Ravi",
    "driverPhone": "9999999999",
    "purpose": "delivery",
    "reason": "Steel coils",
}


async def _create(client, tenant, **overrides) -> dict:
    resp = await client.post(URL, headers=tenant.headers, json={**TRUCK, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_create_and_fetch(client, tenant):
    vehicle = await _create(client, tenant)
    assert vehicle["vehicleNumber"] == "MH12AB1234"
    assert vehicle["status"] == "in"
    assert vehicle["companyId"] == tenant.company.id

    resp = await client.get(f"{URL}/{vehicle['id']}", headers=tenant.headers)
    assert resp.json()["data"]["gatePassNumber"] == vehicle["gatePassNumber"]

    resp = await client.get(f"{URL}/number/mh12ab1234", headers=tenant.headers)
    assert resp.json()["data"]["id"] == vehicle["id"]


async def test_create_validation_messages(client, tenant):
    resp = await client.post(URL, headers=tenant.headers, json={**TRUCK, "driverName": ""})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Driver name is required"

    await _create(client, tenant)
    resp = await client.post(URL, headers=tenant.headers, json=TRUCK)
    assert resp.status_code == 409


async def test_list_is_paginated(client, tenant):
    for n in range(3):
        await _create(client, tenant, vehicleNumber=f"KA01AA000{n}")

    resp = await client.get(f"{URL}?page=2&limit=2", headers=tenant.headers)
    assert resp.status_code == 200
    assert resp.headers["X-Total-Count"] == "3"
    assert resp.headers["X-Current-Page"] == "2"
    body = resp.json()
    assert len(body["data"]) == 1
    assert body["meta"]["pages"] == 2

    resp = await client.get(f"{URL}/search?q=ka01aa0001", headers=tenant.headers)
    assert [v["vehicleNumber"] for v in resp.json()["data"]] == ["KA01AA0001"]


async def test_checkout_inside_and_stats(client, tenant):
    first = await _create(client, tenant)
    await _create(client, tenant, vehicleNumber="KA01XY0001", purpose="pickup")

    resp = await client.patch(f"{URL}/{first['id']}/checkout", headers=tenant.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "out"
    assert resp.json()["data"]["durationMinutes"] == 0

    resp = await client.patch(f"{URL}/{first['id']}/checkout", headers=tenant.headers)
    assert resp.status_code == 400

    inside = (await client.get(f"{URL}/inside", headers=tenant.headers)).json()["data"]
    assert [v["vehicleNumber"] for v in inside] == ["KA01XY0001"]

    stats = (await client.get(f"{URL}/stats", headers=tenant.headers)).json()["data"]
    assert stats["totalVehicles"] == 2
    assert stats["vehiclesInside"] == 1
    assert stats["byPurpose"]["pickup"]["inside"] == 1

    by_purpose = (await client.get(f"{URL}/purpose/pickup", headers=tenant.headers)).json()["data"]
    assert len(by_purpose) == 1


async def test_update_and_status(client, tenant):
    vehicle = await _create(client, tenant)
    resp = await client.put(f"{URL}/{vehicle['id']}", headers=tenant.headers, json={"reason": "Scrap pickup"})
    assert resp.json()["data"]["reason"] == "Scrap pickup"

    resp = await client.put(f"{URL}/{vehicle['id']}/status", headers=tenant.headers, json={"status": "out"})
    assert resp.json()["data"]["status"] == "out"
    resp = await client.put(f"{URL}/{vehicle['id']}/status", headers=tenant.headers, json={"status": "in"})
    assert resp.status_code == 400


async def test_delete_requires_admin(client, make_tenant):
    owner = await make_tenant("alice", role="owner")
    clerk = await make_tenant("clerk", role="user")
    vehicle = await _create(client, owner)

    resp = await client.delete(f"{URL}/{vehicle['id']}", headers=clerk.headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Insufficient permissions"

    resp = await client.delete(f"{URL}/{vehicle['id']}", headers=owner.headers)
    assert resp.status_code == 200
    resp = await client.get(f"{URL}/{vehicle['id']}", headers=owner.headers)
    assert resp.status_code == 404


async def test_recreate_after_delete(client, tenant):
    vehicle = await _create(client, tenant)
    resp = await client.delete(f"{URL}/{vehicle['id']}", headers=tenant.headers)
    assert resp.status_code == 200

    resp = await client.get(f"{URL}/number/MH12AB1234", headers=tenant.headers)
    assert resp.status_code == 404

    again = await _create(client, tenant)
    assert again["vehicleNumber"] == "MH12AB1234"
    assert again["id"] != vehicle["id"]


async def test_tenancy_enforced(client, make_tenant):
    acme = await make_tenant("alice", company_code="ACME")
    globex = await make_tenant("bob", company_code="GLOBEX")
    vehicle = await _create(client, acme)

    resp = await client.get(f"{URL}/{vehicle['id']}", headers=globex.headers)
    assert resp.status_code == 404

    # bob has no access row in ACME
    headers = {**globex.headers, "X-Company-ID": acme.company.id}
    resp = await client.get(URL, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied to this company"


async def test_company_required(client, tenant):
    from tests.conftest import auth_headers

    resp = await client.get(URL, headers=auth_headers(tenant.user, None))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Company ID is required"

    resp = await client.get(URL)
    assert resp.status_code == 401
