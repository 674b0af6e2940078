from __future__ import annotations

URL = "/api/v2/customer-visits"
VISIT = {
    "partyName": "Tata Steel",
    "contactPerson": "Meera",
    "contactPhone": "9876543210",
    "visitDate": "2026-03-10T09:00:00Z",
    "purpose": "business_meeting",
    "purposeDescription": "Quarterly review",
    "travelType": "local",
    "travelDetails": {"origin": "Pune", "destination": "Chakan", "travelMode": "car"},
    "transportationExpenses": [
        {"date": "2026-03-10T08:00:00Z", "type": "fuel", "from": "Office", "to": "Plant", "cost": 300}
    ],
}


async def _create(client, tenant, **overrides) -> dict:
    resp = await client.post(URL, headers=tenant.headers, json={**VISIT, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_create_list_and_filter(client, tenant):
    visit = await _create(client, tenant)
    assert visit["approvalStatus"] == "pending"
    assert visit["totalExpenses"]["transportation"] == 300.0
    await _create(client, tenant, travelType="outstation", partyName="JSW")

    resp = await client.get(f"{URL}?travelType=outstation", headers=tenant.headers)
    assert [v["partyName"] for v in resp.json()["data"]] == ["JSW"]
    assert resp.headers["X-Total-Count"] == "1"

    resp = await client.get(f"{URL}?search=tata", headers=tenant.headers)
    assert resp.json()["meta"]["total"] == 1


async def test_invalid_purpose(client, tenant):
    resp = await client.post(URL, headers=tenant.headers, json={**VISIT, "purpose": "picnic"})
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Purpose must be one of")


async def test_expense_items_and_approval(client, make_tenant):
    manager = await make_tenant("maya", role="manager")
    clerk = await make_tenant("carl", role="user")
    visit = await _create(client, clerk)
    url = f"{URL}/{visit['id']}"

    resp = await client.post(
        f"{url}/food-expenses",
        headers=clerk.headers,
        json={
            "date": "2026-03-10T13:00:00Z",
            "mealType": "lunch",
            "restaurant": "Sagar",
            "location": "Chakan",
            "numberOfPeople": 2,
            "costPerPerson": 200,
        },
    )
    assert resp.json()["data"]["totalExpenses"]["total"] == 700.0

    resp = await client.post(
        f"{url}/gifts",
        headers=clerk.headers,
        json={"itemName": "Sweets", "itemType": "food", "quantity": 1, "unitCost": 500},
    )
    assert resp.json()["data"]["totalExpenses"]["gifts"] == 500.0

    assert (await client.post(f"{url}/approve", headers=clerk.headers)).status_code == 403

    pending = await client.get(f"{URL}/pending-approvals", headers=manager.headers)
    assert [v["id"] for v in pending.json()["data"]] == [visit["id"]]

    resp = await client.post(f"{url}/approve", headers=manager.headers, json={"reimbursementAmount": 1000})
    assert resp.status_code == 200
    assert resp.json()["data"]["reimbursementAmount"] == 1000
    assert resp.json()["data"]["approvedBy"] == manager.user.id

    resp = await client.post(f"{url}/reimburse", headers=manager.headers)
    assert resp.json()["data"]["approvalStatus"] == "reimbursed"

    stats = (await client.get(f"{URL}/stats", headers=manager.headers)).json()["data"]
    assert stats["totalVisits"] == 1
    assert stats["reimbursed"] == 1
    assert stats["byCategory"]["food"] == 400.0


async def test_reject_without_body(client, tenant):
    visit = await _create(client, tenant)
    resp = await client.post(f"{URL}/{visit['id']}/reject", headers=tenant.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["approvalStatus"] == "rejected"


async def test_update_and_delete(client, tenant):
    visit = await _create(client, tenant)
    resp = await client.put(f"{URL}/{visit['id']}", headers=tenant.headers, json={"notes": "Met the CFO"})
    assert resp.json()["data"]["notes"] == "Met the CFO"

    assert (await client.delete(f"{URL}/{visit['id']}", headers=tenant.headers)).status_code == 200
    assert (await client.get(f"{URL}/{visit['id']}", headers=tenant.headers)).status_code == 404
