from __future__ import annotations

import pytest

from app.main import app as fastapi_app
from app.services.storage import get_storage

URL = "/api/v2/uploads"
PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 64


@pytest.fixture
def uploads_client(client, storage):
    fastapi_app.dependency_overrides[get_storage] = lambda: storage
    return client


async def test_single_upload_metadata_and_delete(uploads_client, tenant):
    client = uploads_client
    resp = await client.post(
        f"{URL}/single",
        headers=tenant.headers,
        files={"file": ("gate.png", PNG, "image/png")},
        data={"folder": "vehicles"},
    )
    assert resp.status_code == 201, resp.text
    uploaded = resp.json()["data"]
    assert uploaded["key"].startswith(f"vehicles/{tenant.company.id}/gate-")
    assert uploaded["originalName"] == "gate.png"

    resp = await client.get(f"{URL}/metadata", params={"key": uploaded["key"]}, headers=tenant.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["size"] == len(PNG)

    resp = await client.get(f"{URL}/presigned-download", params={"key": uploaded["key"]}, headers=tenant.headers)
    assert "X-Amz-Signature" in resp.json()["data"]["downloadUrl"]

    resp = await client.delete(URL, params={"key": uploaded["key"]}, headers=tenant.headers)
    assert resp.status_code == 200
    resp = await client.get(f"{URL}/metadata", params={"key": uploaded["key"]}, headers=tenant.headers)
    assert resp.status_code == 404


async def test_nested_folder_upload_stays_accessible(uploads_client, tenant):
    client = uploads_client
    resp = await client.post(
        f"{URL}/single",
        headers=tenant.headers,
        files={"file": ("gate.png", PNG, "image/png")},
        data={"folder": "vehicles/images"},
    )
    assert resp.status_code == 201, resp.text
    key = resp.json()["data"]["key"]
    assert key.startswith(f"vehicles-images/{tenant.company.id}/gate-")

    resp = await client.get(f"{URL}/metadata", params={"key": key}, headers=tenant.headers)
    assert resp.status_code == 200
    resp = await client.delete(URL, params={"key": key}, headers=tenant.headers)
    assert resp.status_code == 200


async def test_multiple_upload(uploads_client, tenant):
    files = [
        ("files", ("a.png", PNG, "image/png")),
        ("files", ("b.pdf", b"%PDF-1.4 test", "application/pdf")),
    ]
    resp = await uploads_client.post(f"{URL}/multiple", headers=tenant.headers, files=files)
    assert resp.status_code == 201, resp.text
    assert [f["originalName"] for f in resp.json()["data"]] == ["a.png", "b.pdf"]


async def test_rejected_type(uploads_client, tenant):
    resp = await uploads_client.post(
        f"{URL}/single",
        headers=tenant.headers,
        files={"file": ("run.sh", b"echo hi", "text/x-sh")},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "File type text/x-sh is not allowed"


async def test_presigned_upload(uploads_client, tenant):
    resp = await uploads_client.post(
        f"{URL}/presigned-upload",
        headers=tenant.headers,
        json={"filename": "invoice.pdf", "contentType": "application/pdf"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["key"].startswith(f"uploads/{tenant.company.id}/invoice-")
    assert data["uploadUrl"]


async def test_other_company_key_is_forbidden(uploads_client, tenant):
    resp = await uploads_client.get(
        f"{URL}/metadata", params={"key": "uploads/other-company/x.pdf"}, headers=tenant.headers
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied to this file"
