"""
Image upload API tests. The storage provider is replaced with monkeypatch.
"""

import io

import pytest

from deliciasoft.models import Image, ProductCategory
from deliciasoft.services import image_service


@pytest.fixture
def stored(monkeypatch):
    uploads = []

    def fake_upload(data, filename, folder):
        uploads.append({"size": len(data), "filename": filename, "folder": folder})
        return {"url": f"https://ik.example/{filename}", "file_id": f"id-{len(uploads)}", "name": filename}

    monkeypatch.setattr(image_service, "upload_to_storage", fake_upload)
    return uploads


def _upload(client, headers, payload=b"\x89PNG data", filename="torta.png", mimetype="image/png"):
    return client.post(
        "/api/images/upload",
        headers=headers,
        data={"image": (io.BytesIO(payload), filename, mimetype)},
        content_type="multipart/form-data",
    )


def test_upload_records_url(client, admin_headers, stored, db_session):
    resp = _upload(client, admin_headers)
    assert resp.status_code == 201
    assert resp.json["image"]["url"] == "https://ik.example/torta.png"
    assert stored[0]["folder"] == "deliciasoft"
    assert db_session.query(Image).count() == 1


def test_rejects_non_image(client, admin_headers, stored):
    resp = _upload(client, admin_headers, payload=b"%PDF", filename="menu.pdf", mimetype="application/pdf")
    assert resp.status_code == 400
    assert stored == []


def test_rejects_oversized_file(client, app, admin_headers, stored, monkeypatch):
    monkeypatch.setitem(app.config, "MAX_UPLOAD_BYTES", 4)
    resp = _upload(client, admin_headers, payload=b"12345")
    assert resp.status_code == 400


def test_missing_file(client, admin_headers):
    resp = client.post("/api/images/upload", headers=admin_headers, data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.json["details"]["missing_fields"] == ["image"]


def test_storage_not_configured(client, admin_headers):
    resp = _upload(client, admin_headers)
    assert resp.status_code == 502


def test_delete_survives_provider_failure(client, admin_headers, stored):
    image_id = _upload(client, admin_headers).json["image"]["id"]
    # Provider credentials are empty in tests, so the remote delete fails and is only logged
    resp = client.delete(f"/api/images/{image_id}", headers=admin_headers)
    assert resp.status_code == 200
    assert client.get(f"/api/images/{image_id}", headers=admin_headers).status_code == 404


def test_delete_referenced_image_refused(client, admin_headers, stored, db_session):
    image_id = _upload(client, admin_headers).json["image"]["id"]
    db_session.add(ProductCategory(name="Tortas", image_id=image_id))
    db_session.commit()

    resp = client.delete(f"/api/images/{image_id}", headers=admin_headers)
    assert resp.status_code == 400


def test_employee_cannot_upload(client, employee_headers, stored):
    assert _upload(client, employee_headers).status_code == 403
