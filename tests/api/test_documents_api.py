from __future__ import annotations

from monetaris.apps.documents.service import DocumentService
from monetaris.core.config import settings


def test_upload_download_delete(api, admin, debtor) -> None:
    headers = {"X-User-ID": admin.id}
    resp = api.post(
        f"/api/v1/documents/debtor/{debtor.id}",
        files={"file": ("Mahnung.pdf", b"%PDF-1.4 test", "application/pdf")},
        headers=headers,
    )
    assert resp.status_code == 201
    doc = resp.json()
    assert doc["name"] == "Mahnung.pdf"
    assert doc["type"] == "PDF"
    assert doc["size_formatted"] == "13 B"

    resp = api.get("/api/v1/documents", params={"debtor_id": debtor.id}, headers=headers)
    assert [d["id"] for d in resp.json()] == [doc["id"]]

    resp = api.get(f"/api/v1/documents/{doc['id']}/download", headers=headers)
    assert resp.status_code == 200
    assert resp.content == b"%PDF-1.4 test"
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.headers["content-disposition"] == "attachment; filename*=UTF-8''Mahnung.pdf"

    assert api.delete(f"/api/v1/documents/{doc['id']}", headers=headers).status_code == 204
    assert api.get(f"/api/v1/documents/{doc['id']}", headers=headers).status_code == 404


def test_upload_rejections(api, admin, debtor, monkeypatch) -> None:
    headers = {"X-User-ID": admin.id}
    url = f"/api/v1/documents/debtor/{debtor.id}"

    resp = api.post(url, files={"file": ("tool.exe", b"MZ", "application/octet-stream")}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "file_type"

    monkeypatch.setattr(settings, "MAX_UPLOAD_MB", 1)
    resp = api.post(
        url, files={"file": ("gross.pdf", b"0" * (1024 * 1024 + 10), "application/pdf")}, headers=headers
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "file_too_large"

    assert api.post(url, headers=headers).status_code == 422


def test_upload_to_foreign_debtor(api, client_user, other_debtor) -> None:
    resp = api.post(
        f"/api/v1/documents/debtor/{other_debtor.id}",
        files={"file": ("a.pdf", b"%PDF", "application/pdf")},
        headers={"X-User-ID": client_user.id},
    )
    assert resp.status_code == 403


def test_download_encodes_non_ascii_name(api, engine, admin, debtor) -> None:
    doc = DocumentService(engine).upload_document(debtor.id, "Mahnung März.pdf", b"%PDF", admin)
    resp = api.get(f"/api/v1/documents/{doc.id}/download", headers={"X-User-ID": admin.id})
    assert resp.headers["content-disposition"] == "attachment; filename*=UTF-8''Mahnung%20M%C3%A4rz.pdf"
