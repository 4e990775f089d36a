"""End-to-end tests for the HTTP surface with in-memory storage."""

import pytest
from fastapi.testclient import TestClient

from guardian.db.database import MemoryBackend
from guardian.main import create_app

from conftest import FakeReasoningBackend


@pytest.fixture
def backend():
    return FakeReasoningBackend(reply="### ⚖️ 판정 결과: 위반")


@pytest.fixture
def client(backend):
    app = create_app(kv_backend=MemoryBackend(), reasoning=backend)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/admin/login", json={"admin_id": "kidari", "password": "0000"})
    assert response.status_code == 200
    return {"X-Admin-Token": response.json()["token"]}


class TestAdmin:
    """Tests for the admin gate."""

    def test_wrong_password(self, client):
        response = client.post("/api/admin/login", json={"admin_id": "kidari", "password": "1"})
        assert response.status_code == 401

    def test_upload_requires_login(self, client):
        response = client.post(
            "/api/sources/upload", files=[("files", ("a.txt", b"x", "text/plain"))]
        )
        assert response.status_code == 401

    def test_change_password(self, client, admin_headers):
        response = client.post(
            "/api/admin/password",
            json={"current_password": "0000", "new_password": "4321", "confirm_password": "4321"},
            headers=admin_headers,
        )
        assert response.status_code == 200

        old = client.post("/api/admin/login", json={"admin_id": "kidari", "password": "0000"})
        new = client.post("/api/admin/login", json={"admin_id": "kidari", "password": "4321"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_change_password_mismatch(self, client, admin_headers):
        response = client.post(
            "/api/admin/password",
            json={"current_password": "0000", "new_password": "1", "confirm_password": "2"},
            headers=admin_headers,
        )
        assert response.status_code == 400


class TestSources:
    """Tests for corpus management endpoints."""

    def test_upload_and_list(self, client, admin_headers, make_workbook):
        data = make_workbook({"A": [["x"]], "B": [["y"]]})
        response = client.post(
            "/api/sources/upload",
            files=[
                ("files", ("Policy.xlsx", data, "application/octet-stream")),
                ("files", ("notes.txt", "메모".encode("utf-8"), "text/plain")),
            ],
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert [s["name"] for s in body["sources"]] == ["Policy.xlsx", "notes.txt"]
        assert body["total_sources"] == 2

        listing = client.get("/api/sources").json()["sources"]
        assert [s["kind"] for s in listing] == ["xlsx", "text"]

        detail = client.get(f"/api/sources/{listing[0]['id']}").json()
        assert detail["content"].startswith("--- Sheet: A ---\nx")

    def test_strict_upload_failure(self, client, admin_headers):
        response = client.post(
            "/api/sources/upload",
            files=[
                ("files", ("ok.txt", b"fine", "text/plain")),
                ("files", ("bad.pdf", b"garbage", "application/pdf")),
            ],
            headers=admin_headers,
        )
        assert response.status_code == 422
        assert "bad.pdf" in response.json()["detail"]
        assert client.get("/api/sources").json()["sources"] == []

    def test_partial_upload(self, client, admin_headers):
        response = client.post(
            "/api/sources/upload?strict=false",
            files=[
                ("files", ("ok.txt", b"fine", "text/plain")),
                ("files", ("bad.pdf", b"garbage", "application/pdf")),
            ],
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert [f["filename"] for f in body["failures"]] == ["bad.pdf"]
        assert body["total_sources"] == 1

    def test_manual_entry_and_delete(self, client, admin_headers):
        first = client.post(
            "/api/sources/manual", json={"content": "제1조"}, headers=admin_headers
        ).json()
        second = client.post(
            "/api/sources/manual", json={"content": "제2조", "name": "부칙"}, headers=admin_headers
        ).json()
        assert first["name"] == "수동 입력 규정"

        response = client.delete(f"/api/sources/{first['id']}", headers=admin_headers)
        assert response.status_code == 200
        ids = [s["id"] for s in client.get("/api/sources").json()["sources"]]
        assert ids == [second["id"]]

    def test_delete_unknown(self, client, admin_headers):
        response = client.delete("/api/sources/nope", headers=admin_headers)
        assert response.status_code == 404


class TestAuditAndQuestions:
    """Tests for audit, Q&A and evidence image endpoints."""

    def test_audit_without_sources(self, client, backend):
        response = client.post("/api/audit", json={"scenario": "신규계약"})
        assert response.status_code == 400
        assert backend.calls == []

    def test_audit(self, client, admin_headers, backend):
        client.post("/api/sources/manual", json={"content": "제1조"}, headers=admin_headers)
        response = client.post("/api/audit", json={"scenario": "신규계약", "use_search": True})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "VIOLATION"
        assert body["label"] == "위반 (Violation)"
        assert body["rendered"].startswith("### ⚖️ 판정 결과: 위반")
        assert backend.calls[0][3] is True

    def test_ask(self, client, admin_headers):
        client.post("/api/sources/manual", json={"content": "제1조"}, headers=admin_headers)
        response = client.post("/api/ask", json={"question": "승인권자는?"})
        assert response.status_code == 200
        assert response.json()["answer"] == "### ⚖️ 판정 결과: 위반"

    def test_evidence_edit(self, client):
        missing = client.post("/api/evidence/edit", json={"prompt": "crop"})
        assert missing.status_code == 400

        upload = client.post("/api/evidence", files={"file": ("scan.png", b"\x89PNG", "image/png")})
        assert upload.json()["image"].startswith("data:image/png;base64,")

        edited = client.post("/api/evidence/edit", json={"prompt": "crop"})
        assert edited.status_code == 200
        assert edited.json()["image"] == "data:image/png;base64,RURJVEVE"
        assert client.get("/api/evidence").json()["image"] == "data:image/png;base64,RURJVEVE"

    def test_evidence_rejects_documents(self, client):
        response = client.post("/api/evidence", files={"file": ("rules.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 400

    def test_evidence_rejects_non_image_extension(self, client):
        response = client.post("/api/evidence", files={"file": ("notes.image", b"text", "text/plain")})
        assert response.status_code == 400
