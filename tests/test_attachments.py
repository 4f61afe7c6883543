"""Receipt attachments, tenant logos and presigned downloads."""

import logging
import pytest
from datetime import datetime

from fastapi.testclient import TestClient

from app.core.exceptions import NotFoundException, UnauthorizedException
from app.main import app
from app.models.attachment import Attachment
from app.repositories.attachment_repository import AttachmentRepository
from app.storage.blob_store import (
    InMemoryBlobStore,
    LocalBlobStore,
    create_presigned_token,
    generate_blob_key,
    sanitize_filename,
    verify_presigned_token,
)
from tests.conftest import create_entry

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def upload(client, entry_id, headers, filename="receipt.png", content=PNG_BYTES, content_type="image/png"):
    return client.post(
        f"/api/logs/{entry_id}/attachments",
        headers=headers,
        files={"file": (filename, content, content_type)},
    )


class TestBlobKeys:
    def test_key_layout(self):
        key = generate_blob_key("branch-a", "My Receipt (1).PNG", datetime(2026, 3, 18, 10, 0, 0))
        assert key.startswith("artifacts/branch-a/2026/03/")
        assert key.endswith("_my_receipt__1_.png")

    def test_sanitize_filename(self):
        assert sanitize_filename("../../etc/passwd") == ".._.._etc_passwd"

    def test_presigned_token_is_bound_to_key(self):
        token = create_presigned_token("artifacts/a/1.png")
        verify_presigned_token("artifacts/a/1.png", token)
        with pytest.raises(UnauthorizedException):
            verify_presigned_token("artifacts/b/2.png", token)

    def test_expired_presigned_token_rejected(self):
        token = create_presigned_token("artifacts/a/1.png", expires_in=-10)
        with pytest.raises(UnauthorizedException):
            verify_presigned_token("artifacts/a/1.png", token)


class TestLocalBlobStore:
    def test_put_get_delete(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        store.put("artifacts/a/2026/03/1_x.pdf", b"%PDF-1.7", "application/pdf")

        data, content_type = store.get("artifacts/a/2026/03/1_x.pdf")
        assert data == b"%PDF-1.7"
        assert content_type == "application/pdf"

        store.delete("artifacts/a/2026/03/1_x.pdf")
        with pytest.raises(NotFoundException):
            store.get("artifacts/a/2026/03/1_x.pdf")

    def test_keys_cannot_escape_root(self, tmp_path):
        store = LocalBlobStore(tmp_path / "root")
        with pytest.raises(NotFoundException):
            store.get("../outside.txt")


class TestEntryAttachments:
    def test_upload_and_download_through_presigned_url(
        self, client, db_session, blob_store, staff_a, staff_a_headers
    ):
        entry = create_entry(db_session, staff_a)

        response = upload(client, entry.id, staff_a_headers)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["filename"] == "receipt.png"
        assert data["mime_type"] == "image/png"
        assert len(blob_store) == 1

        download = client.get(data["url"])
        assert download.status_code == 200
        assert download.content == PNG_BYTES
        assert download.headers["content-type"] == "image/png"

        detail = client.get(f"/api/logs/{entry.id}", headers=staff_a_headers).json()["data"]
        assert [a["id"] for a in detail["attachments"]] == [data["id"]]
        assert detail["attachment_url"] is not None

    def test_download_requires_valid_token(self, client, db_session, staff_a, staff_a_headers):
        entry = create_entry(db_session, staff_a)
        url = upload(client, entry.id, staff_a_headers).json()["data"]["url"]
        path = url.split("?")[0]

        assert client.get(path + "?token=forged").status_code == 401
        assert client.get(path).status_code == 422

    def test_unsupported_type_rejected(self, client, db_session, blob_store, staff_a, staff_a_headers):
        entry = create_entry(db_session, staff_a)
        response = upload(client, entry.id, staff_a_headers, "notes.txt", b"hello", "text/plain")
        assert response.status_code == 400
        assert len(blob_store) == 0

    def test_oversized_file_rejected(self, client, db_session, staff_a, staff_a_headers, monkeypatch):
        from app.config import settings

        monkeypatch.setattr(settings, "MAX_ATTACHMENT_BYTES", 16)
        entry = create_entry(db_session, staff_a)
        response = upload(client, entry.id, staff_a_headers)
        assert response.status_code == 400
        assert "limit" in response.json()["error"]

    def test_cannot_attach_to_foreign_entry(self, client, db_session, staff_b, staff_a_headers):
        entry = create_entry(db_session, staff_b)
        assert upload(client, entry.id, staff_a_headers).status_code == 404

    def test_delete_removes_blob_and_row(self, client, db_session, blob_store, staff_a, staff_a_headers):
        entry = create_entry(db_session, staff_a)
        attachment_id = upload(client, entry.id, staff_a_headers).json()["data"]["id"]

        response = client.delete(
            f"/api/logs/{entry.id}/attachments/{attachment_id}", headers=staff_a_headers
        )
        assert response.status_code == 200
        assert len(blob_store) == 0
        assert db_session.query(Attachment).count() == 0

        again = client.delete(
            f"/api/logs/{entry.id}/attachments/{attachment_id}", headers=staff_a_headers
        )
        assert again.status_code == 404

    def test_archiving_keeps_the_blob(self, client, db_session, blob_store, staff_a, staff_a_headers):
        entry = create_entry(db_session, staff_a)
        upload(client, entry.id, staff_a_headers)
        client.delete(f"/api/logs/{entry.id}", headers=staff_a_headers)
        assert len(blob_store) == 1


class TestWriteOrdering:
    """Blob and metadata writes fail in an order that never leaves a row without its blob"""

    @pytest.fixture
    def failing_client(self, client):
        # Unhandled errors come back as 500 responses instead of being re-raised
        return TestClient(app, raise_server_exceptions=False)

    def test_metadata_failure_logs_orphaned_blob(
        self, failing_client, db_session, blob_store, staff_a, staff_a_headers, monkeypatch, caplog
    ):
        entry = create_entry(db_session, staff_a)

        def broken_create(self, attachment):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(AttachmentRepository, "create", broken_create)

        with caplog.at_level(logging.WARNING, logger="app.services.attachment_service"):
            response = upload(failing_client, entry.id, staff_a_headers)

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert db_session.query(Attachment).count() == 0
        assert len(blob_store) == 1
        orphaned = [
            r.getMessage()
            for r in caplog.records
            if r.name == "app.services.attachment_service" and r.levelno == logging.WARNING
        ]
        assert len(orphaned) == 1
        assert orphaned[0].startswith("Orphaned blob artifacts/branch-a/")

    def test_blob_delete_failure_keeps_metadata(
        self, failing_client, db_session, blob_store, staff_a, staff_a_headers, monkeypatch
    ):
        entry = create_entry(db_session, staff_a)
        attachment_id = upload(failing_client, entry.id, staff_a_headers).json()["data"]["id"]

        def broken_delete(key):
            raise RuntimeError("storage unavailable")

        monkeypatch.setattr(blob_store, "delete", broken_delete)

        response = failing_client.delete(
            f"/api/logs/{entry.id}/attachments/{attachment_id}", headers=staff_a_headers
        )
        assert response.status_code == 500
        assert db_session.query(Attachment).count() == 1
        assert len(blob_store) == 1


class TestTenantLogo:
    def test_super_admin_replaces_logo(self, client, blob_store, branch_a, super_headers):
        first = client.post(
            f"/api/tenants/{branch_a.id}/logo",
            headers=super_headers,
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )
        assert first.status_code == 200
        assert first.json()["data"]["logo_url"].startswith("/api/files/artifacts/branch-a/")

        second = client.post(
            f"/api/tenants/{branch_a.id}/logo",
            headers=super_headers,
            files={"file": ("logo2.png", PNG_BYTES, "image/png")},
        )
        assert second.status_code == 200
        assert len(blob_store) == 1

    def test_pdf_is_not_a_logo(self, client, branch_a, super_headers):
        response = client.post(
            f"/api/tenants/{branch_a.id}/logo",
            headers=super_headers,
            files={"file": ("logo.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 400

    def test_admin_lini_cannot_upload_logo(self, client, branch_a, admin_a_headers):
        response = client.post(
            f"/api/tenants/{branch_a.id}/logo",
            headers=admin_a_headers,
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 403


def test_in_memory_store_missing_key():
    with pytest.raises(NotFoundException):
        InMemoryBlobStore().get("nope")
