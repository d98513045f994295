"""
Tests for document uploads.
"""
from pathlib import Path

import pytest

from conftest import API
from divecenter.main import app
from divecenter.api.v1.files import get_file_service
from divecenter.services.file_service import FileService


@pytest.fixture
def upload_dir(tmp_path):
    app.dependency_overrides[get_file_service] = lambda: FileService(upload_dir=str(tmp_path))
    yield tmp_path
    app.dependency_overrides.pop(get_file_service, None)


def upload(client, auth_headers, name, content, category="certification"):
    return client.post(
        f"{API}/files/upload",
        files={"file": (name, content, "application/octet-stream")},
        data={"category": category},
        headers=auth_headers,
    )


class TestUploads:
    def test_pdf_upload(self, client, auth_headers, upload_dir):
        me = client.get(f"{API}/auth/me", headers=auth_headers).json()
        response = upload(client, auth_headers, "padi-card.pdf", b"%PDF-1.4 card")
        assert response.status_code == 201

        body = response.json()
        assert body["success"] is True
        assert body["original_name"] == "padi-card.pdf"
        assert body["url"].startswith(f"/uploads/{me['dive_center_id']}/certification/")
        assert body["url"].endswith(".pdf")

        stored = upload_dir / body["url"][len("/uploads/"):]
        assert stored.read_bytes() == b"%PDF-1.4 card"

    def test_disallowed_extension(self, client, auth_headers, upload_dir):
        response = upload(client, auth_headers, "setup.exe", b"MZ")
        assert response.status_code == 400

    def test_empty_file(self, client, auth_headers, upload_dir):
        response = upload(client, auth_headers, "empty.png", b"")
        assert response.status_code == 400

    def test_unknown_category(self, client, auth_headers, upload_dir):
        response = upload(client, auth_headers, "card.jpg", b"jpeg", category="selfie")
        assert response.status_code == 422

    def test_requires_login(self, client, upload_dir):
        response = client.post(f"{API}/files/upload", files={"file": ("a.pdf", b"x")},
                               data={"category": "document"})
        assert response.status_code == 401


class TestFileService:
    def test_save_layout(self, tmp_path):
        service = FileService(upload_dir=str(tmp_path), url_prefix="/files/")
        url, path = service.save(b"policy", "Insurance.PDF", "insurance", 7)

        assert url.startswith("/files/7/insurance/")
        assert url.endswith(".pdf")
        assert Path(path).parent == tmp_path / "7" / "insurance"

    def test_validate_rejects_unknown_type(self, tmp_path):
        with pytest.raises(ValueError, match="not allowed"):
            FileService(upload_dir=str(tmp_path)).validate("notes.txt", 10)
