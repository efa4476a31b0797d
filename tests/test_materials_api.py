"""
Materials API Tests
"""
import pytest

from conftest import OTHER_ID, OWNER_ID, auth_headers, docx_body, make_docx, para
from learnhub.models.material import Material
from learnhub.services.extraction import DOCX_MIME_TYPE, TRUNCATION_MARKER
from learnhub.services.materials import (
    build_storage_path,
    is_allowed_type,
    is_pending_extraction,
    read_text_content,
    sanitize_filename,
)


class TestSanitizeFilename:
    """Storage keys are ASCII-only"""

    @pytest.mark.parametrize("name, expected", [
        ("notes.pdf", "notes.pdf"),
        ("My Lecture Notes.docx", "My_Lecture_Notes.docx"),
        ("ملخص الدرس.pdf", "file.pdf"),
        ("Résumé  final.txt", "R_sum_final.txt"),
        ("__draft__.md", "draft.md"),
        ("README", "README"),
        ("", "file"),
    ])
    def test_sanitize(self, name, expected):
        assert sanitize_filename(name) == expected

    def test_storage_path_is_scoped_to_user(self):
        path = build_storage_path(OWNER_ID, "Chapter 1.pdf", now_ms=1700000000000)
        assert path == f"{OWNER_ID}/1700000000000_Chapter_1.pdf"


class TestUploadHelpers:

    @pytest.mark.parametrize("content_type, filename, allowed", [
        ("application/pdf", "a.pdf", True),
        (DOCX_MIME_TYPE, "a.docx", True),
        ("text/plain; charset=utf-8", "a.txt", True),
        ("application/octet-stream", "a.py", True),
        ("application/octet-stream", "a.exe", False),
        ("application/zip", "a.zip", False),
        ("video/mp4", "a.mp4", False),
    ])
    def test_allowed_types(self, content_type, filename, allowed):
        assert is_allowed_type(content_type, filename) is allowed

    def test_text_content_is_capped(self, env, monkeypatch):
        from learnhub.core.config import get_settings

        monkeypatch.setenv("UPLOAD_TEXT_MAX_CHARS", "10")
        get_settings.cache_clear()

        assert read_text_content("a.md", b"0123456789abc") == "0123456789" + TRUNCATION_MARKER
        assert read_text_content("a.md", b"short") == "short"

    def test_binary_files_have_no_direct_content(self):
        assert read_text_content("a.pdf", b"%PDF") is None

    @pytest.mark.parametrize("file_name, storage_path, content, pending", [
        ("scan.PDF", "u/1_scan.PDF", None, True),
        ("photo.jpeg", "u/1_photo.jpeg", None, True),
        ("old.doc", "u/1_old.doc", None, True),
        ("animation.gif", "u/1_animation.gif", None, False),
        ("scan.pdf", "u/1_scan.pdf", "already extracted", False),
        ("scan.pdf", None, None, False),
    ])
    def test_pending_extraction(self, file_name, storage_path, content, pending):
        material = Material(user_id=OWNER_ID, file_name=file_name, storage_path=storage_path, content=content)
        assert is_pending_extraction(material) is pending


class TestUpload:
    """POST /v1/materials"""

    def test_text_file_content_is_stored_immediately(self, upload, client):
        material = upload("notes.txt", b"Newton's second law: F = ma", "text/plain")

        assert material["needs_extraction"] is False
        assert material["content_length"] == len("Newton's second law: F = ma")
        assert material["storage_path"].startswith(f"{OWNER_ID}/")

    def test_pdf_is_pending_extraction(self, upload, storage_root):
        material = upload("Chapter 1.pdf", b"%PDF-1.4 data", "application/pdf")

        assert material["needs_extraction"] is True
        assert material["content_length"] == 0
        assert material["file_name"] == "Chapter 1.pdf"
        assert material["storage_path"].endswith("_Chapter_1.pdf")
        assert (storage_root / material["storage_path"]).read_bytes() == b"%PDF-1.4 data"

    def test_gif_is_stored_but_not_pending(self, client, upload):
        material = upload("animation.gif", b"GIF89a" + b"\x00" * 64, "image/gif")

        assert material["needs_extraction"] is False
        assert material["content_length"] == 0

        listed = client.get("/v1/materials", headers=auth_headers()).json()
        assert [m["needs_extraction"] for m in listed] == [False]

    def test_disallowed_type(self, client):
        response = client.post(
            "/v1/materials",
            files={"file": ("clip.mp4", b"0000", "video/mp4")},
            headers=auth_headers(),
        )
        assert response.status_code == 400

    def test_empty_file(self, client):
        response = client.post(
            "/v1/materials",
            files={"file": ("empty.txt", b"", "text/plain")},
            headers=auth_headers(),
        )
        assert response.status_code == 400

    def test_too_large(self, client, monkeypatch):
        from learnhub.core.config import get_settings

        monkeypatch.setenv("EXTRACTION_MAX_FILE_BYTES", "10")
        get_settings.cache_clear()

        response = client.post(
            "/v1/materials",
            files={"file": ("big.pdf", b"%PDF" + b"0" * 100, "application/pdf")},
            headers=auth_headers(),
        )
        assert response.status_code == 400

    def test_requires_auth(self, client):
        response = client.post("/v1/materials", files={"file": ("a.txt", b"hello", "text/plain")})
        assert response.status_code == 401


class TestListAndRead:
    """Every read is scoped to the caller"""

    def test_list_only_own_materials(self, client, upload):
        upload("mine.txt", b"my own notes", "text/plain")
        upload("theirs.txt", b"their notes", "text/plain", user_id=OTHER_ID)

        response = client.get("/v1/materials", headers=auth_headers())

        assert response.status_code == 200
        names = [m["file_name"] for m in response.json()]
        assert names == ["mine.txt"]

    def test_get_material_detail(self, client, upload):
        material = upload("notes.md", b"# Heading\n\nBody", "text/markdown")

        response = client.get(f"/v1/materials/{material['id']}", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["content"] == "# Heading\n\nBody"

    def test_get_material_of_another_user(self, client, upload):
        material = upload("theirs.txt", b"their notes", "text/plain", user_id=OTHER_ID)

        response = client.get(f"/v1/materials/{material['id']}", headers=auth_headers())

        assert response.status_code == 404


class TestDelete:

    def test_delete_removes_record_and_file(self, client, upload, storage_root):
        material = upload("notes.pdf", b"%PDF-1.4", "application/pdf")
        stored = storage_root / material["storage_path"]
        assert stored.exists()

        response = client.delete(f"/v1/materials/{material['id']}", headers=auth_headers())

        assert response.status_code == 200
        assert not stored.exists()
        assert client.get(f"/v1/materials/{material['id']}", headers=auth_headers()).status_code == 404

    def test_cannot_delete_another_users_material(self, client, upload, storage_root):
        material = upload("theirs.pdf", b"%PDF-1.4", "application/pdf", user_id=OTHER_ID)

        response = client.delete(f"/v1/materials/{material['id']}", headers=auth_headers())

        assert response.status_code == 404
        assert (storage_root / material["storage_path"]).exists()


class TestExtractStoredMaterial:
    """POST /v1/materials/{id}/extract uses the recorded path and type"""

    def test_docx(self, client, upload, gateway):
        data = make_docx(docx_body(para("Unit 3"), para("Ecosystems")))
        material = upload("unit3.docx", data, DOCX_MIME_TYPE)

        response = client.post(f"/v1/materials/{material['id']}/extract", headers=auth_headers())

        assert response.status_code == 200
        body = response.json()
        assert body["material_id"] == material["id"]
        assert body["content_length"] == len("Unit 3\n\nEcosystems")
        assert body["truncated"] is False
        assert gateway.requests == []

        detail = client.get(f"/v1/materials/{material['id']}", headers=auth_headers()).json()
        assert detail["needs_extraction"] is False

    def test_other_users_material(self, client, upload):
        material = upload("theirs.docx", make_docx(docx_body(para("x"))), DOCX_MIME_TYPE, user_id=OTHER_ID)

        response = client.post(f"/v1/materials/{material['id']}/extract", headers=auth_headers())

        assert response.status_code == 404
