"""
Test Configuration and Fixtures
"""
import io
import json
import time
import zipfile

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

JWT_SECRET = "test-jwt-secret"
OWNER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_ID = "22222222-2222-2222-2222-222222222222"


def make_token(user_id, secret=JWT_SECRET, audience="authenticated", expires_in=3600):
    claims = {
        "sub": user_id,
        "aud": audience,
        "role": "authenticated",
        "email": f"{user_id[:8]}@example.com",
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(user_id=OWNER_ID):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def make_docx(document_xml=None, entries=None):
    """Build a DOCX-shaped zip in memory."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        if document_xml is not None:
            archive.writestr("word/document.xml", document_xml)
        for name, data in (entries or {}).items():
            archive.writestr(name, data)
    return buf.getvalue()


def corrupt_docx(document_xml):
    """A deflated DOCX whose document.xml stream is damaged."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr("word/document.xml", document_xml)
    data = bytearray(buf.getvalue())
    # first occurrence is the local file header; the deflate stream follows the name
    start = data.find(b"word/document.xml") + len("word/document.xml")
    for i in range(start + 2, start + 37):
        data[i] ^= 0xFF
    return bytes(data)


def docx_body(*paragraphs):
    """Wrap paragraph XML snippets in a minimal document.xml."""
    body = "".join(paragraphs)
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}<w:sectPr/></w:body></w:document>"
    )


def para(*runs):
    """One <w:p> with one <w:r><w:t> per run."""
    inner = "".join(f'<w:r><w:t xml:space="preserve">{r}</w:t></w:r>' for r in runs)
    return f"<w:p>{inner}</w:p>"


class FakeGateway:
    """Records chat-completion calls and answers with a canned response."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.content = "Extracted text from the AI gateway."
        self.body = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.status_code != 200:
            return httpx.Response(self.status_code, text=self.body or "upstream error")
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"role": "assistant", "content": self.content}}],
                "usage": {"prompt_tokens": 10, "completion_tokens": 20},
            },
        )

    @property
    def last_payload(self):
        return self.requests[-1]


@pytest.fixture(scope="function")
def env(tmp_path, monkeypatch):
    """Isolated settings: sqlite file db, local storage, auth on, redis off."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("SERVICE_DATABASE_URL", "")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("LLM_GATEWAY_URL", "https://gateway.test/v1")
    monkeypatch.setenv("LLM_GATEWAY_API_KEY", "test-gateway-key")
    monkeypatch.setenv("LOCAL_STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setenv("FF_USE_AUTH", "true")
    monkeypatch.setenv("FF_USE_S3", "false")
    monkeypatch.setenv("FF_USE_REDIS", "false")
    monkeypatch.setenv("ENV", "test")

    from learnhub.core.config import get_settings
    from learnhub.core.flags import get_flags

    get_settings.cache_clear()
    get_flags.cache_clear()
    yield tmp_path
    get_settings.cache_clear()
    get_flags.cache_clear()


@pytest.fixture(scope="function")
def client(env):
    """Test client with startup/shutdown run around each test."""
    from learnhub.factory import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def gateway(client, monkeypatch):
    """Route LLM gateway calls to an in-process fake."""
    from learnhub.services import llm

    fake = FakeGateway()
    monkeypatch.setattr(
        llm, "_client", httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    )
    return fake


@pytest.fixture(scope="function")
def storage_root(env):
    from learnhub.core.config import get_settings

    return env / "storage" / get_settings().storage_bucket


@pytest.fixture(scope="function")
def upload(client):
    """Upload a material through the API. Returns the JSON record."""

    def _upload(filename, data, content_type, user_id=OWNER_ID):
        response = client.post(
            "/v1/materials",
            files={"file": (filename, data, content_type)},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _upload
