import sys
from pathlib import Path

from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.errors import ErrorKind, ServiceError
from app.main import app
from app.modules.download import service as download_service
from app.upstream import UpstreamResponse

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 128


def _install_fetch(monkeypatch, outcome):
    calls = []

    async def _fake_send_request(method, url, **kwargs):
        calls.append((method, url))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr("app.modules.download.service.send_request", _fake_send_request)
    return calls


def test_download_jpeg_gets_jpg_extension_and_length(monkeypatch):
    calls = _install_fetch(
        monkeypatch,
        UpstreamResponse(status=200, body=JPEG_BYTES, headers={"Content-Type": "image/jpeg"}),
    )

    client = TestClient(app)
    response = client.get("/api/download", params={"url": "https://cdn.example/out"})

    assert response.status_code == 200
    assert response.content == JPEG_BYTES
    assert response.headers["content-type"] == "image/jpeg"
    assert response.headers["content-length"] == str(len(JPEG_BYTES))
    assert response.headers["cache-control"] == "no-cache"
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="result_')
    assert disposition.endswith('.jpg"')
    assert calls == [("GET", "https://cdn.example/out")]


def test_download_uses_custom_filename(monkeypatch):
    _install_fetch(monkeypatch, UpstreamResponse(status=200, body=b"png", headers={"Content-Type": "image/png"}))

    client = TestClient(app)
    response = client.get(
        "/api/download",
        params={"url": "https://cdn.example/out.png", "filename": 'my "photo".png'},
    )

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="my photo.png"'


def test_download_missing_url_never_fetches(monkeypatch):
    calls = _install_fetch(monkeypatch, UpstreamResponse(status=200, body=b""))

    client = TestClient(app)
    response = client.get("/api/download")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "MissingUrl"
    assert body["message"] == "Image URL is required"
    assert calls == []


def test_download_rejects_non_http_url(monkeypatch):
    calls = _install_fetch(monkeypatch, UpstreamResponse(status=200, body=b""))

    client = TestClient(app)
    response = client.get("/api/download", params={"url": "file:///etc/passwd"})

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidUrl"
    assert calls == []


def test_download_upstream_failure_carries_status(monkeypatch):
    _install_fetch(monkeypatch, UpstreamResponse(status=404, body=b"gone"))

    client = TestClient(app)
    response = client.get("/api/download", params={"url": "https://cdn.example/missing.png"})

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "FetchFailed"
    assert body["message"] == "Failed to fetch image: 404"


def test_download_network_failure(monkeypatch):
    _install_fetch(monkeypatch, ServiceError(ErrorKind.NETWORK_UNREACHABLE))

    client = TestClient(app)
    response = client.get("/api/download", params={"url": "https://unreachable.example/a.png"})

    assert response.status_code == 503
    assert response.json()["error"] == "NetworkUnreachable"


def test_extension_for_content_types():
    assert download_service.extension_for("image/jpeg") == "jpg"
    assert download_service.extension_for("image/JPG") == "jpg"
    assert download_service.extension_for("image/webp") == "webp"
    assert download_service.extension_for("image/gif") == "gif"
    assert download_service.extension_for("image/png") == "png"
    assert download_service.extension_for("application/octet-stream") == "png"


def test_missing_content_type_defaults_to_png(monkeypatch):
    _install_fetch(monkeypatch, UpstreamResponse(status=200, body=b"data"))

    client = TestClient(app)
    response = client.get("/api/download", params={"url": "https://cdn.example/blob"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["content-disposition"].endswith('.png"')


def test_content_disposition_encodes_non_ascii_names():
    header = download_service.content_disposition("café.png")
    assert header == "attachment; filename=\"caf.png\"; filename*=UTF-8''caf%C3%A9.png"


def test_sanitize_filename_strips_path_and_control_characters():
    assert download_service.sanitize_filename("../evil\r\n.png") == "..evil.png"
    assert download_service.sanitize_filename('""') is None
    assert download_service.sanitize_filename(None) is None
