import asyncio
import sys
from pathlib import Path

import aiohttp
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import settings
from app.core.errors import ErrorKind, ServiceError
from app.upstream import client as upstream_client
from app.upstream import request_transform, upload_image


class _ResponseStub:
    def __init__(self, status=200, body=b"", headers=None):
        self.status = status
        self._body = body
        self.headers = headers or {}

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _ClientSessionStub:
    outcome = None
    requests = []
    timeouts = []

    def __init__(self, *args, **kwargs):
        _ClientSessionStub.timeouts.append(kwargs.get("timeout"))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def request(self, method, url, **kwargs):
        _ClientSessionStub.requests.append({"method": method, "url": url, **kwargs})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def session_stub(monkeypatch):
    _ClientSessionStub.outcome = _ResponseStub()
    _ClientSessionStub.requests = []
    _ClientSessionStub.timeouts = []
    monkeypatch.setattr(upstream_client.aiohttp, "ClientSession", _ClientSessionStub)
    return _ClientSessionStub


def _loop_run(coro):
    return asyncio.run(coro)


def test_send_request_buffers_response(session_stub):
    session_stub.outcome = _ResponseStub(status=201, body=b"hello", headers={"Content-Type": "text/plain"})

    response = _loop_run(upstream_client.send_request("GET", "https://svc.example/x"))

    assert response.status == 201
    assert response.ok is True
    assert response.text == "hello"
    assert response.content_type == "text/plain"
    assert session_stub.requests[0]["headers"]["User-Agent"] == settings.USER_AGENT
    assert session_stub.timeouts[0].total == settings.UPSTREAM_TIMEOUT_SECONDS


def test_send_request_returns_non_2xx_without_raising(session_stub):
    session_stub.outcome = _ResponseStub(status=429, body=b"slow down")

    response = _loop_run(upstream_client.send_request("GET", "https://svc.example/x"))

    assert response.status == 429
    assert response.ok is False


@pytest.mark.parametrize(
    "failure",
    [
        aiohttp.ClientConnectionError("connection refused"),
        asyncio.TimeoutError(),
    ],
)
def test_send_request_network_failures_are_typed(session_stub, failure):
    session_stub.outcome = failure

    with pytest.raises(ServiceError) as excinfo:
        _loop_run(upstream_client.send_request("GET", "https://svc.example/x"))

    assert excinfo.value.kind is ErrorKind.NETWORK_UNREACHABLE
    assert excinfo.value.status_code == 503


def test_upload_image_posts_multipart_form(session_stub, monkeypatch):
    monkeypatch.setattr(settings, "HOSTING_UPLOAD_URL", "https://host.example/api.php")
    session_stub.outcome = _ResponseStub(status=200, body=b"https://host.example/abc.png")

    response = _loop_run(upload_image(b"bytes", "cat.png", "image/png"))

    assert response.text == "https://host.example/abc.png"
    sent = session_stub.requests[0]
    assert sent["method"] == "POST"
    assert sent["url"] == "https://host.example/api.php"
    assert isinstance(sent["data"], aiohttp.FormData)


def test_request_transform_sends_source_url_as_query(session_stub, monkeypatch):
    monkeypatch.setattr(settings, "TRANSFORM_API_URL", "https://transform.example/v1/run")
    monkeypatch.setattr(settings, "TRANSFORM_URL_PARAM", "imageUrl")
    session_stub.outcome = _ResponseStub(status=200, body=b"{}", headers={"Content-Type": "application/json"})

    _loop_run(request_transform("https://host.example/abc.png"))

    sent = session_stub.requests[0]
    assert sent["method"] == "GET"
    assert sent["url"] == "https://transform.example/v1/run"
    assert sent["params"] == {"imageUrl": "https://host.example/abc.png"}
    assert sent["headers"]["Accept"] == "application/json"


def test_request_transform_requires_configuration(session_stub, monkeypatch):
    monkeypatch.setattr(settings, "TRANSFORM_API_URL", "")

    with pytest.raises(ServiceError) as excinfo:
        _loop_run(request_transform("https://host.example/abc.png"))

    assert excinfo.value.kind is ErrorKind.TRANSFORM_NOT_CONFIGURED
    assert session_stub.requests == []
