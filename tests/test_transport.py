"""Tests for the HTTP request executor."""

from __future__ import annotations

import io
import json
from email.message import Message
from http.client import IncompleteRead
from urllib.error import HTTPError, URLError

import pytest

from sitesync import transport
from sitesync.errors import APIError, ProtocolError, TransportError
from sitesync.transport import APIClient, APIResponse, APISettings, RequestOptions


class FakeResponse:
    def __init__(self, body: bytes = b"", status: int = 200):
        self.status = status
        self.headers = Message()
        self.headers["Content-Type"] = "application/json"
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _capture(monkeypatch: pytest.MonkeyPatch, response: FakeResponse) -> list:
    sent = []

    def fake_urlopen(req, timeout=None):
        sent.append((req, timeout))
        return response

    monkeypatch.setattr(transport, "urlopen", fake_urlopen)
    return sent


def _client() -> APIClient:
    return APIClient(
        APISettings(
            base_url="https://api.example.com/v1/",
            timeout=5,
            user_agent="sitesync-test",
            headers={"Authorization": "Bearer abc"},
        )
    )


def test_json_request_sets_headers_and_body(monkeypatch: pytest.MonkeyPatch):
    sent = _capture(monkeypatch, FakeResponse(b'{"id": "s1"}', status=201))

    data = _client().request_json("POST", "/sites", RequestOptions(json_body={"name": "docs"}))

    req, timeout = sent[0]
    assert data == {"id": "s1"}
    assert req.full_url == "https://api.example.com/v1/sites"
    assert req.get_method() == "POST"
    assert json.loads(req.data) == {"name": "docs"}
    assert req.get_header("Content-type") == "application/json"
    assert req.get_header("Accept") == "application/json"
    assert req.get_header("User-agent") == "sitesync-test"
    assert req.get_header("Authorization") == "Bearer abc"
    assert timeout == 5


def test_raw_body_gets_content_length(monkeypatch: pytest.MonkeyPatch):
    sent = _capture(monkeypatch, FakeResponse())

    response = _client().request(
        "PUT",
        "/sites/s1/files/index.html",
        RequestOptions(raw_body=b"hello", headers={"Content-Type": "application/octet-stream"}),
    )

    req, _ = sent[0]
    assert response.json() is None
    assert req.data == b"hello"
    assert req.get_header("Content-length") == "5"
    assert req.get_header("Content-type") == "application/octet-stream"


def test_query_params_are_sorted(monkeypatch: pytest.MonkeyPatch):
    sent = _capture(monkeypatch, FakeResponse(b"[]"))

    _client().request("GET", "sites", RequestOptions(query_params={"per_page": "5", "page": "2"}))

    assert sent[0][0].full_url == "https://api.example.com/v1/sites?page=2&per_page=5"


def test_http_error_becomes_api_error(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req, timeout=None):
        raise HTTPError(
            req.full_url, 422, "Unprocessable Entity", Message(),
            io.BytesIO(b'{"message": "Name already taken"}'),
        )

    monkeypatch.setattr(transport, "urlopen", fake_urlopen)

    with pytest.raises(APIError) as excinfo:
        _client().request("POST", "/sites", RequestOptions(json_body={"name": "docs"}))

    error = excinfo.value
    assert error.status == 422
    assert error.message == "Name already taken"
    assert str(error) == "POST /sites: HTTP 422: Name already taken"
    assert isinstance(error, ProtocolError)


def test_http_error_without_body_uses_reason(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req, timeout=None):
        raise HTTPError(req.full_url, 404, "Not Found", Message(), io.BytesIO(b""))

    monkeypatch.setattr(transport, "urlopen", fake_urlopen)

    with pytest.raises(APIError, match="HTTP 404: Not Found"):
        _client().request("GET", "/sites/missing")


def test_unreachable_server_is_a_transport_error(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr(transport, "urlopen", fake_urlopen)

    with pytest.raises(TransportError, match="connection refused"):
        _client().request("GET", "/sites")


def test_malformed_json_is_a_protocol_error():
    with pytest.raises(ProtocolError):
        APIResponse(status=200, body=b"<html>").json()


def test_settings_from_config_defaults():
    settings = APISettings.from_config({})

    assert settings.base_url == "https://www.bitballoon.com/api/v1"
    assert settings.timeout == 30.0
    assert settings.headers == {}


class FailingBodyResponse(FakeResponse):
    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    def read(self) -> bytes:
        raise self.error


@pytest.mark.parametrize(
    "error",
    [TimeoutError("timed out"), ConnectionResetError(104, "reset"), IncompleteRead(b"{\"id\"", 20)],
)
def test_body_read_failure_is_a_transport_error(monkeypatch: pytest.MonkeyPatch, error: Exception):
    _capture(monkeypatch, FailingBodyResponse(error))

    with pytest.raises(TransportError) as excinfo:
        _client().request("GET", "/sites/s1")

    assert str(excinfo.value).startswith("GET https://api.example.com/v1/sites/s1: ")
    assert excinfo.value.__cause__ is error
