"""Tests for archive deploys."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from sitesync.deploy.archive import deploy_archive, encode_archive_payload
from sitesync.errors import ConfigurationError
from sitesync.transport import APIResponse, RequestOptions


class FakeClient:
    def __init__(self, payload: Optional[dict] = None):
        self.payload = payload
        self.calls: List[Tuple[str, str, RequestOptions]] = []

    def request(self, method: str, path: str, options: Optional[RequestOptions] = None) -> APIResponse:
        self.calls.append((method, path, options or RequestOptions()))
        body = json.dumps(self.payload).encode("utf-8") if self.payload is not None else b""
        return APIResponse(status=200, body=body)


PARAMS = {
    "name": "docs",
    "custom_domain": "",
    "password": "hunter2",
    "notification_email": "ops@example.com",
}


def _archive(tmp_path: Path) -> Path:
    archive = tmp_path / "site.zip"
    archive.write_bytes(b"PK\x03\x04fake-zip-bytes")
    return archive


def test_payload_starts_with_archive_then_fields_in_order(tmp_path: Path):
    body, content_type = encode_archive_payload(_archive(tmp_path), PARAMS)

    assert content_type.startswith("multipart/form-data; boundary=")
    boundary = content_type.split("boundary=", 1)[1]
    assert body.startswith(f"--{boundary}\r\n".encode())
    assert body.rstrip().endswith(f"--{boundary}--".encode())

    positions = [
        body.index(b'name="zip"; filename="site.zip"'),
        body.index(b'name="name"'),
        body.index(b'name="custom_domain"'),
        body.index(b'name="password"'),
        body.index(b'name="notification_email"'),
    ]
    assert positions == sorted(positions)
    assert b"Content-Type: application/zip" in body
    assert b"PK\x03\x04fake-zip-bytes" in body
    assert b"ops@example.com" in body


def test_empty_fields_are_still_sent(tmp_path: Path):
    body, _ = encode_archive_payload(_archive(tmp_path), {"name": "docs"})

    assert body.count(b"Content-Disposition: form-data") == 5
    assert b'name="custom_domain"\r\n\r\n\r\n' in body


def test_deploy_archive_puts_multipart_and_parses_response(tmp_path: Path):
    client = FakeClient({"id": "s1", "deploy_id": "d9"})

    info = deploy_archive(client, "/sites/s1", _archive(tmp_path), PARAMS)

    method, path, options = client.calls[0]
    assert (method, path) == ("PUT", "/sites/s1")
    assert options.json_body is None
    content_type = options.headers["Content-Type"]
    boundary = content_type.split("boundary=", 1)[1]
    assert boundary.encode() in options.raw_body
    assert info.id == "s1"
    assert info.deploy_id == "d9"
    assert info.required == []


def test_missing_archive_sends_nothing(tmp_path: Path):
    client = FakeClient({"id": "s1"})

    with pytest.raises(ConfigurationError):
        deploy_archive(client, "/sites/s1", tmp_path / "missing.zip", PARAMS)

    assert client.calls == []
