"""HTTP request executor for the deployment API."""

from __future__ import annotations

import io
import json
import logging
import os
from dataclasses import dataclass, field
from http.client import HTTPException
from typing import Any, BinaryIO, Dict, Mapping, Optional, Union
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from .configuration import DEFAULT_BASE_URL, DEFAULT_USER_AGENT
from .errors import APIError, ProtocolError, TransportError

logger = logging.getLogger("sitesync.transport")

RawBody = Union[bytes, BinaryIO]


@dataclass
class RequestOptions:
    """Everything about a request except its method and path.

    At most one of ``json_body`` and ``raw_body`` is used; a JSON body wins.
    """

    json_body: Any = None
    raw_body: Optional[RawBody] = None
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)


@dataclass
class APIResponse:
    """A successful HTTP response."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        """Decode the body as JSON; an empty body decodes to ``None``."""
        if not self.body.strip():
            return None
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProtocolError(f"Malformed JSON response: {e}") from e


@dataclass
class ListOptions:
    """Query parameters for list endpoints, passed through unchanged."""

    page: Optional[int] = None
    per_page: Optional[int] = None

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.page is not None:
            params["page"] = str(self.page)
        if self.per_page is not None:
            params["per_page"] = str(self.per_page)
        return params


@dataclass
class APISettings:
    """Connection settings for the deployment API."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "APISettings":
        raw = config.get("api", {}) if config else {}
        return cls(
            base_url=str(raw.get("base_url", DEFAULT_BASE_URL)),
            timeout=float(raw.get("timeout", 30.0)),
            user_agent=str(raw.get("user_agent", DEFAULT_USER_AGENT)),
            headers={str(k): str(v) for k, v in (raw.get("headers") or {}).items()},
        )


class APIClient:
    """Executes requests against the deployment API using urllib.

    The client keeps no per-request state and is safe to share between
    upload worker threads.
    """

    def __init__(self, settings: Optional[APISettings] = None):
        self.settings = settings or APISettings()

    def request(
        self,
        method: str,
        path: str,
        options: Optional[RequestOptions] = None,
    ) -> APIResponse:
        """Send one request and return the response.

        Raises:
            APIError: the server answered with a non-success status.
            TransportError: the server could not be reached.
        """
        options = options or RequestOptions()
        url = self.build_url(path, options.query_params)
        headers = self._build_headers(options)
        data = self._encode_body(options, headers)

        req = Request(url, data=data, headers=headers, method=method)
        logger.debug("%s %s", method, url)

        try:
            with urlopen(req, timeout=self.settings.timeout) as resp:
                return APIResponse(
                    status=resp.status,
                    headers=dict(resp.headers.items()),
                    body=resp.read(),
                )
        except HTTPError as e:
            body = _read_error_body(e)
            raise APIError(
                e.code,
                _error_message(body, str(e.reason)),
                method=method,
                path=path,
                body=body,
            ) from e
        except URLError as e:
            raise TransportError(f"{method} {url}: {e.reason}") from e
        except (OSError, HTTPException) as e:
            # Raised mid-response, e.g. a timeout or truncated body during read().
            raise TransportError(f"{method} {url}: {e}") from e

    def request_json(
        self,
        method: str,
        path: str,
        options: Optional[RequestOptions] = None,
    ) -> Any:
        """Send one request and decode its JSON body."""
        return self.request(method, path, options).json()

    def build_url(self, path: str, query_params: Optional[Mapping[str, str]] = None) -> str:
        url = f"{self.settings.base_url.rstrip('/')}/{path.lstrip('/')}"
        if query_params:
            url = f"{url}?{urlencode(sorted(query_params.items()))}"
        return url

    def _build_headers(self, options: RequestOptions) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self.settings.user_agent,
        }
        headers.update(self.settings.headers)
        return headers

    def _encode_body(self, options: RequestOptions, headers: Dict[str, str]) -> Optional[RawBody]:
        data: Optional[RawBody] = None
        if options.json_body is not None:
            data = json.dumps(options.json_body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        elif options.raw_body is not None:
            data = options.raw_body
            length = _body_length(data)
            if length is not None:
                headers["Content-Length"] = str(length)
        headers.update(options.headers)
        return data


def _body_length(data: RawBody) -> Optional[int]:
    if isinstance(data, (bytes, bytearray)):
        return len(data)
    try:
        return os.fstat(data.fileno()).st_size - data.tell()
    except (AttributeError, OSError, io.UnsupportedOperation):
        return None


def _read_error_body(error: HTTPError) -> bytes:
    try:
        return error.read() or b""
    except (OSError, AttributeError):
        return b""


def _error_message(body: bytes, fallback: str) -> str:
    """Pull the server's message out of an error body, verbatim."""
    text = body.decode("utf-8", errors="replace").strip()
    if not text:
        return fallback
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(payload, dict):
        for key in ("message", "error", "errors"):
            if payload.get(key):
                return str(payload[key])
    return text


__all__ = [
    "APIClient",
    "APIResponse",
    "APISettings",
    "ListOptions",
    "RequestOptions",
]
