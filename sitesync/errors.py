"""Exception types raised by the sitesync client."""

from __future__ import annotations

from typing import Optional


class SiteSyncError(Exception):
    """Base class for every error raised by sitesync itself."""


class ConfigurationError(SiteSyncError):
    """A request could not be built from the supplied inputs.

    Raised before any network call, e.g. for a site without an id or a
    deploy with both a directory and an archive.
    """


class ProtocolError(SiteSyncError):
    """The server answered with something the client cannot interpret."""


class APIError(ProtocolError):
    """The server answered with a non-success HTTP status."""

    def __init__(
        self,
        status: int,
        message: str,
        *,
        method: str = "",
        path: str = "",
        body: Optional[bytes] = None,
    ) -> None:
        self.status = status
        self.message = message
        self.method = method
        self.path = path
        self.body = body
        super().__init__(f"{method} {path}: HTTP {status}: {message}".strip())


class TransportError(SiteSyncError):
    """The server could not be reached."""


class ReadinessTimeoutError(SiteSyncError):
    """A site did not reach its ready state before the deadline."""

    def __init__(self, site_id: str, timeout: float, last_state: str = "") -> None:
        self.site_id = site_id
        self.timeout = timeout
        self.last_state = last_state
        detail = f" (last state: {last_state})" if last_state else ""
        super().__init__(
            f"Timeout while waiting for site {site_id} to finish processing "
            f"after {timeout:g}s{detail}"
        )


class ReadinessCancelledError(SiteSyncError):
    """Waiting for a site was cancelled by the caller."""

    def __init__(self, site_id: str) -> None:
        self.site_id = site_id
        super().__init__(f"Stopped waiting for site {site_id}: cancelled")


__all__ = [
    "APIError",
    "ConfigurationError",
    "ProtocolError",
    "ReadinessCancelledError",
    "ReadinessTimeoutError",
    "SiteSyncError",
    "TransportError",
]
