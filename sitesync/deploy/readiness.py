"""Waiting for a deploy to finish server-side processing."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from ..errors import ReadinessCancelledError, ReadinessTimeoutError

if TYPE_CHECKING:
    from ..sites import Site

logger = logging.getLogger("sitesync.deploy.readiness")

DEFAULT_TIMEOUT = 5 * 60.0
DEFAULT_INTERVAL = 1.0
# Floor for configured poll intervals.
MIN_INTERVAL = 0.1
READY_STATE = "current"

SiteFetcher = Callable[[str], "Site"]
StateCallback = Callable[["Site"], None]


class ReadinessOutcome(str, Enum):
    """Why waiting stopped."""
    READY = "ready"
    TIMED_OUT = "timed_out"
    ERRORED = "errored"
    CANCELLED = "cancelled"


@dataclass
class ReadinessSettings:
    """Polling cadence and deadline for readiness checks."""

    interval: float = DEFAULT_INTERVAL
    timeout: float = DEFAULT_TIMEOUT
    ready_state: str = READY_STATE

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ReadinessSettings":
        raw = config.get("deploy", {}) if config else {}
        return cls(
            interval=max(MIN_INTERVAL, float(raw.get("poll_interval", DEFAULT_INTERVAL))),
            timeout=float(raw.get("ready_timeout", DEFAULT_TIMEOUT)),
            ready_state=str(raw.get("ready_state", READY_STATE)),
        )


def wait_for_ready(
    site: "Site",
    fetch: SiteFetcher,
    *,
    timeout: Optional[float] = None,
    settings: Optional[ReadinessSettings] = None,
    cancel: Optional[threading.Event] = None,
    on_state: Optional[StateCallback] = None,
    clock: Callable[[], float] = time.monotonic,
) -> "Site":
    """Block until ``site`` reaches the ready state and return the fresh site.

    The site is refetched once per interval. The deadline is only checked at
    tick boundaries, so waiting can overrun ``timeout`` by up to one interval.

    Raises:
        ReadinessTimeoutError: the deadline passed first.
        ReadinessCancelledError: ``cancel`` was set.
        Any error raised by ``fetch``, unchanged.
    """
    settings = settings or ReadinessSettings()
    if site.state == settings.ready_state:
        return site

    timeout = timeout or settings.timeout or DEFAULT_TIMEOUT
    deadline = clock() + timeout
    cancel = cancel or threading.Event()
    last_state = site.state

    logger.info("Waiting up to %gs for site %s to become %s", timeout, site.id, settings.ready_state)
    while True:
        if cancel.wait(settings.interval):
            logger.info("Stopped waiting for site %s: cancelled", site.id)
            raise ReadinessCancelledError(site.id)

        if clock() >= deadline:
            logger.warning("Site %s not ready after %gs (state: %s)", site.id, timeout, last_state)
            raise ReadinessTimeoutError(site.id, timeout, last_state)

        current = fetch(site.id)
        if current.state != last_state:
            logger.info("Site %s state is now: %s", site.id, current.state)
            last_state = current.state
        if on_state:
            on_state(current)

        if current.state == settings.ready_state:
            return current


class ReadinessWatch:
    """A readiness wait running in the background, owned by the caller.

    The watch is cancelled when used as a context manager and the block
    exits, so polling never outlives its owner.
    """

    def __init__(
        self,
        site: "Site",
        fetch: SiteFetcher,
        *,
        timeout: Optional[float] = None,
        settings: Optional[ReadinessSettings] = None,
        on_state: Optional[StateCallback] = None,
    ):
        self.site = site
        self._cancel = threading.Event()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sitesync-ready")
        self._future = self._executor.submit(
            wait_for_ready,
            site,
            fetch,
            timeout=timeout,
            settings=settings,
            cancel=self._cancel,
            on_state=on_state,
        )
        self._executor.shutdown(wait=False)

    def cancel(self) -> None:
        self._cancel.set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> "Site":
        """Return the ready site, or raise why waiting stopped."""
        return self._future.result(timeout)

    @property
    def outcome(self) -> Optional[ReadinessOutcome]:
        if not self._future.done():
            return None
        error = self._future.exception()
        if error is None:
            return ReadinessOutcome.READY
        if isinstance(error, ReadinessTimeoutError):
            return ReadinessOutcome.TIMED_OUT
        if isinstance(error, ReadinessCancelledError):
            return ReadinessOutcome.CANCELLED
        return ReadinessOutcome.ERRORED

    def __enter__(self) -> "ReadinessWatch":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.cancel()
        wait([self._future])
        return False


__all__ = [
    "DEFAULT_TIMEOUT",
    "READY_STATE",
    "ReadinessOutcome",
    "ReadinessSettings",
    "ReadinessWatch",
    "wait_for_ready",
]
