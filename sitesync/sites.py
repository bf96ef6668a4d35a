"""Sites: the deployable units tracked by the remote service."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from .deploy.engine import DeployEngine, DeployResult, DeploySettings, ProgressCallback
from .deploy.protocol import MUTABLE_FIELDS, SiteUpdate
from .deploy.readiness import ReadinessSettings, ReadinessWatch, StateCallback, wait_for_ready
from .deploy.sources import DeploySource
from .errors import ConfigurationError, ProtocolError
from .transport import APIClient, APISettings, ListOptions, RequestOptions

logger = logging.getLogger("sitesync.sites")

SITES_PATH = "/sites"


@dataclass
class Site:
    """A site as the service reports it."""

    id: str = ""
    user_id: str = ""

    name: str = ""
    custom_domain: str = ""
    password: str = ""
    notification_email: str = ""

    state: str = ""
    premium: bool = False
    claimed: bool = False

    url: str = ""
    admin_url: str = ""
    deploy_url: str = ""
    screenshot_url: str = ""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def api_path(self) -> str:
        return f"{SITES_PATH}/{self.id}"

    def mutable_params(self) -> Dict[str, str]:
        return {key: getattr(self, key) or "" for key in MUTABLE_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "custom_domain": self.custom_domain,
            "password": self.password,
            "notification_email": self.notification_email,
            "state": self.state,
            "premium": self.premium,
            "claimed": self.claimed,
            "url": self.url,
            "admin_url": self.admin_url,
            "deploy_url": self.deploy_url,
            "screenshot_url": self.screenshot_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Site":
        if not isinstance(data, dict):
            raise ProtocolError(f"Expected a site object, got {type(data).__name__}")
        return cls(
            id=str(data.get("id") or ""),
            user_id=str(data.get("user_id") or ""),
            name=data.get("name") or "",
            custom_domain=data.get("custom_domain") or "",
            password=data.get("password") or "",
            notification_email=data.get("notification_email") or "",
            state=data.get("state") or "",
            premium=bool(data.get("premium", False)),
            claimed=bool(data.get("claimed", False)),
            url=data.get("url") or "",
            admin_url=data.get("admin_url") or "",
            deploy_url=data.get("deploy_url") or "",
            screenshot_url=data.get("screenshot_url") or "",
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; anything unparsable becomes None."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class SitesService:
    """Site CRUD plus the deploy and readiness operations."""

    def __init__(
        self,
        client: APIClient,
        deploy_settings: Optional[DeploySettings] = None,
        readiness_settings: Optional[ReadinessSettings] = None,
    ):
        self.client = client
        self.deploy_settings = deploy_settings or DeploySettings()
        self.readiness_settings = readiness_settings or ReadinessSettings()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SitesService":
        return cls(
            APIClient(APISettings.from_config(config)),
            deploy_settings=DeploySettings.from_config(config),
            readiness_settings=ReadinessSettings.from_config(config),
        )

    def get(self, site_id: str) -> Site:
        """Fetch one site by id."""
        if not site_id:
            raise ConfigurationError("Cannot fetch site without an ID")
        return Site.from_dict(self.client.request("GET", Site(id=site_id).api_path).json())

    def refresh(self, site: Site) -> Site:
        """Fetch the current server view of ``site``."""
        return self.get(site.id)

    def list(self, options: Optional[ListOptions] = None) -> List[Site]:
        """List sites; ``options`` is passed through as query parameters."""
        query = options.to_query_params() if options else {}
        data = self.client.request("GET", SITES_PATH, RequestOptions(query_params=query)).json()
        if data is None:
            return []
        if not isinstance(data, list):
            raise ProtocolError("Expected a list of sites")
        return [Site.from_dict(item) for item in data]

    def create(self, site: Site) -> Site:
        """Create a site from the mutable fields of ``site``."""
        body = SiteUpdate.from_params(site.mutable_params()).to_dict()
        created = Site.from_dict(
            self.client.request("POST", SITES_PATH, RequestOptions(json_body=body)).json()
        )
        logger.info("Created site %s (%s)", created.id, created.name or "unnamed")
        return created

    def update(self, site: Site) -> Site:
        """Update site metadata only; no content is deployed."""
        if not site.id:
            raise ConfigurationError("Cannot update site without an ID")
        body = SiteUpdate.from_params(site.mutable_params()).to_dict()
        data = self.client.request("PUT", site.api_path, RequestOptions(json_body=body)).json()
        return Site.from_dict(data) if data else replace(site)

    def deploy(
        self,
        site: Site,
        source: DeploySource,
        progress: Optional[ProgressCallback] = None,
    ) -> DeployResult:
        """Synchronize ``source`` to ``site``."""
        engine = DeployEngine(self.client, self.deploy_settings, progress_callback=progress)
        result = engine.deploy(site, source)
        logger.info("Deployed site %s: %s", site.id, result.summary())
        return result

    def wait_for_ready(
        self,
        site: Site,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
        on_state: Optional[StateCallback] = None,
    ) -> Site:
        """Block until ``site`` is live; see :func:`wait_for_ready`."""
        if not site.id:
            raise ConfigurationError("Cannot wait for a site without an ID")
        return wait_for_ready(
            site,
            self.get,
            timeout=timeout,
            settings=self.readiness_settings,
            cancel=cancel,
            on_state=on_state,
        )

    def watch_ready(
        self,
        site: Site,
        timeout: Optional[float] = None,
        on_state: Optional[StateCallback] = None,
    ) -> ReadinessWatch:
        """Start waiting for ``site`` in the background."""
        if not site.id:
            raise ConfigurationError("Cannot wait for a site without an ID")
        return ReadinessWatch(
            site,
            self.get,
            timeout=timeout,
            settings=self.readiness_settings,
            on_state=on_state,
        )


__all__ = ["SITES_PATH", "Site", "SitesService", "parse_timestamp"]
