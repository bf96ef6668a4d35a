"""One deploy attempt, from local content to a server-side deploy id."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from ..errors import ConfigurationError
from ..transport import APIClient, RequestOptions
from .archive import deploy_archive
from .manifest import FileEntry, SiteManifest, build_manifest
from .protocol import DeployInfo, SiteUpdate
from .sources import ArchiveSource, DeploySource, DirectorySource
from .upload import upload_required

if TYPE_CHECKING:
    from ..sites import Site

logger = logging.getLogger("sitesync.deploy.engine")

ProgressCallback = Callable[[str, int, int], None]


@dataclass
class DeploySettings:
    """Settings for deploy operations."""

    upload_concurrency: int = 1
    wait: bool = False

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DeploySettings":
        raw = config.get("deploy", {}) if config else {}
        return cls(
            upload_concurrency=max(1, int(raw.get("upload_concurrency", 1))),
            wait=bool(raw.get("wait", False)),
        )


@dataclass
class DeployResult:
    """What a deploy attempt did."""

    site_id: str
    deploy_id: str
    mode: str
    files: int = 0
    required: List[str] = field(default_factory=list)
    uploaded: List[str] = field(default_factory=list)

    def summary(self) -> str:
        if self.mode == "archive":
            return f"archive uploaded (deploy {self.deploy_id or 'unknown'})"
        return (
            f"{len(self.uploaded)} of {self.files} files uploaded "
            f"(deploy {self.deploy_id or 'unknown'})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "site_id": self.site_id,
            "deploy_id": self.deploy_id,
            "mode": self.mode,
            "files": self.files,
            "required": self.required,
            "uploaded": self.uploaded,
        }


class DeployEngine:
    """Runs the directory-diff or archive deploy for a site."""

    def __init__(
        self,
        client: APIClient,
        settings: Optional[DeploySettings] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.client = client
        self.settings = settings or DeploySettings()
        self.progress_callback = progress_callback

    def deploy(self, site: "Site", source: DeploySource) -> DeployResult:
        """Deploy ``source`` to ``site``; the first error aborts the attempt."""
        if not site.id:
            raise ConfigurationError("Cannot deploy a site without an ID")

        try:
            if isinstance(source, DirectorySource):
                return self._deploy_directory(site, source)
            if isinstance(source, ArchiveSource):
                return self._deploy_archive(site, source)
        except Exception:
            logger.error("Deploy of %s to site %s failed", source.path, site.id, exc_info=True)
            raise
        raise ConfigurationError(f"Unsupported deploy source: {source!r}")

    def build_manifest(self, source: DirectorySource) -> SiteManifest:
        return build_manifest(source.path)

    def _deploy_directory(self, site: "Site", source: DirectorySource) -> DeployResult:
        manifest = self.build_manifest(source)
        self._report_progress("Built manifest", 0, len(manifest))

        update = SiteUpdate.from_params(site.mutable_params(), files=manifest.files)
        response = self.client.request(
            "PUT",
            site.api_path,
            RequestOptions(json_body=update.to_dict()),
        )
        info = DeployInfo.from_dict(response.json())
        logger.info(
            "Site %s deploy %s requires %d digests",
            site.id, info.deploy_id, len(info.required),
            extra={"extra": {"site_id": site.id, "deploy_id": info.deploy_id}},
        )

        total = len(manifest.select(info.required))
        done = 0

        def _on_uploaded(entry: FileEntry) -> None:
            nonlocal done
            done += 1
            self._report_progress(f"Uploaded {entry.path}", done, total)

        uploaded = upload_required(
            self.client,
            site.api_path,
            manifest,
            info.required,
            concurrency=self.settings.upload_concurrency,
            on_uploaded=_on_uploaded,
        )

        return DeployResult(
            site_id=info.id or site.id,
            deploy_id=info.deploy_id,
            mode=source.mode,
            files=len(manifest),
            required=info.required,
            uploaded=uploaded,
        )

    def _deploy_archive(self, site: "Site", source: ArchiveSource) -> DeployResult:
        self._report_progress(f"Uploading {source.path.name}", 0, 1)
        info = deploy_archive(self.client, site.api_path, source.path, site.mutable_params())
        self._report_progress(f"Uploaded {source.path.name}", 1, 1)
        logger.info(
            "Site %s archive deploy %s submitted",
            site.id, info.deploy_id or "(no id)",
            extra={"extra": {"site_id": site.id, "deploy_id": info.deploy_id}},
        )
        return DeployResult(
            site_id=info.id or site.id,
            deploy_id=info.deploy_id,
            mode=source.mode,
            files=1,
            uploaded=[source.path.name],
        )

    def _report_progress(self, message: str, current: int, total: int) -> None:
        """Report progress if callback is configured."""
        if self.progress_callback:
            self.progress_callback(message, current, total)
        logger.debug("Deploy progress: %s (%d/%d)", message, current, total)


__all__ = ["DeployEngine", "DeployResult", "DeploySettings"]
