"""Deploy synchronization engine for sitesync."""

from __future__ import annotations

from .manifest import DIGEST_ALGORITHM, FileEntry, SiteManifest, build_manifest, compute_file_digest, is_hidden
from .protocol import MUTABLE_FIELDS, DeployInfo, SiteUpdate
from .sources import ArchiveSource, DeploySource, DirectorySource, resolve_source, source_for_path
from .upload import file_upload_path, upload_required
from .archive import deploy_archive, encode_archive_payload
from .readiness import ReadinessOutcome, ReadinessSettings, ReadinessWatch, wait_for_ready
from .engine import DeployEngine, DeployResult, DeploySettings

__all__ = [
    # Manifest
    "DIGEST_ALGORITHM",
    "FileEntry",
    "SiteManifest",
    "build_manifest",
    "compute_file_digest",
    "is_hidden",
    # Protocol
    "MUTABLE_FIELDS",
    "DeployInfo",
    "SiteUpdate",
    # Sources
    "ArchiveSource",
    "DeploySource",
    "DirectorySource",
    "resolve_source",
    "source_for_path",
    # Upload / archive
    "file_upload_path",
    "upload_required",
    "deploy_archive",
    "encode_archive_payload",
    # Readiness
    "ReadinessOutcome",
    "ReadinessSettings",
    "ReadinessWatch",
    "wait_for_ready",
    # Engine
    "DeployEngine",
    "DeployResult",
    "DeploySettings",
]
