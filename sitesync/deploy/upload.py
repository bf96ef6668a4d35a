"""Selective upload of the files a deploy still needs."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

from ..transport import APIClient, RequestOptions
from .manifest import FileEntry, SiteManifest

logger = logging.getLogger("sitesync.deploy.upload")

OCTET_STREAM = "application/octet-stream"

UploadCallback = Callable[[FileEntry], None]


def file_upload_path(site_path: str, rel_path: str) -> str:
    """API path for one file of a deploy: ``<site-path>/files/<rel-path>``."""
    return f"{site_path.rstrip('/')}/files/{quote(rel_path, safe='/')}"


def upload_file(
    client: APIClient,
    site_path: str,
    manifest: SiteManifest,
    entry: FileEntry,
) -> None:
    """Stream one file's raw bytes to its upload endpoint."""
    with open(manifest.local_path(entry.path), "rb") as fh:
        options = RequestOptions(
            raw_body=fh,
            headers={"Content-Type": OCTET_STREAM},
        )
        client.request("PUT", file_upload_path(site_path, entry.path), options)
    logger.info("Uploaded %s (%d bytes)", entry.path, entry.size)


def upload_required(
    client: APIClient,
    site_path: str,
    manifest: SiteManifest,
    required: List[str],
    *,
    concurrency: int = 1,
    on_uploaded: Optional[UploadCallback] = None,
) -> List[str]:
    """Upload exactly the manifest files whose digest is in ``required``.

    The first failing upload aborts the batch: later files are never started
    and the failure is re-raised unchanged. Returns the uploaded paths in
    completion order.
    """
    plan = manifest.select(required)
    logger.info(
        "%d of %d files required by the server", len(plan), len(manifest)
    )
    if not plan:
        return []

    if concurrency <= 1 or len(plan) == 1:
        return _upload_sequential(client, site_path, manifest, plan, on_uploaded)
    return _upload_parallel(client, site_path, manifest, plan, concurrency, on_uploaded)


def _upload_sequential(
    client: APIClient,
    site_path: str,
    manifest: SiteManifest,
    plan: List[FileEntry],
    on_uploaded: Optional[UploadCallback],
) -> List[str]:
    uploaded: List[str] = []
    for entry in plan:
        try:
            upload_file(client, site_path, manifest, entry)
        except Exception as e:
            logger.error("Upload of %s failed: %s", entry.path, e)
            raise
        uploaded.append(entry.path)
        if on_uploaded:
            on_uploaded(entry)
    return uploaded


def _upload_parallel(
    client: APIClient,
    site_path: str,
    manifest: SiteManifest,
    plan: List[FileEntry],
    concurrency: int,
    on_uploaded: Optional[UploadCallback],
) -> List[str]:
    abort = threading.Event()
    uploaded: List[str] = []

    def _run(entry: FileEntry) -> bool:
        if abort.is_set():
            return False
        upload_file(client, site_path, manifest, entry)
        return True

    with ThreadPoolExecutor(
        max_workers=concurrency,
        thread_name_prefix="sitesync-upload",
    ) as pool:
        futures: Dict[Future, FileEntry] = {pool.submit(_run, entry): entry for entry in plan}
        try:
            for future in as_completed(futures):
                entry = futures[future]
                if not future.result():
                    continue
                uploaded.append(entry.path)
                if on_uploaded:
                    on_uploaded(entry)
        except Exception as e:
            abort.set()
            for pending in futures:
                pending.cancel()
            logger.error(
                "Upload of %s failed, abandoning %d remaining files: %s",
                futures[future].path, len(plan) - len(uploaded) - 1, e,
            )
            raise
    return uploaded


__all__ = ["OCTET_STREAM", "file_upload_path", "upload_file", "upload_required"]
