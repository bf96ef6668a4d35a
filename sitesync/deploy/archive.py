"""Single-request deploy of a pre-built archive."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Tuple, Union

from urllib3.filepost import encode_multipart_formdata

from ..errors import ConfigurationError
from ..transport import APIClient, RequestOptions
from .protocol import MUTABLE_FIELDS, DeployInfo

logger = logging.getLogger("sitesync.deploy.archive")

ARCHIVE_FIELD = "zip"
ARCHIVE_CONTENT_TYPE = "application/zip"

FormField = Tuple[str, Union[str, Tuple[str, bytes, str]]]


def encode_archive_payload(
    archive_path: Path,
    params: Mapping[str, str],
) -> Tuple[bytes, str]:
    """Build the multipart body for an archive deploy.

    The archive part comes first, then one text part per mutable field, empty
    values included. Returns the body and the content type carrying the
    encoder's boundary.
    """
    archive_path = Path(archive_path).resolve()
    if not archive_path.is_file():
        raise ConfigurationError(f"Archive '{archive_path}' does not exist")

    with open(archive_path, "rb") as fh:
        data = fh.read()

    fields: List[FormField] = [
        (ARCHIVE_FIELD, (archive_path.name, data, ARCHIVE_CONTENT_TYPE)),
    ]
    fields.extend((key, params.get(key, "") or "") for key in MUTABLE_FIELDS)

    body, content_type = encode_multipart_formdata(fields)
    logger.info("Encoded archive %s (%d bytes)", archive_path.name, len(data))
    return body, content_type


def deploy_archive(
    client: APIClient,
    site_path: str,
    archive_path: Path,
    params: Mapping[str, str],
) -> DeployInfo:
    """Upload an archive and the site's metadata in one PUT.

    The archive is read and encoded before any request is sent.
    """
    body, content_type = encode_archive_payload(archive_path, params)
    options = RequestOptions(raw_body=body, headers={"Content-Type": content_type})
    response = client.request("PUT", site_path, options)
    return DeployInfo.from_dict(response.json())


__all__ = ["ARCHIVE_FIELD", "deploy_archive", "encode_archive_payload"]
