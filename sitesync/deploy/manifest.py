"""Content fingerprinting of a local site directory."""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Set

from ..errors import ConfigurationError

logger = logging.getLogger("sitesync.deploy.manifest")

# The server computes its required set against this exact scheme. Changing it
# breaks deploys unless the service changes too.
DIGEST_ALGORITHM = "sha1"
CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FileEntry:
    """One deployable file."""

    path: str  # Relative POSIX path from the deploy root
    digest: str  # Lowercase hex digest of the content
    size: int


@dataclass
class SiteManifest:
    """Fingerprints of every deployable file under a root directory."""

    root: Path
    entries: Dict[str, FileEntry] = field(default_factory=dict)

    @property
    def files(self) -> Dict[str, str]:
        """The wire form: relative path to hex digest."""
        return {path: entry.digest for path, entry in self.entries.items()}

    @property
    def digests(self) -> Set[str]:
        return {entry.digest for entry in self.entries.values()}

    @property
    def total_bytes(self) -> int:
        return sum(entry.size for entry in self.entries.values())

    def local_path(self, rel_path: str) -> Path:
        return self.root.joinpath(*PurePosixPath(rel_path).parts)

    def select(self, required: List[str]) -> List[FileEntry]:
        """Entries whose digest is in ``required``, ordered by path.

        Every path carrying a required digest is returned, so two files with
        the same content both get uploaded under their own path.
        """
        lookup = set(required)
        return [
            self.entries[path]
            for path in sorted(self.entries)
            if self.entries[path].digest in lookup
        ]

    def __len__(self) -> int:
        return len(self.entries)


def is_hidden(rel_path: str) -> bool:
    """True when any component of ``rel_path`` starts with a dot."""
    return any(part.startswith(".") for part in PurePosixPath(rel_path).parts)


def compute_file_digest(file_path: Path) -> str:
    """Compute the content digest of a file."""
    hasher = hashlib.new(DIGEST_ALGORITHM)
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def build_manifest(root: Path) -> SiteManifest:
    """Fingerprint every non-hidden file under ``root``.

    Any read or stat error propagates and no manifest is returned.
    """
    root = Path(root)
    if not root.is_dir():
        raise ConfigurationError(f"Deploy directory '{root}' is not a directory")

    manifest = SiteManifest(root=root)
    for file_path in _iter_files(root):
        rel_path = file_path.relative_to(root).as_posix()
        manifest.entries[rel_path] = FileEntry(
            path=rel_path,
            digest=compute_file_digest(file_path),
            size=file_path.stat().st_size,
        )

    logger.info(
        "Built manifest for %s with %d files (%d bytes)",
        root, len(manifest), manifest.total_bytes,
    )
    return manifest


def _raise_walk_error(error: OSError) -> None:
    raise error


def _iter_files(root: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        # Pruned in place so hidden trees are never descended into.
        dirnames[:] = sorted(name for name in dirnames if not name.startswith("."))
        current = Path(dirpath)
        for name in sorted(filenames):
            if name.startswith("."):
                continue
            yield current / name


__all__ = [
    "DIGEST_ALGORITHM",
    "FileEntry",
    "SiteManifest",
    "build_manifest",
    "compute_file_digest",
    "is_hidden",
]
