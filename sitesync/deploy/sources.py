"""Where a deploy takes its content from."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..errors import ConfigurationError


@dataclass(frozen=True)
class DirectorySource:
    """A finished static tree, synchronized file by file."""

    path: Path

    mode = "directory"


@dataclass(frozen=True)
class ArchiveSource:
    """A single pre-built archive, uploaded in one request."""

    path: Path

    mode = "archive"


DeploySource = Union[DirectorySource, ArchiveSource]


def resolve_source(
    directory: Optional[Union[str, Path]] = None,
    archive: Optional[Union[str, Path]] = None,
) -> DeploySource:
    """Build a deploy source from loose inputs; exactly one must be given."""
    if directory and archive:
        raise ConfigurationError("Pass either a directory or an archive to deploy, not both")
    if directory:
        return DirectorySource(Path(directory))
    if archive:
        return ArchiveSource(Path(archive))
    raise ConfigurationError("Nothing to deploy: pass a directory or an archive")


def source_for_path(path: Union[str, Path]) -> DeploySource:
    """Pick the source variant from what ``path`` points at."""
    resolved = Path(path).expanduser()
    if resolved.is_dir():
        return DirectorySource(resolved)
    if resolved.is_file():
        return ArchiveSource(resolved)
    raise ConfigurationError(f"Deploy path '{resolved}' does not exist")


__all__ = [
    "ArchiveSource",
    "DeploySource",
    "DirectorySource",
    "resolve_source",
    "source_for_path",
]
