"""
Archive Locator — Where an upstream's archive lives, and whether it is there.

archive_path() is a pure mapping of organization + repository name onto
the archive root. locate_archive() adds the one filesystem probe the
initializer needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..models.repository import SourceRepository
from .errors import ArchiveIOError, CorruptArchive
from .git import GitRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveLocation:
    """Resolved archive directory for one upstream."""

    path: Path
    exists: bool


def _segment(value: str, what: str) -> str:
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"Invalid {what} for an archive path: {value!r}")
    return value


def archive_path(archive_root: Path, source: SourceRepository) -> Path:
    """
    Map an upstream onto <archive_root>/<organization>/<name>.

    No filesystem access; case is preserved as given.
    """
    return (
        Path(archive_root).absolute()
        / _segment(source.organization, "organization")
        / _segment(source.name, "repository name")
    )


def locate_archive(
    archive_root: Path,
    source: SourceRepository,
    runner: Optional[GitRunner] = None,
) -> ArchiveLocation:
    """
    Resolve the archive path and check what is there.

    A missing path or an empty directory is reported as absent. Anything
    else that is not the top level of a git working tree is corrupt.
    """
    runner = runner or GitRunner()
    path = archive_path(archive_root, source)

    if not path.exists():
        return ArchiveLocation(path=path, exists=False)

    if not path.is_dir():
        raise CorruptArchive(path, "path exists and is not a directory")

    try:
        empty = not any(path.iterdir())
    except OSError as e:
        raise ArchiveIOError(f"Cannot read archive directory {path}: {e}", path) from e
    if empty:
        return ArchiveLocation(path=path, exists=False)

    toplevel = runner.output(path, "rev-parse", "--show-toplevel")
    if not toplevel:
        raise CorruptArchive(path, "directory is not a git working tree")
    if Path(toplevel).resolve() != path.resolve():
        raise CorruptArchive(path, f"directory is inside another repository at {toplevel}")

    logger.debug(f"[archive] Found existing archive for {source.full_name} at {path}")
    return ArchiveLocation(path=path, exists=True)
