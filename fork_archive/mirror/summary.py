"""
Archive Summary — Read-only summary of what an archive holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..models.repository import SourceRepository
from .errors import ArchiveIOError
from .fetch import list_refs
from .git import GitRunner
from .locator import locate_archive
from .remotes import UPSTREAM_REMOTE, list_remotes


@dataclass
class ArchiveSummary:
    path: Path
    remotes: Dict[str, str] = field(default_factory=dict)
    branches: List[str] = field(default_factory=list)
    contributors: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "path": str(self.path),
            "remotes": dict(self.remotes),
            "branches": list(self.branches),
            "contributors": {k: list(v) for k, v in self.contributors.items()},
        }


def describe_archive(
    archive_root: Path,
    source: SourceRepository,
    runner: Optional[GitRunner] = None,
) -> ArchiveSummary:
    """List remotes, upstream branches and each contributor's branches."""
    runner = runner or GitRunner()
    location = locate_archive(archive_root, source, runner)
    if not location.exists:
        raise ArchiveIOError(f"No archive for {source.full_name} at {location.path}", location.path)

    path = location.path
    remotes = list_remotes(path, runner)
    branches = sorted(ref[len("refs/heads/"):] for ref in list_refs(path, "refs/heads/", runner))

    contributors: Dict[str, List[str]] = {}
    for name in sorted(remotes):
        if name == UPSTREAM_REMOTE:
            continue
        prefix = f"refs/remotes/{name}/"
        contributors[name] = sorted(ref[len(prefix):] for ref in list_refs(path, prefix, runner))

    return ArchiveSummary(path=path, remotes=remotes, branches=branches, contributors=contributors)
