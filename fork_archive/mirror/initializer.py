"""
Archive Initializer — Clone a fresh archive or open the existing one.

A fresh clone is brought into the archive layout right away: every branch
the clone recorded under refs/remotes/origin/ becomes a local branch, and
the clone's own tracking refs are removed. Later upstream fetches only ever
write refs/heads/*.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..models.repository import SourceRepository
from .errors import ArchiveIOError, CorruptArchive, MirrorFetchFailed
from .fetch import list_refs, promote_ref
from .git import GitRunner, error_text
from .locator import ArchiveLocation
from .remotes import UPSTREAM_REMOTE

logger = logging.getLogger(__name__)

CLONE_TRACKING_PREFIX = f"refs/remotes/{UPSTREAM_REMOTE}/"


def initialize_archive(
    location: ArchiveLocation,
    source: SourceRepository,
    runner: Optional[GitRunner] = None,
) -> Path:
    """
    Make sure a usable archive repository exists at location.path.

    Returns the archive path. A fresh clone gets the upstream as its
    origin remote. Failing to create the directory is an ArchiveIOError;
    only a failure of the clone itself is a MirrorFetchFailed.
    """
    runner = runner or GitRunner()
    path = location.path

    if location.exists:
        _verify_archive(path, runner)
        logger.info(f"[archive] Opened existing archive {path}")
        return path

    # git clone accepts an existing empty directory
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArchiveIOError(f"Cannot create archive directory {path}: {e}", path) from e

    logger.info(f"[archive] Cloning {source.full_name} into {path}")
    result = runner.run(
        None,
        "clone",
        "--origin", UPSTREAM_REMOTE,
        source.clone_url,
        str(path),
        url=source.clone_url,
    )
    if result.returncode != 0:
        raise MirrorFetchFailed(UPSTREAM_REMOTE, source.clone_url, error_text(result))

    _adopt_clone_refs(path, runner)
    return path


def _adopt_clone_refs(path: Path, runner: GitRunner) -> None:
    """Turn the clone's origin tracking refs into local branches."""
    tracking = list_refs(path, CLONE_TRACKING_PREFIX, runner)
    head = f"{CLONE_TRACKING_PREFIX}HEAD"

    if head in tracking:
        runner.check(path, "update-ref", "--no-deref", "-d", head)
        del tracking[head]

    for ref, sha in sorted(tracking.items()):
        branch = ref[len(CLONE_TRACKING_PREFIX):]
        update = promote_ref(path, f"refs/heads/{branch}", sha, runner)
        if update.rejected:
            # Leave the tracking ref; the branch is not archived yet
            logger.warning(f"[archive] Could not adopt {ref}: {update.reason}")
            continue
        runner.check(path, "update-ref", "-d", ref, sha)

    logger.debug(f"[archive] Adopted {len(tracking)} branch(es) from the initial clone")
