"""
Archiving Engine — Orchestrates one archiving run for a contributor's fork.

## Usage from other modules:

    from fork_archive.mirror.manager import ArchivingEngine

    engine = ArchivingEngine.from_env()
    run = engine.create_repository_mirror(fork)
    run.raise_for_status()

The engine does no locking: callers must not run two archives of the same
upstream at the same time (see fork_archive.mirror.batch).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..config.loader import ArchiveSettings, load_settings
from ..models.repository import ForkRepository
from .fetch import fetch_contributor, fetch_upstream
from .git import GitRunner
from .initializer import initialize_archive
from .locator import ArchiveLocation, locate_archive
from .remotes import UPSTREAM_REMOTE, RemoteAction, reconcile_remotes
from .state import ArchiveRun, RunState

logger = logging.getLogger(__name__)


class ArchivingEngine:
    """
    Locate → initialize → reconcile remotes → fetch upstream → fetch fork.

    CorruptArchive, ArchiveIOError and RemoteConflict abort the run by
    propagating. A MirrorFetchFailed from the initial clone propagates too,
    since there is no archive yet. Fetch failures on an existing archive are
    isolated per remote and end the returned run in FAILED.
    """

    def __init__(self, settings: ArchiveSettings, runner: Optional[GitRunner] = None):
        self.settings = settings
        self.runner = runner or GitRunner(
            timeout=settings.git_timeout,
            token=settings.github_token,
            token_hosts=settings.token_hosts,
        )

    @classmethod
    def from_env(cls) -> "ArchivingEngine":
        """Create an engine from environment configuration."""
        return cls(load_settings())

    @property
    def archive_root(self) -> Path:
        return self.settings.archive_root

    def locate(self, fork: ForkRepository) -> ArchiveLocation:
        return locate_archive(self.archive_root, fork.source, self.runner)

    def create_repository_mirror(self, fork: ForkRepository) -> ArchiveRun:
        """Archive fork (and its upstream) into the upstream's archive."""
        run = ArchiveRun(fork=fork)
        log_extra = {"archive": fork.source.full_name, "contributor": fork.owner}

        location = self.locate(fork)
        run.path = location.path
        run.created = not location.exists
        run.advance(RunState.LOCATED)

        initialize_archive(location, fork.source, self.runner)
        run.advance(RunState.INITIALIZED)

        run.remote_actions = reconcile_remotes(location.path, fork, self.runner)
        if run.created:
            # The clone added the upstream remote
            run.remote_actions[UPSTREAM_REMOTE] = RemoteAction.ADDED
        run.advance(RunState.REMOTES_RECONCILED)

        upstream = fetch_upstream(location.path, fork.source, self.runner)
        run.reports.append(upstream)
        if upstream.ok:
            run.advance(RunState.FETCHED_UPSTREAM)

        contributor = fetch_contributor(location.path, fork, self.runner)
        run.reports.append(contributor)
        if contributor.ok and upstream.ok:
            run.advance(RunState.FETCHED_FORK)

        if run.failures:
            run.advance(RunState.FAILED)
            logger.error(
                f"[archive] {fork.full_name} → {location.path}: "
                f"{len(run.failures)} remote(s) failed to fetch",
                extra=log_extra,
            )
            return run

        run.advance(RunState.COMPLETE)
        if run.rejected:
            logger.warning(
                f"[archive] {fork.full_name} archived with {len(run.rejected)} rejected ref update(s)",
                extra=log_extra,
            )
        else:
            logger.info(f"[archive] {fork.full_name} archived into {location.path}", extra=log_extra)
        return run
