"""
Mirror Engine — Archive contributor forks next to their upstream.

This module locates and initializes archives, reconciles remotes, and
fetches upstream and fork branches without ever discarding archived
history.
"""

from .errors import (
    ArchiveError,
    ArchiveIOError,
    CorruptArchive,
    MirrorFetchFailed,
    RefUpdateRejected,
    RemoteConflict,
)
from .locator import ArchiveLocation, archive_path, locate_archive
from .manager import ArchivingEngine
from .remotes import UPSTREAM_REMOTE, RemoteAction, contributor_remote_name, ensure_remote
from .state import ArchiveRun, FetchReport, RefUpdate, RunState

__all__ = [
    "ArchiveError",
    "ArchiveIOError",
    "ArchiveLocation",
    "ArchiveRun",
    "ArchivingEngine",
    "CorruptArchive",
    "FetchReport",
    "MirrorFetchFailed",
    "RefUpdate",
    "RefUpdateRejected",
    "RemoteAction",
    "RemoteConflict",
    "RunState",
    "UPSTREAM_REMOTE",
    "archive_path",
    "contributor_remote_name",
    "ensure_remote",
    "locate_archive",
]
