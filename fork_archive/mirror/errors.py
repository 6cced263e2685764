"""
Archive Errors — Failure taxonomy for the mirror engine.

Structural errors (CorruptArchive, ArchiveIOError, RemoteConflict) abort a
run. MirrorFetchFailed is scoped to one remote and is retryable by running
the whole archive again. RefUpdateRejected is scoped to one branch and is
recorded on the run report instead of being raised.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ArchiveError(Exception):
    """Base class for all archive engine failures."""

    retryable = False


class CorruptArchive(ArchiveError):
    """The archive path exists but is not a usable repository."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Corrupt archive at {self.path}: {reason}")


class ArchiveIOError(ArchiveError):
    """A filesystem (or local git) operation on the archive failed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class MirrorFetchFailed(ArchiveError):
    """Cloning or fetching from a remote failed at the transport level."""

    retryable = True

    def __init__(self, remote: str, url: str, detail: str):
        self.remote = remote
        self.url = url
        self.detail = detail
        super().__init__(f"Fetch from {remote} ({url}) failed: {detail}")


class RemoteConflict(ArchiveError):
    """A remote exists under the expected name but points somewhere else."""

    def __init__(self, remote: str, expected_url: str, actual_url: Optional[str]):
        self.remote = remote
        self.expected_url = expected_url
        self.actual_url = actual_url
        if actual_url is None:
            message = f"Remote name {remote!r} is reserved and cannot be used for {expected_url}"
        else:
            message = (
                f"Remote {remote!r} points at {actual_url}, expected {expected_url}"
            )
        super().__init__(message)


class RefUpdateRejected(ArchiveError):
    """A single reference could not be moved to its newly fetched tip."""

    def __init__(self, ref: str, reason: str, old: Optional[str] = None, new: Optional[str] = None):
        self.ref = ref
        self.reason = reason
        self.old = old
        self.new = new
        super().__init__(f"Update of {ref} rejected: {reason}")
