"""
Remote Reconciler — Bring the archive's remotes into shape for one run.

The archive needs the upstream remote and the current contributor's
remote. Both go through ensure_remote(): add when absent, accept when
identical, refuse when the name is taken by another URL. Remotes of other
contributors are never touched.
"""

from __future__ import annotations

import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from ..models.repository import ForkRepository
from .errors import ArchiveIOError, RemoteConflict
from .git import GitRunner, error_text

logger = logging.getLogger(__name__)

# Fixed name of the canonical upstream remote in every archive
UPSTREAM_REMOTE = "origin"

_FORBIDDEN_NAME = re.compile(r"[\x00-\x20\x7f~^:?*\[\\/]|\.\.|@\{")


class RemoteAction(str, Enum):
    """Observable outcome of ensure_remote()."""

    ADDED = "added"
    UNCHANGED = "unchanged"


def contributor_remote_name(login: str) -> str:
    """
    Remote name used for a contributor's fork.

    The login is used as-is (case preserved) as long as git accepts it as
    a remote name; the upstream remote name is reserved.
    """
    if (
        not login
        or login.startswith(("-", "."))
        or login.endswith((".", ".lock"))
        or login == "@"
        or _FORBIDDEN_NAME.search(login)
    ):
        raise ValueError(f"Contributor login {login!r} is not a valid remote name")
    if login == UPSTREAM_REMOTE:
        raise RemoteConflict(login, login, None)
    return login


def _same_url(a: str, b: str) -> bool:
    a, b = a.strip().rstrip("/"), b.strip().rstrip("/")
    if a == b:
        return True
    # Local paths may be spelled through a symlink
    if os.path.isabs(a) and os.path.isabs(b):
        return os.path.realpath(a) == os.path.realpath(b)
    return False


def list_remotes(repo: Path, runner: Optional[GitRunner] = None) -> Dict[str, str]:
    """Return {remote name: fetch URL} for the archive."""
    runner = runner or GitRunner()
    result = runner.run(repo, "config", "--get-regexp", r"^remote\..*\.url$")

    # git config exits 1 when nothing matches
    if result.returncode == 1 and not result.stdout.strip():
        return {}
    if result.returncode != 0:
        raise ArchiveIOError(f"Cannot list remotes of {repo}: {error_text(result)}", repo)

    remotes: Dict[str, str] = {}
    for line in result.stdout.splitlines():
        key, _, url = line.partition(" ")
        name = key[len("remote."):-len(".url")]
        if name and name not in remotes:
            remotes[name] = url.strip()
    return remotes


def ensure_remote(
    repo: Path,
    name: str,
    expected_url: str,
    runner: Optional[GitRunner] = None,
) -> RemoteAction:
    """
    Idempotent upsert of one remote.

    Raises RemoteConflict when the name already points at another URL;
    the recorded URL is never overwritten.
    """
    runner = runner or GitRunner()
    actual_url = list_remotes(repo, runner).get(name)

    if actual_url is not None:
        if _same_url(actual_url, expected_url):
            logger.debug(f"[remotes] {name} already configured")
            return RemoteAction.UNCHANGED
        raise RemoteConflict(name, expected_url, actual_url)

    result = runner.run(repo, "remote", "add", name, expected_url)
    if result.returncode != 0:
        raise ArchiveIOError(f"Cannot add remote {name} to {repo}: {error_text(result)}", repo)

    logger.info(f"[remotes] Added remote {name} → {expected_url}")
    return RemoteAction.ADDED


def reconcile_remotes(
    repo: Path,
    fork: ForkRepository,
    runner: Optional[GitRunner] = None,
) -> Dict[str, RemoteAction]:
    """
    Ensure the upstream remote, then the contributor remote.

    An upstream conflict aborts before the contributor remote is added.
    """
    runner = runner or GitRunner()
    contributor = contributor_remote_name(fork.owner)

    actions = {
        UPSTREAM_REMOTE: ensure_remote(repo, UPSTREAM_REMOTE, fork.source.clone_url, runner),
    }
    actions[contributor] = ensure_remote(repo, contributor, fork.clone_url, runner)
    return actions
