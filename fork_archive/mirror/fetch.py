"""
Fetch & Cleanup — Pull upstream and contributor branches into the archive.

Each remote is fetched into a transient staging namespace
(refs/archive-staging/<remote>/*). Staged tips are then promoted one by
one into their permanent place, fast-forward only:

    upstream      → refs/heads/<branch>
    contributor   → refs/remotes/<contributor>/<branch>

Finally the staging refs are deleted. Staging refs are the only references
this module ever deletes; nothing is pruned, so branches removed upstream
or in a fork stay archived.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from ..models.repository import ForkRepository, SourceRepository
from .errors import MirrorFetchFailed
from .git import GitRunner, error_text
from .remotes import UPSTREAM_REMOTE, contributor_remote_name
from .state import (
    REF_CREATED,
    REF_FAST_FORWARD,
    REF_REJECTED,
    REF_UP_TO_DATE,
    FetchReport,
    RefUpdate,
)

logger = logging.getLogger(__name__)

STAGING_NAMESPACE = "refs/archive-staging"

REFLOG_MESSAGE = "fork-archive: promote fetched tip"


def staging_prefix(remote: str) -> str:
    return f"{STAGING_NAMESPACE}/{remote}/"


def list_refs(repo: Path, prefix: str, runner: GitRunner) -> Dict[str, str]:
    """Return {refname: object id} for every ref under prefix."""
    out = runner.check(repo, "for-each-ref", "--format=%(objectname) %(refname)", prefix)
    refs: Dict[str, str] = {}
    for line in out.splitlines():
        sha, _, name = line.strip().partition(" ")
        if name:
            refs[name] = sha
    return refs


def clear_staging(repo: Path, remote: str, runner: GitRunner) -> int:
    """Delete the staging refs of one remote. Returns how many were removed."""
    staged = list_refs(repo, staging_prefix(remote), runner)
    for ref, sha in staged.items():
        runner.check(repo, "update-ref", "-d", ref, sha)
    return len(staged)


def _current_branch(repo: Path, runner: GitRunner) -> Optional[str]:
    return runner.output(repo, "symbolic-ref", "-q", "HEAD")


def promote_ref(
    repo: Path,
    ref: str,
    new: str,
    runner: GitRunner,
    head_ref: Optional[str] = None,
) -> RefUpdate:
    """
    Move ref to new, only if that is a creation or a fast-forward.

    Every failure is confined to this ref and reported as a rejected
    RefUpdate. The checked-out branch is advanced with a fast-forward merge
    so the working tree follows it.
    """
    old = runner.output(repo, "rev-parse", "--verify", "--quiet", ref)

    if not old:
        result = runner.run(repo, "update-ref", "-m", REFLOG_MESSAGE, ref, new, "")
        if result.returncode != 0:
            return RefUpdate(ref, new, None, REF_REJECTED, error_text(result))
        return RefUpdate(ref, new, None, REF_CREATED)

    if old == new:
        return RefUpdate(ref, new, old, REF_UP_TO_DATE)

    ancestry = runner.run(repo, "merge-base", "--is-ancestor", old, new)
    if ancestry.returncode == 1:
        return RefUpdate(ref, new, old, REF_REJECTED, "non-fast-forward")
    if ancestry.returncode != 0:
        return RefUpdate(ref, new, old, REF_REJECTED, error_text(ancestry))

    if ref == head_ref:
        result = runner.run(repo, "merge", "--ff-only", "--quiet", new)
    else:
        result = runner.run(repo, "update-ref", "-m", REFLOG_MESSAGE, ref, new, old)
    if result.returncode != 0:
        return RefUpdate(ref, new, old, REF_REJECTED, error_text(result))

    return RefUpdate(ref, new, old, REF_FAST_FORWARD)


def fetch_remote(
    repo: Path,
    remote: str,
    url: str,
    target_prefix: str,
    runner: Optional[GitRunner] = None,
) -> FetchReport:
    """
    Fetch all branches of remote and promote them under target_prefix.

    A transport failure is recorded on the report (not raised) so the
    caller can go on with the next remote. Local git failures outside a
    single ref update raise ArchiveIOError.
    """
    runner = runner or GitRunner()
    report = FetchReport(remote=remote, url=url)
    log_extra = {"remote": remote}
    prefix = staging_prefix(remote)

    leftover = clear_staging(repo, remote, runner)
    if leftover:
        logger.warning(f"[fetch] Removed {leftover} stale staging ref(s) for {remote}", extra=log_extra)

    try:
        logger.info(f"[fetch] Fetching {remote} ({url})", extra=log_extra)
        result = runner.run(
            repo,
            "fetch",
            "--no-tags",
            "--no-prune",
            "--refmap=",
            remote,
            f"+refs/heads/*:{prefix}*",
            url=url,
        )
        if result.returncode != 0:
            error = MirrorFetchFailed(remote, url, error_text(result))
            logger.error(f"[fetch] {error}", extra=log_extra)
            report.mark_failed(error)
            return report

        head_ref = _current_branch(repo, runner)
        for staged_ref, sha in sorted(list_refs(repo, prefix, runner).items()):
            branch = staged_ref[len(prefix):]
            update = promote_ref(repo, f"{target_prefix}{branch}", sha, runner, head_ref)
            report.updates.append(update)
            if update.rejected:
                logger.warning(f"[fetch] {update.as_rejection()}", extra=log_extra)
            elif update.action != REF_UP_TO_DATE:
                logger.debug(f"[fetch] {update.ref}: {update.action}", extra=log_extra)

        report.mark_ok()
        logger.info(
            f"[fetch] {remote}: {len(report.changed)} updated, "
            f"{len(report.rejected)} rejected, {len(report.updates)} branch(es)",
            extra=log_extra,
        )
        return report
    finally:
        clear_staging(repo, remote, runner)


def fetch_upstream(repo: Path, source: SourceRepository, runner: Optional[GitRunner] = None) -> FetchReport:
    """Upstream branches become ordinary local branches."""
    return fetch_remote(repo, UPSTREAM_REMOTE, source.clone_url, "refs/heads/", runner)


def fetch_contributor(repo: Path, fork: ForkRepository, runner: Optional[GitRunner] = None) -> FetchReport:
    """Fork branches become remote-tracking refs under the contributor's name."""
    name = contributor_remote_name(fork.owner)
    return fetch_remote(repo, name, fork.clone_url, f"refs/remotes/{name}/", runner)

