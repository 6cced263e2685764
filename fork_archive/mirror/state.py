"""
Run State — Progress and outcome of one archiving run.

A run walks LOCATED → INITIALIZED → REMOTES_RECONCILED → FETCHED_UPSTREAM
→ FETCHED_FORK → COMPLETE. Structural failures are raised by the engine;
fetch failures end the run in FAILED with one FetchReport per remote.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.repository import ForkRepository
from .errors import MirrorFetchFailed, RefUpdateRejected
from .remotes import RemoteAction


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RunState(str, Enum):
    LOCATED = "located"
    INITIALIZED = "initialized"
    REMOTES_RECONCILED = "remotes_reconciled"
    FETCHED_UPSTREAM = "fetched_upstream"
    FETCHED_FORK = "fetched_fork"
    COMPLETE = "complete"
    FAILED = "failed"


# Ref update outcomes
REF_CREATED = "created"
REF_FAST_FORWARD = "fast-forward"
REF_UP_TO_DATE = "up-to-date"
REF_REJECTED = "rejected"


@dataclass
class RefUpdate:
    """What happened to one archived reference."""

    ref: str
    new: str
    old: Optional[str] = None
    action: str = REF_UP_TO_DATE
    reason: Optional[str] = None

    @property
    def rejected(self) -> bool:
        return self.action == REF_REJECTED

    def as_rejection(self) -> RefUpdateRejected:
        return RefUpdateRejected(self.ref, self.reason or "rejected", self.old, self.new)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ref": self.ref,
            "old": self.old,
            "new": self.new,
            "action": self.action,
            "reason": self.reason,
        }


@dataclass
class FetchReport:
    """Outcome of fetching and promoting one remote."""

    remote: str
    url: str
    status: str = "pending"  # pending, ok, failed
    error: Optional[MirrorFetchFailed] = None
    updates: List[RefUpdate] = field(default_factory=list)
    finished_at_iso: Optional[str] = None

    def mark_ok(self) -> None:
        self.status = "ok"
        self.error = None
        self.finished_at_iso = _now_iso()

    def mark_failed(self, error: MirrorFetchFailed) -> None:
        self.status = "failed"
        self.error = error
        self.finished_at_iso = _now_iso()

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def rejected(self) -> List[RefUpdateRejected]:
        return [u.as_rejection() for u in self.updates if u.rejected]

    @property
    def changed(self) -> List[RefUpdate]:
        return [u for u in self.updates if u.action in (REF_CREATED, REF_FAST_FORWARD)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remote": self.remote,
            "url": self.url,
            "status": self.status,
            "error": self.error.detail if self.error else None,
            "finished_at_iso": self.finished_at_iso,
            "updates": [u.to_dict() for u in self.updates],
        }


@dataclass
class ArchiveRun:
    """Report of one create_repository_mirror() call."""

    fork: ForkRepository
    path: Optional[Path] = None
    state: RunState = RunState.LOCATED
    history: List[RunState] = field(default_factory=list)
    remote_actions: Dict[str, RemoteAction] = field(default_factory=dict)
    reports: List[FetchReport] = field(default_factory=list)
    created: bool = False
    started_at_iso: str = field(default_factory=_now_iso)
    finished_at_iso: Optional[str] = None

    def advance(self, state: RunState) -> None:
        self.history.append(state)
        self.state = state
        if state in (RunState.COMPLETE, RunState.FAILED):
            self.finished_at_iso = _now_iso()

    @property
    def ok(self) -> bool:
        return self.state == RunState.COMPLETE

    @property
    def failures(self) -> List[MirrorFetchFailed]:
        return [r.error for r in self.reports if r.error is not None]

    @property
    def rejected(self) -> List[RefUpdateRejected]:
        return [rej for r in self.reports for rej in r.rejected]

    def report_for(self, remote: str) -> Optional[FetchReport]:
        for report in self.reports:
            if report.remote == remote:
                return report
        return None

    def raise_for_status(self) -> None:
        """Raise the first fetch failure of a FAILED run."""
        if self.failures:
            raise self.failures[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contributor": self.fork.owner,
            "source": self.fork.source.full_name,
            "path": str(self.path) if self.path else None,
            "state": self.state.value,
            "created": self.created,
            "remotes": {name: action.value for name, action in self.remote_actions.items()},
            "fetches": [r.to_dict() for r in self.reports],
            "started_at_iso": self.started_at_iso,
            "finished_at_iso": self.finished_at_iso,
        }
