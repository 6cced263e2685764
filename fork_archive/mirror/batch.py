"""
Batch Archiving — Archive many forks concurrently, one writer per archive.

Forks of different upstreams are archived in parallel. Forks of the same
upstream share an archive path and are serialized through a per-path lock,
which is the exclusive access the engine relies on.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..models.repository import ForkRepository
from .errors import ArchiveError
from .locator import archive_path
from .manager import ArchivingEngine
from .state import ArchiveRun

logger = logging.getLogger(__name__)


class ArchiveLockRegistry:
    """Hands out one lock per archive path."""

    def __init__(self):
        self._locks: Dict[Path, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, path: Path) -> threading.Lock:
        key = Path(path).absolute()
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)


@dataclass
class BatchOutcome:
    """Result for one fork of a batch: a run report or the error that aborted it."""

    fork: ForkRepository
    run: Optional[ArchiveRun] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.run is not None and self.run.ok

    def to_dict(self) -> Dict:
        result = {
            "contributor": self.fork.owner,
            "source": self.fork.source.full_name,
            "ok": self.ok,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
        }
        if self.run is not None:
            result["run"] = self.run.to_dict()
        return result


class BatchArchiver:
    """Runs ArchivingEngine over a list of forks with a thread pool."""

    def __init__(
        self,
        engine: ArchivingEngine,
        workers: int = 4,
        locks: Optional[ArchiveLockRegistry] = None,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.engine = engine
        self.workers = workers
        self.locks = locks or ArchiveLockRegistry()

    def archive_one(self, fork: ForkRepository) -> BatchOutcome:
        """Archive a single fork while holding its archive path lock."""
        try:
            path = archive_path(self.engine.archive_root, fork.source)
        except ValueError as e:
            return BatchOutcome(fork=fork, error=e)

        with self.locks.lock_for(path):
            try:
                return BatchOutcome(fork=fork, run=self.engine.create_repository_mirror(fork))
            except (ArchiveError, ValueError, OSError) as e:
                logger.error(f"[batch] {fork.full_name}: {e}", extra={"archive": fork.source.full_name})
                return BatchOutcome(fork=fork, error=e)

    def archive_all(self, forks: Sequence[ForkRepository]) -> List[BatchOutcome]:
        """
        Archive every fork; one failure never stops the others.

        Outcomes are returned in input order.
        """
        if not forks:
            return []

        logger.info(f"[batch] Archiving {len(forks)} fork(s) with {self.workers} worker(s)")
        outcomes: List[Optional[BatchOutcome]] = [None] * len(forks)

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            future_map = {
                executor.submit(self.archive_one, fork): index
                for index, fork in enumerate(forks)
            }
            for future in as_completed(future_map):
                outcomes[future_map[future]] = future.result()

        ok_count = sum(1 for o in outcomes if o is not None and o.ok)
        logger.info(f"[batch] {ok_count}/{len(forks)} fork(s) archived")
        return [o for o in outcomes if o is not None]
