"""Rollback of files written during a single extraction run."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List

from .retry import DEFAULT_MAX_ATTEMPTS, delete_with_retry

log = logging.getLogger(__name__)

CLEANUP_INTERVAL = 0.2


class FileRollback:
    """Tracks files created by the current run and removes them on failure.

    Only paths passed to :meth:`record` are ever touched, so files left by
    earlier runs survive a rollback.
    """

    def __init__(
        self,
        operation_name: str = "extract",
        *,
        interval: float = CLEANUP_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_workers: int = 4,
    ):
        self.operation_name = operation_name
        self.interval = interval
        self.max_attempts = max_attempts
        self.max_workers = max_workers
        self._paths: List[Path] = []
        self._lock = threading.Lock()

    def record(self, path: Path) -> None:
        with self._lock:
            if path not in self._paths:
                self._paths.append(path)
        log.debug("📝 Tracking %s for rollback", path)

    @property
    def paths(self) -> List[Path]:
        with self._lock:
            return list(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def _delete(self, path: Path) -> bool:
        return delete_with_retry(path, self.interval, self.max_attempts)

    def execute(self, reason: str = "Operation failed") -> int:
        """Delete every recorded file that still exists; returns how many went.

        Deletions run concurrently. A file that cannot be removed is logged
        and skipped.
        """
        targets = [p for p in self.paths if p.exists()]
        if not targets:
            log.debug("ℹ️ Nothing to roll back for '%s'", self.operation_name)
            return 0

        log.info("🔄 Rolling back %d file(s) for '%s': %s", len(targets), self.operation_name, reason)

        workers = max(1, min(self.max_workers, len(targets)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            removed = sum(1 for ok in executor.map(self._delete, targets) if ok)

        if removed < len(targets):
            log.warning("⚠️ Rollback left %d file(s) behind", len(targets) - removed)
        else:
            log.info("✅ Rollback removed %d file(s)", removed)
        return removed
