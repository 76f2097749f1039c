"""Polling watcher that reports changes to the persisted events file."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Snapshot = Optional[Tuple[float, int]]


class ChangeType(str, Enum):
    """Types of filesystem changes emitted by the watcher."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class FileChange:
    """A single change observed on the watched file."""

    change_type: ChangeType
    path: Path
    size: Optional[int] = None
    mtime: Optional[float] = None


class FileWatcher:
    """Polls one file and calls ``on_modified`` when its content changes.

    Creation and deletion are reported by :meth:`check` but do not trigger
    the callback.
    """

    def __init__(self, path: Path, on_modified: Callable[[], None], *, poll_interval: float = 1.0):
        self._path = Path(path)
        self._on_modified = on_modified
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._snapshot: Snapshot = stat_snapshot(self._path)

    @property
    def path(self) -> Path:
        return self._path

    def start(self) -> bool:
        """Start the background thread. Returns False if the watch could not be set up."""

        if self._thread is not None:
            return True
        try:
            self._snapshot = stat_snapshot(self._path)
            thread = threading.Thread(
                target=self._run,
                name=f"file-watcher:{self._path.name}",
                daemon=True,
            )
            thread.start()
        except (OSError, RuntimeError) as exc:
            logger.error("Could not watch %s: %s; live reload disabled", self._path, exc)
            return False
        self._thread = thread
        logger.info("Watching %s for changes", self._path)
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def check(self) -> List[FileChange]:
        """Run one detection pass and dispatch a modification, if any."""

        new_snapshot = stat_snapshot(self._path)
        changes = _diff_snapshots(self._path, self._snapshot, new_snapshot)
        self._snapshot = new_snapshot
        for change in changes:
            logger.debug("Observed %s on %s", change.change_type.value, change.path)
            if change.change_type is ChangeType.MODIFIED:
                self._on_modified()
        return changes

    def _run(self) -> None:
        while not self._stop_event.wait(self._poll_interval):
            try:
                self.check()
            except Exception:  # pragma: no cover - protective logging
                logger.exception("Reload after change to %s failed", self._path)


def stat_snapshot(path: Path) -> Snapshot:
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    return (stat.st_mtime, stat.st_size)


def _diff_snapshots(path: Path, old: Snapshot, new: Snapshot) -> List[FileChange]:
    if old is None and new is None:
        return []
    if old is None:
        mtime, size = new  # type: ignore[misc]
        return [FileChange(change_type=ChangeType.CREATED, path=path, size=size, mtime=mtime)]
    if new is None:
        mtime, size = old
        return [FileChange(change_type=ChangeType.DELETED, path=path, size=size, mtime=mtime)]
    if old != new:
        mtime, size = new
        return [FileChange(change_type=ChangeType.MODIFIED, path=path, size=size, mtime=mtime)]
    return []
