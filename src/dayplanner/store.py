"""File-backed event store shared by the scheduler, watcher and CLI."""
from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .events import (
    Event,
    SearchField,
    StoreMode,
    ensure_default_notification,
    event_from_dict,
    event_to_dict,
)
from .watcher import FileWatcher, Snapshot, stat_snapshot

logger = logging.getLogger(__name__)

NOT_ADDED = -1

_ID_PATTERN = re.compile(r"^#(\d+)$")


class EventStore:
    """Owns the in-memory event list and keeps it in sync with a JSON file.

    Every public method takes ``lock``. The lock is re-entrant, so a caller
    can hold it across several calls (the scheduler holds it for a whole
    tick) without another thread reloading the file in between.

    ``ACTIVE`` stores accept add/remove/replace/clear. ``PASSIVE`` stores
    mirror an existing file and reject those calls.
    """

    def __init__(
        self,
        path: Path,
        *,
        auto_save: bool = False,
        mode: StoreMode = StoreMode.ACTIVE,
        watch: bool = True,
        poll_interval: float = 1.0,
    ):
        self._path = Path(path)
        if mode is StoreMode.PASSIVE and not self._path.exists():
            logger.error("File to monitor does not exist: %s", self._path)
            raise SystemExit(1)

        self.lock = threading.RLock()
        self._auto_save = auto_save
        self._mode = mode
        self._events: List[Event] = []
        self._watcher: Optional[FileWatcher] = None
        # File stat as of the last load or save.
        self._synced: Snapshot = None

        self.load()
        if watch:
            self._watcher = FileWatcher(self._path, self.load, poll_interval=poll_interval)
            self._watcher.start()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def mode(self) -> StoreMode:
        return self._mode

    @property
    def auto_save(self) -> bool:
        return self._auto_save

    def close(self) -> None:
        """Stop the file watcher, if one is running."""

        if self._watcher is not None:
            self._watcher.stop(timeout=5.0)
            self._watcher = None

    def __len__(self) -> int:
        with self.lock:
            return len(self._events)

    # -- persistence -------------------------------------------------------

    def load(self) -> bool:
        """Replace the in-memory events with the file content.

        A missing or malformed file leaves the current events untouched.
        Returns True when the events were replaced.
        """

        with self.lock:
            self._synced = stat_snapshot(self._path)
            if self._synced is None:
                return False
            try:
                raw = self._path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.warning("Could not read %s: %s", self._path, exc)
                return False
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as exc:
                logger.warning("Ignoring malformed events file %s: %s", self._path, exc)
                return False
            if data is None:
                return False
            if not isinstance(data, list):
                logger.warning("Ignoring events file %s: expected a JSON array", self._path)
                return False
            try:
                events = [event_from_dict(item) for item in data]
            except ValueError as exc:
                logger.warning("Ignoring events file %s: %s", self._path, exc)
                return False
            self._events = events
            logger.debug("Loaded %s events from %s", len(events), self._path)
            return True

    def save(self) -> bool:
        """Write all events to the file. Failures are logged, not raised."""

        with self.lock:
            payload = json.dumps([event_to_dict(event) for event in self._events], ensure_ascii=False)
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._path.write_text(payload, encoding="utf-8")
            except OSError as exc:
                logger.error("Failed to save events to %s: %s", self._path, exc)
                return False
            self._synced = stat_snapshot(self._path)
            logger.debug("Saved %s events to %s", len(self._events), self._path)
            return True

    def refresh_if_changed(self) -> bool:
        """Reload the file if another writer touched it since the last load or save.

        Returns True when the in-memory events were replaced.
        """

        with self.lock:
            if stat_snapshot(self._path) == self._synced:
                return False
            logger.info("%s changed on disk, reloading", self._path)
            return self.load()

    def _autosave(self) -> None:
        if self._auto_save:
            self.save()

    # -- mutation ----------------------------------------------------------

    def add(self, event: Event) -> int:
        """Append ``event`` and return its index, or ``NOT_ADDED`` in passive mode."""

        with self.lock:
            if not self._writable("add"):
                return NOT_ADDED
            if not event.event_id:
                event.event_id = self._next_id()
            ensure_default_notification(event)
            self._events.append(event)
            self._autosave()
            return len(self._events) - 1

    def remove(self, index: int) -> Optional[Event]:
        with self.lock:
            if not self._writable("remove") or not self._in_range(index):
                return None
            event = self._events.pop(index)
            self._autosave()
            return event

    def replace(self, index: int, event: Event) -> Optional[Event]:
        """Swap the event at ``index`` and return the previous one."""

        with self.lock:
            if not self._writable("replace") or not self._in_range(index):
                return None
            previous = self._events[index]
            ensure_default_notification(event)
            self._events[index] = event
            self._autosave()
            return previous

    def clear(self) -> bool:
        with self.lock:
            if not self._writable("clear"):
                return False
            self._events.clear()
            self._autosave()
            return True

    # -- access ------------------------------------------------------------

    def get(self, index: int) -> Optional[Event]:
        with self.lock:
            if not self._in_range(index):
                return None
            return self._events[index]

    def iter_events(self) -> Iterator[Event]:
        """Iterate over the stored events in insertion order.

        The events are the stored objects, so callers holding ``lock`` can
        update them in place.
        """

        with self.lock:
            events = list(self._events)
        return iter(events)

    def search(self, query: str, search_field: SearchField = SearchField.ANY) -> List[Tuple[int, Event]]:
        with self.lock:
            return [
                (index, event)
                for index, event in enumerate(self._events)
                if event.matches(query, search_field)
            ]

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self._events)

    def _writable(self, operation: str) -> bool:
        if self._mode is StoreMode.ACTIVE:
            return True
        logger.warning("Cannot %s events in passive mode", operation)
        return False

    def _next_id(self) -> str:
        highest = -1
        for event in self._events:
            match = _ID_PATTERN.match(event.event_id)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"#{max(highest + 1, len(self._events))}"
