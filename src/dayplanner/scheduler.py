"""Polling loop that fires due notifications for stored events."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Set, Tuple

from .events import Event, NotificationSetting
from .notifications import Notifier, Transition, pending_transitions
from .store import EventStore

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """Outcome of a single evaluation pass."""

    fired: int = 0
    reset: int = 0
    failed: int = 0
    saved: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.fired or self.reset)


@dataclass
class SchedulerStats:
    """Counters emitted by the scheduler for observability."""

    ticks: int = 0
    notifications_sent: int = 0
    failures: int = 0
    saves: int = 0


class Scheduler:
    """Evaluates every stored event on a fixed tick and fires its notifications."""

    def __init__(
        self,
        store: EventStore,
        notifier: Optional[Notifier] = None,
        *,
        tick_interval: float = 1.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self._store = store
        self._notifier = notifier or Notifier()
        self._tick_interval = tick_interval
        self._clock = clock
        self._stop_event = threading.Event()
        self.stats = SchedulerStats()
        self._failing: Set[Tuple[str, int]] = set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        """Run the scheduling loop until stopped."""

        logger.info(
            "Starting scheduler for %s (tick every %ss)",
            self._store.path,
            self._tick_interval,
        )
        try:
            while not self._stop_event.is_set():
                start_time = time.monotonic()
                self.tick()
                self._sleep_until_next_tick(start_time)
        except KeyboardInterrupt:
            logger.info("Scheduler interrupted by user")
        finally:
            logger.info(
                "Scheduler stopped after %s ticks, %s notifications sent",
                self.stats.ticks,
                self.stats.notifications_sent,
            )

    def stop(self) -> None:
        """Signal the loop to stop at the next opportunity."""

        self._stop_event.set()

    def tick(self, now: Optional[datetime] = None) -> TickResult:
        """Evaluate all events against one ``now`` and persist changed flags once.

        The file is re-read first if another process wrote to it, so a save
        here never drops events added since the last load.
        """

        now = now or self._clock()
        result = TickResult()
        latched: List[Tuple[str, int, bool]] = []
        with self._store.lock:
            self._store.refresh_if_changed()
            for event in self._store.iter_events():
                try:
                    self._evaluate(event, now, result, latched)
                except Exception:
                    result.failed += 1
                    logger.exception("Evaluating event %s failed", event.event_id)
            if result.changed:
                if self._store.refresh_if_changed():
                    self._reapply(latched)
                result.saved = self._store.save()

        self.stats.ticks += 1
        self.stats.notifications_sent += result.fired
        self.stats.failures += result.failed
        if result.saved:
            self.stats.saves += 1
        return result

    def _evaluate(
        self,
        event: Event,
        now: datetime,
        result: TickResult,
        latched: List[Tuple[str, int, bool]],
    ) -> None:
        for index, transition in pending_transitions(event, now):
            setting = event.notification_settings[index]
            if transition is Transition.FIRE:
                if not self._deliver(event, index, setting):
                    result.failed += 1
                    continue
                setting.has_notified = True
                result.fired += 1
            elif transition is Transition.RESET:
                setting.has_notified = False
                result.reset += 1
            latched.append((event.event_id, index, setting.has_notified))

    def _deliver(self, event: Event, index: int, setting: NotificationSetting) -> bool:
        key = (event.event_id, index)
        try:
            self._notifier.send(event, setting)
        except Exception as exc:
            if key in self._failing:
                logger.error(
                    "Notification %s of event %s (%s) still failing: %s",
                    index,
                    event.event_id,
                    event.title,
                    exc,
                )
            else:
                self._failing.add(key)
                logger.exception(
                    "Notification %s of event %s (%s) failed",
                    index,
                    event.event_id,
                    event.title,
                )
            return False
        self._failing.discard(key)
        return True

    def _reapply(self, latched: List[Tuple[str, int, bool]]) -> None:
        # The file was replaced mid-tick; carry this tick's flag changes over.
        events = {event.event_id: event for event in self._store.iter_events()}
        for event_id, index, value in latched:
            event = events.get(event_id)
            if event is not None and index < len(event.notification_settings):
                event.notification_settings[index].has_notified = value

    def _sleep_until_next_tick(self, started_at: float) -> None:
        elapsed = time.monotonic() - started_at
        remaining = max(self._tick_interval - elapsed, 0.0)
        if remaining > 0:
            self._stop_event.wait(remaining)
