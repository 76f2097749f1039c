"""Notification due-checks and delivery helpers."""
from __future__ import annotations

import logging
import shutil
import subprocess
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .events import Event, NotificationMethod, NotificationSetting
from .recurrence import is_due

logger = logging.getLogger(__name__)

DeliveryCallback = Callable[[str, str], None]

# Seconds a desktop notification command may run. The scheduler holds the
# store lock while delivering.
DELIVERY_TIMEOUT = 10.0


class Transition(str, Enum):
    """Change to apply to a notification's fired latch."""

    NONE = "none"
    FIRE = "fire"
    RESET = "reset"


def next_transition(has_notified: bool, predicate: bool, *, recurring: bool) -> Transition:
    """Decide the latch transition from the latch state and the due predicate.

    One-time notifications only ever move NotFired -> Fired. Recurring ones
    cycle: they fire once while the predicate holds and are re-armed on the
    first evaluation where it no longer does.
    """

    if predicate and not has_notified:
        return Transition.FIRE
    if recurring and has_notified and not predicate:
        return Transition.RESET
    return Transition.NONE


def is_notification_due(event: Event, setting: NotificationSetting, now: datetime) -> bool:
    """Raw due predicate for one setting, ignoring the fired latch."""

    lead = timedelta(minutes=setting.notify_before)
    if event.is_recurring:
        if event.recurrence is None:
            logger.warning("Event %s is marked recurring but has no recurrence rule", event.event_id)
            return False
        return is_due(event.recurrence, now + lead)
    return event.start_time - lead <= now


def pending_transitions(event: Event, now: datetime) -> List[Tuple[int, Transition]]:
    """Return one ``(index, transition)`` per notification setting, in order."""

    results: List[Tuple[int, Transition]] = []
    for index, setting in enumerate(event.notification_settings):
        predicate = is_notification_due(event, setting, now)
        results.append(
            (index, next_transition(setting.has_notified, predicate, recurring=event.is_recurring))
        )
    return results


def due_notifications(event: Event, now: datetime) -> List[Tuple[int, bool]]:
    """Return ``(index, fire_now)`` for every notification setting of ``event``."""

    return [
        (index, transition is Transition.FIRE)
        for index, transition in pending_transitions(event, now)
    ]


class Notifier:
    """Routes a notification setting to the channel that can deliver it."""

    def __init__(self, deliver: Optional[DeliveryCallback] = None):
        self._deliver = deliver or deliver_notification

    def send(self, event: Event, setting: NotificationSetting) -> None:
        if setting.method is NotificationMethod.PUSH:
            logger.debug("Sending push notification for %s", event.event_id)
            self._deliver(event.title, event.description)
            return
        raise NotImplementedError(
            f"{setting.method.value} notifications are not implemented (event {event.event_id})"
        )


def deliver_notification(title: str, body: str) -> None:
    """Show a desktop notification, best effort."""

    if _is_wsl():
        command = [
            "powershell.exe",
            "-Command",
            "Import-Module BurntToast; New-BurntToastNotification -Text "
            f"'{_ps_quote(title)}', '{_ps_quote(body)}'",
        ]
    elif shutil.which("notify-send"):
        command = ["notify-send", title, body]
    else:
        logger.warning("No desktop notifier available; notification: %s - %s", title, body)
        return

    logger.info("Delivering notification: %s", title)
    try:
        subprocess.run(command, check=True, capture_output=True, timeout=DELIVERY_TIMEOUT)
    except (OSError, subprocess.SubprocessError) as exc:
        raise RuntimeError(f"Notification command failed: {exc}") from exc


def _is_wsl() -> bool:
    try:
        return "microsoft" in Path("/proc/version").read_text().lower()
    except OSError:
        return False


def _ps_quote(value: str) -> str:
    return value.replace("'", "''")
