"""Stateless predicate deciding whether a recurrence rule matches an instant."""
from __future__ import annotations

from datetime import datetime

from .events import Frequency, Recurrence

# The anchor each frequency owns. Left unset, it takes the value of the
# matching field of ``start_date``; any other unset anchor always matches.
_OWNED_ANCHOR = {
    Frequency.HOURLY: "minute",
    Frequency.DAILY: "hour",
    Frequency.WEEKLY: "week_day",
    Frequency.MONTHLY: "day",
    Frequency.YEARLY: "month",
}


def is_due(recurrence: Recurrence, now: datetime) -> bool:
    """Return True when ``recurrence`` has an occurrence in the minute of ``now``.

    The check is a pure predicate: it keeps returning True for every call
    inside a matching minute (or a wider window, when a coarse frequency
    leaves finer anchors unset). Callers latch on their own.
    """

    if recurrence.interval < 1:
        return False
    if recurrence.start_date > now:
        return False
    if recurrence.end_date is not None and recurrence.end_date < now:
        return False
    if recurrence.year is not None and recurrence.year != now.year:
        return False

    owned = _OWNED_ANCHOR[recurrence.frequency]
    start = recurrence.start_date
    checks = (
        ("minute", recurrence.minute, start.minute, now.minute),
        ("hour", recurrence.hour, start.hour, now.hour),
        ("day", recurrence.day, start.day, now.day),
        ("week_day", recurrence.week_day, start.weekday(), now.weekday()),
        ("month", recurrence.month, start.month, now.month),
    )
    for name, anchor, fallback, actual in checks:
        if anchor is None:
            if name != owned:
                continue
            anchor = fallback
        if anchor != actual:
            return False

    return _elapsed_units(recurrence.frequency, start, now) % recurrence.interval == 0


def _elapsed_units(frequency: Frequency, start: datetime, now: datetime) -> int:
    # Calendar units: the time of day of start_date does not shift the count.
    if frequency is Frequency.HOURLY:
        elapsed = _hour_floor(now) - _hour_floor(start)
        return int(elapsed.total_seconds() // 3600)
    days = (now.date() - start.date()).days
    if frequency is Frequency.WEEKLY:
        return days // 7
    # Monthly and yearly count days, not calendar months or years.
    return days


def _hour_floor(value: datetime) -> datetime:
    return value.replace(minute=0, second=0, microsecond=0)
