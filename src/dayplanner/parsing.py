"""Parsers for the date, time and duration strings accepted on the command line."""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Tuple

from .events import Attendee, NotificationMethod, NotificationSetting

DATE_FORMATS = ("%Y-%m-%d", "%d-%m-%Y", "%d.%m.%Y", "%m/%d/%Y")
TIME_FORMATS = ("%H:%M:%S", "%H:%M", "%I:%M %p")

_DURATION_PATTERN = re.compile(r"^(?:(\d+)h)?\s*(?:(\d+)m)?$")


def parse_date(value: str) -> date:
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date {value!r}; expected one of {', '.join(DATE_FORMATS)}")


def parse_time(value: str) -> time:
    text = value.strip()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised time {value!r}; expected one of {', '.join(TIME_FORMATS)}")


def parse_duration(value: str) -> timedelta:
    """Parse ``"1h30m"``, ``"2h"`` or ``"45m"``."""

    match = _DURATION_PATTERN.match(value.strip())
    if not match or not any(match.groups()):
        raise ValueError(f"Invalid duration {value!r}; expected e.g. 1h30m")
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    return timedelta(hours=hours, minutes=minutes)


def parse_notification(value: str) -> NotificationSetting:
    """Parse ``MINUTES`` or ``MINUTES:METHOD``, e.g. ``15:push``."""

    minutes_raw, _, method_raw = value.partition(":")
    try:
        minutes = int(minutes_raw.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid notification lead time {minutes_raw!r}") from exc
    method = NotificationMethod.parse(method_raw) if method_raw.strip() else NotificationMethod.PUSH
    return NotificationSetting(notify_before=minutes, method=method)


def parse_attendee(value: str, attendee_id: str = "None") -> Attendee:
    """Parse ``NAME:EMAIL``."""

    name, sep, email = value.rpartition(":")
    if not sep or not name.strip() or not email.strip():
        raise ValueError(f"Invalid attendee {value!r}; expected NAME:EMAIL")
    return Attendee(attendee_id=attendee_id, name=name.strip(), email=email.strip())


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Start of ``day`` and the last microsecond of it."""

    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)
