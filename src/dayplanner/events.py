"""Event models shared across the store, tracker and scheduler."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional


class Frequency(str, Enum):
    """How often a recurring event repeats."""

    HOURLY = "Hourly"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"

    @classmethod
    def parse(cls, value: str) -> "Frequency":
        normalized = value.strip().lower()
        for option in cls:
            if option.value.lower() == normalized:
                return option
        raise ValueError(f"Unknown frequency: {value!r}")


class NotificationMethod(str, Enum):
    """Delivery channel for a notification. Only PUSH is deliverable."""

    PUSH = "Push"
    EMAIL = "Email"
    SMS = "Sms"

    @classmethod
    def parse(cls, value: str) -> "NotificationMethod":
        normalized = value.strip().lower()
        for option in cls:
            if option.value.lower() == normalized:
                return option
        raise ValueError(f"Unknown notification method: {value!r}")


class StoreMode(str, Enum):
    """Access mode of an event store."""

    ACTIVE = "active"  # read/write, owns the file
    PASSIVE = "passive"  # read-only mirror used by the notifier


class SearchField(str, Enum):
    """Fields an event search can look at."""

    TITLE = "title"
    DESCRIPTION = "description"
    LOCATION = "location"
    CATEGORY = "category"
    ANY = "any"


WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_WEEKDAY_LOOKUP = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def parse_weekday(value: Any) -> int:
    """Return the weekday number (Monday=0) for a name, abbreviation or integer."""

    if isinstance(value, bool):
        raise ValueError(f"Invalid weekday: {value!r}")
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValueError("Weekday integer must be between 0 (Monday) and 6 (Sunday)")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized.isdigit():
            return parse_weekday(int(normalized))
        if normalized in _WEEKDAY_LOOKUP:
            return _WEEKDAY_LOOKUP[normalized]
        for name, number in _WEEKDAY_LOOKUP.items():
            if len(normalized) >= 3 and name.startswith(normalized):
                return number
    raise ValueError(f"Invalid weekday: {value!r}")


@dataclass
class Recurrence:
    """Rule describing when a recurring event happens.

    The optional anchors pin an occurrence to a specific sub-unit value,
    e.g. weekly on Tuesday (week_day=1) at 14:00 (hour=14, minute=0).
    """

    frequency: Frequency
    start_date: datetime
    interval: int = 1
    end_date: Optional[datetime] = None
    minute: Optional[int] = None
    hour: Optional[int] = None
    day: Optional[int] = None
    week_day: Optional[int] = None  # Monday=0, Sunday=6
    month: Optional[int] = None
    year: Optional[int] = None


@dataclass
class NotificationSetting:
    """A single reminder attached to an event."""

    notify_before: int = 0  # minutes; 0 or negative means at/after start
    method: NotificationMethod = NotificationMethod.PUSH
    has_notified: bool = False

    def describe(self) -> str:
        return f"Notify Before: {self.notify_before}, Method: {self.method.value}"


@dataclass
class Attendee:
    attendee_id: str
    name: str
    email: str

    def describe(self) -> str:
        return f"Name: {self.name}, Email: {self.email}"


@dataclass
class Event:
    """A calendar entry, one-time or recurring."""

    title: str
    start_time: datetime
    end_time: datetime
    created_at: datetime
    updated_at: datetime
    event_id: str = ""
    description: str = ""
    location: str = ""
    is_recurring: bool = False
    recurrence: Optional[Recurrence] = None
    attendees: List[Attendee] = field(default_factory=list)
    notification_settings: List[NotificationSetting] = field(default_factory=list)
    is_all_day: bool = False
    categories: List[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        title: str,
        start_time: datetime,
        *,
        end_time: Optional[datetime] = None,
        description: str = "",
        location: str = "",
        recurrence: Optional[Recurrence] = None,
        attendees: Optional[List[Attendee]] = None,
        notification_settings: Optional[List[NotificationSetting]] = None,
        is_all_day: bool = False,
        categories: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> "Event":
        """Build a new event, filling in the defaults a fresh entry gets."""

        created = now or datetime.now()
        settings = list(notification_settings or [])
        if not settings:
            settings.append(NotificationSetting())
        return cls(
            title=title,
            description=description,
            location=location,
            start_time=start_time,
            end_time=end_time if end_time is not None else start_time + timedelta(hours=1),
            is_recurring=recurrence is not None,
            recurrence=recurrence,
            attendees=list(attendees or []),
            notification_settings=settings,
            created_at=created,
            updated_at=created,
            is_all_day=is_all_day,
            categories=list(categories or []),
        )

    def _touch(self) -> None:
        self.updated_at = datetime.now()

    def update_title(self, title: str) -> None:
        self.title = title
        self._touch()

    def update_description(self, description: str) -> None:
        self.description = description
        self._touch()

    def update_location(self, location: str) -> None:
        self.location = location
        self._touch()

    def update_start_time(self, start_time: datetime) -> None:
        self.start_time = start_time
        self._touch()

    def update_end_time(self, end_time: datetime) -> None:
        self.end_time = end_time
        self._touch()

    def update_is_recurring(self, is_recurring: bool) -> None:
        self.is_recurring = is_recurring
        self._touch()

    def update_recurrence(self, recurrence: Optional[Recurrence]) -> None:
        self.recurrence = recurrence
        self._touch()

    def add_attendee(self, attendee: Attendee) -> None:
        self.attendees.append(attendee)
        self._touch()

    def remove_attendee(self, index: int) -> Optional[Attendee]:
        if not 0 <= index < len(self.attendees):
            return None
        self._touch()
        return self.attendees.pop(index)

    def add_notification(self, notification: NotificationSetting) -> None:
        self.notification_settings.append(notification)
        self._touch()

    def remove_notification(self, index: int) -> Optional[NotificationSetting]:
        if not 0 <= index < len(self.notification_settings):
            return None
        self._touch()
        return self.notification_settings.pop(index)

    def update_is_all_day(self, is_all_day: bool) -> None:
        self.is_all_day = is_all_day
        self._touch()

    def update_categories(self, categories: List[str]) -> None:
        self.categories = list(categories)
        self._touch()

    def matches(self, query: str, search_field: SearchField = SearchField.ANY) -> bool:
        """Case-insensitive substring match against the selected field."""

        needle = query.lower()
        candidates: List[str] = []
        if search_field in (SearchField.TITLE, SearchField.ANY):
            candidates.append(self.title)
        if search_field in (SearchField.DESCRIPTION, SearchField.ANY):
            candidates.append(self.description)
        if search_field in (SearchField.LOCATION, SearchField.ANY):
            candidates.append(self.location)
        if search_field in (SearchField.CATEGORY, SearchField.ANY):
            candidates.extend(self.categories)
        return any(needle in candidate.lower() for candidate in candidates)

    def summary(self) -> str:
        when = self.start_time.strftime("%Y-%m-%d") if self.is_all_day else self.start_time.strftime("%Y-%m-%d %H:%M")
        parts = [f"{self.event_id} {self.title}".strip(), when]
        if self.is_recurring and self.recurrence is not None:
            parts.append(f"every {self.recurrence.interval} {self.recurrence.frequency.value.lower()}")
        if self.location:
            parts.append(f"@ {self.location}")
        if self.categories:
            parts.append("[" + ", ".join(self.categories) + "]")
        return " | ".join(parts)


def ensure_default_notification(event: Event) -> bool:
    """Give ``event`` an at-start Push notification if it has none.

    Returns True when a setting was added.
    """

    if event.notification_settings:
        return False
    event.notification_settings.append(NotificationSetting())
    return True


# -- JSON codec ------------------------------------------------------------


def event_to_dict(event: Event) -> Dict[str, Any]:
    return {
        "event_id": event.event_id,
        "title": event.title,
        "description": event.description,
        "location": event.location,
        "start_time": _format_datetime(event.start_time),
        "end_time": _format_datetime(event.end_time),
        "is_recurring": event.is_recurring,
        "recurrence": _recurrence_to_dict(event.recurrence) if event.recurrence is not None else None,
        "attendees": [
            {"attendee_id": a.attendee_id, "name": a.name, "email": a.email} for a in event.attendees
        ],
        "created_at": _format_datetime(event.created_at),
        "updated_at": _format_datetime(event.updated_at),
        "notification_settings": [
            {"notify_before": n.notify_before, "method": n.method.value, "has_notified": n.has_notified}
            for n in event.notification_settings
        ],
        "is_all_day": event.is_all_day,
        "categories": list(event.categories),
    }


def event_from_dict(data: Any) -> Event:
    """Parse one persisted event. Raises ValueError on schema mismatch."""

    if not isinstance(data, dict):
        raise ValueError("Event entry must be an object")

    recurrence_raw = data.get("recurrence")
    recurrence = _recurrence_from_dict(recurrence_raw) if recurrence_raw is not None else None

    attendees_raw = _require(data, "attendees", list)
    settings_raw = _require(data, "notification_settings", list)
    categories_raw = _require(data, "categories", list)

    is_recurring = _require(data, "is_recurring", bool)
    if is_recurring != (recurrence is not None):
        raise ValueError(
            "is_recurring is true but recurrence is missing"
            if is_recurring
            else "recurrence is set but is_recurring is false"
        )

    event = Event(
        event_id=_require(data, "event_id", str),
        title=_require(data, "title", str),
        description=_require(data, "description", str),
        location=_require(data, "location", str),
        start_time=_parse_datetime(_require(data, "start_time", str)),
        end_time=_parse_datetime(_require(data, "end_time", str)),
        is_recurring=is_recurring,
        recurrence=recurrence,
        attendees=[_attendee_from_dict(item) for item in attendees_raw],
        created_at=_parse_datetime(_require(data, "created_at", str)),
        updated_at=_parse_datetime(_require(data, "updated_at", str)),
        notification_settings=[_notification_from_dict(item) for item in settings_raw],
        is_all_day=_require(data, "is_all_day", bool),
        categories=[_expect(item, str, "categories[]") for item in categories_raw],
    )
    ensure_default_notification(event)
    return event


def _recurrence_to_dict(recurrence: Recurrence) -> Dict[str, Any]:
    return {
        "frequency": recurrence.frequency.value,
        "interval": recurrence.interval,
        "start_date": _format_datetime(recurrence.start_date),
        "end_date": _format_datetime(recurrence.end_date) if recurrence.end_date is not None else None,
        "minute": recurrence.minute,
        "hour": recurrence.hour,
        "day": recurrence.day,
        "week_day": WEEKDAY_NAMES[recurrence.week_day] if recurrence.week_day is not None else None,
        "month": recurrence.month,
        "year": recurrence.year,
    }


def _recurrence_from_dict(data: Any) -> Recurrence:
    if not isinstance(data, dict):
        raise ValueError("recurrence must be an object")
    end_raw = data.get("end_date")
    week_day_raw = data.get("week_day")
    return Recurrence(
        frequency=Frequency.parse(_require(data, "frequency", str)),
        interval=_require(data, "interval", int),
        start_date=_parse_datetime(_require(data, "start_date", str)),
        end_date=_parse_datetime(_expect(end_raw, str, "end_date")) if end_raw is not None else None,
        minute=_optional_int(data, "minute"),
        hour=_optional_int(data, "hour"),
        day=_optional_int(data, "day"),
        week_day=parse_weekday(week_day_raw) if week_day_raw is not None else None,
        month=_optional_int(data, "month"),
        year=_optional_int(data, "year"),
    )


def _attendee_from_dict(data: Any) -> Attendee:
    if not isinstance(data, dict):
        raise ValueError("attendee must be an object")
    return Attendee(
        attendee_id=_require(data, "attendee_id", str),
        name=_require(data, "name", str),
        email=_require(data, "email", str),
    )


def _notification_from_dict(data: Any) -> NotificationSetting:
    if not isinstance(data, dict):
        raise ValueError("notification setting must be an object")
    return NotificationSetting(
        notify_before=_require(data, "notify_before", int),
        method=NotificationMethod.parse(_require(data, "method", str)),
        has_notified=_require(data, "has_notified", bool),
    )


def _require(data: Dict[str, Any], key: str, kind: type) -> Any:
    if key not in data:
        raise ValueError(f"missing field '{key}'")
    return _expect(data[key], kind, key)


def _expect(value: Any, kind: type, name: str) -> Any:
    # bool is a subclass of int; keep the two apart
    if kind is int and isinstance(value, bool):
        raise ValueError(f"field '{name}' must be an integer")
    if not isinstance(value, kind):
        raise ValueError(f"field '{name}' must be of type {kind.__name__}")
    return value


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    return _expect(value, int, key)


def _format_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    """Parse an ISO timestamp into a naive local datetime."""

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
