"""Tests for dayplanner/events.py."""
import unittest
from datetime import datetime, timezone

from dayplanner.events import (
    Attendee,
    Event,
    Frequency,
    NotificationMethod,
    NotificationSetting,
    Recurrence,
    SearchField,
    ensure_default_notification,
    event_from_dict,
    event_to_dict,
    parse_weekday,
)

OLD = datetime(2000, 1, 1)


def _sample_event():
    return Event.create(
        "Team sync",
        datetime(2024, 1, 1, 14, 0),
        description="Weekly planning",
        location="Room 4",
        recurrence=Recurrence(
            frequency=Frequency.WEEKLY,
            interval=2,
            start_date=datetime(2024, 1, 1),
            end_date=datetime(2024, 6, 30, 23, 59, 59),
            hour=14,
            minute=0,
            week_day=0,
        ),
        attendees=[Attendee(attendee_id="0", name="Ada", email="ada@example.com")],
        notification_settings=[
            NotificationSetting(notify_before=10),
            NotificationSetting(notify_before=60, method=NotificationMethod.EMAIL, has_notified=True),
        ],
        categories=["Work"],
        now=datetime(2023, 12, 24, 8, 30),
    )


class TestEventCreate(unittest.TestCase):
    def test_defaults(self):
        event = Event.create("Lunch", datetime(2024, 1, 1, 12, 0), now=OLD)
        self.assertEqual(event.end_time, datetime(2024, 1, 1, 13, 0))
        self.assertFalse(event.is_recurring)
        self.assertIsNone(event.recurrence)
        self.assertEqual(event.created_at, OLD)
        self.assertEqual(event.updated_at, OLD)
        self.assertEqual(event.event_id, "")

    def test_default_notification_injected(self):
        event = Event.create("Lunch", datetime(2024, 1, 1, 12, 0))
        self.assertEqual(len(event.notification_settings), 1)
        setting = event.notification_settings[0]
        self.assertEqual(setting.notify_before, 0)
        self.assertIs(setting.method, NotificationMethod.PUSH)
        self.assertFalse(setting.has_notified)

    def test_recurrence_marks_recurring(self):
        self.assertTrue(_sample_event().is_recurring)


class TestEventUpdaters(unittest.TestCase):
    def setUp(self):
        self.event = Event.create("Lunch", datetime(2024, 1, 1, 12, 0), now=OLD)

    def test_updaters_bump_updated_at(self):
        updates = [
            lambda e: e.update_title("Dinner"),
            lambda e: e.update_description("with friends"),
            lambda e: e.update_location("Downtown"),
            lambda e: e.update_start_time(datetime(2024, 1, 1, 19, 0)),
            lambda e: e.update_end_time(datetime(2024, 1, 1, 21, 0)),
            lambda e: e.update_is_recurring(False),
            lambda e: e.update_recurrence(None),
            lambda e: e.add_attendee(Attendee(attendee_id="1", name="Bo", email="bo@example.com")),
            lambda e: e.add_notification(NotificationSetting(notify_before=5)),
        ]
        for update in updates:
            self.event.updated_at = OLD
            update(self.event)
            self.assertGreater(self.event.updated_at, OLD)
        self.assertEqual(self.event.title, "Dinner")
        self.assertEqual(self.event.location, "Downtown")
        self.assertEqual(len(self.event.notification_settings), 2)

    def test_remove_out_of_range_returns_none(self):
        self.assertIsNone(self.event.remove_attendee(0))
        self.assertIsNone(self.event.remove_notification(5))
        self.assertEqual(self.event.updated_at, OLD)

    def test_remove_notification(self):
        removed = self.event.remove_notification(0)
        self.assertEqual(removed.notify_before, 0)
        self.assertEqual(self.event.notification_settings, [])
        self.assertGreater(self.event.updated_at, OLD)

    def test_ensure_default_notification(self):
        self.event.remove_notification(0)
        self.assertTrue(ensure_default_notification(self.event))
        self.assertEqual(self.event.notification_settings, [NotificationSetting()])
        self.assertFalse(ensure_default_notification(self.event))
        self.assertEqual(len(self.event.notification_settings), 1)

    def test_update_categories(self):
        self.event.update_categories(["Work", "Health"])
        self.assertEqual(self.event.categories, ["Work", "Health"])
        self.assertGreater(self.event.updated_at, OLD)


class TestEventSearch(unittest.TestCase):
    def test_fields(self):
        event = _sample_event()
        self.assertTrue(event.matches("sync", SearchField.TITLE))
        self.assertTrue(event.matches("PLANNING", SearchField.DESCRIPTION))
        self.assertTrue(event.matches("room", SearchField.LOCATION))
        self.assertTrue(event.matches("work", SearchField.CATEGORY))
        self.assertFalse(event.matches("room", SearchField.TITLE))
        self.assertTrue(event.matches("room"))
        self.assertFalse(event.matches("holiday"))


class TestEventCodec(unittest.TestCase):
    def test_round_trip(self):
        event = _sample_event()
        event.event_id = "#3"
        self.assertEqual(event_from_dict(event_to_dict(event)), event)

    def test_serialized_names(self):
        data = event_to_dict(_sample_event())
        self.assertEqual(data["recurrence"]["frequency"], "Weekly")
        self.assertEqual(data["recurrence"]["week_day"], "Mon")
        self.assertEqual(data["notification_settings"][1]["method"], "Email")
        self.assertEqual(data["start_time"], "2024-01-01T14:00:00")

    def test_missing_field_is_rejected(self):
        data = event_to_dict(_sample_event())
        del data["title"]
        with self.assertRaises(ValueError):
            event_from_dict(data)

    def test_wrong_type_is_rejected(self):
        data = event_to_dict(_sample_event())
        data["is_all_day"] = "yes"
        with self.assertRaises(ValueError):
            event_from_dict(data)

    def test_unknown_frequency_is_rejected(self):
        data = event_to_dict(_sample_event())
        data["recurrence"]["frequency"] = "Fortnightly"
        with self.assertRaises(ValueError):
            event_from_dict(data)

    def test_recurring_flag_must_match_rule(self):
        recurring = event_to_dict(_sample_event())
        recurring["recurrence"] = None
        one_time = event_to_dict(Event.create("Lunch", datetime(2024, 1, 1, 12, 0), now=OLD))
        one_time["recurrence"] = event_to_dict(_sample_event())["recurrence"]
        for data in (recurring, one_time):
            with self.subTest(is_recurring=data["is_recurring"]):
                with self.assertRaises(ValueError):
                    event_from_dict(data)

    def test_empty_notifications_get_default(self):
        data = event_to_dict(_sample_event())
        data["notification_settings"] = []
        self.assertEqual(event_from_dict(data).notification_settings, [NotificationSetting()])

    def test_aware_timestamps_become_local(self):
        data = event_to_dict(_sample_event())
        data["start_time"] = "2024-01-01T10:00:00+00:00"
        expected = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        self.assertEqual(event_from_dict(data).start_time, expected)

    def test_not_an_object(self):
        with self.assertRaises(ValueError):
            event_from_dict(["title"])


class TestParseWeekday(unittest.TestCase):
    def test_accepted_forms(self):
        self.assertEqual(parse_weekday("Monday"), 0)
        self.assertEqual(parse_weekday("tue"), 1)
        self.assertEqual(parse_weekday("Sun"), 6)
        self.assertEqual(parse_weekday(3), 3)
        self.assertEqual(parse_weekday("4"), 4)

    def test_rejected_forms(self):
        for value in ("mo", "someday", 7, -1, True, None):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_weekday(value)


class TestSummary(unittest.TestCase):
    def test_summary_mentions_recurrence(self):
        event = _sample_event()
        event.event_id = "#0"
        summary = event.summary()
        self.assertIn("#0 Team sync", summary)
        self.assertIn("every 2 weekly", summary)
        self.assertIn("@ Room 4", summary)
        self.assertTrue(Event.create("x", datetime(2024, 1, 1), is_all_day=True).summary().endswith("2024-01-01"))


if __name__ == "__main__":
    unittest.main()
