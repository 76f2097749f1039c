"""Tests for dayplanner/recurrence.py."""
import unittest
from datetime import datetime

from dayplanner.events import Frequency, Recurrence
from dayplanner.recurrence import is_due


class TestDailyRecurrence(unittest.TestCase):
    def setUp(self):
        self.rule = Recurrence(
            frequency=Frequency.DAILY,
            interval=1,
            start_date=datetime(2024, 1, 1),
            hour=9,
            minute=0,
        )

    def test_matches_anchor_minute(self):
        self.assertTrue(is_due(self.rule, datetime(2024, 1, 5, 9, 0)))

    def test_next_minute_does_not_match(self):
        self.assertFalse(is_due(self.rule, datetime(2024, 1, 5, 9, 1)))

    def test_other_hour_does_not_match(self):
        self.assertFalse(is_due(self.rule, datetime(2024, 1, 5, 10, 0)))

    def test_before_start_date(self):
        self.assertFalse(is_due(self.rule, datetime(2023, 12, 31, 9, 0)))

    def test_end_date_is_inclusive(self):
        self.rule.end_date = datetime(2024, 1, 5, 23, 59, 59)
        self.assertTrue(is_due(self.rule, datetime(2024, 1, 5, 9, 0)))
        self.assertFalse(is_due(self.rule, datetime(2024, 1, 6, 9, 0)))

    def test_interval_skips_days(self):
        self.rule.interval = 3
        self.assertTrue(is_due(self.rule, datetime(2024, 1, 4, 9, 0)))
        self.assertFalse(is_due(self.rule, datetime(2024, 1, 5, 9, 0)))
        self.assertTrue(is_due(self.rule, datetime(2024, 1, 7, 9, 0)))

    def test_unset_hour_falls_back_to_start_date(self):
        rule = Recurrence(frequency=Frequency.DAILY, start_date=datetime(2024, 1, 1, 7, 0))
        self.assertTrue(is_due(rule, datetime(2024, 1, 3, 7, 15)))
        self.assertFalse(is_due(rule, datetime(2024, 1, 3, 8, 15)))

    def test_every_other_day_with_morning_start(self):
        rule = Recurrence(frequency=Frequency.DAILY, interval=2, start_date=datetime(2024, 1, 1, 7, 30))
        matching_days = sorted(
            {
                day
                for day in range(1, 6)
                for minute in range(0, 24 * 60, 15)
                if is_due(rule, datetime(2024, 1, day, minute // 60, minute % 60))
            }
        )
        self.assertEqual(matching_days, [1, 3, 5])

    def test_non_positive_interval_never_matches(self):
        self.rule.interval = 0
        self.assertFalse(is_due(self.rule, datetime(2024, 1, 5, 9, 0)))


class TestWeeklyRecurrence(unittest.TestCase):
    """2024-01-01 is a Monday."""

    def setUp(self):
        self.rule = Recurrence(
            frequency=Frequency.WEEKLY,
            interval=2,
            start_date=datetime(2024, 1, 1),
            week_day=0,
        )

    def test_even_weeks_match(self):
        for day in (1, 15, 29):
            with self.subTest(day=day):
                self.assertTrue(is_due(self.rule, datetime(2024, 1, day, 10, 30)))

    def test_odd_weeks_do_not_match(self):
        for day in (8, 22):
            with self.subTest(day=day):
                self.assertFalse(is_due(self.rule, datetime(2024, 1, day, 10, 30)))

    def test_other_weekdays_do_not_match(self):
        for day in (2, 3, 14, 16, 20):
            with self.subTest(day=day):
                self.assertFalse(is_due(self.rule, datetime(2024, 1, day, 10, 30)))

    def test_hour_anchor_restricts_day(self):
        self.rule.hour = 14
        self.rule.minute = 0
        self.assertTrue(is_due(self.rule, datetime(2024, 1, 15, 14, 0)))
        self.assertFalse(is_due(self.rule, datetime(2024, 1, 15, 13, 0)))

    def test_start_time_of_day_does_not_shift_weeks(self):
        self.rule.start_date = datetime(2024, 1, 1, 10, 0)
        self.assertFalse(is_due(self.rule, datetime(2024, 1, 8, 9, 0)))
        self.assertTrue(is_due(self.rule, datetime(2024, 1, 15, 9, 0)))
        self.assertTrue(is_due(self.rule, datetime(2024, 1, 15, 23, 0)))
        self.assertFalse(is_due(self.rule, datetime(2024, 1, 22, 11, 0)))

    def test_unset_week_day_uses_start_weekday(self):
        rule = Recurrence(frequency=Frequency.WEEKLY, start_date=datetime(2024, 1, 3))
        self.assertTrue(is_due(rule, datetime(2024, 1, 10, 12, 0)))
        self.assertFalse(is_due(rule, datetime(2024, 1, 11, 12, 0)))


class TestOtherFrequencies(unittest.TestCase):
    def test_hourly_uses_start_minute(self):
        rule = Recurrence(frequency=Frequency.HOURLY, start_date=datetime(2024, 1, 1, 8, 30))
        self.assertTrue(is_due(rule, datetime(2024, 1, 1, 9, 30)))
        self.assertFalse(is_due(rule, datetime(2024, 1, 1, 9, 31)))

    def test_hourly_interval(self):
        rule = Recurrence(frequency=Frequency.HOURLY, interval=2, start_date=datetime(2024, 1, 1, 8, 30))
        self.assertFalse(is_due(rule, datetime(2024, 1, 1, 9, 30)))
        self.assertTrue(is_due(rule, datetime(2024, 1, 1, 10, 30)))

    def test_hourly_interval_counts_clock_hours(self):
        rule = Recurrence(
            frequency=Frequency.HOURLY,
            interval=2,
            start_date=datetime(2024, 1, 1, 8, 45),
            minute=10,
        )
        self.assertFalse(is_due(rule, datetime(2024, 1, 1, 9, 10)))
        self.assertTrue(is_due(rule, datetime(2024, 1, 1, 10, 10)))
        self.assertFalse(is_due(rule, datetime(2024, 1, 1, 11, 10)))

    def test_monthly_day_anchor(self):
        rule = Recurrence(
            frequency=Frequency.MONTHLY,
            start_date=datetime(2024, 1, 1),
            day=15,
            hour=9,
            minute=0,
        )
        self.assertTrue(is_due(rule, datetime(2024, 1, 15, 9, 0)))
        self.assertTrue(is_due(rule, datetime(2024, 2, 15, 9, 0)))
        self.assertFalse(is_due(rule, datetime(2024, 2, 16, 9, 0)))

    def test_yearly_month_and_day(self):
        rule = Recurrence(
            frequency=Frequency.YEARLY,
            start_date=datetime(2024, 1, 1),
            month=3,
            day=10,
            hour=9,
            minute=0,
        )
        self.assertTrue(is_due(rule, datetime(2025, 3, 10, 9, 0)))
        self.assertFalse(is_due(rule, datetime(2025, 4, 10, 9, 0)))
        self.assertFalse(is_due(rule, datetime(2025, 3, 11, 9, 0)))

    def test_year_anchor(self):
        rule = Recurrence(frequency=Frequency.DAILY, start_date=datetime(2024, 1, 1, 9, 0), year=2024)
        self.assertTrue(is_due(rule, datetime(2024, 6, 1, 9, 0)))
        self.assertFalse(is_due(rule, datetime(2025, 6, 1, 9, 0)))


if __name__ == "__main__":
    unittest.main()
