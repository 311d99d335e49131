from __future__ import annotations

from datetime import date, datetime, timezone
import unittest

from tasknest.due import add_months, due_countdown, resolve_due_date
from tasknest.errors import InvalidDate
from tasknest.model import TaskStatus


TODAY = date(2026, 1, 31)


class TestResolveDueDate(unittest.TestCase):
    def test_absolute_date(self) -> None:
        self.assertEqual(date(2026, 4, 2), resolve_due_date("2026-04-02", now=TODAY))

    def test_absolute_date_is_taken_literally(self) -> None:
        self.assertEqual(date(2025, 8, 19), resolve_due_date(" 2025-08-19 ", now=TODAY))

    def test_absolute_date_in_the_past_is_allowed(self) -> None:
        self.assertEqual(date(2020, 1, 1), resolve_due_date("2020-01-01", now=TODAY))

    def test_relative_forms(self) -> None:
        self.assertEqual(date(2026, 2, 1), resolve_due_date("1 day", now=TODAY))
        self.assertEqual(date(2026, 2, 3), resolve_due_date("3 DAYS", now=TODAY))
        self.assertEqual(date(2026, 2, 14), resolve_due_date("2 weeks", now=TODAY))
        self.assertEqual(date(2026, 2, 28), resolve_due_date("1 month", now=TODAY))
        self.assertEqual(date(2026, 3, 31), resolve_due_date("2  months", now=TODAY))

    def test_keywords(self) -> None:
        self.assertEqual(TODAY, resolve_due_date("today", now=TODAY))
        self.assertEqual(date(2026, 2, 1), resolve_due_date(" Tomorrow ", now=TODAY))

    def test_datetime_reference_uses_its_date(self) -> None:
        now = datetime(2026, 1, 31, 23, 59, tzinfo=timezone.utc)
        self.assertEqual(date(2026, 2, 1), resolve_due_date("1 day", now=now))

    def test_rejections(self) -> None:
        for raw in ("", "   ", "0 days", "2026-02-30", "2026-2-3", "next week", "3 fortnights", "-1 days"):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidDate):
                    resolve_due_date(raw, now=TODAY)

    def test_add_months_clamps_day(self) -> None:
        self.assertEqual(date(2024, 2, 29), add_months(date(2024, 1, 31), 1))
        self.assertEqual(date(2027, 1, 15), add_months(date(2026, 12, 15), 1))


class TestDueCountdown(unittest.TestCase):
    def test_tiers(self) -> None:
        cases = [
            (date(2026, 1, 29), "overdue", "2 days over"),
            (date(2026, 1, 31), "today", "due today"),
            (date(2026, 2, 1), "tomorrow", "1 day left"),
            (date(2026, 2, 3), "soon", "3 days left"),
            (date(2026, 2, 5), "week", "5 days left"),
            (date(2026, 3, 1), "later", "29 days left"),
        ]
        for due, tier, label in cases:
            with self.subTest(due=due):
                countdown = due_countdown(due, TODAY, TaskStatus.TODO)
                assert countdown is not None
                self.assertEqual(tier, countdown.tier)
                self.assertEqual(label, countdown.label)

    def test_closed_tasks_and_missing_dates_have_no_countdown(self) -> None:
        self.assertIsNone(due_countdown(date(2026, 2, 1), TODAY, TaskStatus.COMPLETED))
        self.assertIsNone(due_countdown(date(2026, 2, 1), TODAY, TaskStatus.DEPRECATED))
        self.assertIsNone(due_countdown(None, TODAY, TaskStatus.TODO))

    def test_soon_threshold_is_configurable(self) -> None:
        countdown = due_countdown(date(2026, 2, 5), TODAY, TaskStatus.IN_PROGRESS, soon_days=5)
        assert countdown is not None
        self.assertEqual("soon", countdown.tier)


if __name__ == "__main__":
    unittest.main()
