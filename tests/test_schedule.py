"""
Tests for schedule parsing, next-run computation and the sleeping Scheduler.

Every test pins both the timezone and "now"; nothing reads the host clock.
"""

import threading
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from tianyi_auto.config import ConfigError
from tianyi_auto.schedule import (
    CronSchedule,
    IntervalSchedule,
    ScheduleError,
    Scheduler,
    min_interval,
    parse_schedule,
)

SHANGHAI = ZoneInfo("Asia/Shanghai")
NEW_YORK = ZoneInfo("America/New_York")


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start.astimezone(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeEvent(threading.Event):
    """Event whose wait() moves the fake clock forward instead of sleeping."""

    def __init__(self, clock: FakeClock):
        super().__init__()
        self.clock = clock
        self.waits = []

    def wait(self, timeout=None):
        if self.is_set():
            return True
        self.waits.append(timeout)
        self.clock.advance(timeout or 0)
        return self.is_set()


class TestParseSchedule(unittest.TestCase):
    def test_every_n_minutes(self):
        schedule = parse_schedule("every 15 minutes", SHANGHAI)
        self.assertIsInstance(schedule, IntervalSchedule)
        self.assertEqual(schedule.every, timedelta(minutes=15))

    def test_every_minute_without_count(self):
        schedule = parse_schedule("every minute", SHANGHAI)
        self.assertEqual(schedule.every, timedelta(minutes=1))

    def test_interval_is_case_insensitive(self):
        schedule = parse_schedule("Every 2 Hours", SHANGHAI)
        self.assertEqual(schedule.every, timedelta(hours=2))

    def test_cron_expression(self):
        schedule = parse_schedule("0 4 * * Mon", SHANGHAI)
        self.assertIsInstance(schedule, CronSchedule)
        self.assertEqual(schedule.expression, "0 4 * * Mon")
        self.assertIs(schedule.tz, SHANGHAI)

    def test_rejects_garbage(self):
        for text in ("", "   ", "sometimes", "every blue moon", "* * *",
                     "61 * * * *", "0 4 * * Mon extra"):
            with self.subTest(text=text):
                with self.assertRaises(ConfigError):
                    parse_schedule(text, SHANGHAI)

    def test_rejects_zero_interval(self):
        with self.assertRaises(ScheduleError):
            parse_schedule("every 0 minutes", SHANGHAI)

    def test_rejects_cron_that_never_fires(self):
        with self.assertRaises(ConfigError):
            parse_schedule("0 0 30 2 *", SHANGHAI)

    def test_min_interval(self):
        self.assertEqual(
            min_interval(parse_schedule("every 10 minutes", SHANGHAI)),
            timedelta(minutes=10),
        )
        self.assertEqual(
            min_interval(parse_schedule("0 4 * * Mon", SHANGHAI)),
            timedelta(minutes=1),
        )


class TestIntervalNextDue(unittest.TestCase):
    def test_aligned_to_anchor(self):
        schedule = parse_schedule("every 15 minutes", SHANGHAI)
        now = datetime(2026, 3, 10, 10, 7, 30, tzinfo=timezone.utc)
        self.assertEqual(
            schedule.next_due(now),
            datetime(2026, 3, 10, 10, 15, tzinfo=timezone.utc),
        )

    def test_exact_boundary_moves_to_next_slot(self):
        schedule = parse_schedule("every 15 minutes", SHANGHAI)
        now = datetime(2026, 3, 10, 10, 15, tzinfo=timezone.utc)
        self.assertEqual(
            schedule.next_due(now),
            datetime(2026, 3, 10, 10, 30, tzinfo=timezone.utc),
        )

    def test_custom_anchor(self):
        anchor = datetime(2026, 1, 1, 0, 7, tzinfo=timezone.utc)
        schedule = parse_schedule("every hour", SHANGHAI, anchor=anchor)
        now = datetime(2026, 1, 1, 5, 0, tzinfo=timezone.utc)
        self.assertEqual(
            schedule.next_due(now),
            datetime(2026, 1, 1, 5, 7, tzinfo=timezone.utc),
        )

    def test_result_is_in_schedule_timezone(self):
        schedule = parse_schedule("every 15 minutes", SHANGHAI)
        due = schedule.next_due(datetime(2026, 3, 10, 10, 7, tzinfo=timezone.utc))
        self.assertEqual(due.utcoffset(), timedelta(hours=8))

    def test_interval_is_not_shifted_by_dst(self):
        schedule = parse_schedule("every hour", NEW_YORK)
        # 2026-03-08 02:00 local does not exist in New York
        now = datetime(2026, 3, 8, 6, 30, tzinfo=timezone.utc)  # 01:30 EST
        due = schedule.next_due(now)
        self.assertEqual(due - now, timedelta(minutes=30))
        self.assertEqual(due.astimezone(timezone.utc), datetime(2026, 3, 8, 7, 0, tzinfo=timezone.utc))


class TestCronNextDue(unittest.TestCase):
    def test_next_monday_four_am_local(self):
        schedule = parse_schedule("0 4 * * Mon", SHANGHAI)
        now = datetime(2026, 10, 18, 12, 0, tzinfo=SHANGHAI)  # Sunday
        self.assertEqual(
            schedule.next_due(now),
            datetime(2026, 10, 19, 4, 0, tzinfo=SHANGHAI),
        )

    def test_fields_evaluated_in_local_zone_not_utc(self):
        schedule = parse_schedule("0 4 * * Mon", SHANGHAI)
        # Sunday 19:30 UTC is already Monday 03:30 in Shanghai
        now = datetime(2026, 10, 18, 19, 30, tzinfo=timezone.utc)
        due = schedule.next_due(now)
        self.assertEqual(due, datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc))
        self.assertEqual((due.hour, due.weekday()), (4, 0))

    def test_exactly_due_returns_following_occurrence(self):
        schedule = parse_schedule("0 4 * * Mon", SHANGHAI)
        now = datetime(2026, 10, 19, 4, 0, tzinfo=SHANGHAI)
        self.assertEqual(
            schedule.next_due(now),
            datetime(2026, 10, 26, 4, 0, tzinfo=SHANGHAI),
        )

    def test_sub_second_after_due_is_not_returned(self):
        schedule = parse_schedule("0 4 * * Mon", SHANGHAI)
        now = datetime(2026, 10, 19, 4, 0, 0, 500000, tzinfo=SHANGHAI)
        self.assertGreater(schedule.next_due(now), now)

    def test_multiple_hours_pick_earliest(self):
        schedule = parse_schedule("0 3,9,21 * * *", SHANGHAI)
        now = datetime(2026, 10, 18, 10, 0, tzinfo=SHANGHAI)
        self.assertEqual(
            schedule.next_due(now),
            datetime(2026, 10, 18, 21, 0, tzinfo=SHANGHAI),
        )

    def test_repeated_wall_time_fires_once_when_clocks_fall_back(self):
        schedule = parse_schedule("30 1 * * *", NEW_YORK)
        first = schedule.next_due(datetime(2026, 11, 1, 0, 0, tzinfo=NEW_YORK))
        # 01:30 EDT; 01:30 EST an hour later is the same wall time again
        self.assertEqual(first, datetime(2026, 11, 1, 5, 30, tzinfo=timezone.utc))
        self.assertEqual(
            schedule.next_due(first),
            datetime(2026, 11, 2, 6, 30, tzinfo=timezone.utc),
        )

    def test_candidate_not_after_now_is_skipped(self):
        schedule = CronSchedule("0 4 * * *", SHANGHAI)
        now = datetime(2026, 10, 19, 4, 0, tzinfo=SHANGHAI)
        later = datetime(2026, 10, 20, 4, 0, tzinfo=SHANGHAI)
        with patch("tianyi_auto.schedule.croniter") as fake_croniter:
            fake_croniter.return_value.get_next.side_effect = [now, now, later]
            self.assertEqual(schedule.next_due(now), later)

    def test_gives_up_when_no_candidate_is_after_now(self):
        schedule = CronSchedule("0 4 * * *", SHANGHAI)
        now = datetime(2026, 10, 19, 4, 0, tzinfo=SHANGHAI)
        with patch("tianyi_auto.schedule.croniter") as fake_croniter:
            fake_croniter.return_value.get_next.return_value = now
            with self.assertRaises(ScheduleError):
                schedule.next_due(now)


class TestNextDueProperties(unittest.TestCase):
    SPECS = (
        ("every 1 minute", SHANGHAI),
        ("every 7 minutes", NEW_YORK),
        ("every 3 hours", NEW_YORK),
        ("0 4 * * Mon", SHANGHAI),
        ("*/20 * * * *", NEW_YORK),
    )
    STARTS = (
        datetime(2026, 3, 7, 12, 0, tzinfo=timezone.utc),
        datetime(2026, 10, 31, 12, 0, tzinfo=timezone.utc),
        datetime(2026, 10, 18, 20, 0, 0, 123456, tzinfo=timezone.utc),
    )

    def test_next_due_is_strictly_after_now(self):
        for text, tz in self.SPECS:
            schedule = parse_schedule(text, tz)
            for start in self.STARTS:
                with self.subTest(schedule=text, start=start):
                    self.assertGreater(schedule.next_due(start), start)

    def test_repeated_application_is_strictly_increasing(self):
        for text, tz in self.SPECS:
            schedule = parse_schedule(text, tz)
            for start in self.STARTS:
                with self.subTest(schedule=text, start=start):
                    previous = start
                    for _ in range(40):
                        due = schedule.next_due(previous)
                        self.assertGreater(due, previous)
                        previous = due


class TestScheduler(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock(datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc))
        self.event = FakeEvent(self.clock)
        self.scheduler = Scheduler(
            parse_schedule("every 5 minutes", SHANGHAI),
            stop_event=self.event,
            clock=self.clock,
        )

    def test_next_due_uses_clock(self):
        self.assertEqual(
            self.scheduler.next_due(),
            datetime(2026, 10, 18, 10, 5, tzinfo=timezone.utc),
        )

    def test_wait_until_sleeps_in_chunks(self):
        due = datetime(2026, 10, 18, 10, 2, 30, tzinfo=timezone.utc)
        self.assertTrue(self.scheduler.wait_until(due))
        self.assertEqual(self.event.waits, [60.0, 60.0, 30.0])
        self.assertEqual(self.clock(), due)

    def test_wait_until_past_instant_returns_at_once(self):
        due = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
        self.assertTrue(self.scheduler.wait_until(due))
        self.assertEqual(self.event.waits, [])

    def test_wait_until_compares_across_dst(self):
        clock = FakeClock(datetime(2026, 11, 1, 1, 30, tzinfo=NEW_YORK))  # EDT
        event = FakeEvent(clock)
        scheduler = Scheduler(
            parse_schedule("every hour", NEW_YORK), stop_event=event, clock=clock,
        )
        # Same wall time an hour later, after falling back to EST
        due = datetime(2026, 11, 1, 1, 30, fold=1, tzinfo=NEW_YORK)
        self.assertTrue(scheduler.wait_until(due))
        self.assertEqual(sum(event.waits), 3600)

    def test_shutdown_before_wait(self):
        self.event.set()
        due = datetime(2026, 10, 18, 10, 5, tzinfo=timezone.utc)
        self.assertFalse(self.scheduler.wait_until(due))
        self.assertEqual(self.clock().minute, 0)

    def test_shutdown_during_wait(self):
        clock = self.clock
        event = self.event

        def interrupted_wait(timeout=None):
            clock.advance(1)
            threading.Event.set(event)
            return True

        event.wait = interrupted_wait
        due = datetime(2026, 10, 18, 10, 5, tzinfo=timezone.utc)
        self.assertFalse(self.scheduler.wait_until(due))


if __name__ == "__main__":
    unittest.main()
