"""
When to log in next.

Two schedule forms are understood:

* fixed interval – ``every 15 minutes``, ``every hour``, ``every 2 days``
* cron           – five fields ``minute hour day-of-month month day-of-week``
                   (``0 4 * * Mon``), evaluated in the configured local zone

All comparisons and arithmetic are done in UTC. Two aware datetimes that
share a ZoneInfo compare and subtract by wall time in Python, which is
wrong across a DST change.
"""

import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable

from croniter import CroniterBadCronError, CroniterBadDateError, croniter

from .config import ConfigError
from .logging_setup import log

_INTERVAL_RE = re.compile(
    r"^every\s+(?:(\d+)\s*)?(second|minute|hour|day)s?$", re.IGNORECASE
)
_UNITS = {
    "second": timedelta(seconds=1),
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
}
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Cron candidates to examine before giving up on finding one after "now"
_MAX_CANDIDATES = 16
# Candidates inside a repeated (fall-back) hour; at most one per minute
_MAX_REPEATED_SKIPS = 24 * 60
# Longest single sleep; the clock is re-read after each chunk
_MAX_SLEEP_CHUNK = 60.0


class ScheduleError(ConfigError):
    """The schedule cannot produce a future run time."""


def to_utc(value: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Return *value* as an aware UTC datetime; naive values are read in *tz*."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class IntervalSchedule:
    """Fires every ``every`` starting from ``anchor`` (Unix epoch by default)."""

    every: timedelta
    tz: tzinfo
    anchor: datetime = _EPOCH

    def next_due(self, now: datetime) -> datetime:
        now_utc = to_utc(now, self.tz)
        anchor = to_utc(self.anchor, self.tz)
        steps = (now_utc - anchor) // self.every + 1
        return (anchor + steps * self.every).astimezone(self.tz)

    def __str__(self) -> str:
        return f"every {self.every}"


@dataclass(frozen=True)
class CronSchedule:
    expression: str
    tz: tzinfo

    def next_due(self, now: datetime) -> datetime:
        now_utc = to_utc(now, self.tz)
        iterator = croniter(self.expression, now_utc.astimezone(self.tz))
        rejected = 0
        for _ in range(_MAX_CANDIDATES + _MAX_REPEATED_SKIPS):
            candidate = iterator.get_next(datetime)
            candidate_utc = to_utc(candidate, self.tz)
            local = candidate_utc.astimezone(self.tz)
            if local.fold:
                # Second pass through a wall time repeated when clocks fall
                # back; that wall time already fired on the first pass.
                log.debug("Skipping repeated wall time %s", local.isoformat())
                continue
            if candidate_utc > now_utc:
                return local
            # Sub-minute "now" or a candidate behind it: step past it
            log.debug("Skipping cron candidate %s (not after %s)", candidate, now)
            rejected += 1
            if rejected >= _MAX_CANDIDATES:
                break
        raise ScheduleError(
            f"cron {self.expression!r} produced no time after {now.isoformat()}"
        )

    def __str__(self) -> str:
        return f"cron '{self.expression}'"


def parse_schedule(
    text: str, tz: tzinfo, anchor: datetime | None = None
) -> "IntervalSchedule | CronSchedule":
    """
    Parse a schedule description.

    Raises ScheduleError (a ConfigError) for anything that is neither an
    ``every ...`` interval nor a five-field cron expression, and for cron
    expressions that never fire (e.g. 30 February).
    """
    text = (text or "").strip()
    if not text:
        raise ScheduleError("schedule is empty")

    m = _INTERVAL_RE.match(text)
    if m:
        count = int(m.group(1) or 1)
        if count <= 0:
            raise ScheduleError(f"interval must be positive: {text!r}")
        every = count * _UNITS[m.group(2).lower()]
        if anchor is None:
            return IntervalSchedule(every=every, tz=tz)
        return IntervalSchedule(every=every, tz=tz, anchor=anchor)

    if len(text.split()) != 5 or not croniter.is_valid(text):
        raise ScheduleError(
            f"unrecognised schedule {text!r} "
            "(expected 'every N minutes' or a 5-field cron expression)"
        )
    schedule = CronSchedule(expression=text, tz=tz)
    try:
        schedule.next_due(datetime.now(timezone.utc))
    except (CroniterBadCronError, CroniterBadDateError) as exc:
        raise ScheduleError(f"cron {text!r} never fires: {exc}") from exc
    return schedule


def min_interval(schedule) -> timedelta:
    """Smallest possible gap between two consecutive runs."""
    if isinstance(schedule, IntervalSchedule):
        return schedule.every
    # Five-field cron has minute resolution
    return timedelta(minutes=1)


class Scheduler:
    """
    Computes run times and sleeps until they arrive.

    Sleeping happens on ``stop_event``; setting it wakes ``wait_until``
    immediately and makes it report that the process is shutting down.
    """

    def __init__(
        self,
        schedule,
        stop_event: threading.Event | None = None,
        clock: Callable[[], datetime] | None = None,
        max_sleep: float = _MAX_SLEEP_CHUNK,
    ) -> None:
        self.schedule = schedule
        self.stop_event = stop_event if stop_event is not None else threading.Event()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.max_sleep = max_sleep

    def now(self) -> datetime:
        return self.clock()

    def next_due(self, now: datetime | None = None) -> datetime:
        return self.schedule.next_due(now if now is not None else self.clock())

    def wait_until(self, when: datetime) -> bool:
        """Block until *when*. Returns False if shutdown was requested first."""
        target = to_utc(when, self.schedule.tz)
        while not self.stop_event.is_set():
            remaining = (target - to_utc(self.clock())).total_seconds()
            if remaining <= 0:
                return True
            if self.stop_event.wait(min(remaining, self.max_sleep)):
                break
        return False
