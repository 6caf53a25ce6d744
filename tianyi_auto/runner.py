"""
The scheduling loop.

Per tick the runner moves through

    IDLE → ATTEMPTING → SUCCESS | REJECTED | EXHAUSTED → IDLE

and emits exactly one RunRecord. Nothing that happens inside a tick stops
the loop; only the shutdown event does, and only while IDLE.
"""

import enum
from datetime import datetime
from typing import Callable

from .logging_setup import emit_run_record, log
from .outcome import AttemptOutcome, RunRecord, Success, TransientError, UnexpectedResponse
from .retry import RetryPolicy, RetryResult
from .schedule import Scheduler, to_utc


class RunnerState(enum.Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    REJECTED = "rejected"
    EXHAUSTED = "exhausted"


def _final_state(outcome: AttemptOutcome) -> RunnerState:
    if isinstance(outcome, Success):
        return RunnerState.SUCCESS
    if isinstance(outcome, TransientError):
        return RunnerState.EXHAUSTED
    return RunnerState.REJECTED


class Runner:
    def __init__(
        self,
        scheduler: Scheduler,
        retry_policy: RetryPolicy,
        attempt: Callable[[], AttemptOutcome],
        sink: Callable[[RunRecord], None] = emit_run_record,
        after_success: Callable[[], None] | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.retry_policy = retry_policy
        self.attempt = attempt
        self.sink = sink
        self.after_success = after_success
        self.state = RunnerState.IDLE

    @property
    def clock(self) -> Callable[[], datetime]:
        return self.scheduler.clock

    def _transition(self, state: RunnerState) -> None:
        log.debug("Runner %s → %s", self.state.value, state.value)
        self.state = state

    def run_tick(self, scheduled_at: datetime, deadline: datetime | None = None) -> RunRecord:
        """Run one login cycle (with retries) and report it to the sink."""
        started_at = self.clock()
        self._transition(RunnerState.ATTEMPTING)
        try:
            result = self.retry_policy.run(self.attempt, deadline)
        except Exception as exc:
            log.exception("Login cycle crashed")
            result = RetryResult(UnexpectedResponse(f"{type(exc).__name__}: {exc}"), 0)

        self._transition(_final_state(result.outcome))
        record = RunRecord(
            scheduled_at=scheduled_at,
            started_at=started_at,
            outcome=result.outcome,
            retry_count=result.retry_count,
        )
        try:
            self.sink(record)
        except Exception:
            log.exception("Failed to emit run record")

        if self.state is RunnerState.SUCCESS and self.after_success is not None:
            try:
                self.after_success()
            except Exception as exc:
                log.error("Post-login action failed: %s", exc)
            else:
                log.info("Post-login action completed.")

        self._transition(RunnerState.IDLE)
        return record

    def run_forever(self, run_now: bool = False) -> None:
        """Loop over scheduled ticks until the shutdown event is set."""
        tz = self.scheduler.schedule.tz
        if run_now:
            log.info("Running immediately due to --run-now")
            now = self.clock()
            self.run_tick(now.astimezone(tz), deadline=self.scheduler.next_due(now))

        while not self.scheduler.stop_event.is_set():
            now = self.clock()
            due = self.scheduler.next_due(now)
            wait = (to_utc(due) - to_utc(now)).total_seconds()
            log.info(
                "Next run at %s (in %.1f minutes)",
                due.isoformat(timespec="seconds"), wait / 60.0,
            )
            if not self.scheduler.wait_until(due):
                break
            self.run_tick(due, deadline=self.scheduler.next_due(due))

        log.info("Shutdown requested, scheduler stopped.")
