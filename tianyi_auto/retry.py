"""Bounded retries with backoff for transient login failures."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, NamedTuple

from .config import BACKOFF_BASE, BACKOFF_MAX, DEADLINE_MARGIN, MAX_RETRIES, REQUEST_TIMEOUT
from .logging_setup import log
from .outcome import AttemptOutcome
from .schedule import to_utc

# Exponent cap for backoff doubling; 2 ** 32 s is past any sensible max_delay
_MAX_EXPONENT = 32


class RetryResult(NamedTuple):
    outcome: AttemptOutcome
    retry_count: int
    abandoned: bool = False


class RetryPolicy:
    """
    Re-run an attempt while it keeps failing with a TransientError.

    AuthRejected and UnexpectedResponse end the sequence at once: the same
    password will be refused again, and a protocol mismatch will not fix
    itself within one tick. A retry is also skipped when its backoff plus
    one attempt timeout would run past the next tick (``deadline``) by more
    than ``margin`` seconds, or when shutdown is requested during backoff.
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BACKOFF_BASE,
        max_delay: float = BACKOFF_MAX,
        exponential: bool = True,
        attempt_timeout: float = REQUEST_TIMEOUT,
        margin: float = DEADLINE_MARGIN,
        stop_event: threading.Event | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential = exponential
        self.attempt_timeout = attempt_timeout
        self.margin = margin
        self.stop_event = stop_event if stop_event is not None else threading.Event()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def delay_for(self, retry: int) -> float:
        """Backoff in seconds before retry number *retry* (1-based)."""
        if self.exponential:
            delay = self.base_delay * 2 ** min(retry - 1, _MAX_EXPONENT)
        else:
            delay = self.base_delay
        return min(delay, self.max_delay)

    def _fits_before(self, delay: float, deadline: datetime) -> bool:
        projected = to_utc(self.clock()) + timedelta(seconds=delay + self.attempt_timeout)
        return projected <= to_utc(deadline) + timedelta(seconds=self.margin)

    def run(
        self,
        attempt_fn: Callable[[], AttemptOutcome],
        deadline: datetime | None = None,
    ) -> RetryResult:
        outcome = attempt_fn()
        retries = 0
        while outcome.retryable and retries < self.max_retries:
            delay = self.delay_for(retries + 1)
            if deadline is not None and not self._fits_before(delay, deadline):
                log.warning(
                    "[RETRY] Not retrying after %s: next run at %s is too close",
                    outcome.describe(),
                    deadline.isoformat(timespec="seconds"),
                )
                return RetryResult(outcome, retries, abandoned=True)

            log.info(
                "[RETRY] %s – retry %d/%d in %.1fs",
                outcome.describe(), retries + 1, self.max_retries, delay,
            )
            if self.stop_event.wait(delay):
                log.info("[RETRY] Shutdown requested, abandoning retries")
                return RetryResult(outcome, retries, abandoned=True)

            retries += 1
            outcome = attempt_fn()
        return RetryResult(outcome, retries)
