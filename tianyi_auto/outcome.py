"""
Result types for a single login attempt and for one scheduled run.

Exactly one AttemptOutcome variant describes each attempt:

* ``Success``            – the router accepted the login
* ``AuthRejected``       – credentials or device state refused; terminal for the tick
* ``TransientError``     – network-level failure; the only retryable kind
* ``UnexpectedResponse`` – status/body the strategy does not understand; terminal
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AttemptOutcome:
    kind = "outcome"
    retryable = False

    def describe(self) -> str:
        return self.kind


@dataclass(frozen=True)
class Success(AttemptOutcome):
    detail: str = ""
    kind = "success"

    def describe(self) -> str:
        return f"success ({self.detail})" if self.detail else "success"


@dataclass(frozen=True)
class AuthRejected(AttemptOutcome):
    reason: str
    kind = "auth_rejected"

    def describe(self) -> str:
        return f"login rejected: {self.reason}"


@dataclass(frozen=True)
class TransientError(AttemptOutcome):
    cause: str
    kind = "transient_error"
    retryable = True

    def describe(self) -> str:
        return f"network error: {self.cause}"


@dataclass(frozen=True)
class UnexpectedResponse(AttemptOutcome):
    details: str
    kind = "unexpected_response"

    def describe(self) -> str:
        return f"unexpected response: {self.details}"


@dataclass(frozen=True)
class RunRecord:
    """What happened on one tick. Logged, never stored."""

    scheduled_at: datetime
    started_at: datetime
    outcome: AttemptOutcome
    retry_count: int

    def as_dict(self) -> dict:
        return {
            "scheduled_at": self.scheduled_at.isoformat(),
            "started_at": self.started_at.isoformat(),
            "outcome": self.outcome.kind,
            "detail": self.outcome.describe(),
            "retry_count": self.retry_count,
        }
