"""
Standard representation of what happened to each unit of work:
- typed error values (kind + message + optional cause)
- result values returned by the submit step and the confirmation poller
- the per-event outcome record assembled by the owning session

Results are immutable; a session builds each EventOutcome from the
results of its own tasks instead of letting tasks mutate shared records.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class ErrorKind(str, Enum):
    REGISTRATION = "registration"
    SUBMISSION = "submission"
    TRANSPORT = "transport"
    CONFIRMATION_EXHAUSTED = "confirmation_exhausted"
    ENCODING = "encoding"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class OutcomeError:
    kind: ErrorKind
    message: str
    cause: BaseException | None = None

    @classmethod
    def from_exception(cls, kind: ErrorKind, exc: BaseException) -> "OutcomeError":
        return cls(kind=kind, message=str(exc) or type(exc).__name__, cause=exc)

    def __str__(self):
        return f"{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class SubmissionResult:
    started: datetime
    ended: datetime
    error: OutcomeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ConfirmationResult:
    poll_start: datetime
    poll_end: datetime
    attempts: int = 0
    db_time: datetime | None = None
    echoed: str | None = None
    error: OutcomeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class EventOutcome:
    index: int
    submit_start: datetime | None = None
    submit_end: datetime | None = None
    db_time: datetime | None = None
    poll_start: datetime | None = None
    poll_end: datetime | None = None
    attempts: int = 0
    echoed: str | None = None
    error: OutcomeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def with_submission(self, result: SubmissionResult) -> "EventOutcome":
        return replace(self, submit_start=result.started,
                       submit_end=result.ended, error=result.error)

    def with_confirmation(self, result: ConfirmationResult) -> "EventOutcome":
        return replace(self,
                       poll_start=result.poll_start,
                       poll_end=result.poll_end,
                       attempts=result.attempts,
                       db_time=result.db_time,
                       echoed=result.echoed,
                       error=result.error)


def cancelled_outcome(index: int, reason: str = "run cancelled before submission") -> EventOutcome:
    return EventOutcome(index=index, error=OutcomeError(ErrorKind.CANCELLED, reason))
