"""
Encodes the confirmation retry budget.

No backoff: a non-success answer is retried immediately until the
attempt budget is spent. Transport failures are never retried.
"""
from dataclasses import dataclass

MAX_ATTEMPTS = 10


@dataclass(frozen=True)
class ConfirmationPolicy:
    max_attempts: int = MAX_ATTEMPTS

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def exhausted(self, attempts: int) -> bool:
        return attempts >= self.max_attempts
