"""
Run-wide control state shared by every session of one orchestrator run:
- a cancellation token any thread may trip
- an optional wall-clock deadline

Sessions and pollers only read it; nothing else is shared between sessions.
"""
import threading
import time


class RunState:
    def __init__(self, deadline_s: float | None = None, clock=time.monotonic):
        self._cancelled = threading.Event()
        self._clock = clock
        self.deadline = clock() + deadline_s if deadline_s is not None else None

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def should_stop(self) -> bool:
        return self.cancelled or self.expired()

    def stop_reason(self) -> str:
        if self.cancelled:
            return "run cancelled"
        return "run deadline exceeded"
