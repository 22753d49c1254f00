import json
import random
import threading
import time

import pytest

from eventflux_core.errors import TransportError
from eventflux_core.telemetry.transport import ConfirmResponse

DB_TIMESTAMP = "2024-05-01T12:00:00.123456789Z"


def confirmed(index, sstr=None):
    body = json.dumps({"timestamp": DB_TIMESTAMP, "sstr": sstr or f"event_{index}"})
    return ConfirmResponse(status_code=200, body=body)


def not_found(index=None):
    return ConfirmResponse(status_code=404, body="")


class FakeTransport:
    """
    In-memory stand-in for HttpTransport.

    `confirm` decides the answer to each query: it receives the event index and
    how many queries that event has already had, and returns a ConfirmResponse
    or raises TransportError.
    """

    def __init__(self, session_id="sess-1", register_error=None, failing_submits=(),
                 submit_error=TransportError, confirm=None, jitter=0.0):
        self.session_id = session_id
        self.register_error = register_error
        self.failing_submits = set(failing_submits)
        self.submit_error = submit_error
        self.confirm = confirm or (lambda index, seen: confirmed(index))
        self.jitter = jitter
        self.closed = False

        self.lock = threading.Lock()
        self.submits = []
        self.queries = []
        self.query_counts = {}

    def _pause(self):
        if self.jitter:
            time.sleep(random.uniform(0, self.jitter))

    def submit(self, event, session_id=""):
        with self.lock:
            self.submits.append((event, session_id))
        self._pause()
        if not session_id:
            if self.register_error is not None:
                raise self.register_error
            return self.session_id
        if event.sint in self.failing_submits:
            raise self.submit_error(f"submit of event {event.sint} failed")
        return ""

    def confirm_query(self, session_id, index):
        with self.lock:
            seen = self.query_counts.get(index, 0)
            self.query_counts[index] = seen + 1
            self.queries.append((session_id, index))
        self._pause()
        return self.confirm(index, seen)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_transport():
    return FakeTransport()
