import threading

import pytest

from conftest import FakeTransport, confirmed, not_found
from eventflux_core.agent.session import Session
from eventflux_core.agent.state import RunState
from eventflux_core.errors import EncodingError, TransportError
from eventflux_core.models.event import SessionConfig
from eventflux_core.models.outcome import ErrorKind


def run_session(transport, event_count, **kwargs):
    return Session(0, SessionConfig(event_count), transport, **kwargs).run()


@pytest.mark.parametrize("event_count", [0, 1, 25])
def test_outcome_count_matches_config(event_count):
    transport = FakeTransport()
    session = run_session(transport, event_count)

    assert session.error is None
    assert session.session_id == "sess-1"
    assert len(session.outcomes) == event_count
    assert [o.index for o in session.outcomes] == list(range(event_count))
    assert all(o.ok and o.attempts == 1 for o in session.outcomes)


def test_registration_is_untagged_empty_event(fake_transport):
    run_session(fake_transport, 2)

    event, session_id = fake_transport.submits[0]
    assert session_id == ""
    assert (event.type, event.sint, event.lint, event.sstr, event.lstr) == ("", 0, 0, "", "")


def test_events_submitted_in_index_order_with_session_tag(fake_transport):
    run_session(fake_transport, 5)

    tagged = fake_transport.submits[1:]
    assert [e.sint for e, _ in tagged] == [0, 1, 2, 3, 4]
    assert [e.sstr for e, _ in tagged] == [f"event_{i}" for i in range(5)]
    assert all(e.type == "event" and e.lint == 0 and e.lstr == "" for e, _ in tagged)
    assert {sid for _, sid in tagged} == {"sess-1"}


def test_registration_failure_produces_no_events():
    transport = FakeTransport(register_error=TransportError("connection refused"))
    session = run_session(transport, 10)

    assert session.error.kind is ErrorKind.REGISTRATION
    assert "connection refused" in session.error.message
    assert session.outcomes == []
    assert session.session_id == ""
    assert len(transport.submits) == 1
    assert transport.queries == []


def test_registration_with_unreadable_body_fails():
    transport = FakeTransport(register_error=EncodingError("invalid submit response"))
    session = run_session(transport, 3)

    assert session.error.kind is ErrorKind.REGISTRATION
    assert session.outcomes == []


def test_registration_without_session_id_fails():
    transport = FakeTransport(session_id="")
    session = run_session(transport, 3)

    assert session.error.kind is ErrorKind.REGISTRATION
    assert session.outcomes == []
    assert len(transport.submits) == 1


def test_failed_submission_is_never_polled():
    transport = FakeTransport(failing_submits={1, 3})
    session = run_session(transport, 5)

    failed = [o for o in session.outcomes if not o.ok]
    assert [o.index for o in failed] == [1, 3]
    for outcome in failed:
        assert outcome.error.kind is ErrorKind.SUBMISSION
        assert outcome.poll_start is None and outcome.poll_end is None
        assert outcome.attempts == 0
        assert outcome.submit_start <= outcome.submit_end
    assert sorted(index for _, index in transport.queries) == [0, 2, 4]
    assert session.failed_events == 2
    assert not session.ok


def test_timings_are_ordered(fake_transport):
    session = run_session(fake_transport, 10)

    for outcome in session.outcomes:
        assert outcome.submit_start <= outcome.submit_end
        assert outcome.submit_end <= outcome.poll_start <= outcome.poll_end
        assert outcome.db_time is not None


def test_mixed_confirmation_outcomes():
    def answer(index, seen):
        if index == 0:
            return confirmed(index)
        if index == 1:
            return not_found()
        raise TransportError("timed out")

    session = run_session(FakeTransport(confirm=answer), 3)
    first, second, third = session.outcomes

    assert first.ok and first.attempts == 1
    assert second.error.kind is ErrorKind.CONFIRMATION_EXHAUSTED and second.attempts == 10
    assert third.error.kind is ErrorKind.TRANSPORT and third.attempts == 0


def test_submission_continues_while_confirmation_in_flight():
    last_submitted = threading.Event()

    class Transport(FakeTransport):
        def submit(self, event, session_id=""):
            result = super().submit(event, session_id)
            if session_id and event.sint == 4:
                last_submitted.set()
            return result

    def answer(index, seen):
        if index == 0:
            # Blocks until every later event has been submitted
            assert last_submitted.wait(timeout=5)
        return confirmed(index)

    session = run_session(Transport(confirm=answer), 5)

    assert last_submitted.is_set()
    assert all(o.ok for o in session.outcomes)


def test_cancelled_before_run():
    state = RunState()
    state.cancel()
    transport = FakeTransport()
    session = run_session(transport, 4, state=state)

    assert session.error.kind is ErrorKind.REGISTRATION
    assert session.error.message == "run cancelled"
    assert transport.submits == []


def test_cancel_mid_run_marks_remaining_events():
    state = RunState()
    cancelled = threading.Event()

    class Transport(FakeTransport):
        def submit(self, event, session_id=""):
            result = super().submit(event, session_id)
            if session_id and event.sint == 1:
                state.cancel()
                cancelled.set()
            return result

    def answer(index, seen):
        cancelled.wait(timeout=5)
        return not_found()

    transport = Transport(confirm=answer)
    session = run_session(transport, 4, state=state)

    assert len(session.outcomes) == 4
    assert all(o.error.kind is ErrorKind.CANCELLED for o in session.outcomes)
    assert [o.submit_end is not None for o in session.outcomes] == [True, True, False, False]


def test_submission_encoding_failure_is_recorded_as_encoding():
    transport = FakeTransport(failing_submits={2}, submit_error=EncodingError)
    session = run_session(transport, 4)

    failed = session.outcomes[2]
    assert failed.error.kind is ErrorKind.ENCODING
    assert failed.poll_start is None and failed.attempts == 0
    assert sorted(index for _, index in transport.queries) == [0, 1, 3]
    assert all(session.outcomes[i].ok for i in (0, 1, 3))


@pytest.mark.parametrize("session_id", ["sess-✓", "sess\r\nx-injected: 1", " sess-1"])
def test_registration_rejects_session_id_unusable_as_header(session_id):
    transport = FakeTransport(session_id=session_id)
    session = run_session(transport, 3)

    assert session.error.kind is ErrorKind.REGISTRATION
    assert "cannot be sent as a header" in session.error.message
    assert session.outcomes == []
    assert session.session_id == ""
    assert len(transport.submits) == 1
    assert transport.queries == []
