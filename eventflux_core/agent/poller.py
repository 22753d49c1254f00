"""
Confirms that a submitted event was persisted by polling the service.

The loop is a bounded retry without backoff:
- a transport failure stops the poll immediately, without retrying
- a non-success answer counts as an attempt and is retried until the budget is spent
- a success answer counts as an attempt and ends the poll with the stored timestamp

The poller returns a ConfirmationResult; it never touches session state.
"""
from datetime import datetime, timezone

from eventflux_core.agent.policies import ConfirmationPolicy
from eventflux_core.agent.state import RunState
from eventflux_core.errors import EncodingError, TransportError
from eventflux_core.logger_config import setup_logger
from eventflux_core.models.outcome import ConfirmationResult, ErrorKind, OutcomeError

logger = setup_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConfirmationPoller:
    def __init__(self, transport, session_id: str, policy: ConfirmationPolicy | None = None,
                 state: RunState | None = None, clock=utcnow):
        self.transport = transport
        self.session_id = session_id
        self.policy = policy or ConfirmationPolicy()
        self.state = state or RunState()
        self.clock = clock

    def confirm(self, event_index: int) -> ConfirmationResult:
        poll_start = self.clock()
        attempts = 0
        db_time = None
        echoed = None
        error = None

        while True:
            if self.state.should_stop():
                error = OutcomeError(ErrorKind.CANCELLED, self.state.stop_reason())
                break

            try:
                response = self.transport.confirm_query(self.session_id, event_index)
            except TransportError as e:
                error = OutcomeError.from_exception(ErrorKind.TRANSPORT, e)
                break

            attempts += 1
            if response.confirmed:
                try:
                    check = response.check_event()
                    db_time = check.timestamp
                    echoed = check.sstr
                except EncodingError as e:
                    error = OutcomeError.from_exception(ErrorKind.ENCODING, e)
                break

            logger.debug(f"{self.session_id}/{event_index}: not confirmed "
                         f"(HTTP {response.status_code}, attempt {attempts})")
            if self.policy.exhausted(attempts):
                error = OutcomeError(ErrorKind.CONFIRMATION_EXHAUSTED, "max attempts reached")
                break

        return ConfirmationResult(
            poll_start=poll_start,
            poll_end=self.clock(),
            attempts=attempts,
            db_time=db_time,
            echoed=echoed,
            error=error,
        )
