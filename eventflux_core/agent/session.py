"""
One simulated client: registers with the service, drives its EventPipeline
for the configured number of events, and owns the resulting outcomes.

Submissions run strictly in index order on the session's own thread.
Confirmation polls run on a private executor and are joined before run()
returns. Each outcome slot is written only by the session thread: first
from the submission result, then from the joined confirmation result.
"""
from concurrent.futures import ThreadPoolExecutor, wait

from eventflux_core.agent.pipeline import EventPipeline
from eventflux_core.agent.policies import ConfirmationPolicy
from eventflux_core.agent.poller import ConfirmationPoller, utcnow
from eventflux_core.agent.state import RunState
from eventflux_core.errors import EventFluxError
from eventflux_core.logger_config import setup_logger
from eventflux_core.models.event import SessionConfig, empty_event, header_safe
from eventflux_core.models.outcome import (
    ErrorKind,
    EventOutcome,
    OutcomeError,
    cancelled_outcome,
)

logger = setup_logger(__name__)

DEFAULT_CONFIRM_WORKERS = 32


class Session:
    def __init__(self, ordinal: int, config: SessionConfig, transport,
                 policy: ConfirmationPolicy | None = None, state: RunState | None = None,
                 confirm_workers: int = DEFAULT_CONFIRM_WORKERS, clock=utcnow):
        self.ordinal = ordinal
        self.config = config
        self.transport = transport
        self.policy = policy or ConfirmationPolicy()
        self.state = state or RunState()
        self.confirm_workers = confirm_workers
        self.clock = clock

        self.session_id = ""
        self.outcomes: list[EventOutcome] = []
        self.error: OutcomeError | None = None

    @property
    def failed_events(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def ok(self) -> bool:
        return self.error is None and self.failed_events == 0

    def register(self) -> str:
        """ Returns the server-assigned session id, or "" with self.error set. """
        if self.state.should_stop():
            self.error = OutcomeError(ErrorKind.REGISTRATION, self.state.stop_reason())
            return ""

        try:
            session_id = self.transport.submit(empty_event(), "")
        except EventFluxError as e:
            self.error = OutcomeError.from_exception(ErrorKind.REGISTRATION, e)
            logger.warning(f"Session #{self.ordinal}: registration failed ({e})")
            return ""

        if not session_id:
            self.error = OutcomeError(ErrorKind.REGISTRATION, "service returned no session id")
            logger.warning(f"Session #{self.ordinal}: registration returned no session id")
            return ""

        if not header_safe(session_id):
            self.error = OutcomeError(ErrorKind.REGISTRATION,
                                     f"session id {session_id!r} cannot be sent as a header")
            logger.warning(f"Session #{self.ordinal}: unusable session id {session_id!r}")
            return ""

        self.session_id = session_id
        logger.info(f"Session #{self.ordinal} registered as {session_id}")
        return session_id

    def run(self) -> "Session":
        if not self.register():
            return self

        count = self.config.event_count
        self.outcomes = [EventOutcome(index=i) for i in range(count)]
        poller = ConfirmationPoller(self.transport, self.session_id, self.policy,
                                    self.state, clock=self.clock)
        pending = {}

        with ThreadPoolExecutor(max_workers=self.confirm_workers,
                                thread_name_prefix=f"session-{self.ordinal}") as executor:
            pipeline = EventPipeline(self.transport, self.session_id, poller,
                                     executor, clock=self.clock)
            for index in range(count):
                if self.state.should_stop():
                    self.outcomes[index] = cancelled_outcome(index, self.state.stop_reason())
                    continue

                submission, future = pipeline.process(index)
                self.outcomes[index] = self.outcomes[index].with_submission(submission)
                if future is not None:
                    pending[future] = index

            wait(pending)

        for future, index in pending.items():
            self.outcomes[index] = self.outcomes[index].with_confirmation(future.result())

        logger.info(f"Session #{self.ordinal} ({self.session_id}) finished: "
                    f"{count - self.failed_events}/{count} events confirmed")
        return self
