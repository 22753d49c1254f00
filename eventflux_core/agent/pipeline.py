"""
Per-event pipeline: submit one event, then hand its confirmation poll to
the session's executor so the next submission can start right away.
"""
from concurrent.futures import Executor, Future

from eventflux_core.agent.poller import ConfirmationPoller, utcnow
from eventflux_core.errors import EncodingError, TransportError
from eventflux_core.logger_config import setup_logger
from eventflux_core.models.event import event_for_index
from eventflux_core.models.outcome import ErrorKind, OutcomeError, SubmissionResult

logger = setup_logger(__name__)


class EventPipeline:
    def __init__(self, transport, session_id: str, poller: ConfirmationPoller,
                 executor: Executor, clock=utcnow):
        self.transport = transport
        self.session_id = session_id
        self.poller = poller
        self.executor = executor
        self.clock = clock

    def submit(self, index: int) -> SubmissionResult:
        started = self.clock()
        error = None
        try:
            self.transport.submit(event_for_index(index), self.session_id)
        except EncodingError as e:
            error = OutcomeError.from_exception(ErrorKind.ENCODING, e)
        except TransportError as e:
            error = OutcomeError.from_exception(ErrorKind.SUBMISSION, e)
        ended = self.clock()

        if error is not None:
            logger.warning(f"{self.session_id}: event {index} not submitted ({error})")
        return SubmissionResult(started=started, ended=ended, error=error)

    def process(self, index: int) -> tuple[SubmissionResult, Future | None]:
        """
        Submit event `index`. A confirmation future is returned only when the
        submission succeeded; failed submissions are never polled.
        """
        submission = self.submit(index)
        if not submission.ok:
            return submission, None
        return submission, self.executor.submit(self.poller.confirm, index)
