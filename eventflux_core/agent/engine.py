"""
Main orchestration:
- builds one Session per worker, each with its own transport client
- runs every session concurrently on its own thread
- joins all of them and hands the completed sessions to reporting

The orchestrator adds no retries, timeouts or error suppression of its own;
per-event and per-session failures are recorded where they happen.
"""
from concurrent.futures import ThreadPoolExecutor, wait

from eventflux_core.agent.policies import ConfirmationPolicy
from eventflux_core.agent.session import DEFAULT_CONFIRM_WORKERS, Session
from eventflux_core.agent.state import RunState
from eventflux_core.logger_config import setup_logger
from eventflux_core.models.event import SessionConfig
from eventflux_core.telemetry.transport import HttpTransport

logger = setup_logger(__name__)


class Orchestrator:
    def __init__(self, base_url: str, policy: ConfirmationPolicy | None = None,
                 confirm_workers: int = DEFAULT_CONFIRM_WORKERS,
                 request_timeout: float | None = 30.0, deadline_s: float | None = None,
                 transport_factory=None):
        self.base_url = base_url
        self.policy = policy or ConfirmationPolicy()
        self.confirm_workers = confirm_workers
        self.request_timeout = request_timeout
        self.deadline_s = deadline_s
        self.transport_factory = transport_factory or self._http_transport
        self.state: RunState | None = None

    @classmethod
    def from_config(cls, config, transport_factory=None) -> "Orchestrator":
        return cls(
            base_url=config.base_url,
            policy=ConfirmationPolicy(max_attempts=config.max_attempts),
            confirm_workers=config.confirm_workers,
            request_timeout=config.request_timeout,
            deadline_s=config.deadline_s,
            transport_factory=transport_factory,
        )

    def _http_transport(self, ordinal: int) -> HttpTransport:
        return HttpTransport(self.base_url, timeout=self.request_timeout,
                             pool_size=self.confirm_workers)

    def cancel(self):
        """ Stop pending submissions and polls of the current run. """
        if self.state is not None:
            self.state.cancel()

    def run_all(self, session_count: int, session_config: SessionConfig) -> list[Session]:
        self.state = RunState(deadline_s=self.deadline_s)
        sessions = [
            Session(
                ordinal=i,
                config=session_config,
                transport=self.transport_factory(i),
                policy=self.policy,
                state=self.state,
                confirm_workers=self.confirm_workers,
            )
            for i in range(session_count)
        ]
        if not sessions:
            return sessions

        logger.info(f"Starting {session_count} sessions x {session_config.event_count} events "
                    f"against {self.base_url}")
        try:
            with ThreadPoolExecutor(max_workers=session_count,
                                    thread_name_prefix="orchestrator") as executor:
                futures = [executor.submit(session.run) for session in sessions]
                try:
                    wait(futures)
                except KeyboardInterrupt:
                    logger.warning("Interrupted, cancelling pending submissions and polls")
                    self.state.cancel()
                    raise
        finally:
            for session in sessions:
                close = getattr(session.transport, "close", None)
                if close is not None:
                    close()

        # Surfaces programming errors; recorded failures never raise here
        for future in futures:
            future.result()

        failed = sum(1 for session in sessions if not session.ok)
        logger.info(f"All sessions joined: {session_count - failed}/{session_count} fully confirmed")
        return sessions
