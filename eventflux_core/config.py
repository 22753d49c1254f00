"""
Harness configuration.

Defaults live here; EVENTFLUX_* environment variables override them and
CLI flags override both. The resulting HarnessConfig is passed explicitly
to the orchestrator; nothing reads the service address from globals.
"""
from dataclasses import dataclass, replace
import os

from eventflux_core.agent.policies import MAX_ATTEMPTS
from eventflux_core.agent.session import DEFAULT_CONFIRM_WORKERS
from eventflux_core.errors import ConfigError

# CONFIG
DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_SESSION_COUNT = 50
DEFAULT_EVENTS_PER_SESSION = 157
DEFAULT_REQUEST_TIMEOUT = 30.0

ENV_PREFIX = "EVENTFLUX_"


@dataclass(frozen=True)
class HarnessConfig:
    base_url: str = DEFAULT_BASE_URL
    session_count: int = DEFAULT_SESSION_COUNT
    events_per_session: int = DEFAULT_EVENTS_PER_SESSION
    max_attempts: int = MAX_ATTEMPTS
    confirm_workers: int = DEFAULT_CONFIRM_WORKERS
    request_timeout: float | None = DEFAULT_REQUEST_TIMEOUT
    deadline_s: float | None = None
    log_file: str | None = None

    def __post_init__(self):
        if not self.base_url:
            raise ConfigError("base_url must not be empty")
        if self.session_count < 0:
            raise ConfigError("session_count must be >= 0")
        if self.events_per_session < 0:
            raise ConfigError("events_per_session must be >= 0")
        if self.max_attempts < 1:
            raise ConfigError("max_attempts must be >= 1")
        if self.confirm_workers < 1:
            raise ConfigError("confirm_workers must be >= 1")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ConfigError("request_timeout must be > 0")
        if self.deadline_s is not None and self.deadline_s <= 0:
            raise ConfigError("deadline_s must be > 0")

    @classmethod
    def from_env(cls, environ=None) -> "HarnessConfig":
        environ = os.environ if environ is None else environ

        def get(key, convert, default, nullable=False):
            raw = environ.get(ENV_PREFIX + key)
            if raw is None or raw == "":
                return default
            if nullable and raw.lower() == "none":
                return None
            try:
                return convert(raw)
            except ValueError as e:
                raise ConfigError(f"invalid {ENV_PREFIX + key}={raw!r}") from e

        return cls(
            base_url=get("BASE_URL", str, DEFAULT_BASE_URL),
            session_count=get("SESSIONS", int, DEFAULT_SESSION_COUNT),
            events_per_session=get("EVENTS", int, DEFAULT_EVENTS_PER_SESSION),
            max_attempts=get("MAX_ATTEMPTS", int, MAX_ATTEMPTS),
            confirm_workers=get("CONFIRM_WORKERS", int, DEFAULT_CONFIRM_WORKERS),
            request_timeout=get("REQUEST_TIMEOUT", float, DEFAULT_REQUEST_TIMEOUT, nullable=True),
            deadline_s=get("DEADLINE", float, None),
            log_file=get("LOG_FILE", str, None),
        )

    def override(self, **changes) -> "HarnessConfig":
        """ Return a copy with every non-None change applied. """
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
