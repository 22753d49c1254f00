"""
HTTP client for the event-ingestion service.

Two calls:
- submit: POST /send with an event payload, optionally tagged with a session id
- confirm_query: GET /session/<id>/event/<index>, asking whether an event is stored

Each harness session owns one HttpTransport (one requests.Session); nothing
is shared across sessions. The submit path uses it sequentially while
confirmation tasks use it concurrently, so the connection pool is sized to
the number of confirmation workers.
"""
from dataclasses import dataclass

import requests
from requests.adapters import HTTPAdapter
from requests.utils import quote

from eventflux_core.errors import TransportError
from eventflux_core.logger_config import setup_logger
from eventflux_core.models.event import CheckEvent, EventPayload, parse_session_id

logger = setup_logger(__name__)

SEND_PATH = "/send"
CHECK_PATH = "/session/{session_id}/event/{index}"
SESSION_HEADER = "session_id"
JSON_CONTENT_TYPE = "application/json; charset=UTF-8"


@dataclass(frozen=True)
class ConfirmResponse:
    """ Raw answer to a confirmation query; only status 200 means confirmed. """
    status_code: int
    body: str

    @property
    def confirmed(self) -> bool:
        return self.status_code == 200

    def check_event(self) -> CheckEvent:
        return CheckEvent.from_json(self.body)


class HttpTransport:
    def __init__(self, base_url: str, timeout: float | None = 30.0,
                 pool_size: int = 10, http: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http if http is not None else requests.Session()
        if http is None:
            adapter = HTTPAdapter(pool_connections=1, pool_maxsize=max(pool_size, 1))
            self.http.mount("http://", adapter)
            self.http.mount("https://", adapter)

    def submit(self, event: EventPayload, session_id: str = "") -> str:
        """
        Send one event. Returns the session id carried by the response body,
        or "" when the body is empty (the usual case once registered).
        """
        headers = {"Content-Type": JSON_CONTENT_TYPE}
        if session_id:
            headers[SESSION_HEADER] = session_id

        data = event.to_json()
        try:
            response = self.http.post(
                self.base_url + SEND_PATH,
                data=data.encode("utf-8"),
                headers=headers,
                timeout=self.timeout,
            )
        except (requests.RequestException, ValueError) as e:
            # http.client raises UnicodeEncodeError for non latin-1 header values
            raise TransportError(f"submit failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise TransportError(f"HTTP {response.status_code}: {response.text[:200]}")

        return parse_session_id(response.text)

    def confirm_query(self, session_id: str, index: int) -> ConfirmResponse:
        uri = CHECK_PATH.format(session_id=quote(session_id, safe=""), index=index)
        try:
            response = self.http.get(self.base_url + uri, timeout=self.timeout)
            body = response.text
        except (requests.RequestException, ValueError) as e:
            raise TransportError(f"confirmation query failed: {e}") from e

        logger.debug(f"GET {uri} -> {response.status_code}")
        return ConfirmResponse(status_code=response.status_code, body=body)

    def close(self):
        self.http.close()
