"""
Wire-level records exchanged with the event-ingestion service:
- the event payload sent on every submit (registration included)
- the confirmation payload returned once an event is persisted
- the per-session configuration handed down by the orchestrator

These models are the contract between the transport and the engine.
Field names match the JSON keys the service expects.
"""
from dataclasses import dataclass, asdict
import json
import re

import pandas as pd

from eventflux_core.errors import EncodingError

EVENT_TYPE = "event"
RFC3339 = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class EventPayload:
    type: str
    sint: int
    lint: int
    sstr: str
    lstr: str

    def to_json(self) -> str:
        try:
            return json.dumps(asdict(self))
        except (TypeError, ValueError) as e:
            raise EncodingError("unable to marshal data") from e


def empty_event() -> EventPayload:
    """ Placeholder payload used for the registration call. """
    return EventPayload("", 0, 0, "", "")


def event_for_index(index: int) -> EventPayload:
    return EventPayload(EVENT_TYPE, index, 0, f"event_{index}", "")


@dataclass(frozen=True)
class CheckEvent:
    """ Body of a successful confirmation query. """
    timestamp: pd.Timestamp
    sstr: str

    @classmethod
    def from_json(cls, body: str) -> "CheckEvent":
        try:
            data = json.loads(body)
            raw = data["timestamp"]
            if not isinstance(raw, str) or not RFC3339.match(raw):
                raise ValueError(f"timestamp is not RFC 3339: {raw!r}")
            # Nanosecond precision, which datetime.fromisoformat rejects
            timestamp = pd.Timestamp(raw)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise EncodingError(f"invalid confirmation payload: {e}") from e
        return cls(timestamp=timestamp, sstr=str(data.get("sstr", "")))


def parse_session_id(body: str) -> str:
    """ Extract the session identifier from a submit response body. """
    if not body.strip():
        return ""
    try:
        data = json.loads(body)
        return str(data.get("session_id") or "")
    except (json.JSONDecodeError, AttributeError) as e:
        raise EncodingError(f"invalid submit response: {e}") from e


@dataclass(frozen=True)
class SessionConfig:
    event_count: int

    def __post_init__(self):
        if self.event_count < 0:
            raise ValueError("event_count must be >= 0")


def header_safe(value: str) -> bool:
    """ Whether a value can be sent as an HTTP header (latin-1, no line breaks). """
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return value == value.strip() and not any(c in value for c in "\r\n\0")
