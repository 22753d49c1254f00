"""
Exception types raised at the edges of the harness.

The transport raises these; the engine converts them into OutcomeError
values recorded on the owning event or session.
"""


class EventFluxError(Exception):
    pass


class TransportError(EventFluxError):
    """ Connection or protocol failure talking to the event service. """


class EncodingError(EventFluxError):
    """ A payload could not be serialized or deserialized. """


class ConfigError(EventFluxError, ValueError):
    pass
