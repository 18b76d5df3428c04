"""Domain exceptions raised by the rule engine, activation workflow and backend client.

Routers translate these into HTTP responses; services never let them leave
partial state behind.
"""


class SentinelError(Exception):
    """Base class for all Sentinel Console errors. ``message`` is user-visible."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FetchError(SentinelError):
    """A call to the revenue-management backend failed or returned malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigValidationError(SentinelError):
    """A configuration payload or field path cannot be accepted."""


class StateConflict(SentinelError):
    """An operation was requested while a conflicting one is in flight."""
