"""Shared API dependencies: single import point for all routers.

Re-exports the process-wide collaborators and maps domain exceptions to HTTP
errors so that router modules can import everything they need from one place::

    from sentinel_console.api.deps import get_rule_engine, http_error
"""

from fastapi import HTTPException, status

from sentinel_console.exceptions import ConfigValidationError, FetchError, SentinelError, StateConflict
from sentinel_console.state import get_activation_workflow, get_backend_client, get_rule_engine

_STATUS_BY_ERROR: dict[type[SentinelError], int] = {
    FetchError: status.HTTP_502_BAD_GATEWAY,
    ConfigValidationError: 422,
    StateConflict: status.HTTP_409_CONFLICT,
}


def http_error(exc: SentinelError) -> HTTPException:
    """Translate a domain error into the HTTPException a router should raise."""
    code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=exc.message)


__all__ = [
    "get_activation_workflow",
    "get_backend_client",
    "get_rule_engine",
    "http_error",
]
