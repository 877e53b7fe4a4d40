"""
Centralized error handling for engine/API failures.
Domain exceptions plus a rule table so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Constants: status codes
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_INTERNAL_ERROR = 500


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class LoadHuntError(Exception):
    """Base class for errors raised by the matching engine and lifecycle."""


class TenantRequiredError(LoadHuntError):
    def __init__(self) -> None:
        super().__init__("X-Tenant-Id header is required")


class HuntPlanNotFoundError(LoadHuntError):
    def __init__(self, plan_id: int) -> None:
        self.plan_id = plan_id
        super().__init__(f"Hunt plan {plan_id} not found")


class OfferNotFoundError(LoadHuntError):
    def __init__(self, sequence_id: int) -> None:
        self.sequence_id = sequence_id
        super().__init__(f"Load offer {sequence_id} not found")


class MatchNotFoundError(LoadHuntError):
    def __init__(self, match_id: int) -> None:
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


class InvalidTransitionError(LoadHuntError):
    """Status-guarded update touched no row: the match already left the source state."""

    def __init__(self, match_id: int, current_status: str, target_status: str, *, kind: str = "Match") -> None:
        self.match_id = match_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(f"{kind} {match_id} is {current_status}; cannot move to {target_status}")


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code). First match wins.
# Add new rules here instead of scattering checks in routes.
# ---------------------------------------------------------------------------

ENGINE_ERROR_RULES: list[tuple[type[Exception], int]] = [
    (TenantRequiredError, STATUS_BAD_REQUEST),
    (HuntPlanNotFoundError, STATUS_NOT_FOUND),
    (OfferNotFoundError, STATUS_NOT_FOUND),
    (MatchNotFoundError, STATUS_NOT_FOUND),
    (InvalidTransitionError, STATUS_CONFLICT),
]


def engine_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from a service call into an HTTPException.
    Uses ENGINE_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code in ENGINE_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
