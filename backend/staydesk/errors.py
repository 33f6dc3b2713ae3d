"""Domain error taxonomy for the visit lifecycle engine.

Every error carries the HTTP status the API layer answers with. All of them
propagate to the caller except ``PolicyBlockedError``, which the lifecycle
turns into an empty successful create.
"""

from fastapi import status


class VisitError(Exception):
    """Base class for visit engine errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(VisitError):
    """The referenced property or visit does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(VisitError):
    """Required creation fields are missing or inconsistent."""

    status_code = 422  # Unprocessable Content

    def __init__(self, detail: str, fields: list[str] | None = None) -> None:
        super().__init__(detail)
        self.fields = fields or []


class UnauthorizedError(VisitError):
    """The actor is neither the visit's owner nor its requester."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransitionError(VisitError):
    """The requested status change is not an edge of the state graph."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move visit from '{current}' to '{target}'")
        self.current = current
        self.target = target


class PolicyBlockedError(VisitError):
    """The store's access rule rejected an unauthenticated write."""

    status_code = status.HTTP_403_FORBIDDEN


class NoDestinationError(VisitError):
    """A notification builder could not resolve a phone number or email."""

    status_code = 422  # Unprocessable Content


class TransportError(VisitError):
    """The visit store could not be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
