"""Typed failures raised by the station components.

Every error carries a stable `code`, a human-readable `message` that can be
shown on the kiosk as-is, and the HTTP status the API layer maps it to.
"""


class StationError(Exception):
    """Base exception for all station failures."""

    code = "STATION_ERROR"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(StationError):
    """Unknown session token or user."""

    code = "NOT_FOUND"
    http_status = 404


class AlreadyResolved(StationError):
    """The session has already left `pending`."""

    code = "ALREADY_RESOLVED"
    http_status = 409


class Expired(StationError):
    """The session TTL has elapsed."""

    code = "EXPIRED"
    http_status = 410


class RateLimited(StationError):
    """Too many session requests from one kiosk."""

    code = "RATE_LIMITED"
    http_status = 429


class InvalidInput(StationError):
    """Malformed material, weight or request."""

    code = "INVALID_INPUT"
    http_status = 422


class Unauthorized(StationError):
    """Missing or invalid access token."""

    code = "UNAUTHORIZED"
    http_status = 401


class CommitFailed(StationError):
    """Storage failure while committing a submission and its credit."""

    code = "COMMIT_FAILED"
    http_status = 503
