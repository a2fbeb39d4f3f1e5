"""Custom exceptions for the application."""

from typing import Any

from backend.app.constants import ERROR_CODES


class TracklineError(Exception):
    """Base exception for Trackline."""

    status_code: int = 500
    code: str = "INTERNAL"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class UnauthenticatedError(TracklineError):
    """Exception when no caller identity can be resolved."""

    status_code = 401
    code = ERROR_CODES["unauthenticated"]

    def __init__(self, message: str = "User not logged in"):
        super().__init__(message)


class TrackError(TracklineError):
    """Exception for track operations."""

    pass


class TrackNotFoundError(TrackError):
    """Exception when track is not found."""

    status_code = 404
    code = ERROR_CODES["not_found"]

    def __init__(self, track_id: Any):
        super().__init__("Track not found", {"track_id": str(track_id)})


class TrackForbiddenError(TrackError):
    """Exception when the caller does not own the track."""

    status_code = 403
    code = ERROR_CODES["forbidden"]


class TrackStateError(TrackError):
    """Exception for invalid track state transitions."""

    status_code = 409
    code = ERROR_CODES["invalid_state"]


class ActiveTrackExistsError(TrackStateError):
    """Exception when the owner already has a track being recorded."""

    code = ERROR_CODES["conflict"]

    def __init__(self, active_track_id: Any):
        super().__init__(
            "An active track is already being recorded",
            {"active_track_id": str(active_track_id)},
        )


class TrackConflictError(TrackError):
    """Exception when concurrent writes kept invalidating a track update."""

    status_code = 409
    code = ERROR_CODES["conflict"]


class DatabaseError(TracklineError):
    """Exception for database errors."""

    status_code = 503
    code = ERROR_CODES["unavailable"]
