"""Application constants."""

from typing import Final

# Track name limits
TRACK_NAME_MAX_LENGTH: Final[int] = 255

# Error codes returned in API error bodies
ERROR_CODES: Final[dict[str, str]] = {
    "unauthenticated": "UNAUTHENTICATED",
    "not_found": "NOT_FOUND",
    "forbidden": "FORBIDDEN",
    "invalid_state": "BAD_REQUEST",
    "conflict": "CONFLICT",
    "unavailable": "UNAVAILABLE",
}
