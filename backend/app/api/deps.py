"""Shared API dependencies."""

import logging
from uuid import UUID

from fastapi import Request

from backend.app.config import get_settings

logger = logging.getLogger(__name__)


async def get_current_user_id(request: Request) -> UUID | None:
    """
    Resolve the caller's user ID from the identity header.

    Authentication happens upstream; this only reads the identity the
    gateway forwards. Missing or malformed values resolve to None so read
    endpoints can answer anonymous callers with empty results.
    """
    header = get_settings().auth_user_header
    raw = request.headers.get(header)
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed {header} header: {raw!r}")
        return None
