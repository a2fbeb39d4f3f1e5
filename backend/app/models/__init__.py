"""SQLAlchemy ORM models."""

from backend.app.models.base import Base
from backend.app.models.track import Track

__all__ = [
    "Base",
    "Track",
]
