"""Track model for recorded GPS paths."""

import uuid
from typing import Any

from sqlalchemy import JSON, BigInteger, Float, Index, Integer, String, Text, Uuid, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.constants import TRACK_NAME_MAX_LENGTH
from backend.app.models.base import Base, TimestampMixin, UUIDMixin


class Track(Base, UUIDMixin, TimestampMixin):
    """One recording session: an ordered GPS path plus derived statistics."""

    __tablename__ = "tracks"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(TRACK_NAME_MAX_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Path (list of point dicts, chronological, append-only)
    path: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), default=list, nullable=False
    )

    # Statistics
    distance: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)  # meters
    duration: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)  # seconds
    average_speed: Mapped[float | None] = mapped_column(Float, nullable=True)  # m/s
    max_speed: Mapped[float | None] = mapped_column(Float, nullable=True)  # m/s
    elevation_gain: Mapped[float | None] = mapped_column(Float, nullable=True)
    elevation_loss: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Timing (epoch milliseconds)
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Status
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_tracks_owner_id_is_active", "owner_id", "is_active"),
        # At most one track being recorded per owner
        Index(
            "uq_tracks_owner_active",
            "owner_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )
    __mapper_args__ = {"version_id_col": version}
