"""Track recording service."""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from backend.app.config import get_settings
from backend.app.core.exceptions import (
    ActiveTrackExistsError,
    TrackConflictError,
    TrackForbiddenError,
    TrackNotFoundError,
    TrackStateError,
    UnauthenticatedError,
)
from backend.app.models.track import Track
from backend.app.schemas.track import (
    OperationResult,
    TrackListResponse,
    TrackPointCreate,
    TrackPointSchema,
    TrackResponse,
    TrackStart,
)
from processing.tracking import PathAccumulator, TrackPoint, compute_track_statistics

logger = logging.getLogger(__name__)

T = TypeVar("T")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def require_user(user_id: UUID | None) -> UUID:
    """Return the caller id or raise if the request is anonymous."""
    if user_id is None:
        raise UnauthenticatedError()
    return user_id


class TrackService:
    """Service for recording tracks and computing their statistics."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Callable[[], int] = now_ms,
        max_retries: int | None = None,
    ):
        self.db = db
        self.clock = clock
        self.max_retries = max_retries or get_settings().track_write_max_retries

    async def start_track(self, user_id: UUID | None, data: TrackStart) -> TrackResponse:
        """Create a new active track for the caller."""
        owner_id = require_user(user_id)

        active = await self._find_active(owner_id, for_update=True)
        if active is not None:
            raise ActiveTrackExistsError(active.id)

        now = self.clock()
        track = Track(
            owner_id=owner_id,
            name=data.name,
            description=data.description,
            path=[],
            distance=0.0,
            duration=0.0,
            start_time=now,
            end_time=now,
            is_active=True,
        )
        self.db.add(track)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost the race against another start for the same owner
            await self.db.rollback()
            active = await self._find_active(owner_id)
            raise ActiveTrackExistsError(active.id if active else None)

        logger.info(f"Started track {track.id} ({track.name}) for user {owner_id}")
        return self._to_response(track)

    async def add_point(
        self, user_id: UUID | None, track_id: UUID, data: TrackPointCreate
    ) -> OperationResult:
        """Append a GPS sample to an active track and extend its distance."""

        async def append(track: Track) -> float:
            if not track.is_active:
                raise TrackStateError(
                    "Cannot add points to inactive track", {"track_id": str(track_id)}
                )

            now = self.clock()
            accumulator = PathAccumulator.from_stored(track.path, track.distance)
            delta = accumulator.add_point(
                TrackPoint(
                    lat=data.lat,
                    lng=data.lng,
                    timestamp=now,
                    altitude=data.altitude,
                    accuracy=data.accuracy,
                )
            )

            track.path = accumulator.stored_path()
            track.distance = accumulator.distance
            track.end_time = max(now, track.start_time)
            return delta

        delta = await self._write_track(user_id, track_id, "add points to", append)
        logger.debug(f"Added point to track {track_id}: +{delta:.2f}m")
        return OperationResult(track_id=track_id)

    async def stop_track(self, user_id: UUID | None, track_id: UUID) -> TrackResponse:
        """Finalize a track: compute duration, speeds and elevation change."""

        async def finalize(track: Track) -> Track:
            if not track.is_active:
                logger.info(f"Track {track_id} already stopped, recomputing statistics")

            accumulator = PathAccumulator.from_stored(track.path, track.distance)
            stats = compute_track_statistics(
                accumulator.path, track.distance, track.start_time, track.end_time
            )

            track.duration = stats.duration
            track.average_speed = stats.average_speed
            track.max_speed = stats.max_speed
            track.elevation_gain = stats.elevation_gain
            track.elevation_loss = stats.elevation_loss
            track.is_active = False
            return track

        track = await self._write_track(user_id, track_id, "stop", finalize)
        logger.info(
            f"Stopped track {track_id}: {track.distance:.1f}m in {track.duration:.1f}s"
        )
        return self._to_response(track)

    async def delete_track(self, user_id: UUID | None, track_id: UUID) -> OperationResult:
        """Permanently remove a track in either state."""

        async def remove(track: Track) -> None:
            await self.db.delete(track)

        await self._write_track(user_id, track_id, "delete", remove)
        logger.info(f"Deleted track {track_id}")
        return OperationResult(track_id=track_id, message="Track deleted")

    async def get_track(self, user_id: UUID | None, track_id: UUID) -> TrackResponse:
        """Get one of the caller's tracks by ID."""
        owner_id = require_user(user_id)
        track = await self._get_owned(owner_id, track_id, "view")
        return self._to_response(track)

    async def list_tracks(self, user_id: UUID | None) -> TrackListResponse:
        """List the caller's tracks, most recent first.

        Anonymous callers get an empty list.
        """
        if user_id is None:
            return TrackListResponse(tracks=[], total=0)

        result = await self.db.execute(
            select(Track)
            .where(Track.owner_id == user_id)
            .order_by(Track.start_time.desc(), Track.created_at.desc())
        )
        tracks = [self._to_response(t) for t in result.scalars().all()]
        return TrackListResponse(tracks=tracks, total=len(tracks))

    async def get_active_track(self, user_id: UUID | None) -> TrackResponse | None:
        """Get the caller's track currently being recorded, if any."""
        if user_id is None:
            return None

        track = await self._find_active(user_id)
        if track is None:
            return None
        return self._to_response(track)

    async def _find_active(self, owner_id: UUID, for_update: bool = False) -> Track | None:
        """
        Latest-started active track of the owner.

        The unique index allows one active track per owner, but rows written
        before it existed may hold several; the newest wins here, not the
        oldest, since that is the session the owner is most likely still
        recording.
        """
        query = (
            select(Track)
            .where(Track.owner_id == owner_id, Track.is_active.is_(True))
            .order_by(Track.start_time.desc())
            .limit(1)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalars().first()

    async def _get_owned(
        self, owner_id: UUID, track_id: UUID, action: str, for_update: bool = False
    ) -> Track:
        query = (
            select(Track)
            .where(Track.id == track_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        track = result.scalar_one_or_none()

        if track is None:
            raise TrackNotFoundError(track_id)
        if track.owner_id != owner_id:
            logger.warning(f"User {owner_id} tried to {action} track {track_id} owned by another user")
            raise TrackForbiddenError(
                f"Not authorized to {action} this track", {"track_id": str(track_id)}
            )
        return track

    async def _write_track(
        self,
        user_id: UUID | None,
        track_id: UUID,
        action: str,
        mutate: Callable[[Track], Awaitable[T]],
    ) -> T:
        """
        Run one read-modify-write on a track as a single transaction.

        The row is locked for the duration of the transaction and the
        version column rejects writes based on a stale read; on such a
        conflict the whole operation is replayed against a fresh read.
        """
        owner_id = require_user(user_id)

        for attempt in range(1, self.max_retries + 1):
            track = await self._get_owned(owner_id, track_id, action, for_update=True)
            result = await mutate(track)
            try:
                await self.db.commit()
                return result
            except StaleDataError:
                await self.db.rollback()
                logger.warning(
                    f"Concurrent update on track {track_id} "
                    f"(attempt {attempt}/{self.max_retries}), retrying"
                )

        raise TrackConflictError(
            "Track was modified concurrently, please retry",
            {"track_id": str(track_id), "attempts": self.max_retries},
        )

    def _to_response(self, track: Track) -> TrackResponse:
        return TrackResponse(
            id=track.id,
            owner_id=track.owner_id,
            name=track.name,
            description=track.description,
            path=[TrackPointSchema(**p) for p in track.path],
            distance=track.distance,
            duration=track.duration,
            average_speed=track.average_speed,
            max_speed=track.max_speed,
            elevation_gain=track.elevation_gain,
            elevation_loss=track.elevation_loss,
            start_time=track.start_time,
            end_time=track.end_time,
            is_active=track.is_active,
            created_at=track.created_at,
        )
