"""
Tests for backend/app/services/track_service.py

Exercises the track lifecycle against a real (SQLite) database.
"""

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy import text

from backend.app.core.exceptions import (
    ActiveTrackExistsError,
    TrackConflictError,
    TrackForbiddenError,
    TrackNotFoundError,
    TrackStateError,
    UnauthenticatedError,
)
from backend.app.models.track import Track
from backend.app.schemas.track import TrackPointCreate, TrackStart
from backend.app.services.track_service import TrackService
from processing.tracking.geodesy import haversine_distance


async def start(service, user_id, name="Morning Hunt"):
    return await service.start_track(user_id, TrackStart(name=name))


class TestStartTrack:
    """Test suite for TrackService.start_track."""

    async def test_new_track_is_active_and_empty(self, service, clock, user_id):
        track = await start(service, user_id)

        assert track.owner_id == user_id
        assert track.name == "Morning Hunt"
        assert track.is_active is True
        assert track.path == []
        assert track.distance == 0.0
        assert track.duration == 0.0
        assert track.start_time == track.end_time == clock.start

    async def test_requires_authentication(self, service):
        with pytest.raises(UnauthenticatedError):
            await start(service, None)

    async def test_second_active_track_is_rejected(self, service, user_id):
        first = await start(service, user_id)

        with pytest.raises(ActiveTrackExistsError) as exc_info:
            await start(service, user_id, name="Evening Hunt")

        assert exc_info.value.details["active_track_id"] == str(first.id)

    async def test_new_track_allowed_after_stop(self, service, user_id):
        first = await start(service, user_id)
        await service.stop_track(user_id, first.id)

        second = await start(service, user_id, name="Evening Hunt")
        assert second.id != first.id
        assert second.is_active is True

    async def test_other_users_are_independent(self, service, user_id, other_user_id):
        await start(service, user_id)
        other = await start(service, other_user_id)
        assert other.owner_id == other_user_id


class TestAddPoint:
    """Test suite for TrackService.add_point."""

    async def test_morning_hunt_scenario(self, service, clock, user_id):
        track = await start(service, user_id)

        clock.advance(5_000)
        await service.add_point(
            user_id, track.id, TrackPointCreate(lat=38.950000, lng=-92.330000, altitude=300)
        )
        clock.advance(5_000)
        await service.add_point(
            user_id, track.id, TrackPointCreate(lat=38.951000, lng=-92.331000, altitude=305)
        )

        current = await service.get_track(user_id, track.id)
        expected = haversine_distance(38.95, -92.33, 38.951, -92.331)
        assert current.distance == pytest.approx(expected)
        assert current.distance == pytest.approx(140.86, abs=0.05)
        assert len(current.path) == 2
        assert current.end_time == clock.start + 10_000

        stopped = await service.stop_track(user_id, track.id)
        assert stopped.elevation_gain == pytest.approx(5.0)
        assert stopped.elevation_loss is None

    async def test_first_point_adds_no_distance(self, service, clock, user_id):
        track = await start(service, user_id)
        clock.advance(1_000)

        result = await service.add_point(user_id, track.id, TrackPointCreate(lat=1.0, lng=1.0))

        assert result.success is True
        current = await service.get_track(user_id, track.id)
        assert current.distance == 0.0
        assert current.path[0].timestamp == clock.start + 1_000

    async def test_points_keep_insertion_order(self, service, clock, user_id):
        track = await start(service, user_id)
        coords = [(10.0, 10.0), (10.001, 10.0), (10.002, 10.001)]
        for lat, lng in coords:
            clock.advance(1_000)
            await service.add_point(user_id, track.id, TrackPointCreate(lat=lat, lng=lng))

        current = await service.get_track(user_id, track.id)
        assert [(p.lat, p.lng) for p in current.path] == coords
        timestamps = [p.timestamp for p in current.path]
        assert timestamps == sorted(timestamps)

    async def test_optional_fields_are_stored(self, service, user_id):
        track = await start(service, user_id)
        await service.add_point(
            user_id, track.id, TrackPointCreate(lat=1.0, lng=2.0, altitude=12.5, accuracy=3.0)
        )

        current = await service.get_track(user_id, track.id)
        assert current.path[0].altitude == 12.5
        assert current.path[0].accuracy == 3.0

    async def test_unknown_track_is_not_found(self, service, user_id):
        with pytest.raises(TrackNotFoundError):
            await service.add_point(user_id, uuid4(), TrackPointCreate(lat=1.0, lng=1.0))

        assert await service.get_active_track(user_id) is None

    async def test_stopped_track_rejects_points(self, service, user_id):
        track = await start(service, user_id)
        await service.add_point(user_id, track.id, TrackPointCreate(lat=1.0, lng=1.0))
        await service.stop_track(user_id, track.id)

        with pytest.raises(TrackStateError):
            await service.add_point(user_id, track.id, TrackPointCreate(lat=2.0, lng=2.0))

        current = await service.get_track(user_id, track.id)
        assert len(current.path) == 1
        assert current.distance == 0.0

    async def test_other_user_cannot_add_points(self, service, user_id, other_user_id):
        track = await start(service, user_id)

        with pytest.raises(TrackForbiddenError):
            await service.add_point(other_user_id, track.id, TrackPointCreate(lat=1.0, lng=1.0))

        current = await service.get_track(user_id, track.id)
        assert current.path == []

    async def test_requires_authentication(self, service, user_id):
        track = await start(service, user_id)
        with pytest.raises(UnauthenticatedError):
            await service.add_point(None, track.id, TrackPointCreate(lat=1.0, lng=1.0))


class TestStopTrack:
    """Test suite for TrackService.stop_track."""

    async def test_zero_duration_track(self, service, user_id):
        track = await start(service, user_id)

        stopped = await service.stop_track(user_id, track.id)

        assert stopped.is_active is False
        assert stopped.duration == 0.0
        assert stopped.average_speed == 0.0
        assert stopped.elevation_gain is None
        assert stopped.elevation_loss is None

    async def test_duration_and_speeds(self, service, clock, user_id):
        track = await start(service, user_id)
        clock.advance(10_000)
        await service.add_point(user_id, track.id, TrackPointCreate(lat=0.0, lng=0.0))
        clock.advance(10_000)
        await service.add_point(user_id, track.id, TrackPointCreate(lat=0.0, lng=0.001))

        stopped = await service.stop_track(user_id, track.id)

        assert stopped.duration == pytest.approx(20.0)
        assert stopped.average_speed == pytest.approx(stopped.distance / 20.0)
        assert stopped.max_speed == pytest.approx(stopped.distance / 10.0)

    async def test_elevation_loss(self, service, clock, user_id):
        track = await start(service, user_id)
        for altitude in (320.0, 310.0, None, 300.0, 304.0):
            clock.advance(1_000)
            await service.add_point(
                user_id, track.id, TrackPointCreate(lat=1.0, lng=1.0, altitude=altitude)
            )

        stopped = await service.stop_track(user_id, track.id)

        assert stopped.elevation_loss == pytest.approx(10.0)
        assert stopped.elevation_gain == pytest.approx(4.0)

    async def test_stopping_twice_recomputes_same_values(self, service, clock, user_id):
        track = await start(service, user_id)
        clock.advance(3_000)
        await service.add_point(user_id, track.id, TrackPointCreate(lat=1.0, lng=1.0, altitude=1))
        clock.advance(3_000)
        await service.add_point(user_id, track.id, TrackPointCreate(lat=1.001, lng=1.0, altitude=4))

        first = await service.stop_track(user_id, track.id)
        clock.advance(60_000)
        second = await service.stop_track(user_id, track.id)

        assert second.duration == first.duration
        assert second.average_speed == first.average_speed
        assert second.elevation_gain == first.elevation_gain

    async def test_unknown_track_is_not_found(self, service, user_id):
        with pytest.raises(TrackNotFoundError):
            await service.stop_track(user_id, uuid4())

    async def test_other_user_cannot_stop(self, service, user_id, other_user_id):
        track = await start(service, user_id)

        with pytest.raises(TrackForbiddenError):
            await service.stop_track(other_user_id, track.id)

        active = await service.get_active_track(user_id)
        assert active is not None and active.id == track.id


class TestDeleteTrack:
    """Test suite for TrackService.delete_track."""

    async def test_delete_active_track(self, service, user_id):
        track = await start(service, user_id)

        result = await service.delete_track(user_id, track.id)

        assert result.success is True
        assert await service.get_active_track(user_id) is None
        with pytest.raises(TrackNotFoundError):
            await service.get_track(user_id, track.id)

    async def test_delete_stopped_track(self, service, user_id):
        track = await start(service, user_id)
        await service.stop_track(user_id, track.id)

        await service.delete_track(user_id, track.id)

        listing = await service.list_tracks(user_id)
        assert listing.total == 0

    async def test_points_after_delete_are_not_found(self, service, user_id):
        track = await start(service, user_id)
        await service.delete_track(user_id, track.id)

        with pytest.raises(TrackNotFoundError):
            await service.add_point(user_id, track.id, TrackPointCreate(lat=1.0, lng=1.0))

    async def test_other_user_cannot_delete(self, service, user_id, other_user_id):
        track = await start(service, user_id)

        with pytest.raises(TrackForbiddenError):
            await service.delete_track(other_user_id, track.id)

        assert (await service.get_track(user_id, track.id)).id == track.id

    async def test_requires_authentication(self, service, user_id):
        track = await start(service, user_id)
        with pytest.raises(UnauthenticatedError):
            await service.delete_track(None, track.id)


class TestQueries:
    """Test suite for the read-only accessors."""

    async def test_active_track_for_user_without_tracks(self, service, user_id):
        assert await service.get_active_track(user_id) is None

    async def test_anonymous_reads_are_empty(self, service, user_id):
        await start(service, user_id)

        assert await service.get_active_track(None) is None
        listing = await service.list_tracks(None)
        assert listing.tracks == []
        assert listing.total == 0

    async def test_list_is_most_recent_first(self, service, clock, user_id, other_user_id):
        names = ["Opening Day", "Second Sit", "Late Season"]
        for name in names:
            track = await start(service, user_id, name=name)
            clock.advance(60_000)
            await service.stop_track(user_id, track.id)
        await start(service, other_user_id, name="Not Mine")

        listing = await service.list_tracks(user_id)

        assert [t.name for t in listing.tracks] == list(reversed(names))
        assert listing.total == 3

    async def test_get_active_returns_current_track(self, service, user_id):
        stopped = await start(service, user_id, name="Old")
        await service.stop_track(user_id, stopped.id)
        current = await start(service, user_id, name="Current")

        active = await service.get_active_track(user_id)

        assert active is not None
        assert active.id == current.id

    async def test_get_track_of_other_user_is_forbidden(self, service, user_id, other_user_id):
        track = await start(service, user_id)
        with pytest.raises(TrackForbiddenError):
            await service.get_track(other_user_id, track.id)


class TestConcurrentWrites:
    """Optimistic concurrency on track rows."""

    async def test_replays_after_concurrent_update(self, service, session_maker, user_id):
        track = await start(service, user_id)
        calls = 0

        async def rename_elsewhere_then_describe(row: Track) -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                async with session_maker() as other:
                    concurrent = await other.get(Track, track.id)
                    concurrent.name = "Renamed elsewhere"
                    await other.commit()
            row.description = "updated"

        await service._write_track(user_id, track.id, "update", rename_elsewhere_then_describe)

        assert calls == 2
        current = await service.get_track(user_id, track.id)
        assert current.name == "Renamed elsewhere"
        assert current.description == "updated"

    async def test_gives_up_after_max_retries(self, service, session_maker, user_id):
        track = await start(service, user_id)

        async def always_conflict(row: Track) -> None:
            async with session_maker() as other:
                concurrent = await other.get(Track, track.id)
                concurrent.distance += 1.0
                await other.commit()
            row.description = "never written"

        with pytest.raises(TrackConflictError):
            await service._write_track(user_id, track.id, "update", always_conflict)

    async def test_delete_during_append_is_not_found(self, service, session_maker, user_id):
        track = await start(service, user_id)

        async def delete_elsewhere(row: Track) -> None:
            async with session_maker() as other:
                concurrent = await other.get(Track, track.id)
                await other.delete(concurrent)
                await other.commit()
            row.distance += 1.0

        with pytest.raises(TrackNotFoundError):
            await service._write_track(user_id, track.id, "add points to", delete_elsewhere)

        async with session_maker() as other:
            assert await other.get(Track, track.id) is None

    async def test_concurrent_appends_keep_every_point(self, service, session_maker, clock, user_id):
        track = await start(service, user_id)
        coords = [(38.95 + i * 0.001, -92.33 - i * 0.0005) for i in range(6)]

        async def append(lat, lng):
            async with session_maker() as session:
                writer = TrackService(session, clock=clock, max_retries=20)
                await writer.add_point(user_id, track.id, TrackPointCreate(lat=lat, lng=lng))

        await asyncio.gather(*(append(lat, lng) for lat, lng in coords))

        current = await service.get_track(user_id, track.id)
        assert len(current.path) == len(coords)
        assert sorted((p.lat, p.lng) for p in current.path) == sorted(coords)
        expected = sum(
            haversine_distance(a.lat, a.lng, b.lat, b.lng)
            for a, b in zip(current.path, current.path[1:])
        )
        assert current.distance == pytest.approx(expected)


class TestLegacyActiveTracks:
    """Rows stored before one-active-per-owner was enforced."""

    async def test_newest_active_track_wins(self, service, engine, db, clock, user_id):
        async with engine.begin() as conn:
            await conn.execute(text("DROP INDEX uq_tracks_owner_active"))

        for offset, name in ((0, "Older"), (60_000, "Newer")):
            t = clock.start + offset
            db.add(
                Track(
                    owner_id=user_id, name=name, path=[], distance=0.0, duration=0.0,
                    start_time=t, end_time=t, is_active=True,
                )
            )
        await db.commit()

        active = await service.get_active_track(user_id)

        assert active is not None
        assert active.name == "Newer"
