"""Track path accumulation and finalization statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from processing.tracking.geodesy import distance_between

logger = logging.getLogger(__name__)

MS_PER_SECOND = 1000.0


@dataclass(frozen=True)
class TrackPoint:
    """Single GPS sample in a track path."""

    lat: float
    lng: float
    timestamp: int  # epoch milliseconds
    altitude: float | None = None
    accuracy: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackPoint:
        """Build a point from its stored JSON form."""
        return cls(
            lat=data["lat"],
            lng=data["lng"],
            timestamp=data["timestamp"],
            altitude=data.get("altitude"),
            accuracy=data.get("accuracy"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored JSON form."""
        return {
            "lat": self.lat,
            "lng": self.lng,
            "timestamp": self.timestamp,
            "altitude": self.altitude,
            "accuracy": self.accuracy,
        }


@dataclass
class PathAccumulator:
    """Append-only path with a running great-circle distance."""

    path: list[TrackPoint] = field(default_factory=list)
    distance: float = 0.0

    @classmethod
    def from_stored(cls, path: Iterable[dict[str, Any]], distance: float) -> PathAccumulator:
        return cls(path=[TrackPoint.from_dict(p) for p in path], distance=distance)

    @property
    def last_point(self) -> TrackPoint | None:
        return self.path[-1] if self.path else None

    def add_point(self, point: TrackPoint) -> float:
        """Append a point and return the distance it added.

        The first point of a path adds nothing since there is no previous
        sample to measure from.
        """
        delta = 0.0
        last = self.last_point
        if last is not None:
            delta = distance_between(last, point)
            self.distance += delta

        self.path.append(point)
        return delta

    def stored_path(self) -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.path]


@dataclass
class TrackStatistics:
    """Derived statistics computed when a track is finalized."""

    duration: float
    average_speed: float
    max_speed: float | None = None
    elevation_gain: float | None = None
    elevation_loss: float | None = None


def compute_elevation_changes(path: list[TrackPoint]) -> tuple[float, float]:
    """
    Sum climbing and descending between index-adjacent points.

    A pair only counts when both points carry an altitude; a point without
    altitude breaks the chain instead of being bridged to the next one.

    Returns:
        Tuple of (gain, loss), both non-negative.
    """
    gain = 0.0
    loss = 0.0

    for prev, curr in zip(path, path[1:]):
        if prev.altitude is None or curr.altitude is None:
            continue
        diff = curr.altitude - prev.altitude
        if diff > 0:
            gain += diff
        else:
            loss += abs(diff)

    return gain, loss


def compute_max_speed(path: list[TrackPoint]) -> float:
    """Fastest segment speed in m/s, ignoring pairs with no elapsed time."""
    max_speed = 0.0
    for prev, curr in zip(path, path[1:]):
        elapsed_s = (curr.timestamp - prev.timestamp) / MS_PER_SECOND
        if elapsed_s <= 0:
            continue
        max_speed = max(max_speed, distance_between(prev, curr) / elapsed_s)
    return max_speed


def compute_track_statistics(
    path: list[TrackPoint],
    distance: float,
    start_time: int,
    end_time: int,
) -> TrackStatistics:
    """Compute duration, speeds and elevation change for a finished track."""
    duration = (end_time - start_time) / MS_PER_SECOND
    average_speed = distance / duration if duration > 0 else 0.0

    gain, loss = compute_elevation_changes(path)
    max_speed = compute_max_speed(path)

    logger.debug(
        f"Track statistics: duration={duration:.1f}s, distance={distance:.1f}m, "
        f"gain={gain:.1f}m, loss={loss:.1f}m"
    )

    return TrackStatistics(
        duration=duration,
        average_speed=average_speed,
        max_speed=max_speed if max_speed > 0 else None,
        elevation_gain=gain if gain > 0 else None,
        elevation_loss=loss if loss > 0 else None,
    )
