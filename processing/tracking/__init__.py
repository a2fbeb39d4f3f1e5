"""GPS track recording: distance kernel, path accumulation and statistics."""

from processing.tracking.geodesy import distance_between, haversine_distance
from processing.tracking.track_manager import (
    PathAccumulator,
    TrackPoint,
    TrackStatistics,
    compute_track_statistics,
)

__all__ = [
    "haversine_distance",
    "distance_between",
    "PathAccumulator",
    "TrackPoint",
    "TrackStatistics",
    "compute_track_statistics",
]
