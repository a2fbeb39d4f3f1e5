"""Great-circle distance on a spherical Earth."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from processing.tracking.track_manager import TrackPoint

EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in meters


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Compute the haversine distance in meters between two lat/lng points.

    Args:
        lat1: Latitude 1 in degrees.
        lng1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lng2: Longitude 2 in degrees.

    Returns:
        Distance in meters. Altitude is not taken into account.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def distance_between(p1: TrackPoint, p2: TrackPoint) -> float:
    """Haversine distance in meters between two track points."""
    return haversine_distance(p1.lat, p1.lng, p2.lat, p2.lng)
