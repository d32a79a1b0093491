"""
Great-circle distance capability used for geographic proximity evidence.

The scorer treats distance as a black box (`DistanceFunction`); any callable
with the same signature can be injected, e.g. one backed by a spatial index.
"""

import math
from typing import Callable

from src.fusion_engine.config import EARTH_RADIUS_METERS
from src.fusion_engine.errors import GeometryValidationError
from src.fusion_engine.schemas import Geometry

DistanceFunction = Callable[[Geometry, Geometry], float]


def _validate_point(geometry: Geometry) -> tuple[float, float]:
    """Return (lat, lon) for a Point or raise GeometryValidationError."""
    if not geometry.is_point:
        raise GeometryValidationError(geometry.kind)
    if len(geometry.coordinates) < 2:
        raise GeometryValidationError(geometry.kind, "missing coordinates")

    try:
        lat, lon = geometry.latitude, geometry.longitude
    except (TypeError, ValueError) as e:
        raise GeometryValidationError(geometry.kind, "non-numeric coordinates") from e

    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lon <= 180.0):
        raise GeometryValidationError(geometry.kind, f"coordinates out of range: {lat}, {lon}")
    return lat, lon


def great_circle_distance_meters(p1: Geometry, p2: Geometry) -> float:
    """Calculate distance between two points using Haversine formula.

    Args:
        p1: First Point geometry
        p2: Second Point geometry

    Returns:
        Distance in meters

    Raises:
        GeometryValidationError: If either geometry is not a valid Point
    """
    lat1, lon1 = _validate_point(p1)
    lat2, lon2 = _validate_point(p2)

    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(min(1.0, math.sqrt(a)))

    return EARTH_RADIUS_METERS * c
