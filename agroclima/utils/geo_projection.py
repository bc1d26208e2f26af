"""
Geodesic utilities for matching a point against station and municipality lists.
"""
from typing import Iterable, Optional, Tuple, TypeVar
from pyproj import Geod

T = TypeVar("T")

_WGS84 = Geod(ellps="WGS84")


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """
    Check that a latitude/longitude pair lies on the globe.

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees

    Returns:
        True when both values are within their ranges
    """
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def geodesic_distance_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """
    Distance between two points along the WGS84 ellipsoid.

    Returns:
        Distance in kilometres
    """
    # Geod.inv takes (lon, lat) order
    _, _, meters = _WGS84.inv(lon1, lat1, lon2, lat2)
    return meters / 1000.0


def find_nearest(
    latitude: float,
    longitude: float,
    candidates: Iterable[Tuple[T, Optional[float], Optional[float]]],
) -> Optional[Tuple[T, float]]:
    """
    Find the candidate closest to a point.

    Args:
        latitude: Reference latitude in degrees
        longitude: Reference longitude in degrees
        candidates: (item, latitude, longitude) triples; items with missing
            coordinates are skipped

    Returns:
        (item, distance_km) of the nearest candidate, or None if none usable
    """
    best: Optional[Tuple[T, float]] = None
    for item, lat, lon in candidates:
        if lat is None or lon is None:
            continue
        distance = geodesic_distance_km(latitude, longitude, lat, lon)
        if best is None or distance < best[1]:
            best = (item, distance)
    return best
