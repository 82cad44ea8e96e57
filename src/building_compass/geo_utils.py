# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no state.

import math

from building_compass.models import BearingResult, Coord


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres, 0.0 for identical points.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Initial great-circle bearing from point 1 to point 2 in degrees [0, 360).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees, 0.0 when both points coincide.
    """
    if lat1 == lat2 and lon1 == lon2:
        return 0.0
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def bearing(origin: Coord, target: Coord) -> float:
    return calculate_bearing(origin.lat, origin.lon, target.lat, target.lon)


def distance(origin: Coord, target: Coord) -> float:
    return haversine_distance(origin.lat, origin.lon, target.lat, target.lon)


def bearing_result(origin: Coord, target: Coord) -> BearingResult:
    """Bearing and distance from origin to target in one call."""
    return BearingResult(
        bearing_deg=bearing(origin, target),
        distance_m=distance(origin, target),
    )


def normalize_degrees(value: float) -> float:
    """Wrap any angle into [0, 360)."""
    wrapped = value % 360.0
    # -1e-15 % 360 rounds up to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped
