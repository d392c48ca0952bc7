"""
Geographic utilities for GeoAlert.

This module provides spherical-earth calculations: great-circle
distance and destination point along a bearing.
"""

import math
from geoalert.core.models import Coordinate

# mean Earth radius (km)
EARTH_RADIUS_KM = 6371.0

def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points using the haversine formula.

    Args:
        lat1: latitude of the first point
        lon1: longitude of the first point
        lat2: latitude of the second point
        lon2: longitude of the second point

    Returns:
        distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    # rounding can push a past 1 for antipodal points
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return EARTH_RADIUS_KM * c

def distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in km between two coordinates."""
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)

def destination_point(origin: Coordinate, bearing_rad: float, distance_km: float) -> Coordinate:
    """
    Point reached from ``origin`` travelling ``distance_km`` along an
    initial great-circle bearing.

    Args:
        origin: start point
        bearing_rad: bearing clockwise from north, in radians
        distance_km: distance along the great circle

    Returns:
        destination coordinate, longitude normalised to [-180, 180]
    """
    angular = distance_km / EARTH_RADIUS_KM
    lat1 = math.radians(origin.latitude)
    lon1 = math.radians(origin.longitude)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(angular) +
        math.cos(lat1) * math.sin(angular) * math.cos(bearing_rad)
    )
    lon2 = lon1 + math.atan2(
        math.sin(bearing_rad) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * math.sin(lat2)
    )

    lat_deg = max(-90.0, min(90.0, math.degrees(lat2)))
    lon_deg = (math.degrees(lon2) + 540.0) % 360.0 - 180.0
    return Coordinate(latitude=lat_deg, longitude=lon_deg)

def validate_coordinates(lat: float, lon: float) -> bool:
    """
    Check that a latitude/longitude pair is in range.

    Args:
        lat: latitude
        lon: longitude

    Returns:
        True when both values are finite and in range
    """
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180
