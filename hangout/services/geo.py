"""
Great-circle distance helpers used by the check-in geofence and the nearby
events listing.
"""

import math

from hangout.core.checkin_config import DEGREE_BOX_DELTA, KM_PER_MILE

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)

    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    # rounding can push a past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def km_to_miles(km: float) -> float:
    return km / KM_PER_MILE


def within_degree_box(
    lat: float,
    lng: float,
    anchor_lat: float,
    anchor_lng: float,
    delta: float = DEGREE_BOX_DELTA,
) -> bool:
    """Cheap geofence for low-precision callers: |dlat| and |dlng| both within delta."""
    return abs(lat - anchor_lat) <= delta and abs(lng - anchor_lng) <= delta
