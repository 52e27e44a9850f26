"""
Bounding-box approximation for "reports near me" queries.

One degree of latitude is taken as 111 km; longitude degrees shrink with
cos(latitude). Good enough for city-scale radii, wrong near the poles and
across the antimeridian.
"""

import math
from typing import Tuple

KM_PER_DEGREE = 111.0


def bounding_box(lat: float, lng: float, radius_km: float) -> Tuple[float, float, float, float]:
    """
    Return (min_lat, max_lat, min_lng, max_lng) around a point.
    """
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(lat))
    # Clamp so the box stays finite close to the poles
    lng_delta = radius_km / (KM_PER_DEGREE * max(cos_lat, 0.01))
    return (lat - lat_delta, lat + lat_delta, lng - lng_delta, lng + lng_delta)


def in_bounding_box(lat: float, lng: float, box: Tuple[float, float, float, float]) -> bool:
    min_lat, max_lat, min_lng, max_lng = box
    return min_lat <= lat <= max_lat and min_lng <= lng <= max_lng
