"""
Great-circle distance, bearing and ranking helpers.

Distances use the haversine formula on a spherical Earth (R = 6371 km) and are
rounded to one decimal place (nearest 100 m) for display.
"""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from domain.models import Coordinate, PointOfInterest

EARTH_RADIUS_KM = 6371.0
_ONE_DECIMAL = Decimal("0.1")
COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Compute haversine distance in km."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lng - a.lng)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # clamp against rounding pushing h slightly above 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def round_distance_km(value: float) -> float:
    """Round half-up to one decimal place: 2.449 -> 2.4, 2.45 -> 2.5."""
    if math.isnan(value) or value < 0:
        raise ValueError(f"distance must be a non-negative number, got {value!r}")
    # repr() gives the shortest decimal string, so 2.45 stays 2.45 instead of 2.4499999...
    return float(Decimal(repr(float(value))).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def distance_km(a: Coordinate, b: Coordinate) -> float:
    return round_distance_km(haversine_km(a, b))


def initial_bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """Initial great-circle bearing from a to b, degrees clockwise from north in [0, 360)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dlambda = math.radians(b.lng - a.lng)
    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    return 0.0 if bearing >= 360.0 else bearing


def compass_point(bearing: float) -> str:
    index = int(((bearing % 360.0) + 22.5) // 45.0) % len(COMPASS_POINTS)
    return COMPASS_POINTS[index]


def rank_by_distance(pois: Iterable[PointOfInterest]) -> List[PointOfInterest]:
    """Sort ascending by distance; ties keep their upstream order."""
    return sorted(pois, key=lambda poi: poi.distance)


def filter_pois(
    pois: Iterable[PointOfInterest],
    search_term: Optional[str] = None,
    radius_km: Optional[float] = None,
) -> List[PointOfInterest]:
    """
    Apply the list view filters: a case-insensitive substring match on name or
    address, and an upper bound on distance. Order is preserved.
    """
    term = (search_term or "").strip().lower()
    result: List[PointOfInterest] = []
    for poi in pois:
        if term and term not in poi.name.lower() and term not in poi.address.lower():
            continue
        if radius_km is not None and poi.distance > radius_km:
            continue
        result.append(poi)
    return result
