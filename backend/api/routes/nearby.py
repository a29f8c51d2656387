"""
Nearby search API routes.

Handles hospital / pharmacy lookups around the user's position.
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from domain.errors import (
    InvalidLocation,
    LocationError,
    LocatorError,
    UpstreamError,
    is_permission_error,
    location_error_from_kind,
    no_results_message,
    user_message,
)
from domain.models import Category, Coordinate, LocationReading
from services.distance import filter_pois
from services.resolver import build_default_resolver
from settings import settings

logger = logging.getLogger(__name__)
router = APIRouter()
resolver = build_default_resolver(settings)

EMERGENCY_NUMBERS: Dict[str, str] = {
    "Emergency (general)": "112",
    "Ambulance": "112",
    "Police": "110",
    "Fire brigade": "112",
    "Poison control Berlin": "030 19240",
    "Medical on-call service": "116 117",
}


class LocationModel(BaseModel):
    lat: float
    lng: float


class NearbyRequest(BaseModel):
    """Body for POST lookups: the location provider's reading, or its failure kind."""
    lat: Optional[float] = None
    lng: Optional[float] = None
    accuracy: Optional[float] = None
    timestamp: Optional[int] = None
    error: Optional[str] = Field(
        default=None,
        description="permission_denied | position_unavailable | timeout | unsupported",
    )
    radius_km: Optional[float] = Field(default=None, gt=0)
    q: Optional[str] = None


class PointOfInterestModel(BaseModel):
    id: str
    category: str
    name: str
    location: LocationModel
    distance: float
    address: str
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[str] = None
    emergency_unit: Optional[bool] = None
    wheelchair_access: Optional[str] = None
    services: Optional[List[str]] = None
    bearing_deg: Optional[float] = None
    compass: Optional[str] = None
    osm_url: str


class NearbyResponse(BaseModel):
    category: str
    origin: LocationModel
    count: int
    results: List[PointOfInterestModel]
    message: Optional[str] = None


def _error_response(exc: LocatorError) -> HTTPException:
    if isinstance(exc, InvalidLocation):
        status = 422
    elif isinstance(exc, UpstreamError):
        status = 502
    elif isinstance(exc, LocationError):
        status = 400 if is_permission_error(exc) else 503
    else:
        status = 500
    return HTTPException(
        status_code=status,
        detail={
            "error": exc.kind,
            "message": user_message(exc),
            "permission": is_permission_error(exc),
        },
    )


def _parse_category(category: str) -> Category:
    try:
        return Category.parse(category)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown category: {category}")


def _search(
    category: Category,
    origin: Coordinate,
    radius_km: Optional[float],
    q: Optional[str],
) -> NearbyResponse:
    try:
        pois = resolver.find_nearby(origin, category)
    except LocatorError as exc:
        logger.error("Nearby %s lookup failed: %s", category.value, exc)
        raise _error_response(exc)

    pois = filter_pois(pois, search_term=q, radius_km=radius_km)
    return NearbyResponse(
        category=category.value,
        origin=LocationModel(**origin.to_dict()),
        count=len(pois),
        results=[PointOfInterestModel(**poi.to_dict()) for poi in pois],
        message=None if pois else no_results_message(category.label),
    )


@router.get("/nearby/{category}", response_model=NearbyResponse)
def find_nearby(
    category: str,
    lat: float = Query(...),
    lng: float = Query(...),
    radius_km: Optional[float] = Query(default=None, gt=0),
    q: Optional[str] = Query(default=None),
):
    """
    Find hospitals or pharmacies around (lat, lng), nearest first.

    `radius_km` and `q` narrow the list the same way the map's filter panel does.
    """
    cat = _parse_category(category)
    try:
        origin = Coordinate.from_values(lat, lng)
    except InvalidLocation as exc:
        raise _error_response(exc)
    return _search(cat, origin, radius_km, q)


@router.post("/nearby/{category}", response_model=NearbyResponse)
def find_nearby_from_reading(category: str, body: NearbyRequest):
    """Same as the GET variant, fed with the location provider's result."""
    cat = _parse_category(category)
    try:
        if body.error:
            try:
                location_error = location_error_from_kind(body.error)
            except ValueError:
                raise HTTPException(status_code=422, detail=f"Unknown location error kind: {body.error}")
            raise location_error
        reading = LocationReading.from_payload(
            {"lat": body.lat, "lng": body.lng, "accuracy": body.accuracy, "timestamp": body.timestamp}
        )
    except LocatorError as exc:
        raise _error_response(exc)
    return _search(cat, reading.coordinate, body.radius_km, body.q)


@router.get("/emergency-numbers")
async def emergency_numbers():
    """Emergency phone numbers (Germany)."""
    return {"numbers": EMERGENCY_NUMBERS}
