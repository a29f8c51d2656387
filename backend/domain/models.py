"""
Core domain models for the care locator.
These are framework-agnostic and can be used across all services.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from domain.errors import InvalidLocation


class Category(str, Enum):
    """Amenity categories the locator can search for (OSM `amenity` values)."""
    HOSPITAL = "hospital"
    PHARMACY = "pharmacy"

    @property
    def label(self) -> str:
        return "hospitals" if self is Category.HOSPITAL else "pharmacies"

    @classmethod
    def parse(cls, value: "Category | str") -> "Category":
        if isinstance(value, Category):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported category: {value!r}") from None


class WheelchairAccess(str, Enum):
    """Wheelchair accessibility as tagged in OSM."""
    YES = "yes"
    NO = "no"
    LIMITED = "limited"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, value: Optional[str]) -> "WheelchairAccess":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


UNNAMED_LABELS = {
    Category.HOSPITAL: "Unnamed hospital",
    Category.PHARMACY: "Unnamed pharmacy",
}
ADDRESS_NOT_AVAILABLE = "address not available"
OPENING_HOURS_NOT_SPECIFIED = "not specified"


def _as_coordinate_value(value: Any, name: str) -> float:
    # bool is an int subclass; a True latitude is a caller bug, not 1.0
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidLocation(f"{name} must be a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidLocation(f"{name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point in degrees."""
    lat: float
    lng: float

    def __post_init__(self) -> None:
        lat = _as_coordinate_value(self.lat, "lat")
        lng = _as_coordinate_value(self.lng, "lng")
        if not -90.0 <= lat <= 90.0:
            raise InvalidLocation(f"lat out of range [-90, 90]: {lat}")
        if not -180.0 <= lng <= 180.0:
            raise InvalidLocation(f"lng out of range [-180, 180]: {lng}")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lng", lng)

    @classmethod
    def from_values(cls, lat: Any, lng: Any) -> "Coordinate":
        return cls(lat=lat, lng=lng)

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


# Berlin Mitte; used when an upstream feature carries no usable position
DEFAULT_COORDINATE = Coordinate(lat=52.5200, lng=13.4050)


@dataclass(frozen=True)
class LocationReading:
    """
    A successful reading from the location input provider.

    `accuracy` is in meters, `timestamp` in milliseconds since the epoch,
    matching the browser Geolocation API.
    """
    lat: float
    lng: float
    accuracy: Optional[float] = None
    timestamp: Optional[int] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "LocationReading":
        if not isinstance(data, dict):
            raise InvalidLocation("Location payload must be an object")
        coord = Coordinate.from_values(data.get("lat"), data.get("lng"))
        accuracy = data.get("accuracy")
        timestamp = data.get("timestamp")
        try:
            accuracy = float(accuracy) if accuracy is not None else None
            timestamp = int(timestamp) if timestamp is not None else None
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidLocation(f"Malformed location reading: {exc}") from exc
        return cls(lat=coord.lat, lng=coord.lng, accuracy=accuracy, timestamp=timestamp)


@dataclass(frozen=True)
class PointOfInterest:
    """
    A hospital or pharmacy near the user.

    Built fresh for every query and never mutated afterwards. Hospital-only
    fields (emergency_unit, wheelchair_access, services) keep their defaults
    on pharmacies.
    """
    id: str
    category: Category
    name: str
    location: Coordinate
    distance: float  # km, one decimal place
    address: str
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[str] = None
    emergency_unit: bool = False
    wheelchair_access: WheelchairAccess = WheelchairAccess.UNKNOWN
    services: FrozenSet[str] = field(default_factory=frozenset)
    bearing_deg: Optional[float] = None
    compass: Optional[str] = None

    @property
    def osm_url(self) -> str:
        """Shareable OpenStreetMap link centered on the facility."""
        return (
            f"https://www.openstreetmap.org/?mlat={self.location.lat}"
            f"&mlon={self.location.lng}&zoom=16"
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "category": self.category.value,
            "name": self.name,
            "location": self.location.to_dict(),
            "distance": self.distance,
            "address": self.address,
            "phone": self.phone,
            "website": self.website,
            "opening_hours": self.opening_hours,
            "bearing_deg": self.bearing_deg,
            "compass": self.compass,
            "osm_url": self.osm_url,
        }
        if self.category is Category.HOSPITAL:
            data["emergency_unit"] = self.emergency_unit
            data["wheelchair_access"] = self.wheelchair_access.value
            data["services"] = sorted(self.services)
        return data
