"""
Normalization of raw Overpass elements into PointOfInterest records.

Overpass returns three element shapes: nodes carry `lat`/`lon` directly, ways
and relations carry a `center` when queried with `out center`, and a few
mappers put coordinates into `lat`/`lon` tags. Tag values are free-form
strings, so every lookup goes through FeatureTags.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol

from domain.errors import InvalidLocation
from domain.models import (
    ADDRESS_NOT_AVAILABLE,
    DEFAULT_COORDINATE,
    OPENING_HOURS_NOT_SPECIFIED,
    UNNAMED_LABELS,
    Category,
    Coordinate,
    PointOfInterest,
    WheelchairAccess,
)
from services.distance import compass_point, distance_km, initial_bearing_deg

logger = logging.getLogger(__name__)

RawFeature = Dict[str, Any]

EMERGENCY_SERVICE = "Emergency care"
WHEELCHAIR_SERVICE = "Wheelchair accessible"

# OSM keys first; the bare names are accepted for hand-built records
_ADDRESS_KEYS = {
    "street": ("addr:street", "street"),
    "housenumber": ("addr:housenumber", "housenumber"),
    "city": ("addr:city", "city"),
    "postcode": ("addr:postcode", "postcode"),
}


class FeatureTags(Mapping[str, str]):
    """Read-only view over an element's tag mapping with safe optional lookups.

    `get` returns None for absent or blank values. Numeric values are
    stringified; any other non-string value is malformed and raises ValueError.
    Iteration only yields keys that `get` can read, so blank and structured
    values are invisible to the mapping interface.
    """

    def __init__(self, tags: Optional[Mapping[str, Any]]):
        if tags is None:
            tags = {}
        if not isinstance(tags, Mapping):
            raise ValueError(f"tags must be a mapping, got {type(tags).__name__}")
        self._tags = tags

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def _present_keys(self) -> List[str]:
        keys = []
        for key in self._tags:
            try:
                if self.get(key) is not None:
                    keys.append(key)
            except ValueError:
                continue
        return keys

    def __iter__(self) -> Iterator[str]:
        return iter(self._present_keys())

    def __len__(self) -> int:
        return len(self._present_keys())

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:  # type: ignore[override]
        value = self._tags.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            raise ValueError(f"malformed tag value for {key!r}: {value!r}")
        if isinstance(value, (int, float)):
            value = str(value)
        if not isinstance(value, str):
            raise ValueError(f"malformed tag value for {key!r}: {value!r}")
        value = value.strip()
        return value or default

    def first(self, *keys: str) -> Optional[str]:
        for key in keys:
            value = self.get(key)
            if value is not None:
                return value
        return None

    def is_yes(self, key: str) -> bool:
        return (self.get(key) or "").lower() == "yes"


class IdGenerator(Protocol):
    def __call__(self, category: Category) -> str: ...


class UuidIdGenerator:
    """Generated ids look like "hospital-1f3a9c0b2", never like upstream numeric ids."""

    def __call__(self, category: Category) -> str:
        return f"{category.value}-{uuid.uuid4().hex[:9]}"


class SequentialIdGenerator:
    """Deterministic ids ("pharmacy-1", "pharmacy-2", ...) for tests and fixtures."""

    def __init__(self, start: int = 1):
        self._next = start

    def __call__(self, category: Category) -> str:
        value = f"{category.value}-{self._next}"
        self._next += 1
        return value


def _coordinate_or_none(lat: Any, lon: Any) -> Optional[Coordinate]:
    if lat is None or lon is None:
        return None
    try:
        return Coordinate.from_values(lat, lon)
    except InvalidLocation:
        return None


def _parse_tag_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def resolve_coordinate(feature: Mapping[str, Any]) -> Coordinate:
    """
    Resolve a feature's position: direct lat/lon, then center, then lat/lon
    tags. Falls back to DEFAULT_COORDINATE (with a warning) when none is usable.
    """
    direct = _coordinate_or_none(feature.get("lat"), feature.get("lon"))
    if direct is not None:
        return direct

    center = feature.get("center")
    if isinstance(center, Mapping):
        from_center = _coordinate_or_none(center.get("lat"), center.get("lon"))
        if from_center is not None:
            return from_center

    raw_tags = feature.get("tags")
    if isinstance(raw_tags, Mapping):
        tags = FeatureTags(raw_tags)
        try:
            tag_lat = _parse_tag_float(tags.get("lat"))
            tag_lon = _parse_tag_float(tags.get("lon"))
        except ValueError:
            tag_lat = tag_lon = None
        from_tags = _coordinate_or_none(tag_lat, tag_lon)
        if from_tags is not None:
            return from_tags

    logger.warning(
        "Feature %s/%s has no usable coordinates; using default location",
        feature.get("type", "?"),
        feature.get("id", "?"),
    )
    return DEFAULT_COORDINATE


def format_address(tags: Optional[Mapping[str, Any]]) -> str:
    """
    Build a one-line address from addr:* tags.

    - street + housenumber: "Main St 12, Berlin 10115"
    - street only: "Main St, Berlin 10115"
    - otherwise the free-form `address` tag, or a placeholder
    """
    if not tags:
        return ADDRESS_NOT_AVAILABLE
    view = tags if isinstance(tags, FeatureTags) else FeatureTags(tags)
    street = view.first(*_ADDRESS_KEYS["street"])
    housenumber = view.first(*_ADDRESS_KEYS["housenumber"])
    city = view.first(*_ADDRESS_KEYS["city"])
    postcode = view.first(*_ADDRESS_KEYS["postcode"])

    if street:
        address = f"{street} {housenumber}" if housenumber else street
        if city:
            address += f", {city}"
        if postcode:
            address += f" {postcode}"
        return address

    free_form = view.get("address")
    if free_form:
        return free_form
    return ADDRESS_NOT_AVAILABLE


def extract_services(tags: FeatureTags) -> frozenset:
    services = set()
    if tags.is_yes("emergency"):
        services.add(EMERGENCY_SERVICE)
    if tags.is_yes("wheelchair"):
        services.add(WHEELCHAIR_SERVICE)
    return frozenset(services)


def _feature_id(feature: Mapping[str, Any], category: Category, id_generator: IdGenerator) -> str:
    raw_id = feature.get("id")
    if raw_id is None or raw_id == "" or raw_id == 0:
        return id_generator(category)
    return str(raw_id)


def normalize_feature(
    feature: Mapping[str, Any],
    category: Category,
    origin: Coordinate,
    id_generator: Optional[IdGenerator] = None,
) -> Optional[PointOfInterest]:
    """
    Map one raw element to a PointOfInterest.

    Returns None when the element is not tagged amenity=<category>. Raises on
    malformed input; callers normalizing a batch use normalize_features.
    """
    if not isinstance(feature, Mapping):
        raise ValueError(f"feature must be a mapping, got {type(feature).__name__}")
    raw_tags = feature.get("tags")
    if raw_tags is None:
        return None
    tags = FeatureTags(raw_tags)
    if tags.get("amenity") != category.value:
        return None

    id_generator = id_generator or UuidIdGenerator()
    location = resolve_coordinate(feature)
    bearing = initial_bearing_deg(origin, location)
    common = dict(
        id=_feature_id(feature, category, id_generator),
        category=category,
        name=tags.get("name") or UNNAMED_LABELS[category],
        location=location,
        distance=distance_km(origin, location),
        address=format_address(tags),
        phone=tags.first("phone", "contact:phone"),
        website=tags.first("website", "contact:website"),
        bearing_deg=round(bearing, 1),
        compass=compass_point(bearing),
    )

    if category is Category.PHARMACY:
        return PointOfInterest(
            opening_hours=tags.get("opening_hours") or OPENING_HOURS_NOT_SPECIFIED,
            **common,
        )
    return PointOfInterest(
        opening_hours=tags.get("opening_hours"),
        emergency_unit=tags.is_yes("emergency"),
        wheelchair_access=WheelchairAccess.from_tag(tags.get("wheelchair")),
        services=extract_services(tags),
        **common,
    )


def normalize_features(
    features: Iterable[Any],
    category: Category,
    origin: Coordinate,
    id_generator: Optional[IdGenerator] = None,
) -> List[PointOfInterest]:
    """Normalize a batch; a failure on one element is logged and that element skipped."""
    id_generator = id_generator or UuidIdGenerator()
    results: List[PointOfInterest] = []
    skipped = 0
    for feature in features:
        try:
            poi = normalize_feature(feature, category, origin, id_generator)
        except Exception as exc:
            skipped += 1
            logger.warning("Skipping malformed %s feature %r: %s", category.value, feature, exc)
            continue
        if poi is not None:
            results.append(poi)
    if skipped:
        logger.info("Normalized %d %s features, skipped %d malformed", len(results), category.value, skipped)
    return results
