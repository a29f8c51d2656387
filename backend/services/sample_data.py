"""
Fixed sample dataset used when Overpass is unreachable in development.

Features are Overpass-shaped so they pass through the regular normalizer, and
are placed at fixed offsets from the caller so distances look plausible.
"""
from __future__ import annotations

from typing import Any, Dict, List

from domain.models import Category, Coordinate

# (id, dlat, dlng, geometry, tags)
_SAMPLE_HOSPITALS = [
    (
        900000001,
        0.012,
        0.004,
        "node",
        {
            "amenity": "hospital",
            "name": "Sample City Hospital",
            "addr:street": "Hauptstraße",
            "addr:housenumber": "1",
            "addr:city": "Berlin",
            "addr:postcode": "10115",
            "phone": "+49 30 123456",
            "emergency": "yes",
            "wheelchair": "yes",
        },
    ),
    (
        900000002,
        -0.025,
        0.018,
        "way",
        {
            "amenity": "hospital",
            "name": "Sample Clinic Campus",
            "addr:street": "Parkallee",
            "addr:city": "Berlin",
            "website": "https://example.org/clinic",
            "wheelchair": "limited",
        },
    ),
    (
        None,
        0.041,
        -0.033,
        "tags",
        {"amenity": "hospital", "address": "Am Klinikum, Berlin"},
    ),
]

_SAMPLE_PHARMACIES = [
    (
        900000101,
        0.003,
        -0.002,
        "node",
        {
            "amenity": "pharmacy",
            "name": "Sample Pharmacy",
            "addr:street": "Marktplatz",
            "addr:housenumber": "7",
            "opening_hours": "Mo-Fr 08:00-18:00",
        },
    ),
    (
        900000102,
        -0.009,
        0.011,
        "way",
        {"amenity": "pharmacy", "name": "Sample Night Pharmacy", "opening_hours": "24/7"},
    ),
]

_SAMPLES = {
    Category.HOSPITAL: _SAMPLE_HOSPITALS,
    Category.PHARMACY: _SAMPLE_PHARMACIES,
}


def _clamp_lat(value: float) -> float:
    return max(-90.0, min(90.0, value))


def _wrap_lng(value: float) -> float:
    return ((value + 180.0) % 360.0) - 180.0


def sample_features(location: Coordinate, category: Category) -> List[Dict[str, Any]]:
    """Return raw sample features for category, positioned around location."""
    features: List[Dict[str, Any]] = []
    for feature_id, dlat, dlng, geometry, tags in _SAMPLES[category]:
        lat = round(_clamp_lat(location.lat + dlat), 6)
        lng = round(_wrap_lng(location.lng + dlng), 6)
        feature: Dict[str, Any] = {"tags": dict(tags)}
        if feature_id is not None:
            feature["id"] = feature_id
        if geometry == "node":
            feature.update(type="node", lat=lat, lon=lng)
        elif geometry == "way":
            feature.update(type="way", center={"lat": lat, "lon": lng})
        else:
            feature["type"] = "node"
            feature["tags"].update(lat=str(lat), lon=str(lng))
        features.append(feature)
    return features
