"""
Nearby hospital / pharmacy resolver: fetch, normalize, rank.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from domain.errors import InvalidLocation, UpstreamError
from domain.models import Category, Coordinate, PointOfInterest
from services.distance import rank_by_distance
from services.feature_normalizer import IdGenerator, SequentialIdGenerator, normalize_features
from services.overpass_client import OverpassClient
from services.sample_data import sample_features

FallbackDataset = Callable[[Coordinate, Category], List[Dict[str, Any]]]

logger = logging.getLogger(__name__)


def _as_coordinate(location: Any) -> Coordinate:
    if isinstance(location, Coordinate):
        return location
    if location is None:
        raise InvalidLocation("No location given")
    lat = getattr(location, "lat", None)
    lng = getattr(location, "lng", None)
    if isinstance(location, dict):
        lat, lng = location.get("lat"), location.get("lng")
    return Coordinate.from_values(lat, lng)


class PoiResolver:
    """
    Finds hospitals or pharmacies around a location, sorted by distance.

    `fallback_dataset`, when given, is used instead of raising if the upstream
    fetch fails. Only wire it in development; see build_default_resolver.

    Ids for elements without an upstream id come from a generator created per
    call, so repeated queries against unchanged data return identical lists.
    """

    def __init__(
        self,
        client: Optional[OverpassClient] = None,
        fallback_dataset: Optional[FallbackDataset] = None,
        id_generator_factory: Callable[[], IdGenerator] = SequentialIdGenerator,
        radius_m: Optional[float] = None,
    ):
        self.client = client or OverpassClient()
        self.fallback_dataset = fallback_dataset
        self.id_generator_factory = id_generator_factory
        self.radius_m = radius_m
        self.logger = logger

    def find_nearby(self, location: Any, category: "Category | str") -> List[PointOfInterest]:
        category = Category.parse(category)
        origin = _as_coordinate(location)

        try:
            features = self.client.fetch_features(origin, category, radius_m=self.radius_m)
        except UpstreamError as exc:
            if self.fallback_dataset is None:
                raise
            self.logger.warning(
                "Using sample %s data because the Overpass lookup failed: %s",
                category.value,
                exc,
            )
            features = self.fallback_dataset(origin, category)

        pois = rank_by_distance(normalize_features(features, category, origin, self.id_generator_factory()))
        if not pois:
            self.logger.warning("No %s found near %.5f,%.5f", category.label, origin.lat, origin.lng)
        else:
            self.logger.info("Found %d %s", len(pois), category.label)
        return pois

    def find_nearby_hospitals(self, location: Any) -> List[PointOfInterest]:
        return self.find_nearby(location, Category.HOSPITAL)

    def find_nearby_pharmacies(self, location: Any) -> List[PointOfInterest]:
        return self.find_nearby(location, Category.PHARMACY)


def build_default_resolver(settings) -> PoiResolver:
    """Wire a resolver from Settings; the sample fallback only when DEV_FALLBACK_ENABLED."""
    if settings.OVERPASS_USER_AGENT is None:
        logger.warning(
            "OVERPASS_USER_AGENT not set in environment; using fallback UA. "
            "This may violate the Overpass usage policy."
        )
    client = OverpassClient(
        base_url=settings.OVERPASS_URL,
        timeout=settings.OVERPASS_TIMEOUT_SECONDS,
        user_agent=settings.user_agent,
        method=settings.OVERPASS_METHOD,
        radius_m=settings.SEARCH_RADIUS_M,
    )
    fallback = sample_features if settings.DEV_FALLBACK_ENABLED else None
    if fallback is not None:
        logger.info("Development fallback dataset enabled")
    return PoiResolver(client=client, fallback_dataset=fallback)
