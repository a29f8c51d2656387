"""
Overpass API client for amenity lookups around a coordinate.

One request per call and no retries: retrying is left to the user re-running
the search. Errors are reported through the domain.errors hierarchy.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from domain.errors import InvalidLocation, MalformedResponse, UpstreamUnavailable
from domain.models import Category, Coordinate
from settings import DEFAULT_OVERPASS_URL, FALLBACK_USER_AGENT

OVERPASS_BASE_URL = DEFAULT_OVERPASS_URL
DEFAULT_RADIUS_M = 50000
DEFAULT_TIMEOUT_SEC = 10.0
# Server-side budget for the query itself, independent of the HTTP timeout
QUERY_TIMEOUT_SEC = 50
GEOMETRY_KINDS = ("node", "way", "relation")

logger = logging.getLogger(__name__)
_session = requests.Session()


def build_overpass_query(
    location: Coordinate,
    category: Category,
    radius_m: float = DEFAULT_RADIUS_M,
    timeout_s: int = QUERY_TIMEOUT_SEC,
) -> str:
    """Overpass QL selecting amenity=<category> nodes, ways and relations within radius_m."""
    radius = int(round(radius_m))
    around = f"(around:{radius},{location.lat},{location.lng})"
    selectors = "\n".join(
        f'  {kind}["amenity"="{category.value}"]{around};' for kind in GEOMETRY_KINDS
    )
    return f"[out:json][timeout:{timeout_s}];\n(\n{selectors}\n);\nout center;\n"


class OverpassClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        user_agent: Optional[str] = None,
        method: str = "post",
        radius_m: float = DEFAULT_RADIUS_M,
        session: Optional[requests.Session] = None,
    ):
        method = method.lower()
        if method not in ("get", "post"):
            raise ValueError(f"Unsupported Overpass HTTP method: {method!r}")
        self.base_url = base_url or OVERPASS_BASE_URL
        self.timeout = timeout
        self.method = method
        self.radius_m = radius_m
        self.session = session or _session
        self.headers = {"User-Agent": user_agent or FALLBACK_USER_AGENT}
        self.logger = logger

    def _send(self, query: str) -> requests.Response:
        if self.method == "get":
            return self.session.get(
                self.base_url,
                params={"data": query},
                headers=self.headers,
                timeout=self.timeout,
            )
        return self.session.post(
            self.base_url,
            data={"data": query},
            headers=self.headers,
            timeout=self.timeout,
        )

    def fetch_features(
        self,
        location: Any,
        category: Category,
        radius_m: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return the raw `elements` list for amenity=<category> around location.

        Raises InvalidLocation before any request when the coordinate is not
        usable, UpstreamUnavailable on transport errors or non-2xx status, and
        MalformedResponse when the body lacks an `elements` list.
        """
        if not isinstance(location, Coordinate):
            raise InvalidLocation(f"Expected a Coordinate, got {type(location).__name__}")
        radius = radius_m or self.radius_m
        query = build_overpass_query(location, category, radius)
        self.logger.info(
            "Overpass %s lookup: lat=%.6f lng=%.6f radius_m=%d",
            category.value,
            location.lat,
            location.lng,
            radius,
        )

        try:
            resp = self._send(query)
        except requests.RequestException as exc:
            self.logger.error("Overpass request failed for %s: %s", category.value, exc)
            raise UpstreamUnavailable(
                f"Could not reach the Overpass API: {exc}", status_code=None, description=str(exc)
            ) from exc

        if not 200 <= resp.status_code < 300:
            self.logger.error("Overpass API error: %s %s", resp.status_code, resp.reason)
            raise UpstreamUnavailable(
                f"Overpass API returned {resp.status_code} {resp.reason}",
                status_code=resp.status_code,
                description=resp.reason,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            self.logger.error("Overpass returned a non-JSON body: %s", exc)
            raise MalformedResponse("Overpass response is not valid JSON") from exc

        elements = data.get("elements") if isinstance(data, dict) else None
        if not isinstance(elements, list):
            self.logger.error("Overpass response missing 'elements': %r", data)
            raise MalformedResponse("Overpass response has no 'elements' collection")

        self.logger.debug("Overpass returned %d elements for %s", len(elements), category.value)
        return elements
