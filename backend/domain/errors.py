"""
Error hierarchy for the care locator.

Services raise these exceptions directly; the API layer maps them to HTTP
responses and user-facing text.

    LocatorError (base)
    |-- InvalidLocation - coordinate missing, non-numeric or out of range
    |-- UpstreamError - geodata source failures
    |   |-- UpstreamUnavailable - transport error or non-success status
    |   +-- MalformedResponse - body parsed but lacks the expected structure
    +-- LocationError - failures reported by the location input provider
        |-- PermissionDenied
        |-- PositionUnavailable
        |-- LocationTimeout
        +-- GeolocationUnsupported
"""
from __future__ import annotations

from typing import Optional


class LocatorError(Exception):
    """Base exception for all locator errors."""

    kind = "locator_error"


class InvalidLocation(LocatorError):
    """Raised before any network call when the input coordinate is unusable."""

    kind = "invalid_location"


class UpstreamError(LocatorError):
    """Base for failures of the upstream geodata source."""

    kind = "upstream_error"


class UpstreamUnavailable(UpstreamError):
    """Raised on transport errors or a non-success HTTP status.

    Attributes:
        status_code: HTTP status, or None when no response was received
        description: reason phrase or transport error text
    """

    kind = "upstream_unavailable"

    def __init__(self, message: str, status_code: Optional[int] = None, description: Optional[str] = None):
        self.status_code = status_code
        self.description = description
        super().__init__(message)


class MalformedResponse(UpstreamError):
    """Raised when the response parses but lacks the `elements` collection."""

    kind = "malformed_response"


class LocationError(LocatorError):
    """Base for the location input provider's failure kinds."""

    kind = "location_error"


class PermissionDenied(LocationError):
    kind = "permission_denied"


class PositionUnavailable(LocationError):
    kind = "position_unavailable"


class LocationTimeout(LocationError):
    kind = "timeout"


class GeolocationUnsupported(LocationError):
    kind = "unsupported"


# W3C GeolocationPositionError codes
_LOCATION_ERROR_CODES = {
    1: PermissionDenied,
    2: PositionUnavailable,
    3: LocationTimeout,
}

_LOCATION_ERROR_KINDS = {
    cls.kind: cls
    for cls in (PermissionDenied, PositionUnavailable, LocationTimeout, GeolocationUnsupported)
}


def location_error_from_code(code: Optional[int], message: str = "") -> LocationError:
    """Map a browser geolocation error code to its exception type."""
    cls = _LOCATION_ERROR_CODES.get(code) if code is not None else None
    if cls is None:
        return PositionUnavailable(message or f"Unknown geolocation error code: {code}")
    return cls(message or cls.kind)


def location_error_from_kind(kind: str, message: str = "") -> LocationError:
    """Map a provider failure kind ("permission_denied", "timeout", ...) to its exception."""
    cls = _LOCATION_ERROR_KINDS.get(kind)
    if cls is None:
        raise ValueError(f"Unknown location error kind: {kind!r}")
    return cls(message or kind)


PERMISSION_MESSAGE = (
    "Location access was denied. To use this feature:\n"
    "1. On iOS: Go to Settings > Privacy > Location Services\n"
    "2. On Android: Go to Settings > Location\n"
    "3. Enable location services for your browser"
)

_USER_MESSAGES = {
    PermissionDenied: PERMISSION_MESSAGE,
    GeolocationUnsupported: (
        "Your browser does not support location services. "
        "Please use a different browser or enter your location manually."
    ),
    PositionUnavailable: (
        "Location information is unavailable. "
        "Please check if your device has location services enabled."
    ),
    LocationTimeout: "Location request timed out. Please check your connection and try again.",
    InvalidLocation: "Could not access your location. Please enable location services and try again.",
    UpstreamUnavailable: "The map data service is currently unavailable. Please try again in a moment.",
    MalformedResponse: "The map data service returned an unexpected response. Please try again in a moment.",
}

_GENERIC_MESSAGE = "Something went wrong while searching nearby. Please try again."


def is_permission_error(error: BaseException) -> bool:
    """True when the user can fix the failure by changing settings, not by retrying."""
    return isinstance(error, (PermissionDenied, GeolocationUnsupported))


def user_message(error: BaseException) -> str:
    """Plain-language message for an error, chosen by its type."""
    for cls in type(error).__mro__:
        if cls in _USER_MESSAGES:
            return _USER_MESSAGES[cls]
    return _GENERIC_MESSAGE


def no_results_message(category_label: str) -> str:
    return f"No {category_label} found in your area. Try increasing the search radius."
