import logging
import os

# Basic settings helper to read environment configuration.

logger = logging.getLogger(__name__)

DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"
FALLBACK_USER_AGENT = "care-locator/0.1 (contact: example@example.com)"


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        logger.warning("Ignoring invalid numeric setting %r; using %s", val, default)
        return default


class Settings:
    def __init__(self) -> None:
        self.OVERPASS_URL: str = os.getenv("OVERPASS_URL") or DEFAULT_OVERPASS_URL
        self.OVERPASS_TIMEOUT_SECONDS: float = _as_float(os.getenv("OVERPASS_TIMEOUT_SECONDS"), 10.0)
        self.OVERPASS_METHOD: str = (os.getenv("OVERPASS_METHOD") or "post").lower()
        self.OVERPASS_USER_AGENT: str | None = os.getenv("OVERPASS_USER_AGENT")
        self.SEARCH_RADIUS_M: float = _as_float(os.getenv("SEARCH_RADIUS_M"), 50000.0)
        # Substitute the bundled sample dataset when Overpass fails. Development only.
        self.DEV_FALLBACK_ENABLED: bool = _as_bool(os.getenv("LOCATOR_DEV_FALLBACK"), False)
        self.LOG_LEVEL: str = (os.getenv("LOG_LEVEL") or "INFO").upper()

    @property
    def user_agent(self) -> str:
        return self.OVERPASS_USER_AGENT or FALLBACK_USER_AGENT


settings = Settings()
