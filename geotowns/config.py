"""
Run settings, read from the environment (after .env is loaded).

CLI flags take precedence; see app.py.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_REGISTRY_URL = "https://data.gov.il/api/3/action/datastore_search"
DEFAULT_REGISTRY_RESOURCE_ID = "5c78e9fa-c2e2-4771-93ff-7f400a12f7ba"
DEFAULT_GEOCODER_URL = "https://maps.googleapis.com/maps/api/geocode/json"


@dataclass
class Settings:
    google_maps_api_key: Optional[str] = None
    registry_url: str = DEFAULT_REGISTRY_URL
    registry_resource_id: str = DEFAULT_REGISTRY_RESOURCE_ID
    page_size: int = 1500
    geocoder_url: str = DEFAULT_GEOCODER_URL
    # Provider ceiling is 50 req/s; 10 req/s keeps well under it
    geocode_delay: float = 0.1
    country: str = "Israel"
    log_level: str = "INFO"

    def require_api_key(self) -> str:
        if not self.google_maps_api_key:
            raise ConfigError("GOOGLE_MAPS_API_KEY not set. Set env var or pass --api-key.")
        return self.google_maps_api_key


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    defaults = Settings()
    return Settings(
        google_maps_api_key=env.get("GOOGLE_MAPS_API_KEY") or None,
        registry_url=env.get("GEOTOWNS_REGISTRY_URL", defaults.registry_url),
        registry_resource_id=env.get("GEOTOWNS_REGISTRY_RESOURCE_ID", defaults.registry_resource_id),
        page_size=_number(env, "GEOTOWNS_PAGE_SIZE", defaults.page_size, int) or defaults.page_size,
        geocoder_url=env.get("GEOTOWNS_GEOCODER_URL", defaults.geocoder_url),
        geocode_delay=_number(env, "GEOTOWNS_GEOCODE_DELAY", defaults.geocode_delay, float),
        country=env.get("GEOTOWNS_COUNTRY", defaults.country),
        log_level=env.get("GEOTOWNS_LOG_LEVEL", defaults.log_level),
    )
