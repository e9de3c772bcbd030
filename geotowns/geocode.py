"""
Google Geocoding API client.

Every request ends in exactly one GeocodeOutcome; the client never raises
for a provider answer or a transport failure.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from .config import DEFAULT_GEOCODER_URL
from .errors import SourceError
from .sources.common import fetch_json


@dataclass(frozen=True)
class GeocodeSuccess:
    lat: float
    lon: float
    formatted_address: Optional[str] = None


@dataclass(frozen=True)
class GeocodeNoResult:
    reason: str = "No results found"


@dataclass(frozen=True)
class GeocodeQuotaExceeded:
    reason: str = "API quota exceeded"


@dataclass(frozen=True)
class GeocodeError:
    message: str

    @property
    def reason(self) -> str:
        return self.message


GeocodeOutcome = Union[GeocodeSuccess, GeocodeNoResult, GeocodeQuotaExceeded, GeocodeError]


def classify_response(data: Any) -> GeocodeOutcome:
    """Map a Geocoding API JSON body onto a GeocodeOutcome."""
    if not isinstance(data, dict):
        return GeocodeError("Malformed geocoder response")

    status = data.get("status")
    if status == "OK":
        results = data.get("results") or []
        if not results:
            return GeocodeNoResult()
        first = results[0]
        try:
            location = first["geometry"]["location"]
            return GeocodeSuccess(
                lat=float(location["lat"]),
                lon=float(location["lng"]),
                formatted_address=first.get("formatted_address"),
            )
        except (KeyError, TypeError, ValueError):
            return GeocodeError("Geocoder result has no usable location")
    if status == "ZERO_RESULTS":
        return GeocodeNoResult()
    if status == "OVER_QUERY_LIMIT":
        return GeocodeQuotaExceeded()
    return GeocodeError(str(status or "Unknown geocoder status"))


class GoogleGeocoder:
    """One request per call; rate limiting is the caller's job."""

    def __init__(self, api_key: str, url: str = DEFAULT_GEOCODER_URL, timeout: float = 15):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    def geocode(self, query: str) -> GeocodeOutcome:
        try:
            data = fetch_json(
                self.url,
                params={"address": query, "key": self.api_key},
                source="geocoder",
                timeout=self.timeout,
                retry=False,
            )
        except SourceError as e:
            return GeocodeError(str(e))
        return classify_response(data)
