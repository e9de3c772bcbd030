"""
Records flowing through the pipeline.

RegistryRecord and GeoRecord are read-only inputs. ResolvedLocation and
UnmatchedRecord are produced by reconciliation or geocoding and persisted
as JSON in the shapes the published dataset has always used.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Union

from .schema import parse_population

LocationId = Union[str, int]


class MatchTier(Enum):
    """Priority level at which a registry entry found its coordinates."""
    MANUAL = "manual"
    EXACT_HE = "exact_he"
    EXACT_EN = "exact_en"
    GEOCODED = "geocoded"


@dataclass(frozen=True)
class RegistryRecord:
    hebrew_name: Optional[str]
    english_name: Optional[str] = None
    registry_code: Optional[str] = None
    population: Optional[int] = None
    district: Optional[str] = None
    type: Optional[str] = None

    @property
    def has_name(self) -> bool:
        return bool(self.hebrew_name or self.english_name)


@dataclass(frozen=True)
class GeoRecord:
    id: LocationId
    display_name: Optional[str]
    lat: float
    lon: float
    english_alias: Optional[str] = None


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


@dataclass
class ResolvedLocation:
    id: LocationId
    name: Optional[str]
    name_en: Optional[str]
    lat: float
    lon: float
    population: Optional[int] = None
    district: Optional[str] = None
    type: Optional[str] = None
    # Reporting only; never persisted.
    match_tier: Optional[MatchTier] = None

    def __post_init__(self):
        if not _is_number(self.lat) or not _is_number(self.lon):
            raise ValueError(f"Location {self.id!r} needs numeric lat/lon, got {self.lat!r}, {self.lon!r}")

    def without_tier(self) -> "ResolvedLocation":
        return replace(self, match_tier=None)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "nameEn": self.name_en,
            "lat": self.lat,
            "lon": self.lon,
        }
        for key in ("population", "district", "type"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolvedLocation":
        if "id" not in data:
            raise ValueError("Location entry has no id")
        return cls(
            id=data["id"],
            name=data.get("name"),
            name_en=data.get("nameEn"),
            lat=data.get("lat"),
            lon=data.get("lon"),
            population=parse_population(data.get("population")),
            district=data.get("district"),
            type=data.get("type"),
        )


@dataclass(frozen=True)
class UnmatchedRecord:
    hebrew_name: Optional[str]
    english_name: Optional[str] = None
    registry_code: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.hebrew_name or self.english_name or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.hebrew_name,
            "nameEn": self.english_name,
            "townCode": self.registry_code,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnmatchedRecord":
        return cls(
            hebrew_name=data.get("name"),
            english_name=data.get("nameEn"),
            registry_code=data.get("townCode"),
        )

    @classmethod
    def from_registry(cls, record: RegistryRecord) -> "UnmatchedRecord":
        return cls(
            hebrew_name=record.hebrew_name,
            english_name=record.english_name,
            registry_code=record.registry_code,
        )
