"""OpenStreetMap place extract (Overpass JSON)."""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..errors import SourceError
from ..logger import get_logger
from ..models import GeoRecord
from ..normalize import clean_field

logger = get_logger()


def _coordinates(element: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    """Node coordinates, or the center Overpass adds to ways/relations."""
    lat, lon = element.get("lat"), element.get("lon")
    if lat is None or lon is None:
        center = element.get("center") or {}
        lat, lon = center.get("lat"), center.get("lon")
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None


def to_geo_record(element: Any) -> Tuple[Optional[GeoRecord], List[str]]:
    """Returns (record, errors). Elements without any name are dropped silently."""
    if not isinstance(element, dict):
        return None, [f"OSM element must be an object, got {type(element).__name__}"]

    tags = element.get("tags") or {}
    name_he = clean_field(tags.get("name")) or clean_field(tags.get("name:he"))
    name_en = clean_field(tags.get("name:en")) or clean_field(tags.get("int_name"))
    if not name_he and not name_en:
        return None, []

    coords = _coordinates(element)
    if coords is None:
        return None, [f"OSM element {element.get('id')} ({name_he or name_en}) has no coordinates"]

    return GeoRecord(
        id=element.get("id"),
        display_name=name_he,
        english_alias=name_en,
        lat=coords[0],
        lon=coords[1],
    ), []


def parse_osm_elements(elements: Iterable[Any]) -> List[GeoRecord]:
    records: List[GeoRecord] = []
    for element in elements:
        record, errors = to_geo_record(element)
        if errors:
            logger.warning("Skipping malformed OSM element", errors=errors)
            continue
        if record is not None:
            records.append(record)
    return records


def load_osm_extract(path: Path) -> List[GeoRecord]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise SourceError(f"OSM extract not found: {path}")
    except json.JSONDecodeError as e:
        raise SourceError(f"OSM extract is not valid JSON ({path}): {e}") from e

    elements = data.get("elements") if isinstance(data, dict) else None
    if not isinstance(elements, list):
        raise SourceError(f"OSM extract has no 'elements' list: {path}")

    records = parse_osm_elements(elements)
    logger.info(f"Loaded {len(records)} locations from OpenStreetMap ({len(elements)} elements)")
    return records
