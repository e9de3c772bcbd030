from typing import Any, Dict, List, Optional

from .normalize import clean_field

# Field names used by the data.gov.il settlements resource
REGISTRY_FIELDS = {
    "hebrew_name": "שם_ישוב",
    "english_name": "שם_ישוב_לועזי",
    "registry_code": "סמל_ישוב",
    "district": "שם_נפה",
    "population": "population",
    "type": "type",
}


def _is_str_or_number(v: Any) -> bool:
    return isinstance(v, (str, int, float)) and not isinstance(v, bool)


def parse_population(v: Any) -> Optional[int]:
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    try:
        return int(float(str(v).replace(",", "").strip()))
    except (ValueError, OverflowError):
        return None


def validate_registry_row(row: Any, fields: Dict[str, str] = REGISTRY_FIELDS) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.

    A row without any name is not an error: reconciliation skips it.
    """
    errors: List[str] = []
    if not isinstance(row, dict):
        return [f"Registry row must be an object, got {type(row).__name__}"]

    for key in ("hebrew_name", "english_name", "registry_code", "district", "type"):
        f = fields.get(key)
        if f and row.get(f) is not None and not _is_str_or_number(row[f]):
            errors.append(f"Field '{f}' must be a string if provided")

    pop_field = fields.get("population")
    if pop_field and clean_field(row.get(pop_field)) is not None:
        if parse_population(row[pop_field]) is None:
            errors.append(f"Field '{pop_field}' must be an integer, got {row[pop_field]!r}")

    return errors


def validate_location_entry(data: Any) -> List[str]:
    """Checks one entry of a persisted locations.json / geocoding report."""
    if not isinstance(data, dict):
        return [f"Location entry must be an object, got {type(data).__name__}"]
    errors: List[str] = []
    if data.get("id") in (None, ""):
        errors.append("Missing required field: id")
    for f in ("lat", "lon"):
        v = data.get(f)
        if not isinstance(v, (int, float)) or isinstance(v, bool):
            errors.append(f"Field '{f}' must be a number")
    return errors
