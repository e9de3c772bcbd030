"""
Hand-curated configuration files: manual matches and the geocoding denylist.

Both are read once per run and never written by the pipeline.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .errors import ConfigError

# Registry placeholders that have no fixed location
DEFAULT_EXACT = ("לא רשום",)
# Bedouin tribe designations, e.g. "אסד (שבט)"
DEFAULT_CONTAINS = ("שבט",)


def _read_json(path: Path, what: str) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"{what} file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"{what} file is not valid JSON ({path}): {e}") from e


def parse_manual_overrides(data: Any) -> Dict[str, str]:
    """Accepts {"matches": {...}} or a bare mapping of registry name -> OSM name."""
    if isinstance(data, dict) and "matches" in data:
        data = data["matches"]
    if not isinstance(data, dict):
        raise ConfigError("Manual matches must be a JSON object")

    overrides: Dict[str, str] = {}
    for k, v in data.items():
        if not isinstance(v, str) or not v.strip():
            raise ConfigError(f"Manual match for '{k}' must be a non-empty string")
        overrides[k.strip()] = v
    return overrides


def load_manual_overrides(path: Optional[Path]) -> Dict[str, str]:
    if path is None:
        return {}
    return parse_manual_overrides(_read_json(path, "Manual matches"))


@dataclass(frozen=True)
class Denylist:
    """Names the geocoder should never be asked about."""

    exact: Tuple[str, ...] = field(default=DEFAULT_EXACT)
    contains: Tuple[str, ...] = field(default=DEFAULT_CONTAINS)

    def match(self, name: Optional[str]) -> Optional[str]:
        """Return the first pattern that matches ``name``, or None."""
        if not name:
            return None
        candidate = name.strip()
        for pattern in self.exact:
            if candidate == pattern:
                return pattern
        for pattern in self.contains:
            if pattern in candidate:
                return pattern
        return None

    def matches(self, name: Optional[str]) -> bool:
        return self.match(name) is not None


def parse_denylist(data: Any) -> Denylist:
    if isinstance(data, list):
        data = {"exact": data}
    if not isinstance(data, dict):
        raise ConfigError("Denylist must be a JSON object with 'exact'/'contains' lists")

    parts = {}
    for key in ("exact", "contains"):
        values = data.get(key, [])
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ConfigError(f"Denylist '{key}' must be a list of strings")
        parts[key] = tuple(v.strip() for v in values if v.strip())
    return Denylist(**parts)


def load_denylist(path: Optional[Path]) -> Denylist:
    if path is None:
        return Denylist()
    return parse_denylist(_read_json(path, "Denylist"))
