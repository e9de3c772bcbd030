"""
Lookup Index over OSM records.

Responsibilities:
- Map name variants (normalized Hebrew, raw Hebrew, normalized English)
  to the GeoRecord that carries them.

Invariant:
A key is bound to the first GeoRecord that produced it and is never
rebound. Earlier elements in the extract win over later ones.
"""

from typing import Dict, Iterable, List, Optional

from .models import GeoRecord
from .normalize import normalize_name


def index_keys(record: GeoRecord) -> List[str]:
    """Non-empty lookup keys for one GeoRecord, in insertion order."""
    keys = []
    if record.display_name:
        keys.append(normalize_name(record.display_name))
        keys.append(record.display_name.strip())
    if record.english_alias:
        keys.append(normalize_name(record.english_alias))
    return [k for k in keys if k]


class LookupIndex:
    """Read-only after build()."""

    def __init__(self):
        self._entries: Dict[str, GeoRecord] = {}

    @classmethod
    def build(cls, geo_records: Iterable[GeoRecord]) -> "LookupIndex":
        index = cls()
        for record in geo_records:
            for key in index_keys(record):
                if key not in index._entries:
                    index._entries[key] = record
        return index

    def get(self, key: Optional[str]) -> Optional[GeoRecord]:
        if not key:
            return None
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)
