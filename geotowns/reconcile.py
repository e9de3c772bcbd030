"""
Reconciliation Engine.

Responsibilities:
- Match each registry record against the Lookup Index, tier by tier:
  manual override, exact Hebrew, exact English.
- Return resolved and unmatched records as values.

Non-Responsibilities:
- No fuzzy matching.
- No network, no file access, no logging.

Invariant:
Identical inputs always produce identical outputs.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .lookup import LookupIndex
from .models import GeoRecord, MatchTier, RegistryRecord, ResolvedLocation, UnmatchedRecord
from .normalize import normalize_name


@dataclass
class ReconciliationResult:
    resolved: List[ResolvedLocation] = field(default_factory=list)
    unmatched: List[UnmatchedRecord] = field(default_factory=list)
    skipped: int = 0

    def tier_counts(self) -> Dict[MatchTier, int]:
        counts = Counter(r.match_tier for r in self.resolved)
        return {tier: counts.get(tier, 0) for tier in (MatchTier.MANUAL, MatchTier.EXACT_HE, MatchTier.EXACT_EN)}


def find_match(
    record: RegistryRecord,
    index: LookupIndex,
    overrides: Mapping[str, str],
) -> Tuple[Optional[GeoRecord], Optional[MatchTier]]:
    """First tier that hits wins; (None, None) when all tiers miss."""
    if record.hebrew_name and record.hebrew_name in overrides:
        target = overrides[record.hebrew_name]
        geo = index.get(normalize_name(target)) or index.get(target.strip())
        if geo is not None:
            return geo, MatchTier.MANUAL

    if record.hebrew_name:
        geo = index.get(normalize_name(record.hebrew_name))
        if geo is not None:
            return geo, MatchTier.EXACT_HE

    if record.english_name:
        geo = index.get(normalize_name(record.english_name))
        if geo is not None:
            return geo, MatchTier.EXACT_EN

    return None, None


def to_resolved(record: RegistryRecord, geo: GeoRecord, tier: MatchTier) -> ResolvedLocation:
    return ResolvedLocation(
        id=record.registry_code or geo.id,
        name=record.hebrew_name,
        name_en=record.english_name,
        lat=geo.lat,
        lon=geo.lon,
        population=record.population,
        district=record.district,
        type=record.type,
        match_tier=tier,
    )


def reconcile(
    records: Iterable[RegistryRecord],
    index: LookupIndex,
    overrides: Optional[Mapping[str, str]] = None,
) -> ReconciliationResult:
    overrides = overrides or {}
    result = ReconciliationResult()

    for record in records:
        if not record.has_name:
            result.skipped += 1
            continue

        geo, tier = find_match(record, index, overrides)
        if geo is None:
            result.unmatched.append(UnmatchedRecord.from_registry(record))
        else:
            result.resolved.append(to_resolved(record, geo, tier))

    return result
