"""
Merge/Dedup & Sort stage.

Invariant:
Duplicates by id collapse to the first occurrence; later entries are
dropped whole, never merged field by field.
"""

from typing import Iterable, List

from .models import ResolvedLocation


def population_key(location: ResolvedLocation) -> int:
    return location.population or 0


def dedupe_by_id(locations: Iterable[ResolvedLocation]) -> List[ResolvedLocation]:
    """Deduplicate locations by id while preserving order."""
    seen = set()
    result = []
    for loc in locations:
        key = str(loc.id)
        if key not in seen:
            seen.add(key)
            result.append(loc)
    return result


def merge_and_sort(
    new_resolved: Iterable[ResolvedLocation],
    prior_resolved: Iterable[ResolvedLocation],
) -> List[ResolvedLocation]:
    """
    Combine a fresh result set with a previously persisted one.

    Args:
        new_resolved: Records from this run; they win on duplicate ids
        prior_resolved: Records loaded from an earlier run

    Returns:
        Deduplicated list, stable-sorted by population descending
        (missing population counts as 0), with match tiers stripped
    """
    merged = dedupe_by_id([*new_resolved, *prior_resolved])
    merged.sort(key=population_key, reverse=True)
    return [loc.without_tier() for loc in merged]
