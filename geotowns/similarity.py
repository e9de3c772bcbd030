"""
Edit-distance matching for settlement names.

Responsibilities:
- Levenshtein distance over normalized names.
- A similar / not-similar verdict under a threshold.
- Fuzzy suggestions for curating the manual override file.

Non-Responsibilities:
- Automatic reconciliation never calls into this module; fuzzy hits
  produce too many false positives between neighbouring settlements.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .models import GeoRecord, UnmatchedRecord
from .normalize import normalize_name

DEFAULT_THRESHOLD = 2


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute distance, tabulated row by row."""
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if a[i - 1] == b[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = min(
                    dp[i - 1][j] + 1,      # deletion
                    dp[i][j - 1] + 1,      # insertion
                    dp[i - 1][j - 1] + 1,  # substitution
                )
    return dp[m][n]


def is_similar(a: Optional[str], b: Optional[str], threshold: int = DEFAULT_THRESHOLD) -> bool:
    """
    True when two names are equal after normalization, one contains the
    other, or their edit distance is at most ``threshold``.
    """
    norm_a = normalize_name(a)
    norm_b = normalize_name(b)

    if norm_a == norm_b:
        return True
    if norm_a in norm_b or norm_b in norm_a:
        return True
    return levenshtein_distance(norm_a, norm_b) <= threshold


@dataclass(frozen=True)
class FuzzyCandidate:
    registry_name: str
    geo_name: str
    geo_id: object
    distance: int


def suggest_fuzzy_matches(
    unmatched: Iterable[UnmatchedRecord],
    geo_records: Iterable[GeoRecord],
    threshold: int = DEFAULT_THRESHOLD,
) -> List[FuzzyCandidate]:
    """
    Closest OSM name for each unmatched registry entry, for manual review.

    At most one candidate per entry; ties keep the earlier GeoRecord.
    Substring hits are reported with their real edit distance.
    """
    names = [(g, normalize_name(g.display_name)) for g in geo_records if g.display_name]
    suggestions: List[FuzzyCandidate] = []

    for record in unmatched:
        if not record.hebrew_name:
            continue
        key = normalize_name(record.hebrew_name)
        best: Optional[FuzzyCandidate] = None
        for geo, geo_key in names:
            if not is_similar(key, geo_key, threshold):
                continue
            distance = levenshtein_distance(key, geo_key)
            if best is None or distance < best.distance:
                best = FuzzyCandidate(
                    registry_name=record.hebrew_name,
                    geo_name=geo.display_name,
                    geo_id=geo.id,
                    distance=distance,
                )
        if best is not None:
            suggestions.append(best)

    return suggestions
