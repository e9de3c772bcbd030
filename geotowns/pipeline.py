"""
Batch runs: build, geocode, coverage.

These functions are the only places that touch files and record run
metrics; the matching and merge stages they call stay pure.
"""

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .gapfill import GapFillResult, Geocoder, fill_gaps
from .logger import get_logger
from .lookup import LookupIndex
from .merge import merge_and_sort
from .models import GeoRecord, RegistryRecord, ResolvedLocation, UnmatchedRecord
from .overrides import Denylist
from .reconcile import ReconciliationResult, reconcile
from .similarity import FuzzyCandidate, suggest_fuzzy_matches
from .storage import (
    LOCATIONS_FILE,
    build_report,
    load_locations,
    load_prior_geocoded,
    load_unmatched,
    save_json,
    save_locations,
    save_unmatched,
)

logger = get_logger()

UNMATCHED_PREVIEW = 20


@dataclass
class BuildReport:
    reconciliation: ReconciliationResult
    locations: List[ResolvedLocation] = field(default_factory=list)
    prior_merged: int = 0
    # Unmatched towns not already covered by an earlier geocoding run
    pending: List[UnmatchedRecord] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)

    def type_counts(self) -> Dict[str, int]:
        counts = Counter(loc.type for loc in self.locations if loc.type)
        return dict(counts)


def _log_unmatched(unmatched: Sequence[UnmatchedRecord]) -> None:
    logger.warning(f"{len(unmatched)} towns without geolocation")
    for town in unmatched[:UNMATCHED_PREVIEW]:
        logger.warning(f"  - {town.display_name} ({town.english_name or 'N/A'}) [{town.registry_code}]")
    if len(unmatched) > UNMATCHED_PREVIEW:
        logger.warning(f"  ... and {len(unmatched) - UNMATCHED_PREVIEW} more")


def run_build(
    registry: Sequence[RegistryRecord],
    geo_records: Sequence[GeoRecord],
    overrides: Dict[str, str],
    output_dirs: Sequence[Path],
    unmatched_path: Path,
    report_path: Optional[Path] = None,
) -> BuildReport:
    """
    Reconcile the registry against OSM and publish locations.json.

    Earlier geocoding successes (from ``report_path``) are merged in after
    the fresh matches, so a fresh match wins on a duplicate id. Towns those
    successes already cover are left out of the unmatched list.
    """
    index = LookupIndex.build(geo_records)
    logger.info(f"Created OSM lookup with {len(index)} entries")
    logger.info(f"Loaded {len(overrides)} manual matches")

    result = reconcile(registry, index, overrides)
    for tier, count in result.tier_counts().items():
        logger.record_match(tier.value, count)
    logger.record_unmatched(len(result.unmatched))
    logger.info(f"Matched {len(result.resolved)} towns, {len(result.unmatched)} unmatched, "
                f"{result.skipped} without a name")

    prior = load_prior_geocoded(report_path) if report_path else []
    if prior:
        logger.info(f"Merging {len(prior)} previously geocoded locations")
    locations = merge_and_sort(result.resolved, prior)

    geocoded_ids = {str(loc.id) for loc in prior}
    pending = [u for u in result.unmatched if str(u.registry_code or u.display_name) not in geocoded_ids]
    report = BuildReport(reconciliation=result, locations=locations, prior_merged=len(prior), pending=pending)

    if pending:
        _log_unmatched(pending)
    save_unmatched(unmatched_path, pending)
    logger.info(f"Full list of unmatched towns saved to: {unmatched_path}")

    for out_dir in output_dirs:
        path = Path(out_dir) / LOCATIONS_FILE
        save_locations(path, locations)
        report.written.append(path)
        logger.info(f"Wrote {len(locations)} locations to {path}")

    types = report.type_counts()
    if types:
        logger.info("Final statistics: " + ", ".join(f"{t}={n}" for t, n in sorted(types.items())))
    return report


def run_geocode(
    geocoder: Geocoder,
    unmatched_path: Path,
    locations_path: Path,
    report_path: Path,
    denylist: Optional[Denylist] = None,
    delay: float = 0.1,
    country: str = "Israel",
    sleep: Optional[Callable[[float], None]] = None,
) -> GapFillResult:
    """
    Geocode the persisted unmatched list and fold successes into locations.json.

    Afterwards the unmatched list holds only what is still unresolved
    (failed, skipped and any tail an abort left unattempted), and the
    report's successful list holds every geocoded location so far. A quota
    abort still writes everything gathered before it.
    """
    unmatched = load_unmatched(unmatched_path)
    current = load_locations(locations_path)
    prior = load_prior_geocoded(report_path)
    logger.info(f"Unmatched towns: {len(unmatched)}, current locations: {len(current)}")

    kwargs = {"sleep": sleep} if sleep is not None else {}
    result = fill_gaps(unmatched, geocoder, denylist, delay=delay, country=country, **kwargs)

    total_after = len(current)
    if result.successful:
        merged = merge_and_sort(current, result.successful)
        save_locations(locations_path, merged)
        total_after = len(merged)
        logger.info(f"Updated {locations_path}: {total_after} locations")

    still_unmatched = result.remaining(unmatched)
    save_unmatched(unmatched_path, still_unmatched)
    logger.info(f"{len(still_unmatched)} towns left in {unmatched_path}")

    geocoded = merge_and_sort(result.successful, prior)
    save_json(report_path, build_report(result, len(current), total_after, successful=geocoded))
    logger.info(f"Detailed report saved to: {report_path}")

    if result.aborted:
        logger.error("Geocoding stopped early: API quota exceeded; partial results saved")
    if result.failed:
        logger.warning(f"{len(result.failed)} locations failed; check them manually or add manual matches")
    return result


def check_coverage(
    registry: Sequence[RegistryRecord],
    locations: Sequence[ResolvedLocation],
    denylist: Optional[Denylist] = None,
) -> List[UnmatchedRecord]:
    """Registry entries missing from the published set, minus known-missing names."""
    denylist = denylist or Denylist()
    published = {str(loc.id) for loc in locations}
    published_names = {loc.name for loc in locations if loc.name}
    missing = []
    for record in registry:
        if not record.has_name or denylist.matches(record.hebrew_name):
            continue
        if record.registry_code:
            if record.registry_code in published:
                continue
        elif record.hebrew_name in published_names:
            continue
        missing.append(UnmatchedRecord.from_registry(record))
    return missing


def review_candidates(
    unmatched_path: Path,
    geo_records: Sequence[GeoRecord],
    threshold: int = 2,
) -> List[FuzzyCandidate]:
    unmatched = load_unmatched(unmatched_path)
    return suggest_fuzzy_matches(unmatched, geo_records, threshold)
