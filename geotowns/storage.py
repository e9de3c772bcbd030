import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .errors import PersistenceError
from .logger import get_logger
from .models import ResolvedLocation, UnmatchedRecord
from .schema import validate_location_entry

logger = get_logger()

LOCATIONS_FILE = "locations.json"
UNMATCHED_FILE = "unmatched_towns.json"
REPORT_FILE = "geocoding-report.json"


def load_json(path: Path, default: Any) -> Any:
    """Missing or empty files read as ``default``; corrupt JSON is fatal."""
    if not path.exists():
        return default
    try:
        with path.open("r", encoding="utf-8") as f:
            content = f.read().strip()
    except OSError as e:
        raise PersistenceError(f"Cannot read {path}: {e}") from e
    if not content:
        return default
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"{path} is not valid JSON: {e}") from e


def save_json(path: Path, data: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except (OSError, TypeError) as e:
        raise PersistenceError(f"Cannot write {path}: {e}") from e


def parse_locations(entries: Iterable[Any], origin: str) -> List[ResolvedLocation]:
    locations = []
    for i, entry in enumerate(entries):
        errors = validate_location_entry(entry)
        if errors:
            logger.warning("Skipping malformed location entry", file=origin, index=i, errors=errors)
            continue
        locations.append(ResolvedLocation.from_dict(entry))
    return locations


def load_locations(path: Path) -> List[ResolvedLocation]:
    data = load_json(path, [])
    if not isinstance(data, list):
        raise PersistenceError(f"{path} must contain a JSON list")
    return parse_locations(data, str(path))


def save_locations(path: Path, locations: Iterable[ResolvedLocation]) -> None:
    save_json(path, [loc.to_dict() for loc in locations])


def load_unmatched(path: Path) -> List[UnmatchedRecord]:
    data = load_json(path, [])
    if not isinstance(data, list):
        raise PersistenceError(f"{path} must contain a JSON list")
    return [UnmatchedRecord.from_dict(d) for d in data if isinstance(d, dict)]


def save_unmatched(path: Path, unmatched: Iterable[UnmatchedRecord]) -> None:
    save_json(path, [u.to_dict() for u in unmatched])


def load_prior_geocoded(report_path: Path) -> List[ResolvedLocation]:
    """Successful entries of an earlier geocoding report, if any."""
    report = load_json(report_path, {})
    if not isinstance(report, dict):
        raise PersistenceError(f"{report_path} must contain a JSON object")
    return parse_locations(report.get("successful") or [], str(report_path))


def build_report(
    result,
    total_before: int,
    total_after: int,
    successful: Optional[Iterable[ResolvedLocation]] = None,
) -> Dict[str, Any]:
    """
    Geocoding run report in the format earlier runs produced.

    ``successful`` replaces the run's own successes in the report body; the
    geocode run passes every success so far, so the report stays the
    complete record of geocoded locations for the next build. The summary
    always counts this run only.
    """
    if successful is None:
        successful = result.successful
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "summary": {
            **result.summary(),
            "total_before": total_before,
            "total_after": total_after,
        },
        "successful": [loc.to_dict() for loc in successful],
        "failed": [f.to_dict() for f in result.failed],
        "skipped": [s.to_dict() for s in result.skipped],
    }
