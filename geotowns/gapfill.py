"""
Geocoding Gap-Filler.

Responsibilities:
- Walk the unmatched queue in order, one record at a time.
- Move each record from PENDING to exactly one of SKIPPED, RESOLVED, FAILED.
- Stop the whole queue when the provider reports its quota is exhausted.

Non-Responsibilities:
- No file access; callers persist the result.
- No retries of a record within a run; failed records are retried on
  the next run from the persisted unmatched list.

Invariant:
The only suspension point is the fixed delay between two geocode
attempts. Skipped records cost neither a request nor a delay.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from .geocode import GeocodeOutcome, GeocodeQuotaExceeded, GeocodeSuccess
from .logger import get_logger
from .models import MatchTier, ResolvedLocation, UnmatchedRecord
from .overrides import Denylist

logger = get_logger()


class RecordState(Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    RESOLVED = "resolved"
    FAILED = "failed"


class Geocoder(Protocol):
    def geocode(self, query: str) -> GeocodeOutcome:
        ...


@dataclass(frozen=True)
class FailedGeocode:
    record: UnmatchedRecord
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {**self.record.to_dict(), "error": self.reason}


@dataclass
class GapFillResult:
    successful: List[ResolvedLocation] = field(default_factory=list)
    failed: List[FailedGeocode] = field(default_factory=list)
    skipped: List[UnmatchedRecord] = field(default_factory=list)
    # Terminal state of every record that left PENDING, in queue order
    states: List[Tuple[UnmatchedRecord, RecordState]] = field(default_factory=list)
    # Set when the quota ran out; the rest of the queue was not attempted
    aborted: bool = False

    @property
    def processed(self) -> int:
        return len(self.successful) + len(self.failed) + len(self.skipped)

    def remaining(self, queue: Sequence[UnmatchedRecord]) -> List[UnmatchedRecord]:
        """
        Records of ``queue`` still without coordinates, in queue order:
        failed and skipped ones plus the tail left unattempted by an abort.
        """
        left = [record for record, state in self.states if state is not RecordState.RESOLVED]
        return left + list(queue[len(self.states):])

    def summary(self) -> Dict[str, Any]:
        return {
            "successful": len(self.successful),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
            "aborted": self.aborted,
        }


def build_query(record: UnmatchedRecord, country: str = "Israel") -> str:
    """Best available name plus the country qualifier."""
    name = record.english_name or record.hebrew_name or ""
    return f"{name}, {country}" if country else name


def attempt(
    record: UnmatchedRecord,
    geocoder: Geocoder,
    country: str = "Israel",
) -> Tuple[RecordState, Union[ResolvedLocation, FailedGeocode], GeocodeOutcome]:
    """
    Move a PENDING record to RESOLVED or FAILED with one geocode request.

    Returns (state, payload, outcome) where payload is a ResolvedLocation
    or a FailedGeocode.
    """
    outcome = geocoder.geocode(build_query(record, country))
    if isinstance(outcome, GeocodeSuccess):
        location = ResolvedLocation(
            id=record.registry_code or record.display_name,
            name=record.hebrew_name,
            name_en=record.english_name or "",
            lat=outcome.lat,
            lon=outcome.lon,
            match_tier=MatchTier.GEOCODED,
        )
        return RecordState.RESOLVED, location, outcome
    return RecordState.FAILED, FailedGeocode(record, outcome.reason), outcome


def fill_gaps(
    unmatched: Iterable[UnmatchedRecord],
    geocoder: Geocoder,
    denylist: Optional[Denylist] = None,
    delay: float = 0.1,
    country: str = "Israel",
    sleep: Callable[[float], None] = time.sleep,
) -> GapFillResult:
    """
    Geocode every unmatched record the denylist lets through.

    Args:
        unmatched: Queue of records, processed in order
        geocoder: Anything with geocode(query) -> GeocodeOutcome
        denylist: Names to skip without a request (default patterns if None)
        delay: Seconds to wait between two consecutive geocode attempts
        country: Qualifier appended to every query
        sleep: Suspension function, injectable for tests

    Returns:
        GapFillResult with disjoint successful/failed/skipped lists
    """
    denylist = denylist or Denylist()
    queue = list(unmatched)
    result = GapFillResult()
    attempted = 0

    for i, record in enumerate(queue):
        progress = f"[{i + 1}/{len(queue)}]"

        pattern = denylist.match(record.hebrew_name)
        if pattern is not None:
            logger.record_geocode_skip()
            logger.info(f"{progress} Skipping: {record.display_name} ({record.english_name or 'N/A'})",
                        pattern=pattern)
            result.skipped.append(record)
            result.states.append((record, RecordState.SKIPPED))
            continue

        if attempted > 0 and delay > 0:
            sleep(delay)
        state, payload, outcome = attempt(record, geocoder, country)
        attempted += 1
        result.states.append((record, state))
        logger.record_geocode_attempt()

        if state is RecordState.RESOLVED:
            logger.record_geocode_success()
            logger.info(f"{progress} Found: {record.display_name} -> {payload.lat}, {payload.lon}")
            result.successful.append(payload)
            continue

        logger.record_geocode_failure(payload.reason)
        logger.warning(f"{progress} Failed: {record.display_name}", reason=payload.reason)
        result.failed.append(payload)

        if isinstance(outcome, GeocodeQuotaExceeded):
            result.aborted = True
            logger.error(
                "API quota exceeded. Stopping.",
                remaining=len(queue) - i - 1,
            )
            break

    return result
