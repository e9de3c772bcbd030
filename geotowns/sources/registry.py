"""Official settlements registry (data.gov.il CKAN datastore)."""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..config import DEFAULT_REGISTRY_RESOURCE_ID, DEFAULT_REGISTRY_URL
from ..errors import SourceError
from ..logger import get_logger
from ..models import RegistryRecord
from ..normalize import clean_field
from ..schema import REGISTRY_FIELDS, parse_population, validate_registry_row
from .common import fetch_json

logger = get_logger()


def to_registry_record(row: Dict[str, Any], fields: Dict[str, str] = REGISTRY_FIELDS) -> RegistryRecord:
    def get(key: str) -> Optional[str]:
        f = fields.get(key)
        return clean_field(row.get(f)) if f else None

    pop_field = fields.get("population")
    return RegistryRecord(
        hebrew_name=get("hebrew_name"),
        english_name=get("english_name"),
        registry_code=get("registry_code"),
        population=parse_population(row.get(pop_field)) if pop_field else None,
        district=get("district"),
        type=get("type"),
    )


def parse_registry_rows(rows: Iterable[Any], fields: Dict[str, str] = REGISTRY_FIELDS) -> List[RegistryRecord]:
    """Convert raw rows, skipping malformed ones with a warning."""
    records: List[RegistryRecord] = []
    for i, row in enumerate(rows):
        errors = validate_registry_row(row, fields)
        if errors:
            logger.record_invalid_record()
            logger.warning("Skipping malformed registry row", index=i, errors=errors)
            continue
        records.append(to_registry_record(row, fields))
    return records


def fetch_registry_rows(
    url: str = DEFAULT_REGISTRY_URL,
    resource_id: str = DEFAULT_REGISTRY_RESOURCE_ID,
    page_size: int = 1500,
) -> List[Dict[str, Any]]:
    """
    Page through datastore_search until `total` rows are read.

    Stops early on an empty page, so a registry that shrinks mid-run
    cannot loop forever.
    """
    rows: List[Dict[str, Any]] = []
    offset = 0
    while True:
        payload = fetch_json(
            url,
            params={"resource_id": resource_id, "limit": page_size, "offset": offset},
            source="registry",
        )
        if not isinstance(payload, dict) or not payload.get("success", True):
            raise SourceError(f"Registry returned an error payload: {str(payload)[:200]}")

        result = payload.get("result") or {}
        page = result.get("records")
        if not isinstance(page, list):
            raise SourceError("Registry payload has no 'result.records' list")

        rows.extend(page)
        offset += len(page)
        total = result.get("total")
        logger.debug("Fetched registry page", offset=offset, page=len(page), total=total)

        if not page or (isinstance(total, int) and offset >= total):
            break
        if total is None and len(page) < page_size:
            break

    return rows


def fetch_registry(
    url: str = DEFAULT_REGISTRY_URL,
    resource_id: str = DEFAULT_REGISTRY_RESOURCE_ID,
    page_size: int = 1500,
) -> List[RegistryRecord]:
    rows = fetch_registry_rows(url, resource_id, page_size)
    logger.record_registry_records(len(rows))
    logger.info(f"Fetched {len(rows)} registry records from data.gov.il")
    return parse_registry_rows(rows)


def load_registry_file(path: Path) -> List[RegistryRecord]:
    """Read registry rows from a saved datastore_search response or a bare list."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise SourceError(f"Registry file not found: {path}")
    except json.JSONDecodeError as e:
        raise SourceError(f"Registry file is not valid JSON ({path}): {e}") from e

    if isinstance(data, dict):
        data = (data.get("result") or {}).get("records", data.get("records"))
    if not isinstance(data, list):
        raise SourceError(f"Registry file has no record list: {path}")

    logger.record_registry_records(len(data))
    logger.info(f"Loaded {len(data)} registry records from {path}")
    return parse_registry_rows(data)
