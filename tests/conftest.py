"""
Pytest configuration and shared fixtures.
"""

import pytest
import json
from pathlib import Path
from typing import Any, Dict, List

from geotowns.geocode import GeocodeNoResult
from geotowns.models import GeoRecord, RegistryRecord


class StubGeocoder:
    """Returns canned outcomes in order and counts every request."""

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.queries: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.queries)

    def geocode(self, query: str):
        self.queries.append(query)
        if self.outcomes:
            return self.outcomes.pop(0)
        return GeocodeNoResult()


@pytest.fixture
def stub_geocoder():
    """Factory for stub geocoders."""
    return StubGeocoder


class SleepRecorder:
    """Stands in for time.sleep; remembers every requested delay."""

    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def no_sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def registry_rows() -> List[Dict[str, Any]]:
    """Rows as returned by data.gov.il datastore_search."""
    return [
        {"_id": 1, "סמל_ישוב": "5000 ", "שם_ישוב": "תל אביב - יפו ", "שם_ישוב_לועזי": "TEL AVIV - YAFO", "שם_נפה": "תל אביב"},
        {"_id": 2, "סמל_ישוב": "3000", "שם_ישוב": "ירושלים", "שם_ישוב_לועזי": "JERUSALEM", "שם_נפה": "ירושלים"},
        {"_id": 3, "סמל_ישוב": "7000", "שם_ישוב": "לוד", "שם_ישוב_לועזי": "LOD", "שם_נפה": "רמלה"},
        {"_id": 4, "סמל_ישוב": "0", "שם_ישוב": "לא רשום", "שם_ישוב_לועזי": "", "שם_נפה": ""},
        {"_id": 5, "סמל_ישוב": "1359", "שם_ישוב": "אסד (שבט)", "שם_ישוב_לועזי": "ASAD", "שם_נפה": "באר שבע"},
        {"_id": 6, "סמל_ישוב": "9999", "שם_ישוב": " ", "שם_ישוב_לועזי": " "},
    ]


@pytest.fixture
def osm_payload() -> Dict[str, Any]:
    """Overpass JSON extract with nodes and a way with a center."""
    return {
        "elements": [
            {"type": "node", "id": 101, "lat": 32.0853, "lon": 34.7818,
             "tags": {"name": "תל אביב-יפו", "name:en": "Tel Aviv-Yafo"}},
            {"type": "node", "id": 102, "lat": 31.7683, "lon": 35.2137,
             "tags": {"name": "ירושלים", "name:en": "Jerusalem"}},
            {"type": "way", "id": 103, "center": {"lat": 31.9510, "lon": 34.8881},
             "tags": {"name:he": "לוד", "int_name": "Lod"}},
            {"type": "node", "id": 104, "tags": {"name": "בלי קואורדינטות"}},
            {"type": "node", "id": 105, "lat": 32.0, "lon": 34.0, "tags": {}},
        ]
    }


@pytest.fixture
def osm_file(tmp_path, osm_payload) -> Path:
    path = tmp_path / "israel_places.json"
    path.write_text(json.dumps(osm_payload, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def registry_file(tmp_path, registry_rows) -> Path:
    path = tmp_path / "registry.json"
    payload = {"success": True, "result": {"records": registry_rows, "total": len(registry_rows)}}
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def geo_records() -> List[GeoRecord]:
    return [
        GeoRecord(id=101, display_name="תל אביב-יפו", english_alias="Tel Aviv-Yafo", lat=32.0853, lon=34.7818),
        GeoRecord(id=102, display_name="ירושלים", english_alias="Jerusalem", lat=31.7683, lon=35.2137),
        GeoRecord(id=103, display_name="קריית אונו", english_alias="Kiryat Ono", lat=32.0636, lon=34.8553),
    ]


@pytest.fixture
def registry_records() -> List[RegistryRecord]:
    return [
        RegistryRecord(hebrew_name="ירושלים", english_name="JERUSALEM", registry_code="3000", population=981711),
        RegistryRecord(hebrew_name="תל אביב - יפו", english_name="TEL AVIV - YAFO", registry_code="5000", population=474530),
        RegistryRecord(hebrew_name="קרית אונו", english_name="QIRYAT ONO", registry_code="2620", population=42000),
    ]
