"""
Tests for the OpenStreetMap extract loader.
"""

import pytest

from geotowns.errors import SourceError
from geotowns.sources.osm import load_osm_extract, parse_osm_elements, to_geo_record


class TestToGeoRecord:
    """Test conversion of a single Overpass element."""

    def test_node(self, osm_payload):
        record, errors = to_geo_record(osm_payload["elements"][0])

        assert errors == []
        assert record.id == 101
        assert record.display_name == "תל אביב-יפו"
        assert record.english_alias == "Tel Aviv-Yafo"
        assert (record.lat, record.lon) == (32.0853, 34.7818)

    def test_way_uses_center_and_fallback_tags(self, osm_payload):
        record, errors = to_geo_record(osm_payload["elements"][2])

        assert errors == []
        assert record.display_name == "לוד"
        assert record.english_alias == "Lod"
        assert (record.lat, record.lon) == (31.9510, 34.8881)

    def test_missing_coordinates_is_error(self, osm_payload):
        record, errors = to_geo_record(osm_payload["elements"][3])

        assert record is None
        assert len(errors) == 1

    def test_nameless_element_dropped_silently(self, osm_payload):
        assert to_geo_record(osm_payload["elements"][4]) == (None, [])

    def test_non_object(self):
        record, errors = to_geo_record("node")

        assert record is None
        assert errors

    def test_string_coordinates(self):
        record, _ = to_geo_record({"id": 1, "lat": "31.5", "lon": "34.5", "tags": {"name": "x"}})

        assert (record.lat, record.lon) == (31.5, 34.5)


class TestParseOsmElements:
    def test_keeps_only_usable_elements(self, osm_payload):
        records = parse_osm_elements(osm_payload["elements"])

        assert [r.id for r in records] == [101, 102, 103]


class TestLoadOsmExtract:
    """Test reading an extract from disk."""

    def test_load(self, osm_file):
        records = load_osm_extract(osm_file)

        assert len(records) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceError, match="not found"):
            load_osm_extract(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json", encoding="utf-8")

        with pytest.raises(SourceError):
            load_osm_extract(path)

    def test_no_elements(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("{}", encoding="utf-8")

        with pytest.raises(SourceError, match="elements"):
            load_osm_extract(path)
