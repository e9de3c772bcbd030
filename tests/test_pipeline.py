"""
End-to-end tests for build, geocode, coverage and review runs.
"""

import json

from geotowns.geocode import GeocodeQuotaExceeded, GeocodeSuccess
from geotowns.models import RegistryRecord, ResolvedLocation, UnmatchedRecord
from geotowns.overrides import Denylist
from geotowns.pipeline import check_coverage, review_candidates, run_build, run_geocode
from geotowns.storage import load_locations, load_unmatched, save_json, save_locations, save_unmatched


def read(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestRunBuild:
    """Test reconciliation and publication of locations.json."""

    def test_writes_every_output(self, tmp_path, geo_records, registry_records):
        outputs = [tmp_path / "dist", tmp_path / "site" / "public"]
        unmatched_path = tmp_path / "unmatched_towns.json"

        report = run_build(registry_records, geo_records, {}, outputs, unmatched_path)

        assert report.written == [out / "locations.json" for out in outputs]
        first, second = (read(p) for p in report.written)
        assert first == second
        assert [loc["id"] for loc in first] == ["3000", "5000"]
        assert read(unmatched_path) == [{"name": "קרית אונו", "nameEn": "QIRYAT ONO", "townCode": "2620"}]

    def test_overrides_resolve_everything(self, tmp_path, geo_records, registry_records):
        unmatched_path = tmp_path / "unmatched_towns.json"

        report = run_build(registry_records, geo_records, {"קרית אונו": "קריית אונו"},
                           [tmp_path / "dist"], unmatched_path)

        assert len(report.locations) == 3
        assert read(unmatched_path) == []

    def test_no_tier_in_output(self, tmp_path, geo_records, registry_records):
        report = run_build(registry_records, geo_records, {}, [tmp_path / "dist"], tmp_path / "u.json")

        assert all(loc.match_tier is None for loc in report.locations)
        assert all(set(entry) <= {"id", "name", "nameEn", "lat", "lon", "population", "district", "type"}
                   for entry in read(report.written[0]))

    def test_prior_geocoded_merged(self, tmp_path, geo_records, registry_records):
        report_path = tmp_path / "geocoding-report.json"
        save_json(report_path, {
            "successful": [
                {"id": "2620", "name": "קרית אונו", "nameEn": "QIRYAT ONO", "lat": 32.06, "lon": 34.85},
                {"id": "3000", "name": "ירושלים", "nameEn": "", "lat": 0.0, "lon": 0.0},
            ],
        })

        report = run_build(registry_records, geo_records, {}, [tmp_path / "dist"],
                           tmp_path / "u.json", report_path=report_path)

        by_id = {str(loc.id): loc for loc in report.locations}
        assert report.prior_merged == 2
        assert set(by_id) == {"3000", "5000", "2620"}
        # fresh match wins over the earlier geocoded entry
        assert by_id["3000"].lat == 31.7683

    def test_sorted_by_population(self, tmp_path, geo_records):
        registry = [
            RegistryRecord(hebrew_name="קריית אונו", registry_code="2620", population=42000),
            RegistryRecord(hebrew_name="ירושלים", registry_code="3000", population=981711),
            RegistryRecord(hebrew_name="תל אביב-יפו", registry_code="5000"),
        ]

        report = run_build(registry, geo_records, {}, [tmp_path / "dist"], tmp_path / "u.json")

        assert [loc.id for loc in report.locations] == ["3000", "2620", "5000"]

    def test_type_counts(self, tmp_path, geo_records):
        registry = [
            RegistryRecord(hebrew_name="ירושלים", registry_code="3000", type="city"),
            RegistryRecord(hebrew_name="תל אביב-יפו", registry_code="5000", type="city"),
            RegistryRecord(hebrew_name="קריית אונו", registry_code="2620", type="local"),
        ]

        report = run_build(registry, geo_records, {}, [tmp_path / "dist"], tmp_path / "u.json")

        assert report.type_counts() == {"city": 2, "local": 1}


class TestRunGeocode:
    """Test the gap-filling run over persisted files."""

    def setup_files(self, tmp_path, unmatched):
        locations_path = tmp_path / "dist" / "locations.json"
        unmatched_path = tmp_path / "unmatched_towns.json"
        save_locations(locations_path, [
            ResolvedLocation(id="3000", name="ירושלים", name_en="JERUSALEM", lat=31.77, lon=35.21,
                             population=981711),
        ])
        save_unmatched(unmatched_path, unmatched)
        return locations_path, unmatched_path, tmp_path / "geocoding-report.json"

    def test_successes_merged_into_locations(self, tmp_path, stub_geocoder, no_sleep):
        locations_path, unmatched_path, report_path = self.setup_files(tmp_path, [
            UnmatchedRecord("קרית אונו", "QIRYAT ONO", "2620"),
            UnmatchedRecord("לא רשום", None, "0"),
        ])
        geocoder = stub_geocoder([GeocodeSuccess(32.06, 34.85)])

        result = run_geocode(geocoder, unmatched_path, locations_path, report_path, sleep=no_sleep)

        assert len(result.successful) == 1
        assert geocoder.queries == ["QIRYAT ONO, Israel"]
        assert [loc.id for loc in load_locations(locations_path)] == ["3000", "2620"]

        report = read(report_path)
        assert report["summary"]["total_before"] == 1
        assert report["summary"]["total_after"] == 2
        assert report["skipped"] == [{"name": "לא רשום", "nameEn": None, "townCode": "0"}]

    def test_existing_entry_wins_on_duplicate_id(self, tmp_path, stub_geocoder, no_sleep):
        locations_path, unmatched_path, report_path = self.setup_files(tmp_path, [
            UnmatchedRecord("ירושלים", "JERUSALEM", "3000"),
        ])

        run_geocode(stub_geocoder([GeocodeSuccess(1.0, 1.0)]), unmatched_path, locations_path,
                    report_path, sleep=no_sleep)

        locations = load_locations(locations_path)
        assert len(locations) == 1
        assert locations[0].lat == 31.77

    def test_quota_abort_keeps_partial_results(self, tmp_path, stub_geocoder, no_sleep):
        locations_path, unmatched_path, report_path = self.setup_files(tmp_path, [
            UnmatchedRecord("א", None, "1"),
            UnmatchedRecord("ב", None, "2"),
            UnmatchedRecord("ג", None, "3"),
        ])
        geocoder = stub_geocoder([GeocodeSuccess(31.0, 35.0), GeocodeQuotaExceeded()])

        result = run_geocode(geocoder, unmatched_path, locations_path, report_path, sleep=no_sleep)

        assert result.aborted
        assert geocoder.calls == 2
        assert {str(loc.id) for loc in load_locations(locations_path)} == {"3000", "1"}
        assert read(report_path)["summary"]["aborted"] is True
        # the failed record and the unattempted tail wait for the next run
        assert [u.registry_code for u in load_unmatched(unmatched_path)] == ["2", "3"]

    def test_no_success_leaves_locations_untouched(self, tmp_path, stub_geocoder, no_sleep):
        locations_path, unmatched_path, report_path = self.setup_files(tmp_path, [
            UnmatchedRecord("חיפה", "HAIFA", "4000"),
        ])
        before = locations_path.read_text(encoding="utf-8")

        result = run_geocode(stub_geocoder(), unmatched_path, locations_path, report_path, sleep=no_sleep)

        assert len(result.failed) == 1
        assert locations_path.read_text(encoding="utf-8") == before
        assert read(report_path)["failed"][0]["error"] == "No results found"

    def test_empty_queue(self, tmp_path, stub_geocoder, no_sleep):
        locations_path, unmatched_path, report_path = self.setup_files(tmp_path, [])
        geocoder = stub_geocoder()

        result = run_geocode(geocoder, unmatched_path, locations_path, report_path, sleep=no_sleep)

        assert result.processed == 0
        assert geocoder.calls == 0
        assert read(report_path)["summary"]["total_after"] == 1

    def test_unmatched_list_rewritten(self, tmp_path, stub_geocoder, no_sleep):
        locations_path, unmatched_path, report_path = self.setup_files(tmp_path, [
            UnmatchedRecord("קרית אונו", "QIRYAT ONO", "2620"),
            UnmatchedRecord("חיפה", "HAIFA", "4000"),
            UnmatchedRecord("לא רשום", None, "0"),
        ])

        run_geocode(stub_geocoder([GeocodeSuccess(32.06, 34.85)]), unmatched_path, locations_path,
                    report_path, sleep=no_sleep)

        assert [u.registry_code for u in load_unmatched(unmatched_path)] == ["4000", "0"]

    def test_report_keeps_earlier_successes(self, tmp_path, stub_geocoder, no_sleep):
        locations_path, unmatched_path, report_path = self.setup_files(tmp_path, [
            UnmatchedRecord("חיפה", "HAIFA", "4000"),
        ])
        save_json(report_path, {
            "successful": [{"id": "2620", "name": "קרית אונו", "nameEn": "QIRYAT ONO", "lat": 32.06, "lon": 34.85}],
        })

        run_geocode(stub_geocoder([GeocodeSuccess(32.79, 34.99)]), unmatched_path, locations_path,
                    report_path, sleep=no_sleep)

        report = read(report_path)
        assert [entry["id"] for entry in report["successful"]] == ["4000", "2620"]
        # the summary counts this run only
        assert report["summary"]["successful"] == 1


class TestBuildThenGeocode:
    def test_full_cycle(self, tmp_path, geo_records, registry_records, stub_geocoder, no_sleep):
        """Geocoded towns survive the next build through the report."""
        dist = tmp_path / "dist"
        unmatched_path = tmp_path / "unmatched_towns.json"
        report_path = tmp_path / "geocoding-report.json"

        run_build(registry_records, geo_records, {}, [dist], unmatched_path, report_path=report_path)
        run_geocode(stub_geocoder([GeocodeSuccess(32.06, 34.85)]), unmatched_path,
                    dist / "locations.json", report_path, sleep=no_sleep)
        rebuilt = run_build(registry_records, geo_records, {}, [dist], unmatched_path,
                            report_path=report_path)

        assert {str(loc.id) for loc in rebuilt.locations} == {"3000", "5000", "2620"}
        assert rebuilt.prior_merged == 1

    def test_repeated_runs_with_quota_abort(self, tmp_path, geo_records, stub_geocoder, no_sleep):
        """Every town geocoded across several runs survives the next build."""
        registry = [
            RegistryRecord(hebrew_name="ירושלים", registry_code="3000"),
            RegistryRecord(hebrew_name="גבעת אלון", english_name="GIVAT ALON", registry_code="11"),
            RegistryRecord(hebrew_name="כפר ברק", english_name="KFAR BARAK", registry_code="12"),
            RegistryRecord(hebrew_name="נווה גיל", english_name="NEVE GIL", registry_code="13"),
        ]
        dist = tmp_path / "dist"
        locations_path = dist / "locations.json"
        unmatched_path = tmp_path / "unmatched_towns.json"
        report_path = tmp_path / "geocoding-report.json"

        def geocode(outcomes):
            geocoder = stub_geocoder(outcomes)
            run_geocode(geocoder, unmatched_path, locations_path, report_path, sleep=no_sleep)
            return geocoder

        run_build(registry, geo_records, {}, [dist], unmatched_path, report_path=report_path)
        assert [u.registry_code for u in load_unmatched(unmatched_path)] == ["11", "12", "13"]

        geocode([GeocodeSuccess(32.0, 35.0), GeocodeQuotaExceeded()])
        assert [u.registry_code for u in load_unmatched(unmatched_path)] == ["12", "13"]

        second = geocode([GeocodeSuccess(32.1, 35.1), GeocodeQuotaExceeded()])
        assert second.queries == ["KFAR BARAK, Israel", "NEVE GIL, Israel"]
        assert [u.registry_code for u in load_unmatched(unmatched_path)] == ["13"]

        geocode([GeocodeQuotaExceeded()])
        assert {entry["id"] for entry in read(report_path)["successful"]} == {"11", "12"}

        rebuilt = run_build(registry, geo_records, {}, [dist], unmatched_path, report_path=report_path)

        assert {str(loc.id) for loc in rebuilt.locations} == {"3000", "11", "12"}
        assert rebuilt.prior_merged == 2
        assert [u.registry_code for u in load_unmatched(unmatched_path)] == ["13"]


class TestCheckCoverage:
    """Test the published-set completeness check."""

    def test_reports_missing(self, registry_records):
        locations = [ResolvedLocation(id="3000", name="ירושלים", name_en=None, lat=31.7, lon=35.2)]

        missing = check_coverage(registry_records, locations)

        assert [m.registry_code for m in missing] == ["5000", "2620"]

    def test_denylisted_and_nameless_ignored(self):
        registry = [
            RegistryRecord(hebrew_name="לא רשום", registry_code="0"),
            RegistryRecord(hebrew_name="אסד (שבט)", registry_code="1359"),
            RegistryRecord(hebrew_name=None, registry_code="9999"),
        ]

        assert check_coverage(registry, []) == []

    def test_name_fallback_without_code(self):
        registry = [RegistryRecord(hebrew_name="לוד")]
        locations = [ResolvedLocation(id="לוד", name="לוד", name_en="", lat=31.9, lon=34.8)]

        assert check_coverage(registry, locations) == []

    def test_integer_ids_match_codes(self):
        registry = [RegistryRecord(hebrew_name="לוד", registry_code="7000")]
        locations = [ResolvedLocation(id=7000, name="לוד", name_en="", lat=31.9, lon=34.8)]

        assert check_coverage(registry, locations, Denylist()) == []


class TestReviewCandidates:
    def test_suggestions_from_unmatched_file(self, tmp_path, geo_records):
        unmatched_path = tmp_path / "unmatched_towns.json"
        save_unmatched(unmatched_path, [UnmatchedRecord("קרית אונו", "QIRYAT ONO", "2620")])

        candidates = review_candidates(unmatched_path, geo_records)

        assert [(c.registry_name, c.geo_name) for c in candidates] == [("קרית אונו", "קריית אונו")]
