import argparse
from pathlib import Path

from . import __version__
from .config import load_settings
from .env import load_env
from .errors import ConfigError, GeotownsError
from .geocode import GoogleGeocoder
from .logger import get_logger
from .overrides import load_denylist, load_manual_overrides
from .pipeline import check_coverage, review_candidates, run_build, run_geocode
from .sources.osm import load_osm_extract
from .sources.registry import fetch_registry, load_registry_file
from .storage import LOCATIONS_FILE, load_locations


def _load_registry(args: argparse.Namespace, settings):
    if args.registry_file:
        return load_registry_file(Path(args.registry_file))
    return fetch_registry(settings.registry_url, settings.registry_resource_id, settings.page_size)


def cmd_build(args: argparse.Namespace, settings) -> None:
    registry = _load_registry(args, settings)
    geo_records = load_osm_extract(Path(args.osm))
    overrides = load_manual_overrides(Path(args.overrides) if args.overrides else None)
    outputs = [Path(o) for o in (args.output or ["dist"])]
    report = run_build(
        registry,
        geo_records,
        overrides,
        output_dirs=outputs,
        unmatched_path=Path(args.unmatched),
        report_path=Path(args.report) if args.report else None,
    )
    print(f"Done. locations={len(report.locations)} unmatched={len(report.pending)} "
          f"prior_geocoded={report.prior_merged}")


def cmd_geocode(args: argparse.Namespace, settings) -> None:
    api_key = args.api_key or settings.require_api_key()
    geocoder = GoogleGeocoder(api_key, url=settings.geocoder_url)
    denylist = load_denylist(Path(args.denylist) if args.denylist else None)
    delay = args.delay if args.delay is not None else settings.geocode_delay
    result = run_geocode(
        geocoder,
        unmatched_path=Path(args.unmatched),
        locations_path=Path(args.locations),
        report_path=Path(args.report),
        denylist=denylist,
        delay=delay,
        country=settings.country,
    )
    status = "aborted (quota)" if result.aborted else "complete"
    print(f"Geocoding {status}. successful={len(result.successful)} failed={len(result.failed)} "
          f"skipped={len(result.skipped)}")


def cmd_review(args: argparse.Namespace, settings) -> None:
    geo_records = load_osm_extract(Path(args.osm))
    candidates = review_candidates(Path(args.unmatched), geo_records, threshold=args.threshold)
    if not candidates:
        print("No fuzzy candidates found.")
        return
    print(f"Fuzzy candidates ({len(candidates)}):")
    for c in candidates:
        print(f'  "{c.registry_name}" -> "{c.geo_name}" (distance: {c.distance})')


def cmd_coverage(args: argparse.Namespace, settings) -> None:
    registry = _load_registry(args, settings)
    locations = load_locations(Path(args.locations))
    denylist = load_denylist(Path(args.denylist) if args.denylist else None)
    missing = check_coverage(registry, locations, denylist)
    if not missing:
        print(f"All registry entries have coordinates ({len(locations)} locations).")
        return
    print(f"{len(missing)} registry entries have no coordinates:")
    for m in missing:
        print(f" - {m.display_name} ({m.english_name or 'N/A'}) [{m.registry_code}]")
    raise SystemExit(1)


def main(argv=None):
    # Load .env if present (GOOGLE_MAPS_API_KEY, GEOTOWNS_*)
    load_env()

    parser = argparse.ArgumentParser(prog="geotowns", description="Resolve official settlements to coordinates")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--log-level", help="Log level (default: GEOTOWNS_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command")

    bld = subparsers.add_parser("build", help="Match the registry against an OSM extract and write locations.json")
    bld.add_argument("--osm", required=True, help="Overpass JSON extract of places")
    bld.add_argument("--registry-file", help="Saved registry JSON instead of fetching data.gov.il")
    bld.add_argument("--overrides", help="Manual matches JSON ({\"matches\": {registry name: OSM name}})")
    bld.add_argument("--output", action="append", help="Output directory for locations.json (repeatable, default: dist)")
    bld.add_argument("--unmatched", default="unmatched_towns.json", help="Where to write unmatched towns")
    bld.add_argument("--report", default="geocoding-report.json", help="Earlier geocoding report to merge")
    bld.set_defaults(func=cmd_build)

    geo = subparsers.add_parser("geocode", help="Geocode unmatched towns and merge them into locations.json")
    geo.add_argument("--unmatched", default="unmatched_towns.json", help="Unmatched towns from the last build")
    geo.add_argument("--locations", default=f"dist/{LOCATIONS_FILE}", help="locations.json to update")
    geo.add_argument("--report", default="geocoding-report.json", help="Where to write the run report")
    geo.add_argument("--denylist", help="Denylist JSON ({\"exact\": [...], \"contains\": [...]})")
    geo.add_argument("--delay", type=float, help="Seconds between requests (default: GEOTOWNS_GEOCODE_DELAY or 0.1)")
    geo.add_argument("--api-key", help="Google Maps API key (or set GOOGLE_MAPS_API_KEY)")
    geo.set_defaults(func=cmd_geocode)

    rev = subparsers.add_parser("review", help="Suggest fuzzy OSM matches for unmatched towns")
    rev.add_argument("--osm", required=True, help="Overpass JSON extract of places")
    rev.add_argument("--unmatched", default="unmatched_towns.json", help="Unmatched towns from the last build")
    rev.add_argument("--threshold", type=int, default=2, help="Maximum edit distance (default 2)")
    rev.set_defaults(func=cmd_review)

    cov = subparsers.add_parser("coverage", help="Report registry entries missing from locations.json")
    cov.add_argument("--locations", default=f"dist/{LOCATIONS_FILE}", help="Published locations.json")
    cov.add_argument("--registry-file", help="Saved registry JSON instead of fetching data.gov.il")
    cov.add_argument("--denylist", help="Known-missing names to ignore")
    cov.set_defaults(func=cmd_coverage)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        settings = load_settings()
    except ConfigError as e:
        raise SystemExit(f"Error: {e}")

    logger = get_logger()
    logger.set_level(args.log_level or settings.log_level)
    try:
        args.func(args, settings)
    except GeotownsError as e:
        logger.critical(str(e))
        raise SystemExit(f"Error: {e}")
    finally:
        logger.log_metrics_summary()


if __name__ == "__main__":
    main()
