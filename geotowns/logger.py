"""
Structured logging for geotowns runs.

One console handler and one dated file handler under logs/, keyword context
appended to each message as JSON, and the counters reported at the end of a
build or geocode run (matches per tier, geocoder calls and outcomes).
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level(name: str) -> int:
    return getattr(logging, name.upper())


def _console_handler(level: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_level(level))
    handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / f"geotowns_{datetime.now().strftime('%Y%m%d')}.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    # The file keeps DEBUG regardless of the console level
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


class StructuredLogger:
    """
    Wraps a stdlib logger and carries the run metrics.

    Args:
        name: Name passed to logging.getLogger
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Where the dated log file goes (default: ./logs)
        enable_file: Attach the file handler
        enable_console: Attach the stdout handler
    """

    def __init__(
        self,
        name: str = "geotowns",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(_level(level))
        self.logger.handlers.clear()
        self.metrics = self._empty_metrics()

        if enable_console:
            self.logger.addHandler(_console_handler(level))
        if enable_file:
            self.logger.addHandler(_file_handler(log_dir or Path("logs")))

    @staticmethod
    def _empty_metrics() -> dict:
        return {
            "api_calls": 0,
            "registry_records": 0,
            "invalid_records": 0,
            "matches_by_tier": {},
            "unmatched": 0,
            "geocode_attempts": 0,
            "geocode_successes": 0,
            "geocode_skipped": 0,
            "geocode_failures": {},
        }

    def set_level(self, level: str):
        """Change the logger and console level; the file handler stays at DEBUG."""
        value = _level(level)
        self.logger.setLevel(value)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(value)

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context):
        self._log(logging.ERROR, message, context)

    def critical(self, message: str, **context):
        self._log(logging.CRITICAL, message, context)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, ensure_ascii=False, default=str)}"
        self.logger.log(level, message)

    # Run metrics

    def record_api_call(self):
        self.metrics["api_calls"] += 1

    def record_registry_records(self, count: int):
        self.metrics["registry_records"] += count

    def record_invalid_record(self):
        self.metrics["invalid_records"] += 1

    def record_match(self, tier: str, count: int = 1):
        by_tier = self.metrics["matches_by_tier"]
        by_tier[tier] = by_tier.get(tier, 0) + count

    def record_unmatched(self, count: int = 1):
        self.metrics["unmatched"] += count

    def record_geocode_attempt(self):
        self.metrics["geocode_attempts"] += 1

    def record_geocode_success(self):
        self.metrics["geocode_successes"] += 1

    def record_geocode_skip(self):
        self.metrics["geocode_skipped"] += 1

    def record_geocode_failure(self, reason: str):
        failures = self.metrics["geocode_failures"]
        failures[reason] = failures.get(reason, 0) + 1

    def get_metrics(self) -> dict:
        """Copy of the counters plus the matched total and geocoder success rate."""
        snapshot = json.loads(json.dumps(self.metrics))
        snapshot["matched"] = sum(snapshot["matches_by_tier"].values())
        attempts = snapshot["geocode_attempts"]
        if attempts > 0:
            snapshot["geocode_success_rate"] = round(
                snapshot["geocode_successes"] / attempts, 3
            )
        return snapshot

    def log_metrics_summary(self):
        """End-of-run report; sections with nothing to report are left out."""
        m = self.get_metrics()

        self.info("=== Run Metrics ===")
        self.info(f"API Calls: {m['api_calls']}")
        if m["registry_records"]:
            self.info(f"Registry records: {m['registry_records']} ({m['invalid_records']} invalid)")
        if m["matches_by_tier"]:
            self.info(f"Matched: {m['matched']}")
            for tier, count in m["matches_by_tier"].items():
                self.info(f"  {tier}: {count}")
            self.info(f"Unmatched: {m['unmatched']}")

        attempts = m["geocode_attempts"]
        if attempts or m["geocode_skipped"]:
            rate = m.get("geocode_success_rate", 0) * 100
            self.info(f"Geocoding: {m['geocode_successes']}/{attempts} ({rate:.1f}% success), "
                      f"{m['geocode_skipped']} skipped")
            for reason, count in m["geocode_failures"].items():
                self.info(f"  {reason}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "geotowns", level: str = "INFO", **kwargs) -> StructuredLogger:
    """
    Shared logger for the whole package, created on first use.

    Arguments only matter on the first call; later calls return the same
    instance. kwargs go to StructuredLogger (log_dir, enable_file, ...).
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)
    return _global_logger


def reset_logger():
    """Drop the shared logger so the next get_logger() builds a new one."""
    global _global_logger
    _global_logger = None
