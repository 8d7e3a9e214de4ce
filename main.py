"""Command-line entry point for the racing telemetry API.

Seeds a database with fake laps, pushes fake readings to a running server,
prints text reports, or starts the server itself.
"""

from __future__ import annotations

import argparse
import math
import signal
import sys
import time
from datetime import date as date_cls
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import requests
from pydantic.alias_generators import to_camel

from comparison import compare
from config import Settings, load_settings
from data_manager import TelemetryStore
from database import build_engine, build_session_factory, init_db
from logs import (
    LOG_PREFIX_DATA,
    LOG_PREFIX_ERROR,
    LOG_PREFIX_SEED,
    LOG_PREFIX_SYSTEM,
    LOG_PREFIX_WARN,
    log,
)
from reports import format_comparison_report, format_day_report

DEFAULT_CAR = "THOR"
DEFAULT_COUNT = 10
PUSH_TIMEOUT_SECONDS = 5
# Seeded records are spread over the day this many minutes apart
SEED_SPACING_MINUTES = 12

_shutdown_requested = False


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse user-friendly command-line arguments."""

    parser = argparse.ArgumentParser(
        description="Racing telemetry toolkit: seed data, push readings, print reports, serve the API",
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Insert COUNT fake records for CAR on DATE into the database.",
    )
    parser.add_argument(
        "--push",
        metavar="URL",
        help="Send COUNT fake readings to a running server, e.g. http://localhost:8000.",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Print the text report for CAR on DATE.",
    )
    parser.add_argument(
        "--compare",
        metavar="DATE2",
        help="With --report, print a comparison of DATE against DATE2 instead.",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start the API server with uvicorn.",
    )
    parser.add_argument("--car", default=DEFAULT_CAR, help="Car identifier (default: THOR).")
    parser.add_argument(
        "--date",
        default=None,
        help="Day key such as 2025-02-10 (default: today).",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=DEFAULT_COUNT,
        help="How many fake records to seed or push (default: 10).",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between pushed readings (default: 1).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print extra logs while experimenting.",
    )
    return parser.parse_args(argv)


def format_lap_time(seconds: float) -> str:
    """Turn 92.4 into "1:32"."""

    whole = int(round(seconds))
    return f"{whole // 60}:{whole % 60:02d}"


def generate_fake_reading(
    tick: float | None = None,
    car: str = DEFAULT_CAR,
    date: str | None = None,
    timestamp: str | None = None,
) -> Dict[str, float | str]:
    """Return a fake telemetry record using smooth sine waves."""

    if tick is None:
        tick = time.time()
    if date is None:
        date = date_cls.today().isoformat()
    if timestamp is None:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")

    speed = 140 + 35 * math.sin(tick / 4)
    rpm = 7000 + 900 * math.sin(tick / 2)
    lap_seconds = 88 + 6 * math.sin(tick / 5)
    sector = lap_seconds / 3

    return {
        "car": car,
        "date": date,
        "timestamp": timestamp,
        "speed": round(speed, 1),
        "rpm": round(rpm),
        "temperature": round(185 + 15 * math.sin(tick / 6), 1),
        "fuel_level": round(max(5.0, 90 - 3 * (tick % 25)), 1),
        "lap_time": format_lap_time(lap_seconds),
        "avg_throttle": round(65 + 15 * math.sin(tick / 3), 1),
        "avg_brake_pressure": round(35 + 10 * math.sin(tick / 3.5), 1),
        "hard_brake_events": float(3 + int(2 * (1 + math.sin(tick / 2.5)))),
        "steering_work": round(40 + 8 * math.sin(tick / 4.5), 1),
        "gear_shifts": float(28 + int(4 * (1 + math.sin(tick / 3)))),
        "coast_time": round(4 + 1.5 * math.sin(tick / 2), 1),
        "coolant_temp": round(92 + 6 * math.sin(tick / 6), 1),
        "oil_temp": round(112 + 8 * math.sin(tick / 7), 1),
        "battery_voltage_min": round(12.6 + 0.4 * math.sin(tick / 8), 2),
        "fuel_used_lap": round(2.4 + 0.3 * math.sin(tick / 5), 2),
        "max_lat_g": round(2.1 + 0.4 * math.sin(tick / 3), 2),
        "max_long_g": round(1.4 + 0.3 * math.sin(tick / 4), 2),
        "max_speed": round(speed + 25, 1),
        "max_rpm": round(rpm + 800),
        "sector1_time": round(sector * 0.95, 2),
        "sector2_time": round(sector * 1.05, 2),
        "sector3_time": round(sector, 2),
        "delta_to_best_lap": round(abs(1.5 * math.sin(tick / 5)), 2),
    }


def build_fake_day(car: str, date: str, count: int) -> List[Dict[str, float | str]]:
    """Fake records for one day, spaced a few minutes apart from 09:00 UTC."""

    try:
        start = datetime.fromisoformat(f"{date}T09:00:00+00:00")
    except ValueError:
        # Day keys are opaque strings; only ISO dates get a 09:00 start
        start = datetime.now(timezone.utc).replace(microsecond=0)
    return [
        generate_fake_reading(
            tick=index,
            car=car,
            date=date,
            timestamp=(start + timedelta(minutes=SEED_SPACING_MINUTES * index)).isoformat(),
        )
        for index in range(count)
    ]


def open_store(settings: Settings) -> TelemetryStore:
    engine = build_engine(settings.database_url)
    init_db(engine)
    return TelemetryStore(build_session_factory(engine)())


def run_seed(store: TelemetryStore, car: str, date: str, count: int) -> int:
    """Insert ``count`` fake records for ``car`` on ``date``."""

    if count <= 0:
        log(LOG_PREFIX_WARN, "--count must be greater than zero.")
        return 0

    log(LOG_PREFIX_SEED, f"Seeding {count} record(s) for {car} on {date}.")
    stored = store.add_many(build_fake_day(car, date, count))
    log(LOG_PREFIX_SEED, f"Seeded {stored} record(s) for {car}.")
    return stored


def run_push(
    base_url: str,
    car: str,
    date: str,
    count: int,
    interval: float = 1.0,
    session: Optional[requests.Session] = None,
) -> int:
    """POST ``count`` fake readings to ``base_url``/readings.

    Failed sends are logged and skipped; returns how many were accepted.
    """

    url = f"{base_url.rstrip('/')}/readings"
    http = session or requests.Session()
    sent = 0
    log(LOG_PREFIX_DATA, f"Sending {count} reading(s) to {url}")
    try:
        for index in range(1, count + 1):
            started = time.time()
            reading = generate_fake_reading(tick=started, car=car, date=date)
            try:
                response = http.post(url, json=to_wire(reading), timeout=PUSH_TIMEOUT_SECONDS)
                response.raise_for_status()
                sent += 1
            except requests.RequestException as exc:
                log(LOG_PREFIX_WARN, f"Failed to send reading {index}/{count}: {exc}")

            if index < count and interval > 0:
                elapsed = time.time() - started
                if elapsed < interval:
                    time.sleep(interval - elapsed)
    finally:
        if session is None:
            http.close()

    log(LOG_PREFIX_DATA, f"Push finished: {sent}/{count} accepted.")
    return sent


def to_wire(reading: Dict[str, float | str]) -> Dict[str, float | str]:
    """snake_case keys -> the camelCase names the API documents."""

    return {to_camel(key): value for key, value in reading.items()}


def build_report(store: TelemetryStore, car: str, date: str, compare_with: str | None = None) -> str | None:
    """Return the text report, or None when the data is missing."""

    first_records = store.records_for(car, date)
    if compare_with is None:
        if not first_records:
            log(LOG_PREFIX_WARN, f"No telemetry found for {car} on {date}.")
            return None
        return format_day_report(car, date, first_records)

    second_records = store.records_for(car, compare_with)
    if not first_records or not second_records:
        log(LOG_PREFIX_WARN, "Insufficient data for comparison.")
        return None
    comparison = compare(first_records, second_records, car=car, first_date=date, second_date=compare_with)
    return format_comparison_report(comparison)


def run_server(settings: Settings) -> None:
    import uvicorn

    log(LOG_PREFIX_SYSTEM, f"Starting API on {settings.host}:{settings.port}.")
    uvicorn.run(
        "api_server:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
    )


def handle_sigint(signum, frame) -> None:
    """Log the intent to shut down and raise KeyboardInterrupt for cleanup."""

    global _shutdown_requested
    if not _shutdown_requested:
        _shutdown_requested = True
        log(LOG_PREFIX_SYSTEM, "Ctrl-C received; requesting graceful shutdown.")
    raise KeyboardInterrupt


def main(argv: Optional[List[str]] = None) -> int:
    global _shutdown_requested
    _shutdown_requested = False

    args = parse_args(argv)
    try:
        settings = load_settings()
    except ValueError as exc:
        log(LOG_PREFIX_ERROR, str(exc))
        return 2
    day = args.date or date_cls.today().isoformat()

    if args.debug or settings.debug:
        log(LOG_PREFIX_SYSTEM, f"Settings: {settings}")

    if not (args.seed or args.push or args.report or args.serve):
        log(LOG_PREFIX_WARN, "Nothing to do. Use --seed, --push, --report or --serve.")
        return 1

    if args.serve:
        run_server(settings)
        return 0

    previous_handler = signal.signal(signal.SIGINT, handle_sigint)
    try:
        if args.push:
            run_push(args.push, args.car, day, args.count, interval=args.interval)

        if args.seed or args.report:
            store = open_store(settings)
            try:
                if args.seed:
                    run_seed(store, args.car, day, args.count)
                if args.report:
                    text = build_report(store, args.car, day, args.compare)
                    if text is None:
                        return 1
                    print(text)
            finally:
                store.close()
    except KeyboardInterrupt:
        log(LOG_PREFIX_SYSTEM, "Stopped by user.")
        return 130
    except ValueError as exc:
        log(LOG_PREFIX_ERROR, str(exc))
        return 2
    finally:
        signal.signal(signal.SIGINT, previous_handler)
    return 0


if __name__ == "__main__":
    sys.exit(main())
