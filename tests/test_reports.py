"""Tests for the plain-text report builders."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from comparison import compare  # noqa: E402
from reports import (  # noqa: E402
    comparison_filename,
    format_comparison_report,
    format_day,
    format_day_report,
    report_filename,
)

GENERATED = datetime(2025, 2, 12, 8, 30, 0)


def test_day_key_formatting() -> None:
    assert format_day("2025-02-10") == "Mon Feb 10 2025"
    assert format_day("race-day") == "race-day"


def test_day_report_lists_every_entry() -> None:
    records = [
        {"timestamp": "2025-02-10T09:00:00+00:00", "speed": 120.0, "rpm": 6500,
         "temperature": 180.5, "fuel_level": 70, "lap_time": "1:31"},
        {"timestamp": "2025-02-10T09:12:00+00:00", "speed": 0, "rpm": None},
    ]

    text = format_day_report("THOR", "2025-02-10", records, generated_at=GENERATED)
    lines = text.splitlines()

    assert lines[0] == "Car Telemetry Report - THOR"
    assert lines[1] == "Date: Mon Feb 10 2025"
    assert lines[2] == "Total Entries: 2"
    assert "Entry 1" in lines and "Entry 2" in lines
    assert "Speed: 120 MPH" in lines
    assert "Temperature: 180.5°F" in lines
    assert "Fuel Level: 70%" in lines
    assert "Lap Time: 1:31" in lines
    # Second entry: zero and missing values print as N/A
    second = lines[lines.index("Entry 2"):]
    assert "Speed: N/A" in second
    assert "RPM: N/A" in second
    assert lines[-1] == "Generated: 2025-02-12 08:30:00"


def test_comparison_report_matches_structured_deltas() -> None:
    first = [{"speed": 100, "rpm": 6000, "temperature": 170, "fuel_level": 65},
             {"speed": 120, "rpm": 7000, "temperature": 175, "fuel_level": 70}]
    second = [{"speed": 130, "rpm": 6800, "temperature": 190, "fuel_level": 55}]
    comparison = compare(first, second, car="HAYA", first_date="2025-02-10", second_date="2025-02-11")

    text = format_comparison_report(comparison, generated_at=GENERATED)

    assert text.startswith("Car Telemetry Comparison Report - HAYA\n")
    assert "Date 1: Mon Feb 10 2025 (2 entries)" in text
    assert "Date 2: Tue Feb 11 2025 (1 entries)" in text
    assert "  2025-02-10: 110 MPH" in text
    assert "  2025-02-11: 130 MPH" in text
    assert f"  Difference: {comparison.delta_for('speed').delta} MPH" in text
    assert "  Difference: 300 RPM" in text
    assert "  Difference: 17°F" in text
    assert "  Difference: -13%" in text


def test_filenames() -> None:
    assert report_filename("THOR", "2025-02-10") == "THOR_2025-02-10_report.txt"
    assert comparison_filename("THOR", "2025-02-10", "2025-02-11") == (
        "THOR_2025-02-10_vs_2025-02-11_comparison.txt"
    )
