"""Plain-text telemetry reports for download.

These functions only build strings. Sending them as a file attachment is the
API server's job, and the CLI prints them as they are.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from aggregation import raw_value
from comparison import BASE_METRICS, ComparisonResult

NOT_AVAILABLE = "N/A"

# (label, attribute, suffix) for each line of a day report entry
ENTRY_FIELDS = (
    ("Time", "timestamp", ""),
    ("Speed", "speed", " MPH"),
    ("RPM", "rpm", ""),
    ("Temperature", "temperature", "°F"),
    ("Fuel Level", "fuel_level", "%"),
    ("Lap Time", "lap_time", ""),
)

# Units printed after the base metrics in a comparison report
COMPARISON_UNITS = {
    "speed": " MPH",
    "rpm": " RPM",
    "temperature": "°F",
    "fuel_level": "%",
}

COMPARISON_TITLES = {
    "speed": "Average Speed",
    "rpm": "Average RPM",
    "temperature": "Average Temperature",
    "fuel_level": "Average Fuel Level",
}


def format_day(date: str) -> str:
    """Render "2025-02-10" as "Mon Feb 10 2025"; other keys pass through."""

    try:
        parsed = datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        return date
    return parsed.strftime("%a %b %d %Y")


def _format_generated(generated_at: datetime | None) -> str:
    if generated_at is None:
        generated_at = datetime.now()
    return generated_at.strftime("%Y-%m-%d %H:%M:%S")


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_field(record: Any, attribute: str, suffix: str) -> str:
    value = raw_value(record, attribute)
    # Falsy readings (None, 0, "") are reported as missing
    if not value:
        return NOT_AVAILABLE
    return f"{_format_number(value)}{suffix}"


def report_filename(car: str, date: str) -> str:
    return f"{car}_{date}_report.txt"


def comparison_filename(car: str, first_date: str, second_date: str) -> str:
    return f"{car}_{first_date}_vs_{second_date}_comparison.txt"


def format_day_report(
    car: str,
    date: str,
    records: Sequence[Any],
    generated_at: datetime | None = None,
) -> str:
    """Build the per-day report listing every record of ``car`` on ``date``."""

    lines = [
        f"Car Telemetry Report - {car}",
        f"Date: {format_day(date)}",
        f"Total Entries: {len(records)}",
        "",
    ]
    for index, record in enumerate(records, start=1):
        lines.append(f"Entry {index}")
        for label, attribute, suffix in ENTRY_FIELDS:
            lines.append(f"{label}: {_format_field(record, attribute, suffix)}")
        lines.append("---")
    lines.append("")
    lines.append(f"Generated: {_format_generated(generated_at)}")
    return "\n".join(lines)


def format_comparison_report(
    comparison: ComparisonResult,
    first_count: int | None = None,
    second_count: int | None = None,
    generated_at: datetime | None = None,
) -> str:
    """Build the two-day comparison report from a ``ComparisonResult``.

    The difference lines reuse the deltas already computed on the
    comparison, so the text always agrees with the structured API output.
    """

    if first_count is None:
        first_count = comparison.first.record_count
    if second_count is None:
        second_count = comparison.second.record_count

    first_date = comparison.first_date
    second_date = comparison.second_date
    lines = [
        f"Car Telemetry Comparison Report - {comparison.car}",
        f"Date 1: {format_day(first_date)} ({first_count} entries)",
        f"Date 2: {format_day(second_date)} ({second_count} entries)",
        "",
        "COMPARISON RESULTS:",
    ]
    for metric in BASE_METRICS:
        item = comparison.delta_for(metric.name)
        unit = COMPARISON_UNITS[metric.name]
        lines.extend(
            [
                "",
                f"{COMPARISON_TITLES[metric.name]}:",
                f"  {first_date}: {item.first}{unit}",
                f"  {second_date}: {item.second}{unit}",
                f"  Difference: {item.delta}{unit}",
            ]
        )
    lines.append("")
    lines.append(f"Generated: {_format_generated(generated_at)}")
    return "\n".join(lines)
