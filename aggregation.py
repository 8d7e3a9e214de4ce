"""Per-metric averaging over a set of telemetry records.

Records can be plain mappings (JSON payloads, test fixtures) or objects such
as ``TelemetryRecordModel`` rows. Nothing in here raises for bad data: a
missing, non-numeric or malformed value simply contributes nothing.

Known sharp edge: values ``<= 0`` are dropped before averaging, so a real
zero reading (car standing still, empty tank) looks exactly like "no data".
Callers rely on this behaviour, so it is kept as is.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Sequence

METRICS: tuple[str, ...] = (
    "speed",
    "rpm",
    "temperature",
    "fuel_level",
    "lap_time",
    "avg_throttle",
    "avg_brake_pressure",
    "hard_brake_events",
    "steering_work",
    "gear_shifts",
    "coast_time",
    "coolant_temp",
    "oil_temp",
    "battery_voltage_min",
    "fuel_used_lap",
    "max_lat_g",
    "max_long_g",
    "max_speed",
    "max_rpm",
    "sector1_time",
    "sector2_time",
    "sector3_time",
    "delta_to_best_lap",
)

LAP_TIME = "lap_time"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (172.5 -> 173)."""

    return int(math.floor(value + 0.5))


def lap_time_seconds(value: str) -> float:
    """Convert an "m:ss" lap time to seconds; anything malformed gives 0."""

    parts = value.split(":")
    if len(parts) != 2:
        return 0.0
    try:
        minutes = float(parts[0])
        seconds = float(parts[1])
    except ValueError:
        return 0.0
    total = minutes * 60 + seconds
    return total if math.isfinite(total) else 0.0


def raw_value(record: Any, metric: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(metric)
    return getattr(record, metric, None)


def metric_value(record: Any, metric: str) -> float:
    """Read one metric from a record as a float, 0 when unusable."""

    raw = raw_value(record, metric)
    if raw is None or isinstance(raw, bool):
        return 0.0

    if metric == LAP_TIME and isinstance(raw, str):
        return lap_time_seconds(raw)

    try:
        number = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def average_metric(records: Iterable[Any], metric: str) -> int:
    """Average ``metric`` over ``records`` ignoring every value <= 0.

    Returns the mean rounded half up, or 0 when no value survives.
    """

    values = [value for value in (metric_value(r, metric) for r in records) if value > 0]
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


@dataclass(frozen=True)
class BaseAverages:
    """The four averages the scorer and the insight rules look at."""

    avg_speed: int = 0
    avg_rpm: int = 0
    avg_temp: int = 0
    avg_fuel: int = 0


@dataclass(frozen=True)
class AggregateResult:
    """Rounded averages for every metric of one (car, date) selection."""

    values: Dict[str, int] = field(default_factory=dict)
    record_count: int = 0

    def get(self, metric: str) -> int:
        return self.values.get(metric, 0)

    @property
    def is_empty(self) -> bool:
        return self.record_count == 0

    @property
    def avg_speed(self) -> int:
        return self.get("speed")

    @property
    def avg_rpm(self) -> int:
        return self.get("rpm")

    @property
    def avg_temp(self) -> int:
        return self.get("temperature")

    @property
    def avg_fuel(self) -> int:
        return self.get("fuel_level")

    @property
    def avg_lap_time(self) -> int:
        return self.get(LAP_TIME)

    def base_averages(self) -> BaseAverages:
        return BaseAverages(
            avg_speed=self.avg_speed,
            avg_rpm=self.avg_rpm,
            avg_temp=self.avg_temp,
            avg_fuel=self.avg_fuel,
        )


def aggregate(records: Sequence[Any], metrics: Iterable[str] = METRICS) -> AggregateResult:
    """Average every metric in ``metrics`` over ``records``."""

    records = list(records)
    values = {metric: average_metric(records, metric) for metric in metrics}
    return AggregateResult(values=values, record_count=len(records))
