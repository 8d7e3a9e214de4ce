"""Side-by-side comparison of two days of telemetry for one car."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from aggregation import AggregateResult, aggregate


@dataclass(frozen=True)
class ComparedMetric:
    name: str
    label: str
    unit: str
    lower_is_better: bool


BASE_METRICS: Tuple[ComparedMetric, ...] = (
    ComparedMetric("speed", "Avg Speed", "MPH", False),
    ComparedMetric("rpm", "Avg RPM", "RPM", True),
    ComparedMetric("temperature", "Avg Temp", "°F", True),
    ComparedMetric("fuel_level", "Avg Fuel", "%", False),
)

DRIVER_METRICS: Tuple[ComparedMetric, ...] = (
    ComparedMetric("avg_throttle", "Avg Throttle", "%", False),
    ComparedMetric("avg_brake_pressure", "Avg Brake", "%", True),
    ComparedMetric("hard_brake_events", "Hard Brakes", "events", True),
    ComparedMetric("steering_work", "Steering Work", "rel", True),
    ComparedMetric("gear_shifts", "Gear Shifts", "per lap", True),
    ComparedMetric("coast_time", "Coast Time", "sec", False),
    ComparedMetric("max_speed", "Max Speed", "MPH", False),
    ComparedMetric("delta_to_best_lap", "Delta Best Lap", "sec", True),
)

ENGINEER_METRICS: Tuple[ComparedMetric, ...] = (
    ComparedMetric("coolant_temp", "Coolant Temp", "°C", True),
    ComparedMetric("oil_temp", "Oil Temp", "°C", True),
    ComparedMetric("battery_voltage_min", "Min Battery V", "V", False),
    ComparedMetric("fuel_used_lap", "Fuel Used/Lap", "L", True),
    ComparedMetric("max_lat_g", "Max Lateral G", "g", False),
    ComparedMetric("max_long_g", "Max Long G", "g", False),
)

COMPARED_METRICS: Tuple[ComparedMetric, ...] = BASE_METRICS + DRIVER_METRICS + ENGINEER_METRICS

# metric name -> True when a lower value is the better direction
METRIC_POLARITY: Dict[str, bool] = {m.name: m.lower_is_better for m in COMPARED_METRICS}

ROLES = ("driver", "engineer", "admin")

TREND_BETTER = "better"
TREND_WORSE = "worse"
TREND_UNCHANGED = "unchanged"


def metrics_for_role(role: str) -> Tuple[ComparedMetric, ...]:
    """Metrics a role gets to compare. Base metrics are always included."""

    if role == "driver":
        return BASE_METRICS + DRIVER_METRICS
    if role == "engineer":
        return BASE_METRICS + ENGINEER_METRICS
    if role == "admin":
        return COMPARED_METRICS
    raise ValueError(f"Unknown role '{role}'. Use one of: {', '.join(ROLES)}.")


def trend(delta: int, lower_is_better: bool) -> str:
    if delta == 0:
        return TREND_UNCHANGED
    improved = delta < 0 if lower_is_better else delta > 0
    return TREND_BETTER if improved else TREND_WORSE


@dataclass(frozen=True)
class MetricDelta:
    metric: ComparedMetric
    first: int
    second: int

    @property
    def delta(self) -> int:
        return self.second - self.first

    @property
    def lower_is_better(self) -> bool:
        return self.metric.lower_is_better

    @property
    def trend(self) -> str:
        return trend(self.delta, self.metric.lower_is_better)


@dataclass(frozen=True)
class ComparisonResult:
    car: str
    first_date: str
    second_date: str
    first: AggregateResult
    second: AggregateResult
    deltas: List[MetricDelta] = field(default_factory=list)

    @property
    def aggregates(self) -> Dict[str, AggregateResult]:
        """Both aggregates keyed by position, so equal date keys stay distinct."""

        return {"date1": self.first, "date2": self.second}

    def delta_for(self, metric: str) -> MetricDelta:
        for item in self.deltas:
            if item.metric.name == metric:
                return item
        raise KeyError(metric)

    def for_role(self, role: str) -> "ComparisonResult":
        allowed = {m.name for m in metrics_for_role(role)}
        return ComparisonResult(
            car=self.car,
            first_date=self.first_date,
            second_date=self.second_date,
            first=self.first,
            second=self.second,
            deltas=[d for d in self.deltas if d.metric.name in allowed],
        )


def compare(
    first_records: Sequence[Any],
    second_records: Sequence[Any],
    car: str = "",
    first_date: str = "",
    second_date: str = "",
) -> ComparisonResult:
    """Aggregate both sides independently and compute ``second - first`` per metric.

    Sample sizes are not normalised and an empty side simply averages to 0.
    """

    first = aggregate(first_records)
    second = aggregate(second_records)
    deltas = [
        MetricDelta(metric=metric, first=first.get(metric.name), second=second.get(metric.name))
        for metric in COMPARED_METRICS
    ]
    return ComparisonResult(
        car=car,
        first_date=first_date,
        second_date=second_date,
        first=first,
        second=second,
        deltas=deltas,
    )
