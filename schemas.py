#!/usr/bin/env python3
"""
Pydantic Models for the Telemetry API
=====================================

This file defines the shapes of data going in and out of the API.

WHY CAMELCASE ON THE WIRE?
--------------------------
Python code uses snake_case (fuel_level, lap_time) but the dashboard client
speaks camelCase (fuelLevel, lapTime). ``alias_generator=to_camel`` gives
every field a camelCase alias, and ``populate_by_name=True`` still lets
Python code build models with the snake_case names. FastAPI serialises
responses by alias, so clients always see camelCase.

HOW THESE ARE USED:
-------------------
- TelemetryIn: validates POST /readings (negative or non-finite numbers are
  rejected with a 422)
- TelemetryOut: raw records returned by the dashboard endpoints
- AveragesOut / ScoreOut / InsightsOut / ComparisonOut / HistoricalOut:
  derived results, built from the aggregation, scoring and comparison modules
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases for every field."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _metric():
    # Sensor values are either absent or finite and non-negative
    return Field(default=None, ge=0, allow_inf_nan=False)


class TelemetryIn(CamelModel):
    """
    One telemetry reading sent by an ingestion process.

    Only ``car`` and ``date`` are required. ``timestamp`` defaults to the
    time the row is stored.
    """

    car: str = Field(min_length=1)
    date: str = Field(min_length=1)
    timestamp: Optional[str] = None

    speed: Optional[float] = _metric()
    rpm: Optional[float] = _metric()
    temperature: Optional[float] = _metric()
    fuel_level: Optional[float] = _metric()
    lap_time: Optional[str] = None

    avg_throttle: Optional[float] = _metric()
    avg_brake_pressure: Optional[float] = _metric()
    hard_brake_events: Optional[float] = _metric()
    steering_work: Optional[float] = _metric()
    gear_shifts: Optional[float] = _metric()
    coast_time: Optional[float] = _metric()

    coolant_temp: Optional[float] = _metric()
    oil_temp: Optional[float] = _metric()
    battery_voltage_min: Optional[float] = _metric()
    fuel_used_lap: Optional[float] = _metric()
    max_lat_g: Optional[float] = _metric()
    max_long_g: Optional[float] = _metric()

    max_speed: Optional[float] = _metric()
    max_rpm: Optional[float] = _metric()
    sector1_time: Optional[float] = _metric()
    sector2_time: Optional[float] = _metric()
    sector3_time: Optional[float] = _metric()
    delta_to_best_lap: Optional[float] = _metric()


class TelemetryOut(TelemetryIn):
    """
    A stored telemetry record. Same fields as TelemetryIn plus the database
    id; ``from_attributes`` lets FastAPI read straight from ORM rows.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    timestamp: str


class MetricPoint(CamelModel):
    value: Optional[float] = None
    timestamp: str


class AveragesOut(CamelModel):
    avg_speed: int = 0
    avg_rpm: int = 0
    avg_temp: int = 0
    avg_fuel: int = 0
    avg_lap_time: int = 0


class CategoryScoreOut(CamelModel):
    points: int
    reason: str


class ScoreOut(CamelModel):
    points: int
    rank: str
    color: str
    breakdown: Dict[str, CategoryScoreOut]


class DashboardOut(CamelModel):
    car: str
    date: str
    records: List[TelemetryOut]
    averages: AveragesOut
    score: ScoreOut


class InsightsOut(AveragesOut):
    car: str
    date: str
    insights: List[str]


class MetricDeltaOut(CamelModel):
    metric: str
    label: str
    unit: str
    first: int = Field(alias="date1")
    second: int = Field(alias="date2")
    delta: int
    lower_is_better: bool
    trend: str


class ComparisonOut(CamelModel):
    car: str
    role: str
    first_date: str = Field(alias="date1")
    second_date: str = Field(alias="date2")
    first_data: Dict[str, int] = Field(alias="date1Data")
    second_data: Dict[str, int] = Field(alias="date2Data")
    metrics: List[MetricDeltaOut]


class HistoricalOut(AveragesOut):
    car: str
    records: int
    days: int


class CarDatesOut(CamelModel):
    car: str
    dates: List[str]
