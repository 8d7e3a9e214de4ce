#!/usr/bin/env python3
"""
SQLAlchemy ORM Models
=====================

This file defines the table that stores racing telemetry.

THE TelemetryRecordModel CLASS:
-------------------------------
Each instance = one row in the "telemetry" table = one reading for one car
at one moment of one day.

FIELD TYPES:
------------
- car / date: the lookup keys. ``date`` is a day key such as "2025-02-10"
  and is matched by plain string equality, never by date arithmetic.
- timestamp: ISO8601 string for the instant within the day
- lap_time: "m:ss" string, converted to seconds only when averaged
- every other metric: nullable Float (sensors can drop out)
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, String

from database import Base


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class TelemetryRecordModel(Base):
    """One row of sensor data for a car at a point in time."""

    __tablename__ = "telemetry"

    id = Column(Integer, primary_key=True, index=True)

    car = Column(String, nullable=False, index=True)
    date = Column(String, nullable=False, index=True)
    timestamp = Column(String, nullable=False, default=_utc_now_iso)

    # Base metrics shown to every role
    speed = Column(Float, nullable=True)
    rpm = Column(Float, nullable=True)
    temperature = Column(Float, nullable=True)
    fuel_level = Column(Float, nullable=True)
    lap_time = Column(String, nullable=True)

    # Driver-focused metrics (per lap summary)
    avg_throttle = Column(Float, nullable=True)
    avg_brake_pressure = Column(Float, nullable=True)
    hard_brake_events = Column(Float, nullable=True)
    steering_work = Column(Float, nullable=True)
    gear_shifts = Column(Float, nullable=True)
    coast_time = Column(Float, nullable=True)

    # Engineer-focused metrics
    coolant_temp = Column(Float, nullable=True)
    oil_temp = Column(Float, nullable=True)
    battery_voltage_min = Column(Float, nullable=True)
    fuel_used_lap = Column(Float, nullable=True)
    max_lat_g = Column(Float, nullable=True)
    max_long_g = Column(Float, nullable=True)

    # Shared metrics
    max_speed = Column(Float, nullable=True)
    max_rpm = Column(Float, nullable=True)
    sector1_time = Column(Float, nullable=True)
    sector2_time = Column(Float, nullable=True)
    sector3_time = Column(Float, nullable=True)
    delta_to_best_lap = Column(Float, nullable=True)

    def __repr__(self) -> str:
        return f"<TelemetryRecordModel id={self.id} car={self.car} date={self.date}>"
