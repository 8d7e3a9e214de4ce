"""Data-access layer for stored telemetry.

``TelemetryStore`` wraps one SQLAlchemy session. The API server creates one
per request and the CLI creates one per run, so nothing here is global.
Lookups match ``car`` and ``date`` by plain string equality.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy.orm import Session

from logs import LOG_PREFIX_DATA, log
from models import TelemetryRecordModel


def _prepare_row(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop unknown keys and fill in a timestamp when none was given."""

    columns = TelemetryRecordModel.__table__.columns.keys()
    row = {key: value for key, value in values.items() if key in columns and key != "id"}
    if not row.get("timestamp"):
        row["timestamp"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
    return row


class TelemetryStore:
    """Read and write telemetry rows through an open session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def close(self) -> None:
        self.session.close()

    def add(self, values: Mapping[str, Any]) -> TelemetryRecordModel:
        """Insert one record and return it with its generated id."""

        record = TelemetryRecordModel(**_prepare_row(values))
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def add_many(self, rows: Iterable[Mapping[str, Any]]) -> int:
        """Insert several records in a single transaction."""

        records = [TelemetryRecordModel(**_prepare_row(values)) for values in rows]
        self.session.add_all(records)
        self.session.commit()
        log(LOG_PREFIX_DATA, f"Stored {len(records)} telemetry record(s).")
        return len(records)

    def records_for(self, car: str, date: str) -> List[TelemetryRecordModel]:
        """All records of ``car`` on day ``date``, oldest first."""

        return (
            self.session.query(TelemetryRecordModel)
            .filter(TelemetryRecordModel.car == car, TelemetryRecordModel.date == date)
            .order_by(TelemetryRecordModel.timestamp, TelemetryRecordModel.id)
            .all()
        )

    def records_for_car(self, car: str) -> List[TelemetryRecordModel]:
        return (
            self.session.query(TelemetryRecordModel)
            .filter(TelemetryRecordModel.car == car)
            .order_by(TelemetryRecordModel.date, TelemetryRecordModel.timestamp)
            .all()
        )

    def dates_for(self, car: str) -> List[str]:
        rows = (
            self.session.query(TelemetryRecordModel.date)
            .filter(TelemetryRecordModel.car == car)
            .distinct()
            .order_by(TelemetryRecordModel.date)
            .all()
        )
        return [row[0] for row in rows]

    def cars(self) -> List[str]:
        rows = (
            self.session.query(TelemetryRecordModel.car)
            .distinct()
            .order_by(TelemetryRecordModel.car)
            .all()
        )
        return [row[0] for row in rows]
