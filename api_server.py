#!/usr/bin/env python3
"""
Racing Telemetry API Server
===========================

A FastAPI server that stores race-car telemetry and turns it into averages,
a performance score, driving insights, two-day comparisons and
downloadable text reports.

HOW TO RUN:
-----------
    python3 api_server.py

    or, with the CLI:
    python3 main.py --serve

The server starts on port 8000 (see config.py for environment overrides).
Interactive docs live at http://localhost:8000/docs

HOW THE PIECES FIT:
-------------------
- create_app() builds the app, its database engine and its session factory.
  Nothing is created at import time, so tests can build isolated apps.
- get_store() hands every request its own TelemetryStore and closes the
  session when the request finishes.
- The number crunching lives in aggregation.py, scoring.py and
  comparison.py. This file only fetches records and shapes responses.

NO-DATA RULE:
-------------
An empty (car, date) selection would average to all zeros and score as
Bronze. Every endpoint checks for emptiness BEFORE calling the scorer and
answers 404 instead of showing a misleading zero-based score.
"""

import time
from typing import Iterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from aggregation import AggregateResult, aggregate
from comparison import ComparisonResult, compare
from config import Settings, load_settings
from data_manager import TelemetryStore
from database import build_engine, build_session_factory, init_db
from logs import LOG_PREFIX_API, LOG_PREFIX_ERROR, LOG_PREFIX_SYSTEM, log
from models import TelemetryRecordModel
from reports import (
    comparison_filename,
    format_comparison_report,
    format_day_report,
    report_filename,
)
from schemas import (
    AveragesOut,
    CarDatesOut,
    CategoryScoreOut,
    ComparisonOut,
    DashboardOut,
    HistoricalOut,
    InsightsOut,
    MetricDeltaOut,
    MetricPoint,
    ScoreOut,
    TelemetryIn,
    TelemetryOut,
)
from scoring import PerformanceScore, generate_insights, score_performance

# Metrics that can be charted one at a time; wire name -> record attribute
SERIES_METRICS = {
    "speed": "speed",
    "rpm": "rpm",
    "temperature": "temperature",
    "fuelLevel": "fuel_level",
    "fuel_level": "fuel_level",
}


# -------------------------------------------------
# DATABASE SESSION HELPER
# -------------------------------------------------
def get_store(request: Request) -> Iterator[TelemetryStore]:
    """
    Creates a TelemetryStore around a fresh session for each request.
    The session is closed when the request finishes.

    This is a generator function that FastAPI uses with dependency injection.
    """
    store = TelemetryStore(request.app.state.session_factory())
    try:
        yield store
    finally:
        store.close()


# -------------------------------------------------
# RESPONSE HELPERS
# -------------------------------------------------
def _require_records(store: TelemetryStore, car: str, date: str) -> List[TelemetryRecordModel]:
    """Fetch the day's records or stop the request with a 404."""

    records = store.records_for(car, date)
    if not records:
        log(LOG_PREFIX_API, f"No telemetry for {car} on {date}.")
        raise HTTPException(status_code=404, detail=f"No telemetry found for {car} on {date}")
    return records


def _averages(result: AggregateResult) -> dict:
    return {
        "avg_speed": result.avg_speed,
        "avg_rpm": result.avg_rpm,
        "avg_temp": result.avg_temp,
        "avg_fuel": result.avg_fuel,
        "avg_lap_time": result.avg_lap_time,
    }


def _score_out(score: PerformanceScore) -> ScoreOut:
    return ScoreOut(
        points=score.points,
        rank=score.rank,
        color=score.color,
        breakdown={
            category: CategoryScoreOut(points=item.points, reason=item.reason)
            for category, item in score.breakdown.items()
        },
    )


def _comparison_out(comparison: ComparisonResult, role: str) -> ComparisonOut:
    return ComparisonOut(
        car=comparison.car,
        role=role,
        first_date=comparison.first_date,
        second_date=comparison.second_date,
        first_data={to_camel(k): v for k, v in comparison.first.values.items()},
        second_data={to_camel(k): v for k, v in comparison.second.values.items()},
        metrics=[
            MetricDeltaOut(
                metric=to_camel(item.metric.name),
                label=item.metric.label,
                unit=item.metric.unit,
                first=item.first,
                second=item.second,
                delta=item.delta,
                lower_is_better=item.lower_is_better,
                trend=item.trend,
            )
            for item in comparison.deltas
        ],
    )


def _attachment(text: str, filename: str) -> PlainTextResponse:
    return PlainTextResponse(
        text,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# -------------------------------------------------
# APPLICATION FACTORY
# -------------------------------------------------
def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters:
    -----------
    - settings: runtime options; read from the environment when omitted
    - session_factory: an existing sessionmaker (its tables must already
      exist). When omitted, one is built from settings.database_url and the
      telemetry table is created if needed.
    """
    if settings is None:
        settings = load_settings()

    if session_factory is None:
        engine = build_engine(settings.database_url)
        init_db(engine)
        session_factory = build_session_factory(engine)

    app = FastAPI(
        title="Racing Telemetry API",
        description="Telemetry storage, scoring and comparison for race cars",
    )
    app.state.settings = settings
    app.state.session_factory = session_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Access log: one line per request with status and duration."""
        if settings.debug:
            log(LOG_PREFIX_API, f"Received {request.method} {request.url.path} query={dict(request.query_params)}")
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        log(
            LOG_PREFIX_API,
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)",
        )
        return response

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        log(LOG_PREFIX_ERROR, f"Database error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"message": "Database error"})

    # -------------------------------------------------
    # BASIC ENDPOINTS
    # -------------------------------------------------

    @app.get("/health")
    def health_check():
        """Simple health check endpoint to verify the API is running."""
        return {"status": "ok"}

    @app.post("/readings", response_model=TelemetryOut)
    def create_reading(payload: TelemetryIn, store: TelemetryStore = Depends(get_store)):
        """
        Accept one telemetry record and store it permanently.

        Pydantic has already rejected negative or non-finite metrics, so
        everything stored is either a usable number or null.
        """
        return store.add(payload.model_dump())

    @app.get("/api/cars", response_model=List[str])
    def list_cars(store: TelemetryStore = Depends(get_store)):
        """Every car identifier that has at least one record."""
        return store.cars()

    @app.get("/api/cars/{car}/dates", response_model=CarDatesOut)
    def list_dates(car: str, store: TelemetryStore = Depends(get_store)):
        """Day keys for which ``car`` has telemetry, oldest first."""
        return CarDatesOut(car=car, dates=store.dates_for(car))

    # -------------------------------------------------
    # DASHBOARD ENDPOINTS
    # -------------------------------------------------

    @app.get("/api/dashboard/{car}/{date}", response_model=DashboardOut)
    def get_dashboard(car: str, date: str, store: TelemetryStore = Depends(get_store)):
        """
        Raw records for one car and day plus the base averages and the
        performance score computed from them.
        """
        records = _require_records(store, car, date)
        result = aggregate(records)
        return DashboardOut(
            car=car,
            date=date,
            records=[TelemetryOut.model_validate(record) for record in records],
            averages=AveragesOut(**_averages(result)),
            score=_score_out(score_performance(result.base_averages())),
        )

    @app.get("/api/dashboard/{car}/{date}/{metric}", response_model=List[MetricPoint])
    def get_metric_series(
        car: str, date: str, metric: str, store: TelemetryStore = Depends(get_store)
    ):
        """
        One metric over the day as ``[{value, timestamp}]`` for charting.

        Only speed, rpm, temperature and fuelLevel can be requested.
        """
        attribute = SERIES_METRICS.get(metric)
        if attribute is None:
            raise HTTPException(status_code=400, detail=f"Invalid metric requested: {metric}")

        records = _require_records(store, car, date)
        return [
            MetricPoint(value=getattr(record, attribute), timestamp=record.timestamp)
            for record in records
        ]

    @app.get("/api/insights/{car}/{date}", response_model=InsightsOut)
    def get_insights(car: str, date: str, store: TelemetryStore = Depends(get_store)):
        """Base averages plus the ordered list of driving insights."""
        result = aggregate(_require_records(store, car, date))
        return InsightsOut(
            car=car,
            date=date,
            insights=generate_insights(result.base_averages()),
            **_averages(result),
        )

    @app.get("/api/gamification/{car}/{date}", response_model=ScoreOut)
    def get_gamification(car: str, date: str, store: TelemetryStore = Depends(get_store)):
        """Performance score, rank tier and per-category breakdown."""
        result = aggregate(_require_records(store, car, date))
        return _score_out(score_performance(result.base_averages()))

    # -------------------------------------------------
    # ANALYTICS ENDPOINTS
    # -------------------------------------------------

    @app.get("/api/analytics/{car}/{date1}/{date2}", response_model=ComparisonOut)
    def get_analytics(
        car: str,
        date1: str,
        date2: str,
        role: str = Query("admin", description="driver, engineer or admin"),
        store: TelemetryStore = Depends(get_store),
    ):
        """
        Compare two days of the same car metric by metric.

        A day without records averages to zero rather than failing, so the
        client can still show the other side.
        """
        comparison = compare(
            store.records_for(car, date1),
            store.records_for(car, date2),
            car=car,
            first_date=date1,
            second_date=date2,
        )
        try:
            comparison = comparison.for_role(role)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _comparison_out(comparison, role)

    @app.get("/api/historical/{car}", response_model=HistoricalOut)
    def get_historical(car: str, store: TelemetryStore = Depends(get_store)):
        """Averages over every record ever stored for ``car``."""
        records = store.records_for_car(car)
        if not records:
            raise HTTPException(status_code=404, detail=f"No data found for {car}")
        result = aggregate(records)
        return HistoricalOut(
            car=car,
            records=len(records),
            days=len({record.date for record in records}),
            **_averages(result),
        )

    # -------------------------------------------------
    # REPORT DOWNLOADS
    # -------------------------------------------------

    @app.get("/api/reports/{car}/{date}", response_class=PlainTextResponse)
    def download_report(car: str, date: str, store: TelemetryStore = Depends(get_store)):
        """Plain-text report of every record for one car and day."""
        records = _require_records(store, car, date)
        return _attachment(format_day_report(car, date, records), report_filename(car, date))

    @app.get("/api/reports-compare/{car}/{date1}/{date2}", response_class=PlainTextResponse)
    def download_comparison_report(
        car: str, date1: str, date2: str, store: TelemetryStore = Depends(get_store)
    ):
        """
        Plain-text comparison of two days. Unlike the analytics endpoint,
        both days must have data.
        """
        first_records = store.records_for(car, date1)
        second_records = store.records_for(car, date2)
        if not first_records or not second_records:
            raise HTTPException(status_code=404, detail="Insufficient data for comparison")

        comparison = compare(
            first_records, second_records, car=car, first_date=date1, second_date=date2
        )
        return _attachment(
            format_comparison_report(comparison),
            comparison_filename(car, date1, date2),
        )

    log(LOG_PREFIX_SYSTEM, "Telemetry API ready.")
    return app


# Run the server when this file is executed directly
if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "api_server:create_app",
        factory=True,
        host=settings.host,  # Listen on all network interfaces by default
        port=settings.port,
        reload=False,
    )
