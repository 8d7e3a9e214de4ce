"""HTTP tests for the telemetry API against an in-memory database."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from api_server import create_app  # noqa: E402
from config import Settings  # noqa: E402
from data_manager import TelemetryStore  # noqa: E402
from database import build_engine, build_session_factory  # noqa: E402
from scoring import INSIGHT_RULES  # noqa: E402

DAY_ONE = "2025-02-10"
DAY_TWO = "2025-02-11"


@pytest.fixture()
def app():
    return create_app(Settings(database_url="sqlite://"))


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def _seed(app, rows) -> None:
    store = TelemetryStore(app.state.session_factory())
    try:
        store.add_many(rows)
    finally:
        store.close()


@pytest.fixture()
def seeded(app):
    _seed(
        app,
        [
            {"car": "THOR", "date": DAY_ONE, "timestamp": f"{DAY_ONE}T09:00:00+00:00",
             "speed": 100, "rpm": 6000, "temperature": 170, "fuel_level": 65,
             "lap_time": "1:30", "oil_temp": 110},
            {"car": "THOR", "date": DAY_ONE, "timestamp": f"{DAY_ONE}T09:12:00+00:00",
             "speed": 120, "rpm": 7000, "temperature": 175, "fuel_level": 70,
             "lap_time": "2:00", "oil_temp": 114},
            {"car": "THOR", "date": DAY_TWO, "timestamp": f"{DAY_TWO}T09:00:00+00:00",
             "speed": 150, "rpm": 6400, "temperature": 168, "fuel_level": 60},
            {"car": "HAYA", "date": DAY_ONE, "timestamp": f"{DAY_ONE}T10:00:00+00:00",
             "speed": 90, "rpm": 9000, "temperature": 240, "fuel_level": 15},
        ],
    )
    return app


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_post_reading_round_trips_camel_case(client: TestClient) -> None:
    payload = {"car": "ODIN", "date": DAY_ONE, "speed": 142.5, "fuelLevel": 80, "lapTime": "1:29"}

    response = client.post("/readings", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["id"] >= 1
    assert body["fuelLevel"] == 80
    assert body["lapTime"] == "1:29"
    assert body["timestamp"]
    assert client.get("/api/cars").json() == ["ODIN"]


def test_post_reading_rejects_negative_metrics(client: TestClient) -> None:
    response = client.post("/readings", json={"car": "ODIN", "date": DAY_ONE, "speed": -3})

    assert response.status_code == 422


def test_post_reading_requires_car_and_date(client: TestClient) -> None:
    assert client.post("/readings", json={"speed": 100}).status_code == 422


def test_dashboard_returns_records_averages_and_score(client: TestClient, seeded) -> None:
    response = client.get(f"/api/dashboard/THOR/{DAY_ONE}")

    assert response.status_code == 200
    body = response.json()
    assert len(body["records"]) == 2
    assert body["averages"] == {
        "avgSpeed": 110,
        "avgRpm": 6500,
        "avgTemp": 173,
        "avgFuel": 68,
        "avgLapTime": 105,
    }
    assert body["score"]["points"] == 75
    assert body["score"]["rank"] == "Gold"
    assert body["score"]["breakdown"]["speed"]["points"] == 5


def test_empty_day_is_not_found_instead_of_bronze(client: TestClient, seeded) -> None:
    for path in (
        "/api/dashboard/THOR/2025-01-01",
        "/api/insights/THOR/2025-01-01",
        "/api/gamification/THOR/2025-01-01",
        "/api/reports/THOR/2025-01-01",
        "/api/dashboard/THOR/2025-01-01/speed",
    ):
        response = client.get(path)
        assert response.status_code == 404, path


def test_metric_series(client: TestClient, seeded) -> None:
    response = client.get(f"/api/dashboard/THOR/{DAY_ONE}/fuelLevel")

    assert response.status_code == 200
    assert [point["value"] for point in response.json()] == [65, 70]
    assert response.json()[0]["timestamp"].startswith(DAY_ONE)


def test_metric_series_rejects_unknown_metric(client: TestClient, seeded) -> None:
    assert client.get(f"/api/dashboard/THOR/{DAY_ONE}/oilTemp").status_code == 400


def test_insights(client: TestClient, seeded) -> None:
    messages = {rule.name: rule.message for rule in INSIGHT_RULES}

    body = client.get(f"/api/insights/HAYA/{DAY_ONE}").json()

    assert body["avgTemp"] == 240
    assert body["insights"][:3] == [
        messages["temperature_high"],
        messages["temperature_critical"],
        messages["speed_low"],
    ]


def test_gamification(client: TestClient, seeded) -> None:
    body = client.get(f"/api/gamification/HAYA/{DAY_ONE}").json()

    assert body["points"] == 20
    assert body["rank"] == "Bronze"
    assert body["color"]


def test_analytics_comparison(client: TestClient, seeded) -> None:
    response = client.get(f"/api/analytics/THOR/{DAY_ONE}/{DAY_TWO}")

    assert response.status_code == 200
    body = response.json()
    assert body["date1"] == DAY_ONE and body["date2"] == DAY_TWO
    assert body["date1Data"]["speed"] == 110
    assert body["date2Data"]["fuelLevel"] == 60
    by_metric = {item["metric"]: item for item in body["metrics"]}
    assert by_metric["speed"]["delta"] == 40
    assert by_metric["speed"]["lowerIsBetter"] is False
    assert by_metric["rpm"]["lowerIsBetter"] is True
    assert by_metric["oilTemp"]["date2"] == 0


def test_analytics_role_filter(client: TestClient, seeded) -> None:
    body = client.get(f"/api/analytics/THOR/{DAY_ONE}/{DAY_TWO}", params={"role": "driver"}).json()
    metrics = {item["metric"] for item in body["metrics"]}

    assert "avgThrottle" in metrics
    assert "oilTemp" not in metrics
    assert client.get(
        f"/api/analytics/THOR/{DAY_ONE}/{DAY_TWO}", params={"role": "pending"}
    ).status_code == 400


def test_analytics_with_missing_day_degrades_to_zero(client: TestClient, seeded) -> None:
    body = client.get(f"/api/analytics/THOR/{DAY_ONE}/2030-01-01").json()

    assert body["date2Data"]["speed"] == 0


def test_identical_days_compare_to_zero(client: TestClient, seeded) -> None:
    body = client.get(f"/api/analytics/THOR/{DAY_ONE}/{DAY_ONE}").json()

    assert all(item["delta"] == 0 for item in body["metrics"])


def test_historical(client: TestClient, seeded) -> None:
    body = client.get("/api/historical/THOR").json()

    assert body["records"] == 3
    assert body["days"] == 2
    assert body["avgSpeed"] == 123
    assert client.get("/api/historical/NOPE").status_code == 404


def test_cars_and_dates(client: TestClient, seeded) -> None:
    assert client.get("/api/cars").json() == ["HAYA", "THOR"]
    assert client.get("/api/cars/THOR/dates").json() == {"car": "THOR", "dates": [DAY_ONE, DAY_TWO]}


def test_day_report_download(client: TestClient, seeded) -> None:
    response = client.get(f"/api/reports/THOR/{DAY_ONE}")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert 'filename="THOR_2025-02-10_report.txt"' in response.headers["content-disposition"]
    assert "Total Entries: 2" in response.text


def test_comparison_report_download(client: TestClient, seeded) -> None:
    response = client.get(f"/api/reports-compare/THOR/{DAY_ONE}/{DAY_TWO}")

    assert response.status_code == 200
    assert "THOR_2025-02-10_vs_2025-02-11_comparison.txt" in response.headers["content-disposition"]
    assert "  Difference: 40 MPH" in response.text


def test_comparison_report_needs_both_days(client: TestClient, seeded) -> None:
    response = client.get(f"/api/reports-compare/THOR/{DAY_ONE}/2030-01-01")

    assert response.status_code == 404


def test_database_error_is_a_500(capsys: pytest.CaptureFixture[str]) -> None:
    # Tables are never created, so the first query fails inside SQLAlchemy
    engine = build_engine("sqlite://")
    app = create_app(Settings(database_url="sqlite://"), session_factory=build_session_factory(engine))

    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get(f"/api/dashboard/THOR/{DAY_ONE}")

    assert response.status_code == 500
    assert response.json() == {"message": "Database error"}
    assert "[ERROR]" in capsys.readouterr().out
    engine.dispose()


def test_debug_setting_logs_incoming_requests(capsys: pytest.CaptureFixture[str]) -> None:
    app = create_app(Settings(database_url="sqlite://", debug=True))

    with TestClient(app) as test_client:
        test_client.get("/api/analytics/THOR/2025-02-10/2025-02-11", params={"role": "driver"})

    out = capsys.readouterr().out
    assert "Received GET /api/analytics/THOR/2025-02-10/2025-02-11" in out
    assert "'role': 'driver'" in out


def test_request_details_are_quiet_without_debug(client: TestClient, capsys: pytest.CaptureFixture[str]) -> None:
    client.get("/health")

    out = capsys.readouterr().out
    assert "GET /health -> 200" in out
    assert "Received GET" not in out
