"""
Integration tests for the RequestLens API.

The fact table dependency is overridden with the hand-checked city dataset,
so responses can be compared against the golden figures.

Endpoints tested:
- Health: /health, /api/v1/system/health
- Config: /api/v1/system/config
- Reports: catalog, run with defaults, run with query overrides, errors
"""

from datetime import datetime

import pytest

from requestlens.engine.fact_table import FactTable
from requestlens.main import app
from requestlens.services import get_fact_table
from tests.conftest import build_city_requests, make_request

pytestmark = pytest.mark.integration


@pytest.fixture
def city_client(client):
    """Client whose reports run over the city dataset."""
    table = FactTable.from_records(build_city_requests())
    app.dependency_overrides[get_fact_table] = lambda: table
    yield client
    app.dependency_overrides.pop(get_fact_table, None)


@pytest.fixture
def flat_volume_client(client):
    """Client over a table with the same volume every month."""
    table = FactTable.from_records(
        [make_request(opened_at=datetime(2024, m, 10)) for m in (1, 2, 3)]
    )
    app.dependency_overrides[get_fact_table] = lambda: table
    yield client
    app.dependency_overrides.pop(get_fact_table, None)


# ============================================================================
# System
# ============================================================================


class TestSystemEndpoints:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        response = client.get("/health")
        assert response.headers.get("X-Request-ID")

    def test_system_health_reports_store(self, client):
        response = client.get("/api/v1/system/health")
        data = response.json()["data"]
        assert response.status_code == 200
        assert data["database"] == "healthy"
        assert data["raw_requests"] == 0

    def test_system_config_exposes_report_defaults(self, client):
        response = client.get("/api/v1/system/config")
        defaults = response.json()["data"]["report_defaults"]
        assert defaults == {
            "min_group_size": 100,
            "min_monthly_group_size": 30,
            "rolling_window": 3,
            "z_threshold": 1.5,
            "top_n": 10,
            "decimals": 2,
        }


# ============================================================================
# Reports
# ============================================================================


class TestReportEndpoints:
    def test_list_reports(self, client):
        response = client.get("/api/v1/reports")
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert len(body["data"]) == 10
        assert body["data"][0]["name"] == "sla_by_department"
        assert body["data"][0]["columns"][0] == "department"

    def test_run_report_default_threshold(self, city_client):
        response = city_client.get("/api/v1/reports/sla_by_department")
        data = response.json()["data"]
        assert response.status_code == 200
        assert data["row_count"] == 0
        assert data["parameters"]["min_group_size"] == 100

    def test_run_report_with_overrides(self, city_client):
        response = city_client.get(
            "/api/v1/reports/sla_by_department", params={"min_group_size": 0}
        )
        data = response.json()["data"]
        assert response.status_code == 200
        assert [r["department"] for r in data["rows"]] == ["ISD", "BTDT", "PWDx"]
        assert data["rows"][1]["sla_compliance_pct"] == 0.67

    def test_run_report_decimals_override(self, city_client):
        response = city_client.get(
            "/api/v1/reports/sla_by_department",
            params={"min_group_size": 0, "decimals": 4},
        )
        assert response.json()["data"]["rows"][1]["sla_compliance_pct"] == 0.6667

    def test_run_time_series_report(self, city_client):
        response = city_client.get(
            "/api/v1/reports/monthly_volume_rolling", params={"rolling_window": 2}
        )
        rows = response.json()["data"]["rows"]
        assert [r["rolling_avg"] for r in rows] == [4.0, 3.5, 2.5, 1.5]

    def test_run_anomaly_report(self, city_client):
        response = city_client.get(
            "/api/v1/reports/volume_anomalies", params={"z_threshold": 1.0}
        )
        rows = response.json()["data"]["rows"]
        assert [r["month"] for r in rows] == ["2024-01", "2024-04"]

    def test_unknown_report_returns_404(self, city_client):
        response = city_client.get("/api/v1/reports/no_such_report")
        assert response.status_code == 404
        assert "no_such_report" in response.json()["error"]

    def test_invalid_parameter_returns_422(self, city_client):
        response = city_client.get(
            "/api/v1/reports/monthly_volume_rolling", params={"rolling_window": 0}
        )
        assert response.status_code == 422

    def test_undefined_score_returns_422(self, flat_volume_client):
        response = flat_volume_client.get("/api/v1/reports/volume_anomalies")
        assert response.status_code == 422
        assert "volume_anomalies" in response.json()["error"]

    def test_same_request_twice_is_identical(self, city_client):
        params = {"min_group_size": 0, "min_monthly_group_size": 0}
        first = city_client.get("/api/v1/reports/monthly_sla_trend", params=params)
        second = city_client.get("/api/v1/reports/monthly_sla_trend", params=params)
        assert first.content == second.content

    def test_error_body_carries_request_id(self, city_client):
        response = city_client.get(
            "/api/v1/reports/no_such_report", headers={"X-Request-ID": "req-404"}
        )
        body = response.json()
        assert body["success"] is False
        assert body["request_id"] == "req-404"
        assert response.headers["X-Request-ID"] == "req-404"
