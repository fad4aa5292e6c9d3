"""
Pytest configuration and shared fixtures for the RequestLens test suite.

Provides record factories, a small hand-checked city dataset, raw 311 export
builders and API fixtures shared across unit, golden, property-based and
integration tests.
"""

import os
import tempfile
import uuid as _uuid
from datetime import datetime, timedelta
from typing import Optional

import pandas as pd
import pytest
from fastapi.testclient import TestClient

# Set testing environment BEFORE importing the app
_test_db_path = os.path.join(
    tempfile.gettempdir(), f"requestlens_test_{_uuid.uuid4().hex[:8]}.duckdb"
)
os.environ["TESTING"] = "true"
os.environ["DB_PATH"] = _test_db_path
os.environ["DATA_CSV_PATH"] = ""


from requestlens.engine.fact_table import FactTable
from requestlens.models.requests import ServiceRequest
from requestlens.models.reports import ReportParameters


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------

_ids = iter(range(1, 10_000_000))


def make_request(
    department: str = "PWDx",
    opened_at: datetime = datetime(2024, 1, 15, 9, 0),
    hours: Optional[float] = None,
    sla_met: bool = False,
    reason: str = "Street Lights",
    source: str = "Constituent Call",
    neighborhood: Optional[str] = "Dorchester",
    **overrides,
) -> ServiceRequest:
    """
    Factory function for creating test ServiceRequest objects.

    hours closes the request that many hours after opening; leave it unset
    for an open request.
    """
    defaults = dict(
        id=f"1010{next(_ids):08d}",
        opened_at=opened_at,
        closed_at=opened_at + timedelta(hours=hours) if hours is not None else None,
        department=department,
        reason=reason,
        source=source,
        neighborhood=neighborhood,
        sla_met=sla_met,
    )
    defaults.update(overrides)
    return ServiceRequest(**defaults)


def make_closed_batch(
    n: int,
    sla_met_count: int,
    department: str = "X",
    hours: float = 12.0,
    **overrides,
) -> list[ServiceRequest]:
    """n closed requests for one department, the first sla_met_count of them on time."""
    return [
        make_request(department=department, hours=hours, sla_met=i < sla_met_count, **overrides)
        for i in range(n)
    ]


def build_city_requests() -> list[ServiceRequest]:
    """
    Ten requests across three departments and four months (Jan-Apr 2024).

    Hand-checked figures used by the golden and API tests:
        closed SLA by department: ISD 0/1, BTDT 2/3, PWDx 2/3 (both avg 20h)
        monthly volume: 4, 3, 2, 1
        department workload: BTDT and PWDx share sla_rank 1, ISD is 3rd
    """
    d = datetime
    return [
        # Public works
        make_request("PWDx", d(2024, 1, 5, 8), 10, True, "Street Lights", "Constituent Call", "Dorchester", id="P1"),
        make_request("PWDx", d(2024, 1, 20, 9), 30, False, "Pothole", "Citizens Connect App", "Dorchester", id="P2"),
        make_request("PWDx", d(2024, 2, 3, 10), 20, True, "Pothole", "Citizens Connect App", "Roxbury", id="P3"),
        make_request("PWDx", d(2024, 3, 11, 11), None, False, "Pothole", "Constituent Call", "Roxbury", id="P4"),
        # Transportation
        make_request("BTDT", d(2024, 1, 8, 7), 4, True, "Parking Enforcement", "Constituent Call", "Back Bay", id="B1"),
        make_request("BTDT", d(2024, 2, 14, 12), 6, True, "Parking Enforcement", "Citizens Connect App", "Back Bay", id="B2"),
        make_request("BTDT", d(2024, 2, 20, 13), 50, False, "Street Lights", "Constituent Call", "Dorchester", id="B3"),
        make_request("BTDT", d(2024, 4, 2, 14), None, False, "Parking Enforcement", "Self Service", "", id="B4"),
        # Inspectional services
        make_request("ISD", d(2024, 1, 25, 15), 100, False, "Building Inspection", "Constituent Call", "Roxbury", id="I1"),
        make_request("ISD", d(2024, 3, 30, 16), None, False, "Building Inspection", "Employee Generated", "Back Bay", id="I2"),
    ]


# ---------------------------------------------------------------------------
# Raw export factories
# ---------------------------------------------------------------------------


def make_raw_row(
    case_enquiry_id: str = "101004113298",
    open_dt: Optional[str] = "2024-01-05 08:00:00",
    closed_dt: Optional[str] = "2024-01-05 18:00:00",
    sla_target_dt: Optional[str] = "2024-01-08 08:00:00",
    on_time: Optional[str] = "ONTIME",
    department: Optional[str] = "PWDx",
    reason: Optional[str] = "Street Lights",
    source: Optional[str] = "Constituent Call",
    neighborhood: Optional[str] = "Dorchester",
    **overrides,
) -> dict:
    """Factory for one raw Boston 311 export row (export column names)."""
    row = dict(
        case_enquiry_id=case_enquiry_id,
        open_dt=open_dt,
        closed_dt=closed_dt,
        sla_target_dt=sla_target_dt,
        on_time=on_time,
        department=department,
        reason=reason,
        source=source,
        neighborhood=neighborhood,
        subject="Public Works Department",
        case_title="Street Light Outages",
        ward="Ward 16",
        latitude=42.2995,
        longitude=-71.0593,
    )
    row.update(overrides)
    return row


def make_raw_frame(rows: list[dict], drop_columns: tuple = ()) -> pd.DataFrame:
    """Raw export DataFrame from row dicts, optionally without some columns."""
    df = pd.DataFrame(rows)
    return df.drop(columns=list(drop_columns)) if drop_columns else df


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def city_requests():
    """The ten-request hand-checked dataset."""
    return build_city_requests()


@pytest.fixture
def city_table(city_requests):
    """FactTable over the city dataset."""
    return FactTable.from_records(city_requests)


@pytest.fixture
def small_params():
    """Parameters with group-size thresholds disabled for small datasets."""
    return ReportParameters(
        min_group_size=0,
        min_monthly_group_size=0,
        rolling_window=3,
        z_threshold=1.0,
        top_n=10,
        decimals=2,
    )


@pytest.fixture
def raw_city_frame():
    """A raw export frame covering the adapter's accept and reject paths."""
    return make_raw_frame(
        [
            make_raw_row(case_enquiry_id="A1"),
            make_raw_row(case_enquiry_id="A2", closed_dt=None, on_time="OVERDUE"),
            make_raw_row(case_enquiry_id="A3", open_dt=None),
            make_raw_row(case_enquiry_id="A4", department=None),
            make_raw_row(case_enquiry_id="A1"),
            make_raw_row(case_enquiry_id="A5", neighborhood="", reason=None, source=None),
        ]
    )


@pytest.fixture
def client():
    """FastAPI test client for integration tests."""
    from requestlens.main import app

    with TestClient(app) as c:
        yield c
