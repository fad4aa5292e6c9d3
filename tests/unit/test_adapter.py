"""
Unit tests for the Boston 311 normalization adapter.
"""

from datetime import datetime

import pandas as pd
import pytest

from requestlens.adapters import Boston311Adapter
from requestlens.models.enums import RequestStatus
from tests.conftest import make_raw_frame, make_raw_row


class TestBoston311Adapter:
    def test_normalize_drops_invalid_rows(self, raw_city_frame):
        records, report = Boston311Adapter().normalize(raw_city_frame)

        assert [r.id for r in records] == ["A1", "A2", "A5"]
        assert report.total_records == 6
        assert report.valid_records == 3
        assert report.rejected_records == 3

    def test_normalize_reports_quality_issues(self, raw_city_frame):
        _, report = Boston311Adapter().normalize(raw_city_frame)
        issues = {(i.field, i.issue_type): i.count for i in report.quality_issues}

        assert issues[("opened_at", "missing")] == 1
        assert issues[("department", "missing")] == 1
        assert issues[("id", "duplicate")] == 1
        assert issues[("reason", "missing")] == 1
        assert issues[("source", "missing")] == 1
        assert report.completeness_score == pytest.approx(1 - 2 / 12, abs=1e-4)
        assert report.consistency_score == pytest.approx(0.5)
        assert report.overall_quality_score == pytest.approx(0.4 * (1 - 2 / 12) + 0.3, abs=1e-4)

    def test_normalize_derives_lifecycle(self, raw_city_frame):
        records, _ = Boston311Adapter().normalize(raw_city_frame)
        closed, still_open = records[0], records[1]

        assert closed.status == RequestStatus.CLOSED
        assert closed.resolution_hours == pytest.approx(10.0)
        assert closed.sla_met is True
        assert still_open.status == RequestStatus.OPEN
        assert still_open.resolution_hours is None
        assert still_open.sla_met is False

    def test_normalize_absent_reason_and_source_become_empty(self, raw_city_frame):
        records, _ = Boston311Adapter().normalize(raw_city_frame)
        blank = records[2]

        assert blank.reason == ""
        assert blank.source == ""
        assert blank.neighborhood == ""

    def test_normalize_drops_missing_neighborhood(self):
        frame = make_raw_frame([make_raw_row(case_enquiry_id="N1", neighborhood=None)])
        records, report = Boston311Adapter().normalize(frame)
        assert records == []
        assert report.rejected_records == 1

    def test_normalize_sla_from_target_without_on_time_column(self):
        frame = make_raw_frame(
            [
                make_raw_row(case_enquiry_id="T1", closed_dt="2024-01-07 08:00:00"),
                make_raw_row(case_enquiry_id="T2", closed_dt="2024-01-09 08:00:00"),
                make_raw_row(case_enquiry_id="T3", closed_dt=None),
            ],
            drop_columns=("on_time",),
        )
        records, _ = Boston311Adapter().normalize(frame)
        assert [r.sla_met for r in records] == [True, False, False]

    def test_normalize_open_on_time_request_has_not_met_sla(self):
        frame = make_raw_frame(
            [make_raw_row(case_enquiry_id="O1", closed_dt=None, on_time="ONTIME")]
        )
        records, _ = Boston311Adapter().normalize(frame)

        assert records[0].status == RequestStatus.OPEN
        assert records[0].sla_met is False

    def test_normalize_open_request_sla_agrees_with_and_without_on_time(self):
        rows = [make_raw_row(case_enquiry_id="O2", closed_dt=None, on_time="ONTIME")]
        with_flag, _ = Boston311Adapter().normalize(make_raw_frame(rows))
        without_flag, _ = Boston311Adapter().normalize(
            make_raw_frame(rows, drop_columns=("on_time",))
        )
        assert with_flag[0].sla_met == without_flag[0].sla_met

    def test_normalize_keeps_closed_before_opened(self):
        frame = make_raw_frame(
            [make_raw_row(case_enquiry_id="R1", closed_dt="2024-01-05 06:00:00")]
        )
        records, report = Boston311Adapter().normalize(frame)

        assert records[0].resolution_hours == pytest.approx(-2.0)
        assert any(i.issue_type == "invalid_value" for i in report.quality_issues)

    def test_normalize_alternate_column_names(self):
        frame = pd.DataFrame(
            [
                {
                    "case_id": "C1",
                    "open_date": datetime(2024, 5, 1, 9),
                    "close_date": datetime(2024, 5, 1, 21),
                    "dept": "ISD",
                    "type": "Building Inspection",
                    "channel": "Constituent Call",
                    "neighbourhood": "Roxbury",
                }
            ]
        )
        records, _ = Boston311Adapter().normalize(frame)

        assert records[0].department == "ISD"
        assert records[0].reason == "Building Inspection"
        assert records[0].resolution_hours == pytest.approx(12.0)

    def test_normalize_missing_required_column_raises(self):
        frame = make_raw_frame([make_raw_row()], drop_columns=("neighborhood",))
        with pytest.raises(ValueError, match="neighborhood"):
            Boston311Adapter().normalize(frame)

    def test_normalize_empty_frame(self):
        records, report = Boston311Adapter().normalize(pd.DataFrame())
        assert records == []
        assert report.total_records == 0
        assert report.overall_quality_score == pytest.approx(1.0)
