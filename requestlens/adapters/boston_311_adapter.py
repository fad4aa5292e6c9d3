"""
Boston 311 Dataset Adapter.

Normalizes the raw 311 case export into fact records. This is the single
cleaning step in front of the analytics engine; it takes a raw frame and
returns validated records, with no process-wide state.

Normalization contract:
    - rows without an opening timestamp, department or neighborhood are dropped
    - status is Closed iff a closing timestamp exists
    - resolution_hours = (closed - opened) in hours, absent while open
    - sla_met = on_time == "ONTIME" when the export carries that column,
      otherwise closed on or before the SLA target timestamp
    - absent reason/source become "" so they group together
    - blank neighborhoods are kept; reports that need one filter them out

Handles column name variations (e.g. open_dt/opened_at) via flexible matching.
"""

from typing import Optional

import pandas as pd
import structlog

from requestlens.models.quality import DataQualityReport, QualityIssue
from requestlens.models.requests import ServiceRequest

from .base_adapter import BaseAdapter

logger = structlog.get_logger()


class Boston311Adapter(BaseAdapter):
    """
    Adapts raw Boston 311 case rows into ServiceRequest records.

    Example:
        >>> adapter = Boston311Adapter()
        >>> records, report = adapter.normalize(raw_df)
        >>> print(report.rejected_records, report.overall_quality_score)
    """

    ON_TIME_VALUE = "ONTIME"

    COLUMN_MAPPINGS = {
        "id": ["case_enquiry_id", "id", "case_id", "case_number"],
        "opened_at": ["open_dt", "opened_at", "open_date", "created_at"],
        "closed_at": ["closed_dt", "closed_at", "close_date", "resolved_at"],
        "sla_target_at": ["sla_target_dt", "target_dt", "sla_target_at"],
        "department": ["department", "dept"],
        "reason": ["reason", "type", "complaint_type"],
        "source": ["source", "channel"],
        "neighborhood": ["neighborhood", "neighbourhood"],
        "on_time": ["on_time", "ontime"],
        "subject": ["subject"],
        "case_title": ["case_title", "title"],
        "ward": ["ward"],
        "latitude": ["latitude", "lat"],
        "longitude": ["longitude", "lon", "lng"],
    }

    OPTIONAL_FIELDS = ("reason", "source", "latitude", "longitude")

    def __init__(self):
        super().__init__(source_name="boston_311")

    def normalize(
        self, raw_df: pd.DataFrame
    ) -> tuple[list[ServiceRequest], DataQualityReport]:
        """
        Normalize a raw 311 export.

        Args:
            raw_df: Raw case rows

        Returns:
            Tuple of (fact records, data quality report)

        Raises:
            ValueError: If the id, opening timestamp, department or
                neighborhood column cannot be found
        """
        self.logger.info("normalization_started", raw_records=len(raw_df))

        if raw_df.empty:
            self.logger.warning("no_raw_records")
            return [], self._build_quality_report(0, 0, [], 0, 0)

        columns = {field: self._find_column(raw_df, field) for field in self.COLUMN_MAPPINGS}
        for field in ("id", "opened_at", "department", "neighborhood"):
            columns[field] = self._require_column(raw_df, field)

        missing = {"id": 0, "opened_at": 0, "department": 0, "neighborhood": 0}
        duplicate_ids = 0
        negative_resolutions = 0
        missing_optional = {field: 0 for field in self.OPTIONAL_FIELDS}

        records: list[ServiceRequest] = []
        seen_ids: set[str] = set()

        for row in raw_df.to_dict(orient="records"):
            values = {
                field: (row.get(column) if column else None)
                for field, column in columns.items()
            }

            case_id = self._safe_str(values["id"])
            opened_at = self._safe_datetime(values["opened_at"])
            department = self._safe_str(values["department"])
            neighborhood = self._safe_str(values["neighborhood"])

            if not case_id:
                missing["id"] += 1
                continue
            if opened_at is None:
                missing["opened_at"] += 1
                continue
            if department is None:
                missing["department"] += 1
                continue
            if neighborhood is None:
                missing["neighborhood"] += 1
                continue
            if case_id in seen_ids:
                duplicate_ids += 1
                continue
            seen_ids.add(case_id)

            closed_at = self._safe_datetime(values["closed_at"])
            sla_target_at = self._safe_datetime(values["sla_target_at"])
            if closed_at is not None and closed_at < opened_at:
                negative_resolutions += 1

            reason = self._safe_str(values["reason"])
            source = self._safe_str(values["source"])
            latitude = self._safe_float(values["latitude"])
            longitude = self._safe_float(values["longitude"])
            for field, value in (
                ("reason", reason),
                ("source", source),
                ("latitude", latitude),
                ("longitude", longitude),
            ):
                if value is None:
                    missing_optional[field] += 1

            records.append(
                ServiceRequest(
                    id=case_id,
                    opened_at=opened_at,
                    closed_at=closed_at,
                    department=department,
                    reason=reason or "",
                    source=source or "",
                    neighborhood=neighborhood,
                    sla_met=self._sla_met(values["on_time"], columns["on_time"], closed_at, sla_target_at),
                    sla_target_at=sla_target_at,
                    subject=self._safe_str(values["subject"]),
                    case_title=self._safe_str(values["case_title"]),
                    ward=self._safe_str(values["ward"]),
                    latitude=latitude,
                    longitude=longitude,
                )
            )

        quality_issues = []
        for field, count in missing.items():
            if count:
                quality_issues.append(
                    QualityIssue(
                        field=field,
                        issue_type="missing",
                        count=count,
                        description=f"Dropped {count} records with no {field}",
                    )
                )
        if duplicate_ids:
            quality_issues.append(
                QualityIssue(
                    field="id",
                    issue_type="duplicate",
                    count=duplicate_ids,
                    description=f"Dropped {duplicate_ids} records repeating an earlier case id",
                )
            )
        if negative_resolutions:
            quality_issues.append(
                QualityIssue(
                    field="resolution_hours",
                    issue_type="invalid_value",
                    count=negative_resolutions,
                    description=(
                        f"Closed before opened in {negative_resolutions} records "
                        "(kept with negative resolution time)"
                    ),
                )
            )
        for field, count in missing_optional.items():
            if count:
                quality_issues.append(
                    QualityIssue(
                        field=field,
                        issue_type="missing",
                        count=count,
                        description=f"Missing {field} in {count} accepted records",
                    )
                )

        report = self._build_quality_report(
            total_records=len(raw_df),
            valid_records=len(records),
            quality_issues=quality_issues,
            optional_fields_checked=len(records) * len(self.OPTIONAL_FIELDS),
            optional_fields_missing=sum(missing_optional.values()),
        )

        self.logger.info(
            "normalization_completed",
            raw_records=len(raw_df),
            valid_records=report.valid_records,
            rejected_records=report.rejected_records,
            quality_score=report.overall_quality_score,
        )
        return records, report

    def _sla_met(
        self,
        on_time,
        on_time_column: Optional[str],
        closed_at,
        sla_target_at,
    ) -> bool:
        if closed_at is None:
            return False
        if on_time_column is not None:
            flag = self._safe_str(on_time)
            return flag is not None and flag.upper() == self.ON_TIME_VALUE
        if sla_target_at is None:
            return False
        return closed_at <= sla_target_at
