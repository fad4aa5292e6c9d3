"""
Base adapter class for raw service-request datasets.

Adapters turn a raw dataset into validated fact records plus a data quality
report. They hold no state between calls: normalize() is a pure function of
its input frame, invoked once per batch load.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import uuid4

import pandas as pd
import structlog

from requestlens.models.quality import DataQualityReport, QualityIssue
from requestlens.models.requests import ServiceRequest

logger = structlog.get_logger()


class BaseAdapter(ABC):
    """
    Abstract base class for raw dataset adapters.

    Attributes:
        source_name: Identifier for the data source (e.g., "boston_311")
        COLUMN_MAPPINGS: Accepted column names per logical field
    """

    COLUMN_MAPPINGS: dict[str, list[str]] = {}

    def __init__(self, source_name: str):
        self.source_name = source_name
        self.logger = logger.bind(adapter=source_name)

    @abstractmethod
    def normalize(
        self, raw_df: pd.DataFrame
    ) -> tuple[list[ServiceRequest], DataQualityReport]:
        """
        Transform raw rows into fact records with a quality report.

        Raises:
            ValueError: If a required column cannot be found
        """

    def _find_column(self, df: pd.DataFrame, field: str) -> Optional[str]:
        """
        Find the actual column name in DataFrame using flexible matching.

        Args:
            df: DataFrame to search
            field: Field type to find (from COLUMN_MAPPINGS)

        Returns:
            Actual column name if found, None otherwise
        """
        for col_name in self.COLUMN_MAPPINGS.get(field, []):
            if col_name in df.columns:
                return col_name
        return None

    def _require_column(self, df: pd.DataFrame, field: str) -> str:
        column = self._find_column(df, field)
        if column is None:
            raise ValueError(
                f"Cannot find {field} column. Expected one of: "
                + ", ".join(self.COLUMN_MAPPINGS[field])
            )
        return column

    @staticmethod
    def _is_missing(value) -> bool:
        """True for None, NaN/NaT and whitespace-only strings."""
        if value is None:
            return True
        try:
            if pd.isna(value):
                return True
        except (TypeError, ValueError):
            pass
        return isinstance(value, str) and not value.strip()

    def _safe_str(self, value, default: Optional[str] = None) -> Optional[str]:
        """Convert to a stripped string, keeping empty strings as-is."""
        if value is None:
            return default
        try:
            if pd.isna(value):
                return default
        except (TypeError, ValueError):
            pass
        return str(value).strip()

    def _safe_float(self, value, default: Optional[float] = None) -> Optional[float]:
        if self._is_missing(value):
            return default
        try:
            return float(value)
        except (ValueError, TypeError):
            return default

    def _safe_datetime(
        self, value, default: Optional[datetime] = None
    ) -> Optional[datetime]:
        """Parse strings, timestamps and datetimes; unparseable values give default."""
        if self._is_missing(value):
            return default
        result = pd.to_datetime(value, errors="coerce")
        if pd.isna(result):
            return default
        if hasattr(result, "to_pydatetime"):
            return result.to_pydatetime()
        return result

    def _build_quality_report(
        self,
        total_records: int,
        valid_records: int,
        quality_issues: list[QualityIssue],
        optional_fields_checked: int,
        optional_fields_missing: int,
    ) -> DataQualityReport:
        """
        Summarize a batch.

        completeness: share of optional fields populated on accepted records
        consistency: share of raw records accepted
        """
        rejected = total_records - valid_records
        completeness = (
            1.0 - optional_fields_missing / optional_fields_checked
            if optional_fields_checked
            else 1.0
        )
        consistency = valid_records / total_records if total_records else 1.0
        overall = 0.4 * completeness + 0.6 * consistency

        return DataQualityReport(
            batch_id=f"batch_{uuid4().hex[:12]}",
            source=self.source_name,
            total_records=total_records,
            valid_records=valid_records,
            rejected_records=rejected,
            completeness_score=max(0.0, min(1.0, completeness)),
            consistency_score=max(0.0, min(1.0, consistency)),
            overall_quality_score=max(0.0, min(1.0, overall)),
            quality_issues=quality_issues,
        )
