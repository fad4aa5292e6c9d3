"""
Report parameter and result models.

ReportParameters is the configuration object a driver hands to the report
assembler. ReportResult is the tabular output of one report: ordered flat
records holding raw (unrounded) values, with rounding applied only when the
result is presented.
"""

from typing import Any, Optional

import pandas as pd
from pydantic import BaseModel, Field

from .enums import ReportName


class ReportParameters(BaseModel):
    """
    Tunable parameters shared by all reports.

    Attributes:
        min_group_size: Groups with fewer rows are dropped before ratios are computed
        min_monthly_group_size: Same threshold for department-month groups
        rolling_window: Trailing window size (periods) for rolling averages
        z_threshold: Absolute z-score at or above which a period is anomalous
        top_n: Row limit for top-N reports
        decimals: Decimal places applied at presentation time
    """

    min_group_size: int = Field(default=100, ge=0, description="Minimum rows per group")
    min_monthly_group_size: int = Field(
        default=30, ge=0, description="Minimum rows per department-month group"
    )
    rolling_window: int = Field(default=3, ge=1, description="Rolling average window")
    z_threshold: float = Field(default=1.5, ge=0.0, description="Anomaly z-score threshold")
    top_n: int = Field(default=10, ge=1, description="Row limit for top-N reports")
    decimals: int = Field(default=2, ge=0, le=10, description="Presentation rounding")

    @classmethod
    def from_settings(cls, settings: Any = None, **overrides: Any) -> "ReportParameters":
        """Build parameters from application settings, applying overrides."""
        if settings is None:
            from requestlens.config import get_settings

            settings = get_settings()
        values = {
            "min_group_size": settings.min_group_size,
            "min_monthly_group_size": settings.min_monthly_group_size,
            "rolling_window": settings.rolling_window,
            "z_threshold": settings.z_threshold,
            "top_n": settings.top_n,
            "decimals": settings.report_decimals,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class ReportInfo(BaseModel):
    """Catalog entry describing a named report."""

    name: ReportName
    title: str
    description: str
    columns: list[str]


class ReportResult(BaseModel):
    """
    Output of one report run.

    Attributes:
        report: Report name
        title: Human-readable title
        columns: Output column order
        rows: Ordered flat records with raw values
        parameters: Parameters the report ran with
        extra_precision: Per-column decimals added on top of parameters.decimals
    """

    report: ReportName
    title: str
    columns: list[str]
    rows: list[dict[str, Any]] = Field(default_factory=list)
    parameters: ReportParameters
    extra_precision: dict[str, int] = Field(default_factory=dict)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_records(self, decimals: Optional[int] = None) -> list[dict[str, Any]]:
        """Return rows in column order with floats rounded for presentation."""
        base = self.parameters.decimals if decimals is None else decimals
        records = []
        for row in self.rows:
            record = {}
            for column in self.columns:
                value = row.get(column)
                if isinstance(value, float):
                    value = round(value, base + self.extra_precision.get(column, 0))
                record[column] = value
            records.append(record)
        return records

    def to_dataframe(self, decimals: Optional[int] = None) -> pd.DataFrame:
        return pd.DataFrame(self.to_records(decimals), columns=self.columns)

    def present(self, decimals: Optional[int] = None) -> dict[str, Any]:
        """JSON-ready payload with rounded rows."""
        return {
            "report": self.report.value,
            "title": self.title,
            "columns": list(self.columns),
            "row_count": self.row_count,
            "parameters": self.parameters.model_dump(mode="json"),
            "rows": self.to_records(decimals),
        }
