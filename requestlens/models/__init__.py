"""
Pydantic v2 data models for RequestLens.

Model Organization:
    - enums: Enumeration types (request status, aggregate kinds, report names)
    - periods: Calendar month bucket key
    - requests: Normalized service request fact record
    - quality: Normalization data quality report
    - reports: Report parameters, catalog entries and results
"""

from .enums import AggregateKind, ReportName, RequestStatus
from .periods import MonthBucket
from .quality import DataQualityReport, QualityIssue
from .reports import ReportInfo, ReportParameters, ReportResult
from .requests import ServiceRequest

__all__ = [
    "AggregateKind",
    "ReportName",
    "RequestStatus",
    "MonthBucket",
    "DataQualityReport",
    "QualityIssue",
    "ReportInfo",
    "ReportParameters",
    "ReportResult",
    "ServiceRequest",
]
