"""
Enumeration types for RequestLens.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class RequestStatus(str, Enum):
    """
    Lifecycle status of a service request.

    Derived from the presence of a closing timestamp: a request is Closed
    iff it has a closed_at value.
    """

    OPEN = "Open"
    CLOSED = "Closed"


class AggregateKind(str, Enum):
    """
    Accumulator kinds supported by the aggregation engine.

    RATIO is evaluated after grouping from two other metrics of the same
    aggregation, so it always sees raw (unrounded) sums.
    """

    COUNT = "count"
    COUNT_WHERE = "count_where"
    SUM = "sum"
    AVERAGE = "average"
    RATIO = "ratio"


class ReportName(str, Enum):
    """Named operational reports available from the report catalog."""

    SLA_BY_DEPARTMENT = "sla_by_department"
    REQUESTS_BY_CALENDAR_MONTH = "requests_by_calendar_month"
    TOP_SOURCE_BY_REASON = "top_source_by_reason"
    OPEN_REQUESTS_BY_NEIGHBORHOOD = "open_requests_by_neighborhood"
    TOP_COMPLAINT_BY_NEIGHBORHOOD = "top_complaint_by_neighborhood"
    SLOWEST_COMPLAINT_TYPES = "slowest_complaint_types"
    DEPARTMENT_WORKLOAD = "department_workload"
    MONTHLY_SLA_TREND = "monthly_sla_trend"
    MONTHLY_VOLUME_ROLLING = "monthly_volume_rolling"
    VOLUME_ANOMALIES = "volume_anomalies"
