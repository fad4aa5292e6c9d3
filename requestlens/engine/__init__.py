"""
Analytical query engine for service-request reports.

Components (leaves first):

- Fact table accessor: read-only, filterable view over normalized requests
- Aggregation: group-by with COUNT / COUNT_WHERE / SUM / AVERAGE / RATIO
  and a minimum group size
- Ranking: competitive (RANK) ranking within partitions
- Time series: month buckets, lag/delta, trailing rolling averages
- Anomaly scoring: population z-scores with threshold flagging
- Report assembly: the ten named report pipelines and their concurrent runner

All components are stateless between calls; every report is a pure function
of the fact table snapshot and its parameters.
"""

from requestlens.engine.aggregation import AggregateRow, AggregationEngine, MetricSpec
from requestlens.engine.anomaly import AnomalyScorer, PeriodScore
from requestlens.engine.errors import (
    AnalyticsError,
    DivisionByZeroError,
    MissingFieldError,
    UndefinedScoreError,
    UnknownReportError,
)
from requestlens.engine.fact_table import FactTable
from requestlens.engine.ranking import RankedRow, RankingEngine
from requestlens.engine.report_assembler import ReportAssembler
from requestlens.engine.time_series import TimeSeriesEngine

__all__ = [
    "AggregateRow",
    "AggregationEngine",
    "MetricSpec",
    "AnomalyScorer",
    "PeriodScore",
    "AnalyticsError",
    "DivisionByZeroError",
    "MissingFieldError",
    "UndefinedScoreError",
    "UnknownReportError",
    "FactTable",
    "RankedRow",
    "RankingEngine",
    "ReportAssembler",
    "TimeSeriesEngine",
]
