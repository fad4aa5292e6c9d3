"""
Report Catalog - the ten named operational reports.

Each report is a fixed pipeline over the fact table:

    select subset (status filter, present/non-blank field filter)
      -> aggregate (with minimum group size)
      -> rank / filter by rank              (optional)
      -> lag, rolling average or z-score    (optional)
      -> sort by explicit keys and directions
      -> limit                              (optional)

Filters always run before aggregation because they change group membership,
and with it the minimum-group-size cut and every rank computed afterwards.
Every sort ends in enough secondary keys to make the output order total, so
repeated runs over the same table produce identical output.
"""

import calendar
from dataclasses import dataclass, field
from typing import Any, Callable

from requestlens.engine.aggregation import (
    AggregationEngine,
    average,
    count,
    count_where,
    key,
    ratio,
    sum_of,
)
from requestlens.engine.anomaly import AnomalyScorer
from requestlens.engine.fact_table import FactTable
from requestlens.engine.ordering import asc, desc, limit, sort_rows
from requestlens.engine.ranking import RankingEngine
from requestlens.engine.time_series import TimeSeriesEngine, rolling_average
from requestlens.models.enums import ReportName, RequestStatus
from requestlens.models.reports import ReportInfo, ReportParameters


@dataclass
class ReportEngines:
    """Stateless engines shared by every report pipeline."""

    aggregation: AggregationEngine = field(default_factory=AggregationEngine)
    ranking: RankingEngine = field(default_factory=RankingEngine)
    time_series: TimeSeriesEngine = field(default_factory=TimeSeriesEngine)


ReportBuilder = Callable[[FactTable, ReportParameters, ReportEngines], list[dict[str, Any]]]


@dataclass(frozen=True)
class ReportDefinition:
    """
    A named report pipeline.

    Attributes:
        name: Catalog name
        title: Business question answered by the report
        description: How the report is computed
        columns: Output columns, in order
        build: Pipeline producing sorted, limited flat rows
        extra_precision: Additional presentation decimals per column
    """

    name: ReportName
    title: str
    description: str
    columns: tuple[str, ...]
    build: ReportBuilder
    extra_precision: dict[str, int] = field(default_factory=dict)

    def info(self) -> ReportInfo:
        return ReportInfo(
            name=self.name,
            title=self.title,
            description=self.description,
            columns=list(self.columns),
        )


# ============================================================================
# Report pipelines
# ============================================================================


def _sla_by_department(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    closed = table.where_status(RequestStatus.CLOSED)
    rows = engines.aggregation.aggregate(
        closed,
        group_by=["department"],
        metrics=[
            count("total_requests"),
            sum_of("sla_met_count", "sla_met"),
            ratio("sla_compliance_pct", "sla_met_count", "total_requests"),
            average("avg_resolution_time_hrs", "resolution_hours"),
        ],
        min_group_size=params.min_group_size,
    )
    return sort_rows(
        [r.as_dict() for r in rows],
        [asc("sla_compliance_pct"), desc("avg_resolution_time_hrs"), asc("department")],
    )


def _requests_by_calendar_month(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    rows = engines.aggregation.aggregate(
        table,
        group_by=[key("month_number", lambda r: r.opened_at.month)],
        metrics=[count("total_requests")],
    )
    records = []
    for row in rows:
        record = row.as_dict()
        record["month_name"] = calendar.month_name[row["month_number"]]
        records.append(record)
    return sort_rows(records, [asc("month_number")])


def _top_source_by_reason(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    reason_rows = engines.aggregation.aggregate(
        table, group_by=["reason"], metrics=[count("total_requests")]
    )
    top_reasons = limit(
        sort_rows([r.as_dict() for r in reason_rows], [desc("total_requests"), asc("reason")]),
        params.top_n,
    )
    totals = {r["reason"]: r["total_requests"] for r in top_reasons}

    source_rows = engines.aggregation.aggregate(
        table.filter(lambda r: r.reason in totals),
        group_by=["reason", "source"],
        metrics=[count("source_count")],
    )
    winners = engines.ranking.top_per_partition(
        source_rows, metric="source_count", partition_by=["reason"]
    )

    records = []
    for winner in winners:
        reason = winner["reason"]
        total = totals[reason]
        records.append(
            {
                "reason": reason,
                "top_source": winner["source"],
                "source_count": winner["source_count"],
                "total_requests": total,
                "source_percentage": winner["source_count"] / total * 100,
            }
        )
    return sort_rows(records, [desc("total_requests"), asc("reason"), asc("top_source")])


def _open_requests_by_neighborhood(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    rows = engines.aggregation.aggregate(
        table.where_not_blank("neighborhood"),
        group_by=["neighborhood"],
        metrics=[
            count_where("open_requests", lambda r: r.is_open),
            count("total_requests"),
            average("avg_resolution_time_hrs", "resolution_hours"),
        ],
        min_group_size=params.min_group_size,
    )
    return sort_rows([r.as_dict() for r in rows], [desc("open_requests"), asc("neighborhood")])


def _top_complaint_by_neighborhood(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    rows = engines.aggregation.aggregate(
        table.where_not_blank("neighborhood"),
        group_by=["neighborhood", "reason"],
        metrics=[count("request_count")],
    )
    winners = engines.ranking.top_per_partition(
        rows, metric="request_count", partition_by=["neighborhood"]
    )
    records = [
        {
            "neighborhood": w["neighborhood"],
            "top_complaint_type": w["reason"],
            "request_count": w["request_count"],
        }
        for w in winners
    ]
    return sort_rows(
        records, [desc("request_count"), asc("neighborhood"), asc("top_complaint_type")]
    )


def _slowest_complaint_types(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    rows = engines.aggregation.aggregate(
        table.where_present("resolution_hours"),
        group_by=["reason"],
        metrics=[
            count("total_requests"),
            average("avg_resolution_time_hrs", "resolution_hours"),
        ],
        min_group_size=params.min_group_size,
    )
    ordered = sort_rows([r.as_dict() for r in rows], [desc("avg_resolution_time_hrs"), asc("reason")])
    return limit(ordered, params.top_n)


def _department_workload(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    rows = engines.aggregation.aggregate(
        table,
        group_by=["department"],
        metrics=[
            count("total_requests"),
            count_where("open_requests", lambda r: r.is_open),
            ratio("open_request_pct", "open_requests", "total_requests"),
            sum_of("sla_met_count", "sla_met"),
            ratio("sla_compliance_pct", "sla_met_count", "total_requests"),
        ],
        min_group_size=params.min_group_size,
    )
    ranked = engines.ranking.rank(rows, metric="sla_compliance_pct")
    records = [r.as_dict(rank_field="sla_rank") for r in ranked]
    return sort_rows(records, [asc("sla_rank"), asc("department")])


def _monthly_sla_trend(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    rows = engines.aggregation.aggregate(
        table.where_status(RequestStatus.CLOSED),
        group_by=["department", key("month", lambda r: r.open_month)],
        metrics=[
            count("total_requests"),
            sum_of("sla_met_count", "sla_met"),
            ratio("sla_pct", "sla_met_count", "total_requests"),
        ],
        min_group_size=params.min_monthly_group_size,
    )
    trended = engines.time_series.lag_delta(
        rows,
        value="sla_pct",
        order_by="month",
        partition_by=["department"],
        previous_name="prev_month_sla_pct",
        delta_name="change_from_last_month",
    )
    ordered = sort_rows(trended, [asc("department"), asc("month")])
    for record in ordered:
        month = record["month"]
        record["month"] = month.label
        record["month_name"] = month.month_name
    return ordered


def _monthly_volume_rolling(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    totals = engines.time_series.monthly_totals(table)
    averages = rolling_average([total for _, total in totals], window=params.rolling_window)
    return [
        {
            "month": month.label,
            "month_name": month.month_name,
            "total_requests": total,
            "rolling_avg": avg,
        }
        for (month, total), avg in zip(totals, averages)
    ]


def _volume_anomalies(
    table: FactTable, params: ReportParameters, engines: ReportEngines
) -> list[dict[str, Any]]:
    totals = engines.time_series.monthly_totals(table)
    scorer = AnomalyScorer(threshold=params.z_threshold)
    records = [
        {
            "month": s.period.label,
            "month_name": s.period.month_name,
            "total_requests": int(s.value),
            "z_score": s.z_score,
        }
        for s in scorer.flag(totals)
    ]
    return sort_rows(records, [desc("z_score"), asc("month")])


# ============================================================================
# Catalog
# ============================================================================

REPORTS: dict[ReportName, ReportDefinition] = {
    definition.name: definition
    for definition in (
        ReportDefinition(
            name=ReportName.SLA_BY_DEPARTMENT,
            title="Which departments meet SLA targets most often and how long do they take?",
            description=(
                "Closed requests per department with SLA compliance and average "
                "resolution hours; departments below the minimum group size are excluded."
            ),
            columns=(
                "department",
                "total_requests",
                "sla_compliance_pct",
                "avg_resolution_time_hrs",
            ),
            build=_sla_by_department,
        ),
        ReportDefinition(
            name=ReportName.REQUESTS_BY_CALENDAR_MONTH,
            title="How many requests are submitted in each calendar month?",
            description="Request volume by month of year across all years (seasonality).",
            columns=("month_number", "month_name", "total_requests"),
            build=_requests_by_calendar_month,
        ),
        ReportDefinition(
            name=ReportName.TOP_SOURCE_BY_REASON,
            title="For the most common request types, which submission channel dominates?",
            description=(
                "Top-N reasons by volume; for each, the most used source and its "
                "share of the reason's requests. Tied sources are all listed."
            ),
            columns=(
                "reason",
                "top_source",
                "source_count",
                "total_requests",
                "source_percentage",
            ),
            build=_top_source_by_reason,
        ),
        ReportDefinition(
            name=ReportName.OPEN_REQUESTS_BY_NEIGHBORHOOD,
            title="Which neighborhoods have the most open requests?",
            description=(
                "Open and total requests with average resolution hours per "
                "non-blank neighborhood above the minimum group size."
            ),
            columns=(
                "neighborhood",
                "open_requests",
                "total_requests",
                "avg_resolution_time_hrs",
            ),
            build=_open_requests_by_neighborhood,
        ),
        ReportDefinition(
            name=ReportName.TOP_COMPLAINT_BY_NEIGHBORHOOD,
            title="What is the most common complaint type in each neighborhood?",
            description="Rank-1 reason per non-blank neighborhood; ties are all listed.",
            columns=("neighborhood", "top_complaint_type", "request_count"),
            build=_top_complaint_by_neighborhood,
        ),
        ReportDefinition(
            name=ReportName.SLOWEST_COMPLAINT_TYPES,
            title="Which complaint types take the longest to resolve?",
            description="Top-N reasons by average resolution hours over resolved requests.",
            columns=("reason", "total_requests", "avg_resolution_time_hrs"),
            build=_slowest_complaint_types,
        ),
        ReportDefinition(
            name=ReportName.DEPARTMENT_WORKLOAD,
            title="Which departments keep SLA compliance while carrying high workloads?",
            description=(
                "Total and open requests, open share and SLA compliance per "
                "department, ranked by SLA compliance."
            ),
            columns=(
                "department",
                "total_requests",
                "open_requests",
                "open_request_pct",
                "sla_compliance_pct",
                "sla_rank",
            ),
            build=_department_workload,
        ),
        ReportDefinition(
            name=ReportName.MONTHLY_SLA_TREND,
            title="Are departments improving or declining in SLA performance?",
            description=(
                "Monthly SLA compliance of closed requests per department with the "
                "change from the department's previous reported month."
            ),
            columns=(
                "department",
                "month",
                "month_name",
                "sla_pct",
                "prev_month_sla_pct",
                "change_from_last_month",
                "total_requests",
            ),
            build=_monthly_sla_trend,
            extra_precision={"sla_pct": 2, "prev_month_sla_pct": 2, "change_from_last_month": 2},
        ),
        ReportDefinition(
            name=ReportName.MONTHLY_VOLUME_ROLLING,
            title="How is request volume changing, and what is the rolling average?",
            description="Monthly request volume with a trailing rolling average.",
            columns=("month", "month_name", "total_requests", "rolling_avg"),
            build=_monthly_volume_rolling,
        ),
        ReportDefinition(
            name=ReportName.VOLUME_ANOMALIES,
            title="Which months had unusually high or low request volume?",
            description="Months whose volume z-score reaches the anomaly threshold.",
            columns=("month", "month_name", "total_requests", "z_score"),
            build=_volume_anomalies,
        ),
    )
}
