"""
Time-Series Engine - month bucketing, lag/delta and rolling averages.

Window-function style computations (LAG, AVG OVER ROWS) done explicitly
over in-memory, chronologically ordered sequences:

    month bucketing   opened_at -> (year, month), regardless of closing date
    lag/delta         previous value and change per partition; the first
                      period has no previous value and therefore no delta
    rolling average   trailing window of N periods including the current one;
                      leading periods average whatever is available
"""

from typing import Any, Optional, Sequence

import pandas as pd
import structlog

from requestlens.engine.aggregation import AggregationEngine, count, key
from requestlens.engine.fact_table import FactTable
from requestlens.engine.ordering import SortKey, field_value, sort_rows
from requestlens.models.periods import MonthBucket

logger = structlog.get_logger()


def month_range(start: MonthBucket, end: MonthBucket) -> list[MonthBucket]:
    """Every month from start to end inclusive; empty when end precedes start."""
    months = []
    current = start
    while current <= end:
        months.append(current)
        current = current.next()
    return months


def lag_series(
    values: Sequence[Optional[float]],
) -> list[tuple[Optional[float], Optional[float]]]:
    """
    (previous, delta) for each position of a chronological sequence.

    >>> lag_series([5, 7, 9])
    [(None, None), (5, 2), (7, 2)]
    """
    result = []
    previous = None
    for value in values:
        if previous is None or value is None:
            delta = None
        else:
            delta = value - previous
        result.append((previous, delta))
        previous = value
    return result


def rolling_average(values: Sequence[float], window: int = 3) -> list[float]:
    """
    Trailing mean over the current value and the window - 1 before it.

    Leading positions use a partial window (min_periods=1), neither padded
    with zeros nor dropped.

    >>> rolling_average([10, 20, 30, 40], window=3)
    [10.0, 15.0, 20.0, 30.0]
    """
    if window < 1:
        raise ValueError(f"Rolling window must be at least 1, got {window}")
    if len(values) == 0:
        return []
    series = pd.Series(values, dtype=float)
    return [float(v) for v in series.rolling(window=window, min_periods=1).mean()]


class TimeSeriesEngine:
    """
    Time-series computations over the fact table and aggregate rows.

    Example:
        >>> ts = TimeSeriesEngine()
        >>> totals = ts.monthly_totals(table)
        >>> smoothed = rolling_average([total for _, total in totals], window=3)
    """

    def __init__(self, aggregation: Optional[AggregationEngine] = None):
        self.aggregation = aggregation or AggregationEngine()
        self.logger = structlog.get_logger()

    def monthly_totals(
        self,
        table: FactTable,
        fill_gaps: bool = True,
    ) -> list[tuple[MonthBucket, int]]:
        """
        Request count per opening month in chronological order.

        With fill_gaps, months between the first and last observed month that
        have no requests are included with a total of 0, so the sequence is
        ungapped.
        """
        span = table.month_span()
        if span is None:
            return []

        expected = [(m,) for m in month_range(*span)] if fill_gaps else None
        rows = self.aggregation.aggregate(
            table,
            group_by=[key("month", lambda r: r.open_month)],
            metrics=[count("total")],
            expected_keys=expected,
        )
        totals = sorted((row["month"], int(row["total"])) for row in rows)

        self.logger.debug(
            "monthly_totals_computed",
            months=len(totals),
            first=totals[0][0].label,
            last=totals[-1][0].label,
            fill_gaps=fill_gaps,
        )
        return totals

    def lag_delta(
        self,
        rows: Sequence[Any],
        value: str,
        order_by: str,
        partition_by: Sequence[str] = (),
        previous_name: str = "previous_value",
        delta_name: str = "delta",
    ) -> list[dict[str, Any]]:
        """
        Attach previous value and delta per partition.

        Rows are ordered by order_by within each partition; partitions appear
        in first-appearance order. An empty input yields an empty result.

        Returns:
            Flat dict rows with previous_name and delta_name added
        """
        if not rows:
            return []

        partitions: dict[tuple, list[Any]] = {}
        for row in rows:
            part = tuple(field_value(row, f) for f in partition_by)
            partitions.setdefault(part, []).append(row)

        result = []
        for members in partitions.values():
            ordered = sort_rows(members, [SortKey(order_by)])
            lags = lag_series([field_value(r, value) for r in ordered])
            for row, (previous, delta) in zip(ordered, lags):
                flat = row.as_dict() if hasattr(row, "as_dict") else dict(row)
                flat[previous_name] = previous
                flat[delta_name] = delta
                result.append(flat)
        return result
