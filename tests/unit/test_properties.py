"""
Property-based tests using Hypothesis.

These tests check the invariants the report pipelines rely on: counting
conserves rows, ranking puts the maximum first, trailing windows stay inside
their inputs and z-scores are standardized.
"""

from datetime import datetime, timedelta

import hypothesis.strategies as st
import numpy as np
import pytest
from hypothesis import assume, given, settings

from requestlens.engine.aggregation import AggregationEngine, count, ratio, sum_of
from requestlens.engine.anomaly import AnomalyScorer
from requestlens.engine.fact_table import FactTable
from requestlens.engine.ordering import asc, desc, sort_rows
from requestlens.engine.ranking import RankingEngine
from requestlens.engine.time_series import TimeSeriesEngine, lag_series, rolling_average
from tests.conftest import make_request

DEPARTMENTS = ["PWDx", "BTDT", "ISD", "PARK", "INFO"]

request_specs = st.lists(
    st.tuples(
        st.sampled_from(DEPARTMENTS),
        st.integers(min_value=0, max_value=700),  # day offset
        st.one_of(st.none(), st.integers(min_value=1, max_value=500)),  # hours to close
        st.booleans(),
    ),
    max_size=60,
)


def _build_table(specs) -> FactTable:
    start = datetime(2023, 1, 1, 8)
    return FactTable.from_records(
        make_request(
            department=dept,
            opened_at=start + timedelta(days=offset),
            hours=hours,
            sla_met=bool(met and hours is not None),
        )
        for dept, offset, hours, met in specs
    )


# =============================================================================
# Aggregation
# =============================================================================


@given(specs=request_specs)
@settings(max_examples=100)
def test_prop_group_counts_sum_to_row_count(specs):
    """Sum of per-group counts equals the number of rows aggregated."""
    table = _build_table(specs)
    rows = AggregationEngine().aggregate(table, group_by=["department"], metrics=[count("n")])

    assert sum(r["n"] for r in rows) == len(table)


@given(specs=request_specs, min_size=st.integers(min_value=0, max_value=10))
@settings(max_examples=100)
def test_prop_min_group_size_only_drops_small_groups(specs, min_size):
    table = _build_table(specs)
    engine = AggregationEngine()
    everything = engine.aggregate(table, group_by=["department"], metrics=[count("n")])
    kept = engine.aggregate(
        table, group_by=["department"], metrics=[count("n")], min_group_size=min_size
    )

    assert {r["department"] for r in kept} == {
        r["department"] for r in everything if r["n"] >= min_size
    }


@given(specs=request_specs)
@settings(max_examples=100)
def test_prop_compliance_ratio_bounds(specs):
    """SLA compliance of non-empty groups lies in [0, 1]."""
    table = _build_table(specs)
    rows = AggregationEngine().aggregate(
        table,
        group_by=["department"],
        metrics=[count("total"), sum_of("met", "sla_met"), ratio("pct", "met", "total")],
        min_group_size=1,
    )
    for row in rows:
        assert 0.0 <= row["pct"] <= 1.0


@given(specs=request_specs)
@settings(max_examples=50)
def test_prop_monthly_totals_conserve_rows_and_are_ungapped(specs):
    table = _build_table(specs)
    totals = TimeSeriesEngine().monthly_totals(table)

    assert sum(n for _, n in totals) == len(table)
    for (previous, _), (current, _) in zip(totals, totals[1:]):
        assert previous.next() == current


# =============================================================================
# Ranking
# =============================================================================

metric_rows = st.lists(st.integers(min_value=0, max_value=20), min_size=1, max_size=30).map(
    lambda values: [{"name": f"r{i:02d}", "value": v} for i, v in enumerate(values)]
)


@given(rows=metric_rows)
@settings(max_examples=100)
def test_prop_max_metric_rows_get_rank_one(rows):
    ranked = RankingEngine().rank(rows, metric="value")
    top = max(r["value"] for r in rows)

    assert {r["name"] for r in ranked if r.rank == 1} == {
        r["name"] for r in rows if r["value"] == top
    }


@given(rows=metric_rows)
@settings(max_examples=100)
def test_prop_tie_break_yields_exactly_one_rank_one(rows):
    ranked = RankingEngine().rank(rows, metric="value", tie_break=[asc("name")])

    assert sum(1 for r in ranked if r.rank == 1) == 1


@given(rows=metric_rows)
@settings(max_examples=100)
def test_prop_ranks_are_competitive(rows):
    """A row's rank is one more than the number of rows strictly above it."""
    for ranked in RankingEngine().rank(rows, metric="value"):
        above = sum(1 for r in rows if r["value"] > ranked["value"])
        assert ranked.rank == above + 1


@given(rows=metric_rows)
@settings(max_examples=50)
def test_prop_sort_rows_is_ordered(rows):
    ordered = sort_rows(rows, [desc("value"), asc("name")])
    keys = [(-r["value"], r["name"]) for r in ordered]
    assert keys == sorted(keys)


# =============================================================================
# Time series
# =============================================================================

volumes = st.lists(st.integers(min_value=0, max_value=10_000), max_size=40)


@given(values=volumes, window=st.integers(min_value=1, max_value=12))
@settings(max_examples=100)
def test_prop_rolling_average_within_window_bounds(values, window):
    averages = rolling_average(values, window=window)

    assert len(averages) == len(values)
    for i, avg in enumerate(averages):
        trailing = values[max(0, i - window + 1): i + 1]
        assert min(trailing) - 1e-9 <= avg <= max(trailing) + 1e-9
        assert avg == pytest.approx(sum(trailing) / len(trailing))


@given(values=volumes)
@settings(max_examples=100)
def test_prop_lag_deltas_telescope(values):
    assume(len(values) >= 2)
    lags = lag_series(values)

    assert lags[0] == (None, None)
    assert sum(delta for _, delta in lags[1:]) == values[-1] - values[0]


# =============================================================================
# Anomaly scoring
# =============================================================================


@given(values=st.lists(st.integers(min_value=0, max_value=10_000), min_size=2, max_size=40))
@settings(max_examples=100)
def test_prop_zscores_are_standardized(values):
    assume(len(set(values)) > 1)
    scores = AnomalyScorer().score(list(enumerate(values)))
    z = np.array([s.z_score for s in scores])

    assert z.mean() == pytest.approx(0.0, abs=1e-9)
    assert z.std() == pytest.approx(1.0)


@given(
    values=st.lists(st.integers(min_value=0, max_value=10_000), min_size=2, max_size=40),
    threshold=st.floats(min_value=0.0, max_value=3.0, allow_nan=False),
)
@settings(max_examples=100)
def test_prop_flagged_periods_reach_threshold(values, threshold):
    assume(len(set(values)) > 1)
    flagged = AnomalyScorer(threshold=threshold).flag(list(enumerate(values)))

    assert all(abs(s.z_score) >= threshold for s in flagged)
    assert [s.z_score for s in flagged] == sorted((s.z_score for s in flagged), reverse=True)
