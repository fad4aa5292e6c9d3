"""
Aggregation Engine - group-by with multiple simultaneous aggregates.

Computes one aggregate row per distinct group key in a single pass over the
fact table, with any number of named metrics evaluated side by side:

    COUNT          rows in the group
    COUNT_WHERE    rows satisfying a predicate
    SUM            sum of a field, skipping absent values
    AVERAGE        mean of a field over rows where it is present
    RATIO          numerator metric / denominator metric, evaluated after grouping

Evaluation order:
    1. Accumulate every non-ratio metric per group
    2. Drop groups whose row count is below min_group_size (HAVING)
    3. Evaluate ratio metrics from the raw accumulated values

Values are never rounded here. Rounding belongs to presentation, so a ratio
such as SLA compliance is always computed from unrounded sums.
"""

from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any, Callable, Iterable, NamedTuple, Optional, Sequence, Union

import structlog

from requestlens.engine.errors import DivisionByZeroError, MissingFieldError
from requestlens.engine.fact_table import FactTable
from requestlens.models.enums import AggregateKind
from requestlens.models.requests import ServiceRequest

logger = structlog.get_logger()


class GroupKey(NamedTuple):
    """A named group-by key extractor."""

    name: str
    extractor: Callable[[ServiceRequest], Any]
    required: bool = True


def key(
    name: str,
    extractor: Optional[Callable[[ServiceRequest], Any]] = None,
    required: bool = True,
) -> GroupKey:
    """Build a group key; defaults to reading the record attribute of the same name."""
    return GroupKey(name, extractor or attrgetter(name), required)


@dataclass(frozen=True)
class MetricSpec:
    """
    Definition of one named aggregate.

    Use the module-level constructors (count, count_where, sum_of, average,
    ratio) rather than building specs by hand.
    """

    name: str
    kind: AggregateKind
    field: Optional[str] = None
    predicate: Optional[Callable[[ServiceRequest], bool]] = None
    numerator: Optional[str] = None
    denominator: Optional[str] = None
    scale: float = 1.0


def count(name: str = "count") -> MetricSpec:
    return MetricSpec(name=name, kind=AggregateKind.COUNT)


def count_where(name: str, predicate: Callable[[ServiceRequest], bool]) -> MetricSpec:
    return MetricSpec(name=name, kind=AggregateKind.COUNT_WHERE, predicate=predicate)


def sum_of(name: str, field: str) -> MetricSpec:
    return MetricSpec(name=name, kind=AggregateKind.SUM, field=field)


def average(name: str, field: str) -> MetricSpec:
    return MetricSpec(name=name, kind=AggregateKind.AVERAGE, field=field)


def ratio(name: str, numerator: str, denominator: str, scale: float = 1.0) -> MetricSpec:
    """numerator / denominator * scale, both referring to other metrics by name."""
    return MetricSpec(
        name=name,
        kind=AggregateKind.RATIO,
        numerator=numerator,
        denominator=denominator,
        scale=scale,
    )


@dataclass(frozen=True)
class AggregateRow:
    """
    One group of an aggregation result.

    Attributes:
        key_names: Names of the group-by keys, in order
        key: Group key values, in the same order
        row_count: Number of fact rows in the group
        values: Metric values by name (None means absent)
    """

    key_names: tuple[str, ...]
    key: tuple
    row_count: int
    values: dict[str, Optional[float]] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        if name in self.key_names:
            return self.key[self.key_names.index(name)]
        return self.values[name]

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def as_dict(self) -> dict[str, Any]:
        row = dict(zip(self.key_names, self.key))
        row.update(self.values)
        return row


class _GroupState:
    """Running accumulators for one group."""

    __slots__ = ("row_count", "counts", "totals", "present")

    def __init__(self, metrics: Sequence[MetricSpec]):
        self.row_count = 0
        self.counts = {m.name: 0 for m in metrics}
        self.totals = {m.name: 0.0 for m in metrics}
        self.present = {m.name: 0 for m in metrics}

    def update(self, record: ServiceRequest, metrics: Sequence[MetricSpec]) -> None:
        self.row_count += 1
        for metric in metrics:
            if metric.kind == AggregateKind.COUNT:
                self.counts[metric.name] += 1
            elif metric.kind == AggregateKind.COUNT_WHERE:
                if metric.predicate(record):
                    self.counts[metric.name] += 1
            elif metric.kind in (AggregateKind.SUM, AggregateKind.AVERAGE):
                value = FactTable.value(record, metric.field)
                if value is None:
                    continue
                self.totals[metric.name] += float(value)
                self.present[metric.name] += 1

    def finalize(self, metrics: Sequence[MetricSpec]) -> dict[str, Optional[float]]:
        values: dict[str, Optional[float]] = {}
        for metric in metrics:
            if metric.kind in (AggregateKind.COUNT, AggregateKind.COUNT_WHERE):
                values[metric.name] = self.counts[metric.name]
            elif metric.kind == AggregateKind.SUM:
                values[metric.name] = (
                    self.totals[metric.name] if self.present[metric.name] else None
                )
            elif metric.kind == AggregateKind.AVERAGE:
                n = self.present[metric.name]
                values[metric.name] = self.totals[metric.name] / n if n else None
        return values


class AggregationEngine:
    """
    Group-by aggregation over a FactTable.

    Example:
        >>> engine = AggregationEngine()
        >>> rows = engine.aggregate(
        ...     table,
        ...     group_by=[key("department")],
        ...     metrics=[count("total"), sum_of("met", "sla_met"), ratio("pct", "met", "total")],
        ...     min_group_size=100,
        ... )
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    def aggregate(
        self,
        table: Union[FactTable, Iterable[ServiceRequest]],
        group_by: Sequence[Union[GroupKey, str]],
        metrics: Sequence[MetricSpec],
        min_group_size: int = 0,
        expected_keys: Optional[Iterable[tuple]] = None,
    ) -> list[AggregateRow]:
        """
        Aggregate fact rows into one row per distinct group key.

        Args:
            table: Fact rows to aggregate
            group_by: Group keys (GroupKey or attribute names); empty means one global group
            metrics: Named metric specs
            min_group_size: Groups with fewer rows are dropped before ratios
            expected_keys: Group keys that must exist even with zero rows

        Returns:
            Aggregate rows in order of first appearance (expected keys first)

        Raises:
            MissingFieldError: A required group key is absent on a record
            DivisionByZeroError: A ratio metric has a zero denominator
            ValueError: Metric specs are inconsistent
        """
        keys = [k if isinstance(k, GroupKey) else key(k) for k in group_by]
        key_names = tuple(k.name for k in keys)
        base_metrics, ratio_metrics = self._split_metrics(metrics)

        groups: dict[tuple, _GroupState] = {}
        for expected in expected_keys or ():
            groups.setdefault(tuple(expected), _GroupState(base_metrics))

        total_rows = 0
        for record in table:
            group_key = tuple(self._key_value(record, k) for k in keys)
            state = groups.get(group_key)
            if state is None:
                state = groups[group_key] = _GroupState(base_metrics)
            state.update(record, base_metrics)
            total_rows += 1

        rows = []
        dropped = 0
        for group_key, state in groups.items():
            if state.row_count < min_group_size:
                dropped += 1
                continue
            values = state.finalize(base_metrics)
            for metric in ratio_metrics:
                values[metric.name] = self._evaluate_ratio(
                    metric, values, dict(zip(key_names, group_key))
                )
            ordered = {m.name: values[m.name] for m in metrics}
            rows.append(AggregateRow(key_names, group_key, state.row_count, ordered))

        self.logger.debug(
            "aggregation_complete",
            group_by=list(key_names),
            input_rows=total_rows,
            groups=len(groups),
            groups_dropped=dropped,
            min_group_size=min_group_size,
        )
        return rows

    @staticmethod
    def _key_value(record: ServiceRequest, group_key: GroupKey) -> Any:
        value = group_key.extractor(record)
        if value is None and group_key.required:
            raise MissingFieldError(group_key.name, record_id=record.id)
        return value

    @staticmethod
    def _split_metrics(
        metrics: Sequence[MetricSpec],
    ) -> tuple[list[MetricSpec], list[MetricSpec]]:
        names = [m.name for m in metrics]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate metric names: {names}")

        base = [m for m in metrics if m.kind != AggregateKind.RATIO]
        ratios = [m for m in metrics if m.kind == AggregateKind.RATIO]
        base_names = {m.name for m in base}

        for metric in base:
            if metric.kind == AggregateKind.COUNT_WHERE and metric.predicate is None:
                raise ValueError(f"COUNT_WHERE metric '{metric.name}' needs a predicate")
            if metric.kind in (AggregateKind.SUM, AggregateKind.AVERAGE) and not metric.field:
                raise ValueError(f"{metric.kind.value} metric '{metric.name}' needs a field")
        for metric in ratios:
            for ref in (metric.numerator, metric.denominator):
                if ref not in base_names:
                    raise ValueError(
                        f"Ratio metric '{metric.name}' references unknown metric '{ref}'"
                    )
        return base, ratios

    @staticmethod
    def _evaluate_ratio(
        metric: MetricSpec,
        values: dict[str, Optional[float]],
        partition: dict[str, Any],
    ) -> Optional[float]:
        numerator = values[metric.numerator]
        denominator = values[metric.denominator]
        if denominator == 0:
            raise DivisionByZeroError(
                f"Ratio metric '{metric.name}' has a zero denominator",
                metric=metric.name,
                partition=partition,
            )
        if numerator is None or denominator is None:
            return None
        return numerator / denominator * metric.scale


def total_row_count(rows: Iterable[AggregateRow]) -> int:
    """Sum of per-group row counts."""
    return sum(row.row_count for row in rows)
