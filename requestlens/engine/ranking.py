"""
Ranking Engine - competitive ranking within partitions.

Assigns RANK() semantics per partition: the highest metric value gets rank 1
and tied values share a rank, leaving gaps after a tie (1, 1, 3, ...).

Ties at the top are preserved by default, so "top-1 per partition" can
return several rows for one partition. Callers that need a single winner
pass an explicit tie_break; the ranks then follow the combined ordering of
metric and tie-break keys.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import structlog

from requestlens.engine.ordering import SortKey, field_value, sort_rows

logger = structlog.get_logger()


@dataclass(frozen=True)
class RankedRow:
    """
    A row paired with its rank inside its partition.

    Attributes:
        row: The ranked row (aggregate row or mapping)
        rank: Competitive rank, starting at 1
        partition: Partition key values
    """

    row: Any
    rank: int
    partition: tuple = ()

    def __getitem__(self, name: str) -> Any:
        if name == "rank":
            return self.rank
        value = field_value(self.row, name)
        if value is None and not _has_field(self.row, name):
            raise KeyError(name)
        return value

    def as_dict(self, rank_field: str = "rank") -> dict[str, Any]:
        base = self.row.as_dict() if hasattr(self.row, "as_dict") else dict(self.row)
        base[rank_field] = self.rank
        return base


def _has_field(row: Any, name: str) -> bool:
    if isinstance(row, dict):
        return name in row
    if hasattr(row, "key_names"):
        return name in row.key_names or name in row.values
    return hasattr(row, name)


class RankingEngine:
    """
    Within-partition competitive ranking.

    Example:
        >>> ranker = RankingEngine()
        >>> winners = ranker.top_per_partition(rows, metric="request_count",
        ...                                    partition_by=["neighborhood"])
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    def rank(
        self,
        rows: Sequence[Any],
        metric: str,
        partition_by: Sequence[str] = (),
        tie_break: Optional[Sequence[SortKey]] = None,
    ) -> list[RankedRow]:
        """
        Rank rows by metric (descending) within each partition.

        Args:
            rows: Rows to rank; an empty input yields an empty result
            metric: Field ranked in descending order
            partition_by: Fields defining partitions; empty means one partition
            tie_break: Optional secondary keys that split ties deterministically

        Returns:
            Ranked rows grouped by partition (first-appearance order), each
            partition ordered by rank
        """
        if not rows:
            return []

        partitions: dict[tuple, list[Any]] = {}
        for row in rows:
            part = tuple(field_value(row, f) for f in partition_by)
            partitions.setdefault(part, []).append(row)

        order_keys = [SortKey(metric, True), *(tie_break or ())]
        ranked: list[RankedRow] = []
        for part, members in partitions.items():
            ranked.extend(self._rank_partition(members, order_keys, part))

        self.logger.debug(
            "ranking_complete",
            metric=metric,
            partitions=len(partitions),
            rows=len(ranked),
            tie_break=[k.field for k in tie_break or ()],
        )
        return ranked

    def top_per_partition(
        self,
        rows: Sequence[Any],
        metric: str,
        partition_by: Sequence[str] = (),
        n: int = 1,
        tie_break: Optional[Sequence[SortKey]] = None,
    ) -> list[RankedRow]:
        """Rows whose rank is at most n; ties at the boundary are all kept."""
        return [r for r in self.rank(rows, metric, partition_by, tie_break) if r.rank <= n]

    @staticmethod
    def _rank_partition(
        members: list[Any],
        order_keys: list[SortKey],
        part: tuple,
    ) -> list[RankedRow]:
        ordered = sort_rows(members, order_keys)
        ranked = []
        previous = None
        current_rank = 0
        for position, row in enumerate(ordered, start=1):
            rank_key = tuple(field_value(row, k.field) for k in order_keys)
            if rank_key != previous:
                current_rank = position
                previous = rank_key
            ranked.append(RankedRow(row=row, rank=current_rank, partition=part))
        return ranked
