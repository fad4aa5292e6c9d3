"""
Multi-key sorting with an explicit direction per key.

Absent values always sort after present ones, whichever the direction, so a
missing average never outranks a real one.
"""

from typing import Any, Iterable, NamedTuple, Optional, Sequence


class SortKey(NamedTuple):
    field: str
    descending: bool = False


def asc(field: str) -> SortKey:
    return SortKey(field, False)


def desc(field: str) -> SortKey:
    return SortKey(field, True)


def field_value(row: Any, field: str) -> Any:
    """Read a field from a mapping-like row or an object attribute."""
    if isinstance(row, dict):
        return row.get(field)
    if hasattr(row, "__getitem__") and not isinstance(row, (str, tuple)):
        try:
            return row[field]
        except KeyError:
            return None
    return getattr(row, field, None)


def sort_rows(
    rows: Iterable[Any],
    keys: Sequence[SortKey],
    getter=field_value,
) -> list[Any]:
    """
    Stable sort by several keys, each with its own direction.

    Sorts once per key from the least significant to the most significant,
    relying on sort stability.
    """
    ordered = list(rows)
    for sort_key in reversed(keys):
        present = [r for r in ordered if getter(r, sort_key.field) is not None]
        absent = [r for r in ordered if getter(r, sort_key.field) is None]
        present.sort(key=lambda r: getter(r, sort_key.field), reverse=sort_key.descending)
        ordered = present + absent
    return ordered


def limit(rows: list[Any], n: Optional[int]) -> list[Any]:
    return rows if n is None else rows[:n]
