"""
Calendar period keys used for time-series grouping.
"""

import calendar
from datetime import date, datetime
from typing import NamedTuple, Union


class MonthBucket(NamedTuple):
    """
    A (year, month) key.

    Tuple ordering makes buckets sort chronologically rather than by
    month name.
    """

    year: int
    month: int

    @classmethod
    def from_datetime(cls, value: Union[date, datetime]) -> "MonthBucket":
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, label: str) -> "MonthBucket":
        """Parse a ``YYYY-MM`` label."""
        year, month = label.split("-", 1)
        bucket = cls(int(year), int(month))
        if not 1 <= bucket.month <= 12:
            raise ValueError(f"Invalid month in label: {label!r}")
        return bucket

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]

    def next(self) -> "MonthBucket":
        if self.month == 12:
            return MonthBucket(self.year + 1, 1)
        return MonthBucket(self.year, self.month + 1)

    def __str__(self) -> str:
        return self.label
