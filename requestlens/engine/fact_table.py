"""
Fact Table Accessor - read-only view over normalized service requests.

The fact table is the single input of every report. It is materialized once
per analysis run and shared, read-only, by all report computations, so it
can be handed to a thread pool without any locking.

Access patterns:
    - Row iteration over immutable ServiceRequest records
    - Filtering (status, present field, non-blank field, arbitrary predicate)
      returning a new FactTable over the same record objects
    - Columnar extraction of a single field
"""

from typing import Any, Callable, Iterable, Iterator, Optional, Union

import pandas as pd
import structlog

from requestlens.engine.errors import MissingFieldError
from requestlens.models.enums import RequestStatus
from requestlens.models.periods import MonthBucket
from requestlens.models.requests import ServiceRequest

logger = structlog.get_logger()

RecordLike = Union[ServiceRequest, dict]


class FactTable:
    """
    Immutable snapshot of the normalized request records.

    Attributes:
        REQUIRED_FIELDS: Fields every record must carry; a record without one
            violates the normalization contract and raises MissingFieldError

    Example:
        >>> table = FactTable.from_records(requests)
        >>> closed = table.where_status(RequestStatus.CLOSED)
        >>> hours = closed.column("resolution_hours")
    """

    REQUIRED_FIELDS = ("id", "opened_at", "department")

    def __init__(self, records: Iterable[RecordLike] = ()):
        self._records: tuple[ServiceRequest, ...] = tuple(
            self._coerce(record) for record in records
        )
        self.logger = structlog.get_logger()

    @classmethod
    def from_records(cls, records: Iterable[RecordLike]) -> "FactTable":
        table = cls(records)
        logger.info("fact_table_materialized", record_count=len(table))
        return table

    @classmethod
    def _from_validated(cls, records: tuple[ServiceRequest, ...]) -> "FactTable":
        table = cls.__new__(cls)
        table._records = records
        table.logger = structlog.get_logger()
        return table

    @classmethod
    def _coerce(cls, record: RecordLike) -> ServiceRequest:
        if isinstance(record, ServiceRequest):
            return record
        if not isinstance(record, dict):
            raise TypeError(f"Unsupported record type: {type(record).__name__}")
        for field in cls.REQUIRED_FIELDS:
            if record.get(field) is None:
                raise MissingFieldError(field, record_id=record.get("id"))
        return ServiceRequest(**record)

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ServiceRequest]:
        return iter(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

    @property
    def records(self) -> tuple[ServiceRequest, ...]:
        return self._records

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def filter(self, predicate: Callable[[ServiceRequest], bool]) -> "FactTable":
        """Return a new table holding the records that satisfy predicate."""
        return self._from_validated(tuple(r for r in self._records if predicate(r)))

    def where_status(self, status: RequestStatus) -> "FactTable":
        return self.filter(lambda r: r.status == status)

    def where_present(self, field: str) -> "FactTable":
        """Keep records whose field value is not absent."""
        return self.filter(lambda r: self.value(r, field) is not None)

    def where_not_blank(self, field: str) -> "FactTable":
        """Keep records whose field is present and not empty after trimming."""

        def _not_blank(record: ServiceRequest) -> bool:
            value = getattr(record, field)
            if value is None:
                return False
            return str(value).strip() != ""

        filtered = self.filter(_not_blank)
        self.logger.debug(
            "blank_field_filter_applied",
            field=field,
            before=len(self),
            after=len(filtered),
        )
        return filtered

    # ------------------------------------------------------------------
    # Columnar access
    # ------------------------------------------------------------------

    @staticmethod
    def value(record: ServiceRequest, field: str, required: bool = False) -> Any:
        """
        Read one field from a record.

        Raises:
            MissingFieldError: If the record has no such field, or if required
                is set and the value is absent
        """
        if not hasattr(record, field):
            raise MissingFieldError(field, record_id=getattr(record, "id", None), unknown=True)
        value = getattr(record, field)
        if required and value is None:
            raise MissingFieldError(field, record_id=record.id)
        return value

    def column(self, field: str) -> list[Any]:
        return [self.value(r, field) for r in self._records]

    def month_span(self) -> Optional[tuple[MonthBucket, MonthBucket]]:
        """First and last opening month present, or None for an empty table."""
        if not self._records:
            return None
        months = [r.open_month for r in self._records]
        return min(months), max(months)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([r.model_dump(mode="python") for r in self._records])
