"""
Service request fact models.

This module defines the normalized service request record consumed by every
report. Records are produced by the normalization adapter, validated once on
construction and never mutated afterwards.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import RequestStatus
from .periods import MonthBucket


def _as_datetime(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


class ServiceRequest(BaseModel):
    """
    One row of the fact table.

    Derived fields (status, resolution_hours) are filled in from the
    timestamps when the caller does not supply them, and checked for
    consistency when it does.

    Attributes:
        id: Source case identifier
        opened_at: When the request was submitted
        closed_at: When the request was closed (None while open)
        department: Owning department
        reason: Complaint/category type
        source: Submission channel
        neighborhood: Neighborhood name, may be blank
        sla_met: True iff the request was closed on/before its SLA target
        status: Open or Closed
        resolution_hours: Hours from opening to closing (None while open)
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Source case identifier")
    opened_at: datetime = Field(description="When the request was submitted")
    closed_at: Optional[datetime] = Field(
        default=None, description="When the request was closed"
    )
    department: str = Field(description="Owning department")
    reason: str = Field(default="", description="Complaint/category type")
    source: str = Field(default="", description="Submission channel")
    neighborhood: Optional[str] = Field(default=None, description="Neighborhood name")
    sla_met: bool = Field(default=False, description="Closed on/before SLA target")
    status: RequestStatus = Field(
        default=RequestStatus.OPEN, description="Derived lifecycle status"
    )
    resolution_hours: Optional[float] = Field(
        default=None, description="Derived hours from opening to closing"
    )

    # Carried through from the raw case record, unused by the core reports
    sla_target_at: Optional[datetime] = Field(default=None, description="SLA target timestamp")
    subject: Optional[str] = Field(default=None, description="Case subject")
    case_title: Optional[str] = Field(default=None, description="Case title")
    ward: Optional[str] = Field(default=None, description="City ward")
    latitude: Optional[float] = Field(default=None, description="Latitude")
    longitude: Optional[float] = Field(default=None, description="Longitude")

    @model_validator(mode="before")
    @classmethod
    def derive_lifecycle_fields(cls, data: Any) -> Any:
        """Derive status and resolution_hours from the timestamps."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        opened_at = _as_datetime(data.get("opened_at"))
        closed_at = _as_datetime(data.get("closed_at"))
        if data.get("status") is None:
            data["status"] = RequestStatus.CLOSED if closed_at is not None else RequestStatus.OPEN
        if (
            data.get("resolution_hours") is None
            and isinstance(opened_at, datetime)
            and isinstance(closed_at, datetime)
        ):
            data["resolution_hours"] = (closed_at - opened_at).total_seconds() / 3600
        return data

    @model_validator(mode="after")
    def validate_lifecycle_invariants(self) -> "ServiceRequest":
        """Closed iff closed_at present; resolution_hours present iff Closed."""
        is_closed = self.closed_at is not None
        if (self.status == RequestStatus.CLOSED) != is_closed:
            raise ValueError("status must be Closed iff closed_at is present")
        if (self.resolution_hours is not None) != is_closed:
            raise ValueError("resolution_hours must be present iff the request is Closed")
        return self

    @property
    def is_closed(self) -> bool:
        return self.status == RequestStatus.CLOSED

    @property
    def is_open(self) -> bool:
        return self.status == RequestStatus.OPEN

    @property
    def open_month(self) -> MonthBucket:
        """Calendar month of the opening date, regardless of status."""
        return MonthBucket.from_datetime(self.opened_at)

    @property
    def has_geo(self) -> bool:
        return self.latitude is not None and self.longitude is not None
