"""
Data quality models for the normalization step.
"""

from pydantic import BaseModel, Field, field_validator


class QualityIssue(BaseModel):
    """
    Individual data quality issue identified during normalization.

    Attributes:
        field: Field name where the issue was detected
        issue_type: Type of quality issue (e.g., "missing", "invalid_value")
        count: Number of records affected by this issue
        description: Human-readable description of the issue
    """

    field: str = Field(description="Field name where issue was detected")
    issue_type: str = Field(
        description="Type of quality issue (e.g., 'missing', 'invalid_value')"
    )
    count: int = Field(description="Number of records affected by this issue", ge=0)
    description: str = Field(description="Human-readable description of the issue")


class DataQualityReport(BaseModel):
    """
    Data quality assessment for one normalization batch.

    Attributes:
        batch_id: Unique identifier for this batch
        source: Source dataset identifier
        total_records: Total number of raw records in batch
        valid_records: Number of records that entered the fact table
        rejected_records: Number of records dropped by the normalization contract
        completeness_score: Proportion of optional fields populated (0.0-1.0)
        consistency_score: Proportion of raw records accepted (0.0-1.0)
        overall_quality_score: Weighted overall score (0.0-1.0)
        quality_issues: List of specific quality issues detected
    """

    batch_id: str = Field(description="Unique identifier for this batch")
    source: str = Field(description="Source dataset identifier")
    total_records: int = Field(description="Total number of raw records", ge=0)
    valid_records: int = Field(description="Records accepted into the fact table", ge=0)
    rejected_records: int = Field(description="Records dropped by normalization", ge=0)
    completeness_score: float = Field(
        description="Proportion of optional fields populated", ge=0.0, le=1.0
    )
    consistency_score: float = Field(
        description="Proportion of raw records accepted", ge=0.0, le=1.0
    )
    overall_quality_score: float = Field(
        description="Weighted overall quality score", ge=0.0, le=1.0
    )
    quality_issues: list[QualityIssue] = Field(
        default_factory=list, description="List of specific quality issues detected"
    )

    @field_validator("completeness_score", "consistency_score", "overall_quality_score")
    @classmethod
    def round_scores(cls, v: float) -> float:
        return round(v, 4)
