"""
Exception hierarchy for the analytics engine.

Every error carries a context mapping (report name, partition key, field)
so a failure deep inside a report pipeline can be diagnosed from the
exception alone. Reports have no partial-result mode: these errors
propagate to the caller and the report produces nothing.
"""

from typing import Any


class AnalyticsError(Exception):
    """Base exception for all analytics engine failures."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def with_context(self, **context: Any) -> "AnalyticsError":
        """Attach additional context without overwriting existing keys."""
        for key, value in context.items():
            if value is not None:
                self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"


class MissingFieldError(AnalyticsError):
    """A required field is absent on a record that normalization should have dropped."""

    def __init__(self, field: str, record_id: Any = None, **context: Any):
        super().__init__(
            f"Required field '{field}' is absent", field=field, record_id=record_id, **context
        )
        self.field = field


class DivisionByZeroError(AnalyticsError, ZeroDivisionError):
    """A ratio metric was evaluated over a zero denominator."""


class UndefinedScoreError(AnalyticsError):
    """A z-score was requested over a series with zero standard deviation."""


class UnknownReportError(AnalyticsError, KeyError):
    """The requested report name is not in the catalog."""

    def __str__(self) -> str:
        return AnalyticsError.__str__(self)
