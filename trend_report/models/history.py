"""Models for the cross-run history ledger."""

from datetime import UTC, datetime

from pydantic import Field, RootModel, field_validator

from trend_report.models.base import Model


class HistoryEntry(Model):
    """Summary of one build, keyed by its build identifier."""

    build_identifier: str = Field(..., description="Build number or label")
    total_tests: int = Field(..., ge=0)
    passed_tests: int = Field(..., ge=0)
    timestamp: datetime = Field(..., description="Run end time (ISO 8601)")

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive and aware datetimes cannot be ordered together.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class HistoryFile(RootModel[list[HistoryEntry]]):
    """On-disk layout of the ledger: a bare JSON array of entries."""
