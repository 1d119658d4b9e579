"""Models for consolidated, presentation-ready report data."""

from collections.abc import Sequence
from typing import Literal

from pydantic import Field

from trend_report.models.attempt import AttemptStatus
from trend_report.models.base import Model

StepStatus = Literal["passed", "failed"]
CountBucket = Literal["passed", "failed", "skipped"]


class MaterializedAttachment(Model):
    """Attachment resolved to an inline payload or a stored blob reference."""

    name: str = Field(..., description="Attachment name")
    content_type: str = Field(..., description="Resolved MIME type")
    path: str = Field(
        ...,
        description="data: URL, relative blob path, or empty when unavailable",
    )
    retry: int = Field(default=0, description="Retry index of the source attempt")


class StepNode(Model):
    """Normalized step with control sequences stripped from its text."""

    title: str
    status: StepStatus
    duration: float = 0.0
    error: str | None = None
    steps: Sequence["StepNode"] = Field(default_factory=list)


class ConsolidatedTestRecord(Model):
    """Single reporting decision for a test after merging all attempts."""

    __test__ = False

    test_id: str
    title: str
    full_title: str
    project_name: str = Field(..., description="Partition key for grouping")
    status: AttemptStatus = Field(..., description="Final reporting status")
    counted_as: CountBucket = Field(..., description="Aggregate counter bucket")
    duration: float = Field(..., description="Final attempt duration")
    errors: Sequence[str] = Field(default_factory=list)
    retries: int = Field(..., ge=0)
    location: str
    attachments: Sequence[MaterializedAttachment] = Field(default_factory=list)
    steps: Sequence[StepNode] = Field(default_factory=list)

    @property
    def retried(self) -> bool:
        """Whether the test needed more than one attempt."""
        return self.retries > 0


class RunCounters(Model):
    """Aggregate counters over all consolidated records of a run.

    ``retried`` overlaps the other buckets instead of partitioning ``total``.
    """

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    retried: int = 0


class ReportData(Model):
    """Full record of one run, persisted for later re-rendering."""

    report_title: str
    build_identifier: str
    counts: RunCounters
    tests: Sequence[ConsolidatedTestRecord] = Field(default_factory=list)
    start_time: str = Field(..., description="ISO 8601 run start")
    end_time: str = Field(..., description="ISO 8601 run end")
    duration: float = Field(..., description="Run duration in seconds")
