"""Models for per-attempt events reported by the test runner."""

import base64
from collections.abc import Sequence
from typing import Literal

from pydantic import Field, field_serializer, field_validator

from trend_report.models.base import Model

AttemptStatus = Literal["passed", "failed", "timedOut", "skipped", "interrupted"]
ExpectedStatus = AttemptStatus


class TestIdentity(Model):
    """Stable key for one logical test across all of its attempts."""

    __test__ = False

    test_id: str = Field(
        ..., min_length=1, description="Runner-assigned unique test id"
    )
    title: str = Field(..., description="Test title")
    title_path: Sequence[str] = Field(
        default_factory=list, description="Suite path segments ending in the title"
    )
    project_name: str = Field(default="No Project", description="Runner project")
    file: str = Field(default="", description="Source file relative to test dir")
    line: int = Field(default=0, description="Source line")
    column: int = Field(default=0, description="Source column")

    @property
    def full_title(self) -> str:
        """Title path joined for display, falling back to the bare title."""
        return " > ".join(self.title_path) if self.title_path else self.title

    @property
    def location(self) -> str:
        """Source location as file:line:column with forward slashes."""
        file = self.file.replace("\\", "/")
        return f"{file}:{self.line}:{self.column}"


class RawAttachment(Model):
    """Artifact captured by the runner during one attempt.

    Either ``path`` or ``body`` is expected; when both are given the path
    wins if it can be read.
    """

    name: str = Field(..., description="Attachment name")
    content_type: str = Field(
        default="application/octet-stream", description="Declared MIME type"
    )
    path: str | None = Field(default=None, description="Filesystem path")
    body: bytes | None = Field(
        default=None, description="In-memory payload (base64 text in JSON)"
    )

    @field_validator("body", mode="before")
    @classmethod
    def _decode_body(cls, value: object) -> object:
        if isinstance(value, str):
            return base64.b64decode(value, validate=True)
        return value

    @field_serializer("body", when_used="json-unless-none")
    def _encode_body(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")


class RawStep(Model):
    """Step as reported by the runner, possibly with nested substeps."""

    title: str
    duration: float = 0.0
    error: str | None = None
    steps: Sequence["RawStep"] = Field(default_factory=list)


class Attempt(Model):
    """One execution of a test, including retries."""

    status: AttemptStatus = Field(..., description="Outcome of this attempt")
    duration: float = Field(default=0.0, description="Duration in milliseconds")
    errors: Sequence[str] = Field(default_factory=list, description="Error messages")
    attachments: Sequence[RawAttachment] = Field(default_factory=list)
    steps: Sequence[RawStep] = Field(default_factory=list)
    retry: int = Field(default=0, ge=0, description="Zero-based retry index")


class AttemptEvent(Model):
    """Single line of the runner's attempt stream."""

    identity: TestIdentity
    attempt: Attempt
    expected_status: ExpectedStatus = "passed"
