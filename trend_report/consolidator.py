"""Merging of all attempts of one test into a single reporting decision."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from trend_report.attachments import DEFAULT_CONTENT_TYPE, AttachmentMaterializer
from trend_report.models.attempt import (
    Attempt,
    AttemptStatus,
    ExpectedStatus,
    RawAttachment,
    TestIdentity,
)
from trend_report.models.report import (
    ConsolidatedTestRecord,
    CountBucket,
    MaterializedAttachment,
)
from trend_report.steps import normalize_steps
from trend_report.text import strip_ansi

log = logging.getLogger(__name__)

STATUS_TO_BUCKET: Mapping[AttemptStatus, CountBucket] = {
    "passed": "passed",
    "failed": "failed",
    "timedOut": "failed",
    "interrupted": "failed",
    "skipped": "skipped",
}


def reporting_status(
    final_status: AttemptStatus, expected_status: ExpectedStatus
) -> AttemptStatus:
    """Status to report for a test given its last attempt.

    A test declared as expected to fail that passes is reported as failed.
    """
    if expected_status == "failed" and final_status == "passed":
        return "failed"
    return final_status


def collect_errors(attempts: Sequence[Attempt]) -> Sequence[str]:
    """Non-empty error messages of every attempt, in attempt order."""
    cleaned = (strip_ansi(error) for attempt in attempts for error in attempt.errors)
    return [error for error in cleaned if error]


@dataclass(frozen=True, kw_only=True)
class ResultConsolidator:
    """Builds consolidated test records from attempt lists."""

    materializer: AttachmentMaterializer

    async def consolidate(
        self,
        identity: TestIdentity,
        attempts: Sequence[Attempt],
        expected_status: ExpectedStatus = "passed",
    ) -> ConsolidatedTestRecord | None:
        """Merge the attempts of one test.

        Args:
            identity: Identity shared by all attempts
            attempts: Attempts in arrival order
            expected_status: Outcome the test declares as expected

        Returns:
            The consolidated record, or None when there are no attempts

        """
        if not attempts:
            log.warning("Test %s has no attempts, omitting it", identity.test_id)
            return None

        final = attempts[-1]
        status = reporting_status(final.status, expected_status)
        if status != final.status:
            log.info(
                "Test %s was expected to fail but passed, reporting as failed",
                identity.test_id,
            )

        attachments = await self._materialize_all(identity.test_id, attempts)

        return ConsolidatedTestRecord(
            test_id=identity.test_id,
            title=identity.title,
            full_title=identity.full_title,
            project_name=identity.project_name,
            status=status,
            counted_as=STATUS_TO_BUCKET[status],
            duration=final.duration,
            errors=collect_errors(attempts),
            retries=len(attempts) - 1,
            location=identity.location,
            attachments=attachments,
            steps=normalize_steps(final.steps),
        )

    async def _materialize_all(
        self, test_id: str, attempts: Sequence[Attempt]
    ) -> Sequence[MaterializedAttachment]:
        """Materialize concurrently, keeping attempt-then-declaration order."""
        sources: list[tuple[RawAttachment, int]] = [
            (attachment, attempt.retry)
            for attempt in attempts
            for attachment in attempt.attachments
        ]
        results = await asyncio.gather(
            *(
                self.materializer.materialize(attachment, test_id, retry)
                for attachment, retry in sources
            ),
            return_exceptions=True,
        )

        materialized: list[MaterializedAttachment] = []
        for (attachment, retry), result in zip(sources, results, strict=True):
            if isinstance(result, MaterializedAttachment):
                materialized.append(result)
            elif isinstance(result, Exception):
                log.error(
                    "Attachment %r of test %s failed: %s",
                    attachment.name,
                    test_id,
                    result,
                    exc_info=result,
                )
                materialized.append(
                    MaterializedAttachment(
                        name=attachment.name,
                        content_type=attachment.content_type or DEFAULT_CONTENT_TYPE,
                        path="",
                        retry=retry,
                    )
                )
            else:
                raise result
        return materialized
