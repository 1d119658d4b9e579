"""Folding of consolidated records into run counters and groups."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from trend_report.models.history import HistoryEntry
from trend_report.models.report import ConsolidatedTestRecord, RunCounters

GroupedRecords = Mapping[str, Sequence[ConsolidatedTestRecord]]


@dataclass(frozen=True, kw_only=True)
class RunAggregate:
    """Counters and grouped records for one run."""

    counters: RunCounters
    groups: GroupedRecords

    def history_entry(
        self, build_identifier: str, timestamp: datetime
    ) -> HistoryEntry:
        """Summarize this run for the history ledger."""
        return HistoryEntry(
            build_identifier=build_identifier,
            total_tests=self.counters.total,
            passed_tests=self.counters.passed,
            timestamp=timestamp,
        )


def count_records(records: Sequence[ConsolidatedTestRecord]) -> RunCounters:
    """Compute run counters in a single pass."""
    passed = failed = skipped = retried = 0
    for record in records:
        match record.counted_as:
            case "passed":
                passed += 1
            case "failed":
                failed += 1
            case "skipped":
                skipped += 1
        if record.retried:
            retried += 1
    return RunCounters(
        total=len(records),
        passed=passed,
        failed=failed,
        skipped=skipped,
        retried=retried,
    )


def group_records(records: Sequence[ConsolidatedTestRecord]) -> GroupedRecords:
    """Partition records by project name, preserving insertion order."""
    groups: dict[str, list[ConsolidatedTestRecord]] = {}
    for record in records:
        groups.setdefault(record.project_name, []).append(record)
    return groups


def aggregate(records: Sequence[ConsolidatedTestRecord]) -> RunAggregate:
    """Build the counters and groups consumed by the presentation layer."""
    return RunAggregate(counters=count_records(records), groups=group_records(records))
