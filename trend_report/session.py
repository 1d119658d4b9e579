"""Lifecycle of one reporting run, from first attempt to persisted report."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import aiofiles

from trend_report.accumulator import AttemptAccumulator
from trend_report.aggregator import GroupedRecords, aggregate
from trend_report.attachments import AttachmentMaterializer, CompressionConfig
from trend_report.config import ReporterConfig
from trend_report.consolidator import ResultConsolidator
from trend_report.history import HistoryLedger
from trend_report.models.attempt import AttemptEvent
from trend_report.models.history import HistoryEntry
from trend_report.models.report import ReportData, RunCounters

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ReportResult:
    """Facts handed to the presentation layer at run end."""

    report: ReportData
    groups: GroupedRecords
    history: Sequence[HistoryEntry]

    @property
    def counters(self) -> RunCounters:
        """Aggregate counters of the run."""
        return self.report.counts


@dataclass(kw_only=True)
class ReportSession:
    """Owns all mutable state of a single run.

    ``begin`` must be called before attempts are recorded and ``finish``
    once the runner signals completion. Independent sessions share nothing.
    """

    config: ReporterConfig
    base_dir: Path = field(default_factory=Path.cwd)
    accumulator: AttemptAccumulator = field(default_factory=AttemptAccumulator)
    _ledger: HistoryLedger | None = field(default=None, init=False, repr=False)
    _started_at: datetime | None = field(default=None, init=False, repr=False)

    @property
    def output_dir(self) -> Path:
        """Directory receiving the history, report data and attachments."""
        return self.base_dir / self.config.output_folder

    @property
    def attachments_dir(self) -> Path:
        """Directory receiving stored attachment blobs."""
        return self.output_dir / self.config.attachments_dir_name

    async def begin(self) -> None:
        """Reset run state, prepare output directories and load history."""
        self.accumulator.reset()
        self._started_at = datetime.now(UTC)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        if self.config.attachment_mode == "stored":
            self.attachments_dir.mkdir(parents=True, exist_ok=True)

        self._ledger = HistoryLedger(
            path=self.output_dir / self.config.history_file_name,
            max_entries=self.config.history_trend,
        )
        if self.config.reset_history:
            self._ledger.reset()
        else:
            await self._ledger.load()

        log.info("Report session started, output in %s", self.output_dir)

    def record(self, event: AttemptEvent) -> None:
        """Accumulate one attempt reported by the runner."""
        self.accumulator.record(event.identity, event.attempt, event.expected_status)

    def record_all(self, events: Sequence[AttemptEvent]) -> None:
        """Accumulate attempts in stream order."""
        for event in events:
            self.record(event)

    async def finish(self) -> ReportResult:
        """Consolidate all tests, update history and persist the run record."""
        if self._ledger is None or self._started_at is None:
            raise RuntimeError("ReportSession.finish() called before begin()")

        materializer = AttachmentMaterializer(
            mode=self.config.attachment_mode,
            compression=CompressionConfig(
                enabled=self.config.compress_images,
                quality=self.config.image_quality,
            ),
            attachments_dir=(
                self.attachments_dir
                if self.config.attachment_mode == "stored"
                else None
            ),
            reference_prefix=self.config.attachments_dir_name,
        )
        consolidator = ResultConsolidator(materializer=materializer)

        groups = self.accumulator.groups()
        log.info("Consolidating %d test(s)...", len(groups))
        consolidated = await asyncio.gather(
            *(
                consolidator.consolidate(
                    group.identity, group.attempts, group.expected_status
                )
                for group in groups
            )
        )
        records = [record for record in consolidated if record is not None]

        run = aggregate(records)
        finished_at = datetime.now(UTC)
        report = ReportData(
            report_title=self.config.report_title,
            build_identifier=self.config.build_identifier,
            counts=run.counters,
            tests=records,
            start_time=self._started_at.isoformat(),
            end_time=finished_at.isoformat(),
            duration=(finished_at - self._started_at).total_seconds(),
        )

        history = await self._update_history(
            self._ledger,
            run.history_entry(self.config.build_identifier, finished_at),
        )

        if self.config.attachment_mode == "stored":
            await self._write_report_data(report)

        log.info(
            "Run complete: total=%d passed=%d failed=%d skipped=%d retried=%d",
            run.counters.total,
            run.counters.passed,
            run.counters.failed,
            run.counters.skipped,
            run.counters.retried,
        )
        return ReportResult(report=report, groups=run.groups, history=history)

    async def _update_history(
        self, ledger: HistoryLedger, entry: HistoryEntry
    ) -> Sequence[HistoryEntry]:
        try:
            return await ledger.record(entry)
        except OSError as e:
            log.error("Failed to persist history ledger: %s", e)
            return list(ledger.entries)

    async def _write_report_data(self, report: ReportData) -> None:
        path = self.output_dir / self.config.report_data_file_name
        try:
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(report.model_dump_json(indent=2))
        except OSError as e:
            log.error("Failed to write report data to %s: %s", path, e)
            return
        log.info("Report data written to %s", path)


def summarize(result: ReportResult) -> Mapping[str, object]:
    """JSON-ready summary of a finished run."""
    return {
        "counts": result.counters.model_dump(),
        "groups": {name: len(records) for name, records in result.groups.items()},
        "history": [entry.model_dump(mode="json") for entry in result.history],
    }

