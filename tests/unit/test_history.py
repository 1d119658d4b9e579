"""Tests for the history ledger."""

import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from trend_report.history import HistoryLedger
from trend_report.models.history import HistoryEntry, HistoryFile

BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)


def entry(
    build: str, offset_hours: int, total: int = 10, passed: int = 8
) -> HistoryEntry:
    """Build an entry stamped relative to a fixed base time."""
    return HistoryEntry(
        build_identifier=build,
        total_tests=total,
        passed_tests=passed,
        timestamp=BASE_TIME + timedelta(hours=offset_hours),
    )


@pytest.fixture
def ledger_path(tmp_path: Path) -> Path:
    """Location of the ledger file."""
    return tmp_path / "history.json"


class TestUpsert:
    """Tests for HistoryLedger.upsert."""

    def test_appends_new_build(self, ledger_path: Path) -> None:
        """Unknown builds are appended."""
        ledger = HistoryLedger(path=ledger_path)

        ledger.upsert(entry("B1", 1))
        ledger.upsert(entry("B2", 2))

        assert [e.build_identifier for e in ledger.entries] == ["B1", "B2"]

    def test_replaces_same_build(self, ledger_path: Path) -> None:
        """Upserting a build twice keeps one entry with the latest values."""
        ledger = HistoryLedger(path=ledger_path)

        ledger.upsert(entry("B1", 1, total=10, passed=5))
        ledger.upsert(entry("B1", 2, total=12, passed=11))

        assert len(ledger.entries) == 1
        assert ledger.entries[0].total_tests == 12
        assert ledger.entries[0].passed_tests == 11


class TestNormalize:
    """Tests for HistoryLedger.normalize."""

    def test_sorts_by_timestamp(self, ledger_path: Path) -> None:
        """Entries end up oldest first."""
        ledger = HistoryLedger(path=ledger_path, max_entries=10)
        for build, offset in [("B3", 3), ("B1", 1), ("B2", 2)]:
            ledger.upsert(entry(build, offset))

        ledger.normalize()

        assert [e.build_identifier for e in ledger.entries] == ["B1", "B2", "B3"]

    def test_window_of_four_keeps_latest_builds(self, ledger_path: Path) -> None:
        """Five builds through a window of four drop the oldest."""
        ledger = HistoryLedger(path=ledger_path, max_entries=4)
        for index in range(1, 6):
            ledger.upsert(entry(f"B{index}", index))
            ledger.normalize()

        builds = [e.build_identifier for e in ledger.entries]
        assert builds == ["B2", "B3", "B4", "B5"]

    def test_trims_to_most_recent_regardless_of_insertion(
        self, ledger_path: Path
    ) -> None:
        """Trimming uses timestamps, not insertion order."""
        ledger = HistoryLedger(path=ledger_path, max_entries=2)
        for build, offset in [("B4", 4), ("B1", 1), ("B3", 3), ("B2", 2)]:
            ledger.upsert(entry(build, offset))

        ledger.normalize()

        assert [e.build_identifier for e in ledger.entries] == ["B3", "B4"]

    def test_rejects_non_positive_window(self, ledger_path: Path) -> None:
        """The retention window must be positive."""
        with pytest.raises(ValueError, match="max_entries must be positive"):
            HistoryLedger(path=ledger_path, max_entries=0)


class TestPersistence:
    """Tests for loading and persisting the ledger."""

    async def test_load_missing_file_is_empty(self, ledger_path: Path) -> None:
        """A first run starts from an empty ledger."""
        ledger = HistoryLedger(path=ledger_path)

        assert await ledger.load() == []

    async def test_persist_then_load_resumes(self, ledger_path: Path) -> None:
        """A new process sees what the previous one persisted."""
        first = HistoryLedger(path=ledger_path)
        await first.record(entry("B1", 1))
        await first.record(entry("B2", 2))

        second = HistoryLedger(path=ledger_path)
        entries = await second.load()

        assert [e.build_identifier for e in entries] == ["B1", "B2"]
        assert entries[1].timestamp == BASE_TIME + timedelta(hours=2)

    async def test_persist_rewrites_whole_file(self, ledger_path: Path) -> None:
        """The file always mirrors the in-memory list."""
        ledger = HistoryLedger(path=ledger_path, max_entries=1)
        await ledger.record(entry("B1", 1))
        await ledger.record(entry("B2", 2))

        data = json.loads(ledger_path.read_text())

        assert [item["build_identifier"] for item in data] == ["B2"]

    async def test_corrupt_file_starts_empty(
        self, ledger_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Unparseable history is logged and ignored."""
        ledger_path.write_text("{not json")
        ledger = HistoryLedger(path=ledger_path)

        with caplog.at_level(logging.ERROR):
            entries = await ledger.load()

        assert entries == []
        assert "Could not read or parse history file" in caplog.text

    async def test_wrong_shape_starts_empty(self, ledger_path: Path) -> None:
        """Valid JSON with the wrong structure is treated as corrupt."""
        ledger_path.write_text(json.dumps({"buildNo": "1"}))
        ledger = HistoryLedger(path=ledger_path)

        assert await ledger.load() == []

    async def test_reset_discards_persisted_ledger(self, ledger_path: Path) -> None:
        """Reset removes the file so a new trend line starts."""
        ledger = HistoryLedger(path=ledger_path)
        await ledger.record(entry("B1", 1))

        ledger.reset()

        assert not ledger_path.exists()
        assert await ledger.load() == []

    async def test_non_utf8_file_starts_empty(
        self, ledger_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Binary garbage in the ledger file is logged and ignored."""
        ledger_path.write_bytes(b"\xff\xfe\x00garbage")
        ledger = HistoryLedger(path=ledger_path)

        with caplog.at_level(logging.ERROR):
            entries = await ledger.load()

        assert entries == []
        assert "Could not read or parse history file" in caplog.text

    async def test_load_keeps_last_duplicate_build(self, ledger_path: Path) -> None:
        """A ledger holding one build twice keeps only its latest entry."""
        first = entry("B1", 1, passed=3)
        other = entry("B2", 2)
        last = entry("B1", 3, passed=9)
        ledger_path.write_text(HistoryFile([first, other, last]).model_dump_json())
        ledger = HistoryLedger(path=ledger_path)

        entries = await ledger.load()

        assert [(e.build_identifier, e.passed_tests) for e in entries] == [
            ("B2", 8),
            ("B1", 9),
        ]

    async def test_reset_survives_undeletable_path(
        self, ledger_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A history path that cannot be removed is logged, not raised."""
        ledger_path.mkdir()
        ledger = HistoryLedger(path=ledger_path)
        ledger.upsert(entry("B1", 1))

        with caplog.at_level(logging.ERROR):
            ledger.reset()

        assert ledger.entries == []
        assert "Could not remove history file" in caplog.text
