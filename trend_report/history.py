"""Durable, bounded, time-ordered ledger of per-build summaries."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles

from trend_report.models.history import HistoryEntry, HistoryFile

log = logging.getLogger(__name__)

DEFAULT_HISTORY_TREND = 4


def deduplicate(entries: Sequence[HistoryEntry]) -> list[HistoryEntry]:
    """Keep only the last entry of each build identifier, in original order."""
    last = {entry.build_identifier: index for index, entry in enumerate(entries)}
    return [
        entry
        for index, entry in enumerate(entries)
        if last[entry.build_identifier] == index
    ]


@dataclass(kw_only=True)
class HistoryLedger:
    """Cross-run history persisted as a JSON array.

    The ledger is read once at run start and rewritten whole at run end.
    Concurrent runs sharing one file are not coordinated.
    """

    path: Path
    max_entries: int = DEFAULT_HISTORY_TREND
    entries: list[HistoryEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {self.max_entries}")

    def reset(self) -> None:
        """Discard the persisted ledger to start a new trend line."""
        self.entries = []
        if not self.path.exists():
            return
        log.info("Resetting history ledger at %s", self.path)
        try:
            self.path.unlink()
        except OSError as e:
            log.error("Could not remove history file %s: %s", self.path, e)

    async def load(self) -> Sequence[HistoryEntry]:
        """Read persisted entries, starting empty if they cannot be parsed."""
        self.entries = []
        if not self.path.exists():
            log.debug("No history ledger at %s", self.path)
            return self.entries

        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                content = await f.read()
            entries = HistoryFile.model_validate_json(content).root
        except (OSError, ValueError) as e:
            log.error("Could not read or parse history file %s: %s", self.path, e)
            self.entries = []
        else:
            self.entries = deduplicate(entries)

        log.info("Loaded %d history entries from %s", len(self.entries), self.path)
        return self.entries

    def upsert(self, entry: HistoryEntry) -> None:
        """Replace the entry with the same build identifier, or append."""
        for index, existing in enumerate(self.entries):
            if existing.build_identifier == entry.build_identifier:
                self.entries[index] = entry
                return
        self.entries.append(entry)

    def normalize(self) -> Sequence[HistoryEntry]:
        """Sort oldest first and drop the oldest entries beyond the window."""
        self.entries.sort(key=lambda entry: entry.timestamp)
        excess = len(self.entries) - self.max_entries
        if excess > 0:
            del self.entries[:excess]
        return self.entries

    async def persist(self) -> None:
        """Rewrite the whole ledger file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = HistoryFile(self.entries).model_dump_json(indent=2)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(content)
        log.info("Persisted %d history entries to %s", len(self.entries), self.path)

    async def record(self, entry: HistoryEntry) -> Sequence[HistoryEntry]:
        """Upsert, normalize and persist a run summary in one step."""
        self.upsert(entry)
        self.normalize()
        await self.persist()
        return list(self.entries)
