"""Load the runner's attempt stream from JSON Lines files."""

import logging
from collections.abc import Sequence
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from trend_report.models.attempt import AttemptEvent

log = logging.getLogger(__name__)


async def load_attempt_events(events_path: Path) -> Sequence[AttemptEvent]:
    """Parse one attempt event per non-blank line, in file order.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a line is not a valid attempt event

    """
    if not events_path.is_file():
        raise FileNotFoundError(f"Events file not found: {events_path}")

    events: list[AttemptEvent] = []
    async with aiofiles.open(events_path, encoding="utf-8") as f:
        line_no = 0
        async for line in f:
            line_no += 1
            if not line.strip():
                continue
            try:
                events.append(AttemptEvent.model_validate_json(line))
            except ValidationError as e:
                raise ValueError(
                    f"Invalid attempt event on line {line_no} of {events_path}: {e}"
                ) from e

    log.info("Loaded %d attempt event(s) from %s", len(events), events_path)
    return events
