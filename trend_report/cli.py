"""CLI entry point for consolidating a runner's attempt stream."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from trend_report.config import ReporterConfig
from trend_report.config_loader import load_reporter_config
from trend_report.event_loader import load_attempt_events
from trend_report.session import ReportResult, ReportSession, summarize

STATUS_SYMBOLS = {
    "passed": "✅",
    "failed": "❌",
    "timedOut": "⏱️",
    "interrupted": "❗",
    "skipped": "⏭️",
}


def log_results_summary(log: logging.Logger, result: ReportResult) -> None:
    """Log a formatted summary of consolidated results per project."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for project_name, records in result.groups.items():
        log.info("%s", project_name)
        for record in records:
            symbol = STATUS_SYMBOLS.get(record.status, "?")
            retries = f" [retries: {record.retries}]" if record.retried else ""
            log.info(
                "  %s %s: %s (%.0fms)%s",
                symbol,
                record.full_title,
                record.status,
                record.duration,
                retries,
            )
            for error in record.errors:
                log.info("    Error: %s", error.splitlines()[0])

    counts = result.counters
    log.info(
        "Total: %d, Passed: %d, Failed: %d, Skipped: %d, Retried: %d",
        counts.total,
        counts.passed,
        counts.failed,
        counts.skipped,
        counts.retried,
    )


def apply_overrides(
    config: ReporterConfig, overrides: Mapping[str, Any]
) -> ReporterConfig:
    """Return a config with every non-None override applied and validated."""
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config
    return ReporterConfig.model_validate(config.model_dump() | updates)


async def run(
    events_path: Path,
    config_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    base_dir: Path | None = None,
) -> int:
    """Consolidate the attempt stream and return exit code."""
    log = logging.getLogger("trend_report")

    config = (
        await load_reporter_config(config_path)
        if config_path is not None
        else ReporterConfig()
    )
    config = apply_overrides(config, overrides or {})

    events = await load_attempt_events(events_path)

    session = ReportSession(config=config, base_dir=base_dir or Path.cwd())
    await session.begin()
    session.record_all(events)
    result = await session.finish()

    log_results_summary(log, result)
    print(json.dumps(summarize(result), indent=2))

    return 1 if result.counters.failed else 0


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Consolidate test attempts into a report and history trend"
    )
    parser.add_argument(
        "--events",
        type=Path,
        required=True,
        help="JSON Lines file with one attempt event per line",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML reporter configuration",
    )
    parser.add_argument(
        "--output-folder",
        default=None,
        help="Directory for history, report data and attachments",
    )
    parser.add_argument(
        "--build",
        dest="build_identifier",
        default=None,
        help="Build identifier recorded in the history trend",
    )
    parser.add_argument(
        "--attachment-mode",
        choices=["inline", "stored"],
        default=None,
        help="Embed attachments as data URLs or store them as files",
    )
    parser.add_argument(
        "--history-trend",
        type=int,
        default=None,
        help="Number of builds kept in the history trend",
    )
    parser.add_argument(
        "--reset-history",
        action="store_true",
        default=None,
        help="Discard the existing history before recording this run",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            events_path=args.events,
            config_path=args.config,
            overrides={
                "output_folder": args.output_folder,
                "build_identifier": args.build_identifier,
                "attachment_mode": args.attachment_mode,
                "history_trend": args.history_trend,
                "reset_history": args.reset_history,
            },
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
