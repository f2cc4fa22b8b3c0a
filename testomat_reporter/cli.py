"""CLI entry point replaying a results file into a Testomat.io run."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from testomat_reporter.client import TestomatClient
from testomat_reporter.config import TestomatConfig
from testomat_reporter.models.record import TestRecord, records_adapter
from testomat_reporter.models.result import RunStatus
from testomat_reporter.models.run import Run
from testomat_reporter.run_store import EnvRunStore

STATUS_SYMBOLS = {
    "passed": "✓",
    "failed": "✗",
    "skipped": "○",
}


def load_results(results_path: Path) -> Sequence[TestRecord]:
    """Load and validate test records from a JSON file."""
    return records_adapter.validate_json(results_path.read_bytes())


def log_results_summary(log: logging.Logger, records: Sequence[TestRecord]) -> None:
    """Log a formatted summary of reported tests."""
    log.info("=" * 80)
    log.info("Reported Tests Summary:")
    log.info("=" * 80)

    for record in records:
        symbol = STATUS_SYMBOLS.get(record.status, "?")
        log.info(
            "%s %s: %s (%.2fs)",
            symbol,
            record.title or record.test_id or "untitled",
            record.status,
            record.time or 0.0,
        )
        if record.message:
            log.info("  Message: %s", record.message)


def run_status(records: Sequence[TestRecord]) -> RunStatus:
    """Aggregate status of a run: failed if any test failed."""
    return "failed" if any(r.status == "failed" for r in records) else "passed"


def format_output(records: Sequence[TestRecord], run: Run | None) -> dict[str, Any]:
    """Format the report summary for JSON output."""
    return {
        "run_id": run.run_id if run else None,
        "run_url": run.url if run else None,
        "status": run_status(records),
        "total": len(records),
        "passed": sum(1 for r in records if r.status == "passed"),
        "failed": sum(1 for r in records if r.status == "failed"),
        "skipped": sum(1 for r in records if r.status == "skipped"),
    }


async def run(
    results_path: Path,
    title: str | None = None,
    parallel: bool = False,
    run_id: str | None = None,
) -> int:
    """Report a results file and return exit code."""
    log = logging.getLogger("testomat_reporter")

    try:
        records = load_results(results_path)
    except (OSError, ValidationError) as exc:
        log.error("Could not read results from %s: %s", results_path, exc)
        return 1

    try:
        config = TestomatConfig.from_env(title=title, parallel=parallel or None)
    except ValidationError as exc:
        log.error("Invalid reporter configuration: %s", exc)
        return 1

    run_store = EnvRunStore()
    if run_id:
        run_store.set(run_id)

    log.info("Reporting %d test(s) from %s", len(records), results_path)

    async with TestomatClient.from_config(config, run_store=run_store) as client:
        if await client.create_run() is None:
            log.error("No run to report into, giving up")
            return 1

        await asyncio.gather(
            *(
                client.add_test_run(
                    record.test_id, record.status, record.to_test_data()
                )
                for record in records
            )
        )
        await client.update_run_status(
            run_status(records), is_parallel=config.parallel
        )

    log_results_summary(log, records)
    print(json.dumps(format_output(records, client.run), indent=2))
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Report test results from a JSON file to Testomat.io"
    )
    parser.add_argument(
        "results",
        type=Path,
        help="Path to a JSON array of test results",
    )
    parser.add_argument(
        "--title",
        default=None,
        help="Run title (default: TESTOMATIO_TITLE)",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Report as one of several parallel workers",
    )
    parser.add_argument(
        "--run",
        default=None,
        help="Existing run id to report into (default: TESTOMATIO_RUN)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            results_path=args.results,
            title=args.title,
            parallel=args.parallel,
            run_id=args.run,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
