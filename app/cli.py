"""Command line entry point for operators.

    forten-backfill --limit 100 --dry-run
"""

import argparse
import asyncio
import json
import logging
import sys

from app.core.logging import configure_logging
from app.database import AsyncSessionLocal, engine
from app.domains.backfill.service import BackfillService
from app.schemas.backfill import BackfillStatus

logger = logging.getLogger(__name__)

_FAILED = {BackfillStatus.MESSAGE_FETCH_ERROR, BackfillStatus.GEMINI_ERROR, BackfillStatus.UPDATE_ERROR}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forten-backfill",
        description="Recompute title, risk level and summary of recent chat sessions.",
    )
    parser.add_argument("--limit", type=int, default=None, help="Sessions to scan, newest first")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing them")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


async def run_backfill(limit: int | None, dry_run: bool):
    try:
        async with AsyncSessionLocal() as db:
            return await BackfillService(db).run(limit=limit, dry_run=dry_run)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, log_format="simple")

    report = asyncio.run(run_backfill(args.limit, args.dry_run))

    if args.json:
        print(json.dumps(report.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))
    else:
        for item in report.results:
            line = f"{item.session_id}  {item.status.value}"
            if item.error:
                line += f"  {item.error}"
            print(line)
        print(f"scanned={report.scanned} updated={report.updated} dry_run={report.dry_run}")

    return 1 if any(item.status in _FAILED for item in report.results) else 0


if __name__ == "__main__":
    sys.exit(main())
