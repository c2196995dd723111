#!/usr/bin/env python3
"""
Run the installment status job once, outside the HTTP trigger.

Usage:
  python scripts/run_status_job.py
  python scripts/run_status_job.py --max-concurrency 1 --json
  # Reads DATABASE_URL and JOB_API_KEY from .env (or export)

Exit code is 0 on success and 1 when the run failed.
"""
import argparse
import asyncio
import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.exceptions import JobLoggingError
from app.core.logging import setup_logging
from app.database import close_db
from app.services.status_job import InstallmentStatusJob


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Mark overdue installments for every agency")
    parser.add_argument("--max-concurrency", type=int, default=None, help="Agencies processed in parallel")
    parser.add_argument("--max-retries", type=int, default=None, help="Retries per agency on transient errors")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    return parser.parse_args(argv)


async def run(args) -> int:
    job = InstallmentStatusJob(max_concurrency=args.max_concurrency, max_retries=args.max_retries)
    try:
        result = await job.run()
    except JobLoggingError as e:
        print(f"FAILED: {e}")
        return 1
    finally:
        await close_db()

    if args.json:
        print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
    else:
        print(
            f"{result.status.value.upper()}: {result.records_updated} installment(s) marked overdue, "
            f"{result.notifications_created} notification(s) across {len(result.agencies)} agencies"
        )
        for agency in result.agencies:
            for error in agency.errors:
                print(f"  [{agency.agency_id}] {error}")
    return 0 if result.success else 1


def main():
    setup_logging()
    sys.exit(asyncio.run(run(parse_args())))


if __name__ == "__main__":
    main()
