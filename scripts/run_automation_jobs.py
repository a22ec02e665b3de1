"""Run the automation jobs: abandoned-cart scan, then pending step processing.

Usage:
    python -m scripts.run_automation_jobs [store_id ...] [--loop]
If no store_id is given, processes every store with an active workflow.
With --loop, repeats every SCHEDULER_INTERVAL_SECONDS until interrupted.
Requires Postgres (DATABASE_URL) with migrations applied.
"""

import argparse
import asyncio
import sys

import automation.infrastructure.persistence.database as database
from automation.core.config import get_settings
from automation.infrastructure.services.scheduler import AutomationScheduler
from automation.shared.telemetry.logging import setup_logging


async def main(argv: list[str] | None = None) -> None:
    """Run one automation cycle (or loop) over the selected stores."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("store_ids", nargs="*", help="Limit to these stores")
    parser.add_argument("--loop", action="store_true", help="Run continuously")
    args = parser.parse_args(argv)

    setup_logging()
    settings = get_settings()
    database._ensure_engine()
    if database.AsyncSessionLocal is None:
        print("DATABASE_URL not configured", file=sys.stderr)
        sys.exit(1)

    scheduler = AutomationScheduler(settings)
    store_ids = args.store_ids or None
    try:
        if args.loop:
            await scheduler.run_forever(store_ids)
            return
        results = await scheduler.run_once(store_ids)
        for r in results:
            print(
                f"Store {r.store_id}: carts triggered={r.abandoned_carts.triggered} "
                f"errors={r.abandoned_carts.errors}, "
                f"steps processed={r.steps.processed} errors={r.steps.errors} "
                f"skipped={r.steps.skipped}"
            )
        print(f"Done. Stores processed: {len(results)}")
    finally:
        await database.dispose_engine()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
