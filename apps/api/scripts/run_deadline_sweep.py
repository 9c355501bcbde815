"""
Run Deadline Sweep

Runs one deadline sweep outside the API process, e.g. from a system cron
or when catching up after downtime.

Usage:
    cd apps/api
    python scripts/run_deadline_sweep.py
    python scripts/run_deadline_sweep.py --now 2026-03-02T01:00:00+00:00
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from app.core.database import close_db  # noqa: E402
from app.core.redis import close_redis, init_redis  # noqa: E402
from app.modules.sweeper.jobs import run_deadline_sweep  # noqa: E402

logger = logging.getLogger("run_deadline_sweep")


async def main(now: datetime | None) -> None:
    try:
        await init_redis()
    except Exception as e:
        logger.warning(f"Redis unavailable ({e}), sweeping without lock")

    try:
        results = await run_deadline_sweep(now)
        print(json.dumps(results, indent=2))
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the deadline sweep once.")
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="Reference time (ISO 8601 with offset); defaults to the current UTC time",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    asyncio.run(main(args.now))
