#!/usr/bin/env python3
"""Run one metrics sync over every connected provider account.

For cron setups that prefer a process over calling /api/cron/sync-metrics.
Exits non-zero when any connection failed.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import engine
from services.metrics_sync import run_batch_sync


async def main() -> int:
    try:
        results = await run_batch_sync()
    finally:
        await engine.dispose()

    failed = [r for r in results if r.status == "error"]
    print(f"Synced {len(results) - len(failed)} of {len(results)} connections")
    for result in failed:
        print(f"  FAILED {result.startup_id} ({result.provider}): {result.error}")
    return 1 if failed else 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(main()))
