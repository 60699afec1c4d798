"""Standalone balance reconciliation.

Folds every ledger entry per user, compares the result with the stored
balance counters and reports drift. Never writes. Exits with status 1 when
any mismatch is found so it can gate a cron job or a deploy.

Usage:
    python -m validatex.workers.reconcile_runner [--user-id N] [--interval SECONDS]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from validatex.config import get_settings
from validatex.database import close_db, get_session_factory, init_db
from validatex.ledger.balances import BalanceMismatch, reconcile_balances

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

_running = True


async def reconcile_once(user_id: int | None = None) -> list[BalanceMismatch]:
    async with get_session_factory()() as db:
        mismatches = await reconcile_balances(db, user_id)
    for m in mismatches:
        logger.warning(
            "Drift for user %s: %s stored=%s expected=%s",
            m.user_id, m.field, m.stored, m.expected,
        )
    logger.info("Reconciliation finished: %d mismatch(es)", len(mismatches))
    return mismatches


async def main(argv: list[str] | None = None) -> int:
    """Run reconciliation once, or every ``--interval`` seconds until stopped."""
    global _running  # noqa: PLW0603

    parser = argparse.ArgumentParser(prog="validatex.workers.reconcile_runner")
    parser.add_argument("--user-id", type=int, default=None, help="only check this user")
    parser.add_argument("--interval", type=int, default=0, help="repeat every N seconds (0 = run once)")
    args = parser.parse_args(argv)

    settings = get_settings()
    await init_db(settings.database_url)

    def _stop() -> None:
        global _running  # noqa: PLW0603
        _running = False

    if args.interval > 0:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _stop)

    found = False
    try:
        while True:
            mismatches = await reconcile_once(args.user_id)
            found = found or bool(mismatches)
            if args.interval <= 0 or not _running:
                break
            await asyncio.sleep(args.interval)
            if not _running:
                break
    finally:
        await close_db()

    return 1 if found else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
