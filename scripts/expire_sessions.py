#!/usr/bin/env python3
"""End idle WhatsApp conversations.

Active conversations with no message for longer than SESSION_INACTIVITY_HOURS
are moved to ``ended``. Meant to run from cron.

Usage:
    python scripts/expire_sessions.py [--dry-run] [--hours N]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from restobot.db.session import dispose_engine, session_scope
from restobot.services.sessions import SessionExpiryService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main(dry_run: bool, hours: int | None) -> None:
    """Main entry point for session expiry."""
    async with session_scope() as db:
        service = SessionExpiryService(db)
        result = await service.expire_inactive(dry_run=dry_run, hours_override=hours)
    await dispose_engine()

    if dry_run:
        logger.info(
            f"Dry run: {result['would_expire']} conversations idle since before {result['cutoff']}"
        )
    else:
        logger.info(f"Ended {result['expired']} conversations")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="End conversations that have been inactive too long"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report what would be ended",
    )
    parser.add_argument(
        "--hours",
        type=int,
        default=None,
        help="Override the inactivity window in hours",
    )
    args = parser.parse_args()

    asyncio.run(main(args.dry_run, args.hours))
