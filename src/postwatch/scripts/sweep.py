# src/postwatch/scripts/sweep.py
"""
Cron entry point for a single moderation sweep pass.

Use this instead of MODERATION_SWEEP_ENABLED when the API runs with several
workers and a scheduler is preferred over in-process loops. The pass takes
the same cache lease as the background worker, so both can coexist.
"""

from __future__ import annotations

import logging
import sys

from postwatch.core.settings import settings
from postwatch.services.sweep import ModerationSweepWorker

logger = logging.getLogger("postwatch.scripts.sweep")


def main() -> int:
    logging.basicConfig(level=settings.log_level.upper())
    report = ModerationSweepWorker().run_once()
    if report is None:
        logger.info("Another worker holds the sweep lease; nothing to do")
        return 0
    logger.info(
        "Sweep finished: %d posts frozen, %d users suspended%s",
        report.frozen_posts,
        report.suspended_users,
        " (lease lost)" if report.lease_lost else "",
    )
    return 1 if report.lease_lost else 0


if __name__ == "__main__":
    sys.exit(main())
