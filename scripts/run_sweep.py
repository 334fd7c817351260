#!/usr/bin/env python3
"""
Default overdue promise-to-pay and settlement arrangements.

Intended for a daily cron entry:

    0 1 * * *  cd /srv/ledgerline && python scripts/run_sweep.py

Options:
  --date YYYY-MM-DD   Reference date (default: today)
  --page-size N       Arrangements per page (default: settings.sweep_page_size)

Exits non-zero when any arrangement could not be transitioned.
"""

from __future__ import annotations

import argparse
import sys
from datetime import date

from app.core.config import settings
from app.core.database import Base, SessionLocal, engine
from app.core.logging import setup_logging
from app.services.arrangements.sweep import sweep_overdue_arrangements
from app.services.notifications import get_notifier

import app.models  # noqa: F401


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Reference date in YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=settings.sweep_page_size,
        help="Arrangements loaded per page",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logger = setup_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        result = sweep_overdue_arrangements(
            db, today=args.date, page_size=args.page_size, notifier=get_notifier()
        )
    finally:
        db.close()

    logger.info(
        "Sweep done: %d defaulted, %d failed", result.transitioned, result.failed
    )
    for error in result.errors:
        logger.error("  %s", error)
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
