"""
Daily Room Status Sync

Reconciles every room's status against its bookings for the hotel-local
date. Safe to run repeatedly; a second run on the same day changes nothing.

Usage:
    python daily_room_status_sync.py
    python daily_room_status_sync.py --room 105 --date 2025-08-24

Cron:
    5 0 * * * /usr/bin/python3 /path/to/daily_room_status_sync.py
"""
import argparse
import logging
import sys

import config
import date_utils
from reconciliation import (
    Reconciler,
    ACTION_CRITICAL,
    ACTION_ERROR,
    ACTION_OVERSTAY,
    ACTION_UPDATED,
    summarize,
)
from repositories import RepositoryError

logger = logging.getLogger("daily_room_status_sync")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Sync room statuses with current bookings.")
    parser.add_argument("--room", help="Only reconcile this room number")
    parser.add_argument("--date", dest="as_of", help="Business date to reconcile for (YYYY-MM-DD)")
    parser.add_argument("--db", dest="db_path", help="Path to the SQLite database")
    parser.add_argument("--workers", type=int, help="Number of rooms reconciled in parallel")
    return parser.parse_args(argv)


def format_result(result) -> str:
    if result.action in (ACTION_UPDATED, ACTION_OVERSTAY):
        return f"Room {result.room_number}: {result.old_status} -> {result.new_status} ({result.reason})"
    if result.action in (ACTION_ERROR, ACTION_CRITICAL):
        return f"Room {result.room_number}: {result.action.upper()} {result.message}"
    return f"Room {result.room_number}: {result.action} ({result.new_status})"


def main(argv=None) -> int:
    args = parse_args(argv)

    as_of = date_utils.get_today()
    if args.as_of:
        as_of = date_utils.parse_date_input(args.as_of)
        if as_of is None:
            print(f"Invalid --date value: {args.as_of}", file=sys.stderr)
            return 2

    reconciler = Reconciler(db_path=args.db_path, max_workers=args.workers)

    print("=== DAILY ROOM STATUS SYNC ===")
    print(f"Date: {as_of.isoformat()}")
    print(f"Database: {reconciler.db_path}")
    print()

    try:
        if args.room:
            results = [reconciler.reconcile_room(args.room, as_of)]
            summary = summarize(results)
        else:
            batch = reconciler.reconcile_all(as_of)
            results, summary = batch.results, batch.summary
    except RepositoryError as e:
        logger.error(f"Sync failed: {e}")
        print(f"Sync failed: {e}", file=sys.stderr)
        return 1

    for result in results:
        print(format_result(result))

    print()
    print("=== SYNC SUMMARY ===")
    print(f"Total rooms processed: {summary['total']}")
    print(f"Statuses updated: {summary['updated']}")
    print(f"Statuses unchanged: {summary['unchanged']}")
    print(f"Skipped (manual override): {summary['skipped']}")
    print(f"Errors: {summary['errors']} (critical: {summary['critical']})")

    return 1 if summary["errors"] else 0


if __name__ == "__main__":
    config.configure_logging()
    sys.exit(main())
