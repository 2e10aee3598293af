"""Run the task expiry and reminder sweeps once, for cron-style scheduling.

Usage:
  orgtasks-sweeps [--expiry] [--reminders] [--dry-run]

With neither --expiry nor --reminders both sweeps run. --dry-run logs what
would change without updating tasks or sending emails.
"""
import argparse
import logging
import sys

from firebase_admin import firestore

from orgtasks.config.settings import Settings
from orgtasks.firebase_utils import init_firebase
from orgtasks.services.expiry_service import TaskExpiryService

logger = logging.getLogger(__name__)


def run(db, expiry: bool = True, reminders: bool = True, dry_run: bool = False) -> dict:
    service = TaskExpiryService(db, reminder_window_hours=Settings.REMINDER_WINDOW_HOURS)
    results = {}
    if expiry:
        results['expired'] = service.run_expiry_sweep(dry_run=dry_run)
    if reminders:
        results['reminded'] = service.run_reminder_sweep(dry_run=dry_run)
    return results


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Run task expiry and reminder sweeps once')
    parser.add_argument('--expiry', action='store_true', help='Run the expiry sweep')
    parser.add_argument('--reminders', action='store_true', help='Run the reminder sweep')
    parser.add_argument('--dry-run', action='store_true', help='Do not update tasks or send emails')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    logging.basicConfig(
        level=Settings.LOG_LEVEL.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = parse_args(argv)
    run_both = not args.expiry and not args.reminders

    if not init_firebase():
        logger.error("Firebase is not configured; cannot run sweeps")
        return 1

    results = run(firestore.client(),
                  expiry=args.expiry or run_both,
                  reminders=args.reminders or run_both,
                  dry_run=args.dry_run)
    logger.info("Sweeps finished: %s", results)
    return 0


if __name__ == '__main__':
    sys.exit(main())
