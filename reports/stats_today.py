#!/usr/bin/env python3
"""Show one local day's guesses grouped by user email.

Prints ``email: TOTAL (CORRECT)`` per player. A guess is correct when its
``pointsAwarded`` is a number other than 0.

Usage:
    python stats_today.py [--date 2025-10-04] [--tz America/Indiana/Indianapolis]
"""

import logging
import math
import sys

from google.cloud.firestore_v1.base_query import FieldFilter

from common import add_day_args, base_parser, report_date, setup_logging
from firebase_config import load_db_from_config
from lookups import UserEmailLookup, as_number, snapshot_to_dict
from timeutils import day_range_utc, iso_z

logger = logging.getLogger(__name__)

GUESSES_COLLECTION = 'guesses'
TIME_FIELD = 'submittedAt'


def fetch_guesses(db, window):
    """Fetch guesses with ``submittedAt`` in the window. Errors propagate."""
    query = (
        db.collection(GUESSES_COLLECTION)
        .where(filter=FieldFilter(TIME_FIELD, '>=', window.start))
        .where(filter=FieldFilter(TIME_FIELD, '<', window.end))
    )
    return [snapshot_to_dict(snap) for snap in query.get()]


def is_correct(guess):
    points = as_number(guess.get('pointsAwarded'))
    return not math.isnan(points) and points != 0


def aggregate_by_email(guesses, lookup):
    """Return ``[(email, {'total': n, 'correct': k}), ...]`` sorted by total desc, then email."""
    stats = {}
    for guess in guesses:
        email = lookup.email_for(guess.get('playerId'))
        entry = stats.setdefault(email, {'total': 0, 'correct': 0})
        entry['total'] += 1
        if is_correct(guess):
            entry['correct'] += 1
    return sorted(stats.items(), key=lambda item: (-item[1]['total'], str(item[0])))


def format_stats(rows):
    # parentheses always shown, even for 0 correct
    return [f"{email}: {entry['total']} ({entry['correct']})" for email, entry in rows]


def main(argv=None, db=None):
    setup_logging()
    parser = add_day_args(base_parser('Count one local day of guesses per user email.'))
    args = parser.parse_args(argv)

    day = report_date(args)
    window = day_range_utc(day.year, day.month, day.day, args.tz)
    if db is None:
        db = load_db_from_config(args.config)

    print(f'Counting guesses for local day {day} [{iso_z(window.start)} .. {iso_z(window.end)}) in {args.tz}')

    try:
        guesses = fetch_guesses(db, window)
    except Exception as e:
        logger.error(f"Query by {TIME_FIELD} failed. Ensure '{TIME_FIELD}' is a Firestore Timestamp in all docs: {e}")
        sys.exit(1)

    rows = aggregate_by_email(guesses, UserEmailLookup(db))
    if not rows:
        print(f'No guesses found for {day}.')
        return 0

    print(f'\nGuesses by email for {day} (local):\n')
    for line in format_stats(rows):
        print(line)
    return 0


if __name__ == '__main__':
    sys.exit(main())
