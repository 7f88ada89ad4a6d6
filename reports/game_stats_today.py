#!/usr/bin/env python3
"""
Show one local day's gameStats as a console table: email, totalPoints,
totalPredictions.

Missing emails are resolved through ``users/{playerId}``. The day is
selected by the first timestamp field that works (see ``field_probe``);
if no field can place any document in the day, every document is shown.

Usage:
    python game_stats_today.py [--date 2025-10-04] [--tz America/Indiana/Indianapolis]
"""

import logging
import sys

from google.cloud.firestore_v1.base_query import FieldFilter

from common import add_day_args, base_parser, report_date, setup_logging
from field_probe import TIME_FIELDS, select_timestamp_field
from firebase_config import load_db_from_config
from lookups import NO_EMAIL, UserEmailLookup, as_count, snapshot_to_dict
from timeutils import day_range_utc, iso_z

logger = logging.getLogger(__name__)

GAME_STATS_COLLECTION = 'gameStats'
COLUMNS = ('email', 'totalPoints', 'totalPredictions')


def range_query(db, field, start, end):
    query = (
        db.collection(GAME_STATS_COLLECTION)
        .where(filter=FieldFilter(field, '>=', start))
        .where(filter=FieldFilter(field, '<', end))
    )
    return [snapshot_to_dict(snap) for snap in query.get()]


def fetch_all(db):
    return [snapshot_to_dict(snap) for snap in db.collection(GAME_STATS_COLLECTION).get()]


def build_rows(docs, lookup):
    rows = []
    for doc in docs:
        email = doc.get('email')
        if not email and doc.get('playerId'):
            email = lookup.email_for(doc['playerId'])
        rows.append({
            'email': str(email) if email else NO_EMAIL,
            'totalPoints': as_count(doc.get('totalPoints')),
            'totalPredictions': as_count(doc.get('totalPredictions')),
        })
    return rows


def sort_rows(rows):
    return sorted(rows, key=lambda r: (-r['totalPoints'], str(r['email'])))


def format_table(rows, columns=COLUMNS):
    """Render rows as left-aligned columns with a dash separator and two-space gutter."""
    cells = [[str(row.get(col, '')) for col in columns] for row in rows]
    widths = [
        max([len(col)] + [len(line[i]) for line in cells])
        for i, col in enumerate(columns)
    ]
    lines = [
        '  '.join(col.ljust(w) for col, w in zip(columns, widths)),
        '  '.join('-' * w for w in widths),
    ]
    for line in cells:
        lines.append('  '.join(value.ljust(w) for value, w in zip(line, widths)))
    return lines


def main(argv=None, db=None):
    setup_logging()
    parser = add_day_args(base_parser("Show one local day's gameStats per user email."))
    args = parser.parse_args(argv)

    day = report_date(args)
    window = day_range_utc(day.year, day.month, day.day, args.tz)
    if db is None:
        db = load_db_from_config(args.config)

    print(f'Fetching gameStats for local day {day} [{iso_z(window.start)} .. {iso_z(window.end)}) in {args.tz}')

    try:
        result = select_timestamp_field(
            TIME_FIELDS,
            window,
            lambda field, start, end: range_query(db, field, start, end),
            lambda: fetch_all(db),
        )
    except Exception as e:
        logger.error(f'Failed to fetch {GAME_STATS_COLLECTION}: {e}')
        docs = []
        print('(Could not fetch gameStats; showing nothing)')
    else:
        docs = result.docs
        if result.field:
            print(f"(Filtered by '{result.field}' in local-day window)")
        else:
            print('(No usable date field found; showing all docs)')

    rows = sort_rows(build_rows(docs, UserEmailLookup(db)))
    if not rows:
        print(f'No gameStats found for {day}.')
        return 0

    print(f'There are {len(rows)} rows')
    for line in format_table(rows):
        print(line)
    return 0


if __name__ == '__main__':
    sys.exit(main())
