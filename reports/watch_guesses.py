#!/usr/bin/env python3
"""
Watch the "guesses" collection and print new documents as they appear.

- submittedAt (and every other timestamp) is shown in America/New_York
- mode, pointsAwarded, groupId and userName are left out
- the player's email is looked up in "users" by playerId

Usage:
    python watch_guesses.py [--limit 10] [--tz America/New_York]

Runs until interrupted with Ctrl+C.
"""

import json
import logging
import sys
import threading

from google.cloud import firestore

from common import base_parser, setup_logging
from firebase_config import load_db_from_config
from freshness import FreshnessTracker
from lookups import UserEmailLookup, snapshot_to_dict
from timeutils import DEFAULT_DISPLAY_TZ, deep_transform_timestamps, to_instant, to_local_string

logger = logging.getLogger(__name__)

GUESSES_COLLECTION = 'guesses'
TIME_FIELD = 'submittedAt'
DEFAULT_LIMIT = 10
HIDDEN_FIELDS = ('mode', 'pointsAwarded', 'groupId', 'userName')


def _emit(text):
    print(text, flush=True)


def strip_fields(doc):
    return {k: v for k, v in doc.items() if k not in HIDDEN_FIELDS}


class GuessWatcher:
    def __init__(self, db, limit=DEFAULT_LIMIT, tz_name=DEFAULT_DISPLAY_TZ, out=_emit):
        self.db = db
        self.limit = limit
        self.tz_name = tz_name
        self.out = out
        self.lookup = UserEmailLookup(db)
        self.tracker = FreshnessTracker(TIME_FIELD)

    def latest_query(self):
        return (
            self.db.collection(GUESSES_COLLECTION)
            .order_by(TIME_FIELD, direction=firestore.Query.DESCENDING)
            .limit(self.limit)
        )

    def render(self, doc):
        """Return the printable form of a guess document."""
        submitted = to_local_string(to_instant(doc.get(TIME_FIELD)), self.tz_name, missing='(no submittedAt)')
        body = strip_fields(doc)
        body.pop('id', None)
        transformed = deep_transform_timestamps({'id': doc.get('id'), **body}, self.tz_name)
        transformed[TIME_FIELD] = submitted
        transformed['email'] = self.lookup.email_for(doc.get('playerId'))
        return transformed

    def print_doc(self, doc):
        self.out(json.dumps(self.render(doc), indent=2, ensure_ascii=False, default=str))

    def initial_load(self):
        """Print the newest guesses and use them as the freshness baseline."""
        docs = [snapshot_to_dict(snap) for snap in self.latest_query().get()]
        if not docs:
            self.out(f"No existing documents found in '{GUESSES_COLLECTION}'. Waiting for new ones...")
            return docs
        self.out(f'\nInitial latest {len(docs)} guesses:\n')
        for doc in docs:
            self.print_doc(doc)
        self.tracker.observe(docs)
        return docs

    def on_snapshot(self, snapshots, changes, read_time):
        try:
            fresh = self.tracker.observe([snapshot_to_dict(snap) for snap in snapshots])
            if not fresh:
                return
            self.out(f'\nNew guesses ({len(fresh)}) detected:\n')
            for doc in fresh:
                self.print_doc(doc)
        except Exception:
            # keep the listener alive
            logger.exception('Failed to handle guesses snapshot')


def main(argv=None, db=None, stop=None):
    setup_logging()
    parser = base_parser('Print new guesses as they arrive.')
    parser.add_argument('--limit', type=int, default=DEFAULT_LIMIT,
                        help='size of the recency window watched (default: %(default)s)')
    parser.add_argument('--tz', default=DEFAULT_DISPLAY_TZ,
                        help='timezone timestamps are shown in (default: %(default)s)')
    args = parser.parse_args(argv)

    if db is None:
        db = load_db_from_config(args.config)
    stop = stop or threading.Event()

    watcher = GuessWatcher(db, limit=args.limit, tz_name=args.tz)
    watcher.initial_load()
    watch = watcher.latest_query().on_snapshot(watcher.on_snapshot)
    _emit(f"Watching '{GUESSES_COLLECTION}'... (Ctrl+C to exit)")
    try:
        while not stop.wait(1):
            pass
    except KeyboardInterrupt:
        logger.info('Interrupted, stopping listener')
    finally:
        watch.unsubscribe()
    return 0


if __name__ == '__main__':
    sys.exit(main())
