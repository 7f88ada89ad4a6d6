"""Document helpers and the cached playerId -> email lookup."""

import logging
import math
import re

logger = logging.getLogger(__name__)

USERS_COLLECTION = 'users'

NO_PLAYER_ID = '(no playerId)'
NO_EMAIL = '(no email)'
NOT_FOUND = '(not found)'
LOOKUP_ERROR = '(error)'

_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def snapshot_to_dict(snap):
    """Flatten a document snapshot into ``{'id': ..., **fields}``."""
    return {'id': snap.id, **(snap.to_dict() or {})}


def as_number(value):
    """Coerce a stored value to a float the way loosely typed app data expects.

    Missing values and empty strings count as 0, booleans as 0/1, numeric
    strings are parsed; anything else is NaN.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if not _DECIMAL_RE.fullmatch(text):
            return math.nan
        return float(text)
    return math.nan


def as_count(value):
    """Like ``as_number`` but NaN becomes 0 and whole numbers come back as int."""
    number = as_number(value)
    if math.isnan(number):
        return 0
    return int(number) if number.is_integer() else number


class UserEmailLookup:
    """Resolve ``users/{playerId}.email`` with a process-lifetime cache.

    The cache is never evicted; a report or watch session only sees a
    bounded set of players. Failed lookups are not cached so a later call
    can retry.
    """

    def __init__(self, db):
        self.db = db
        self._cache = {}

    def email_for(self, player_id):
        if not player_id:
            return NO_PLAYER_ID
        if not isinstance(player_id, str):
            logger.error(f"Unusable playerId {player_id!r}; expected a document id")
            return LOOKUP_ERROR
        if player_id in self._cache:
            return self._cache[player_id]
        try:
            snap = self.db.collection(USERS_COLLECTION).document(player_id).get()
            if snap.exists:
                email = (snap.to_dict() or {}).get('email') or NO_EMAIL
                email = str(email)
            else:
                email = NOT_FOUND
        except Exception as e:
            logger.error(f'Failed to fetch {USERS_COLLECTION}/{player_id}: {e}')
            return LOOKUP_ERROR
        self._cache[player_id] = email
        return email
