"""
Time helpers shared by the report scripts.

Firestore documents written by different app versions store "when did this
happen" in several shapes: native timestamps, ``{seconds, nanoseconds}``
maps, ISO strings and epoch milliseconds. ``to_instant`` folds all of them
into one aware UTC ``datetime`` and never raises, so callers can probe any
field of any document without their own error handling.
"""

import datetime
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as dateutil_parser

from errors import ConfigError

logger = logging.getLogger(__name__)

UTC = datetime.timezone.utc
EPOCH = datetime.datetime(1970, 1, 1, tzinfo=UTC)

DEFAULT_REPORT_TZ = 'America/Indiana/Indianapolis'
DEFAULT_DISPLAY_TZ = 'America/New_York'

_CONVERTERS = ('to_datetime', 'ToDatetime')
_DEFAULT_A = datetime.datetime(2000, 1, 1)
_DEFAULT_B = datetime.datetime(2001, 2, 2)


@dataclass(frozen=True)
class DayWindow:
    """Half-open ``[start, end)`` range of UTC instants for one local day."""

    start: datetime.datetime
    end: datetime.datetime

    def __contains__(self, instant):
        return instant is not None and self.start <= instant < self.end


def get_zone(tz_name):
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f'Unknown timezone {tz_name!r}') from e


def local_today(tz_name=DEFAULT_REPORT_TZ):
    """Return today's calendar date in ``tz_name``."""
    return datetime.datetime.now(get_zone(tz_name)).date()


def tz_offset_at(instant, tz_name):
    """Offset of ``tz_name`` from UTC at ``instant``, in whole seconds."""
    instant = instant.replace(microsecond=0)
    wall = instant.astimezone(get_zone(tz_name)).replace(tzinfo=UTC)
    return wall - instant


def _utc_midnight(year, month, day):
    # month 13 -> January next year, day 32 -> first of the next month, day 0 -> last of previous
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime.datetime(year, month, 1, tzinfo=UTC) + datetime.timedelta(days=day - 1)


def day_range_utc(year, month, day, tz_name=DEFAULT_REPORT_TZ):
    """Return the UTC window covering ``year-month-day`` in ``tz_name``.

    The offset is sampled once, at 12:00 UTC of the date, and applied to both
    midnights. On a day whose DST change happens before the probe the start
    is off by the transition amount; report row sets for those dates depend
    on this, so it is kept as is.
    """
    midnight = _utc_midnight(year, month, day)
    offset = tz_offset_at(midnight + datetime.timedelta(hours=12), tz_name)
    return DayWindow(
        start=midnight - offset,
        end=midnight + datetime.timedelta(days=1) - offset,
    )


def to_millis(instant):
    return (instant - EPOCH) // datetime.timedelta(milliseconds=1)


def _from_millis(ms):
    return EPOCH + datetime.timedelta(milliseconds=ms)


def _as_utc(dt):
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _converter(value):
    for name in _CONVERTERS:
        method = getattr(value, name, None)
        if callable(method):
            return method
    return None


def _is_epoch_pair(value):
    return (
        isinstance(value, Mapping)
        and _is_number(value.get('seconds'))
        and _is_number(value.get('nanoseconds'))
    )


def is_timestamp_value(value):
    """True for values stored as timestamps rather than as text or numbers."""
    return (
        isinstance(value, datetime.datetime)
        or _converter(value) is not None
        or _is_epoch_pair(value)
    )


def _parse_date_text(text):
    # dateutil fills missing parts from a default; a string only names a
    # date when two different defaults give the same calendar day
    first = dateutil_parser.parse(text, default=_DEFAULT_A)
    second = dateutil_parser.parse(text, default=_DEFAULT_B)
    if first.date() != second.date():
        return None
    return _as_utc(first)


def to_instant(value):
    """Convert any supported timestamp shape to an aware UTC datetime, or None."""
    if value is None:
        return None
    try:
        converter = _converter(value)
        if converter is not None:
            converted = converter()
            return _as_utc(converted) if isinstance(converted, datetime.datetime) else None
        if _is_epoch_pair(value):
            ms = value['seconds'] * 1000 + math.floor(value['nanoseconds'] / 1_000_000)
            return _from_millis(ms)
        if isinstance(value, datetime.datetime):
            return _as_utc(value)
        if isinstance(value, str):
            if not value.strip():
                return None
            return _parse_date_text(value)
        if _is_number(value):
            if not math.isfinite(value):
                return None
            return _from_millis(value)
    except (ValueError, OverflowError, TypeError, OSError) as e:
        logger.debug(f'Unparseable timestamp {value!r}: {e}')
    return None


def iso_z(instant):
    """Format like ``2025-10-04T04:00:00.000Z``."""
    instant = instant.astimezone(UTC)
    return instant.strftime('%Y-%m-%dT%H:%M:%S.') + f'{instant.microsecond // 1000:03d}Z'


def to_local_string(instant, tz_name=DEFAULT_DISPLAY_TZ, missing='(no timestamp)'):
    if instant is None:
        return missing
    local = instant.astimezone(get_zone(tz_name))
    return f'{local.month}/{local.day}/{local.year}, {local:%H:%M:%S}'


def deep_transform_timestamps(value, tz_name=DEFAULT_DISPLAY_TZ):
    """Replace every timestamp inside nested dicts and lists with its local string."""
    if is_timestamp_value(value):
        instant = to_instant(value)
        if instant is not None:
            return to_local_string(instant, tz_name)
    if isinstance(value, Mapping):
        return {k: deep_transform_timestamps(v, tz_name) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [deep_transform_timestamps(v, tz_name) for v in value]
    return value
