"""Command-line plumbing shared by the report scripts."""

import argparse
import datetime
import logging
import os
import sys

from firebase_config import DEFAULT_CONFIG_PATH
from timeutils import DEFAULT_REPORT_TZ, local_today

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'


def setup_logging():
    """Send diagnostics to stderr (and REPORTS_LOG_FILE when set); stdout is the report."""
    handlers = [logging.StreamHandler(sys.stderr)]
    log_file = os.environ.get('REPORTS_LOG_FILE')
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    logging.basicConfig(
        level=os.environ.get('REPORTS_LOG_LEVEL', 'INFO').upper(),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def _iso_date(text):
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f'expected YYYY-MM-DD, got {text!r}')


def base_parser(description):
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH,
                        help='firebaseConfig.ts or .json file (default: %(default)s)')
    return parser


def add_day_args(parser):
    parser.add_argument('--date', type=_iso_date, default=None,
                        help='local calendar day, YYYY-MM-DD (default: today in --tz)')
    parser.add_argument('--tz', default=DEFAULT_REPORT_TZ,
                        help='timezone the day is counted in (default: %(default)s)')
    return parser


def report_date(args):
    return args.date or local_today(args.tz)
