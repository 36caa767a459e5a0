"""Timezone and date utilities for Buenos Aires market time."""

import re
from datetime import date, datetime
from typing import Any, Optional

import pytz
from dateutil import parser as date_parser

LOCAL_TZ = pytz.timezone("America/Argentina/Buenos_Aires")

_COMPACT_DATE = re.compile(r"^\d{8}$")
_SLASH_DATE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


def now_local() -> datetime:
    """Return current time in Buenos Aires timezone."""
    return datetime.now(LOCAL_TZ)


def today_local() -> date:
    """Return the current calendar date in Buenos Aires."""
    return now_local().date()


def to_local(dt: datetime) -> datetime:
    """Convert a datetime to Buenos Aires timezone."""
    if dt.tzinfo is None:
        # Assume naive datetime is already local
        return LOCAL_TZ.localize(dt)
    return dt.astimezone(LOCAL_TZ)


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date from the formats seen in brokerage feeds.

    Accepts date/datetime objects, YYYY-MM-DD (optionally with a time part),
    DD/MM/YYYY and YYYYMMDD. Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        if _COMPACT_DATE.match(text):
            return datetime.strptime(text, "%Y%m%d").date()
        if _SLASH_DATE.match(text):
            return date_parser.parse(text, dayfirst=True).date()
        return date_parser.isoparse(text).date()
    except (ValueError, OverflowError):
        pass

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None
