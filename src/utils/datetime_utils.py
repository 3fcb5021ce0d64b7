from __future__ import annotations

import calendar
import time as _time
from datetime import datetime, timezone
from typing import Optional, Tuple, Union

from dateutil import parser as date_parser

FeedDate = Union[str, _time.struct_time, datetime, None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_feed_datetime(value: FeedDate) -> Optional[datetime]:
    """
    Parse the date forms feeds use into an aware UTC datetime.

    ``struct_time`` values come from feedparser and are already UTC.
    Returns None when the value is missing or unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, _time.struct_time):
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    try:
        return ensure_utc(date_parser.parse(str(value)))
    except (ValueError, OverflowError):
        return None


def clamp_published_at(
    value: FeedDate, now: Optional[datetime] = None
) -> Tuple[datetime, bool]:
    """
    Publication time that is never later than ``now``.

    Missing, unparseable and future values all become ``now``. The flag tells
    whether the returned value was substituted.
    """
    now = ensure_utc(now) or utc_now()
    parsed = parse_feed_datetime(value)
    if parsed is None or parsed > now:
        return now, True
    return parsed, False


def hours_between(later: datetime, earlier: datetime) -> float:
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / 3600.0
