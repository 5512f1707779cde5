from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from recruitdesk.config import get_settings
from recruitdesk.types import Granularity

EMPTY_DATE_MARKERS = frozenset({"", "-", "Invalid Date"})

_DATE_LIKE = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}|^\d{1,2}[/-]\d{1,2}[/-]\d{2,4}")


def local_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def today() -> date:
    return datetime.now(local_zone()).date()


def looks_like_date(value: object) -> bool:
    return isinstance(value, str) and bool(_DATE_LIKE.match(value.strip()))


def parse_date(value: object) -> date | datetime | None:
    """Turn user or backend input into a date, or ``None`` when it is blank or unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime | date):
        return value
    if not isinstance(value, str) or value.strip() in EMPTY_DATE_MARKERS:
        return None

    text = value.strip()
    try:
        parsed = date_parser.isoparse(text)
    except ValueError:
        try:
            parsed = date_parser.parse(text, dayfirst=not text[:4].isdigit())
        except (ValueError, OverflowError):
            return None

    if len(text) <= 10 and parsed.time() == time(0):
        return parsed.date()
    return parsed


def serialize_date(value: object, *, date_only: bool = False) -> str | None:
    parsed = parse_date(value)
    if parsed is None:
        return None
    if date_only and isinstance(parsed, datetime):
        parsed = parsed.date()
    return parsed.isoformat()


def as_local_datetime(value: object) -> datetime | None:
    parsed = parse_date(value)
    if parsed is None:
        return None
    if not isinstance(parsed, datetime):
        return datetime.combine(parsed, time(0), tzinfo=local_zone())
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=local_zone())
    return parsed.astimezone(local_zone())


def period_bounds(start: date, end: date, granularity: Granularity = "day") -> tuple[datetime, datetime]:
    """Expand ``start``/``end`` to the first and last instant of their day, month or year."""
    zone = local_zone()
    if granularity == "year":
        first = date(start.year, 1, 1)
        after = date(end.year, 1, 1) + relativedelta(years=1)
    elif granularity == "month":
        first = start.replace(day=1)
        after = end.replace(day=1) + relativedelta(months=1)
    else:
        first = start
        after = end + timedelta(days=1)

    lower = datetime.combine(first, time(0), tzinfo=zone)
    upper = datetime.combine(after, time(0), tzinfo=zone) - timedelta(microseconds=1)
    return lower, upper


def as_day(value: object) -> date | None:
    parsed = parse_date(value)
    if isinstance(parsed, datetime):
        return parsed.date()
    return parsed
