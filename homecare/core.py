# homecare/core.py

import re
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from .config import BUSINESS_TIMEZONE

HHMM_RE = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
MINUTES_PER_DAY = 24 * 60


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    return start_a < end_b and start_b < end_a


def is_hhmm(value) -> bool:
    return isinstance(value, str) and HHMM_RE.match(value) is not None


def to_minutes(hhmm: str) -> int:
    """ "08:30" -> 510 """
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    """510 -> "08:30". Values past midnight are rejected."""
    if total < 0 or total >= MINUTES_PER_DAY:
        raise ValueError(f"{total} minutes is outside a single day")
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


def add_minutes(hhmm: str, minutes: int) -> str:
    return from_minutes(to_minutes(hhmm) + minutes)


def normalize_hhmm(hhmm: str) -> str:
    """ "8:05" -> "08:05" so that string comparison follows time order."""
    return from_minutes(to_minutes(hhmm))


def day_of_week(day: date) -> int:
    # 0=Sunday..6=Saturday, python's weekday() is 0=Monday
    return (day.weekday() + 1) % 7


def local_now() -> datetime:
    """Current wall-clock time in the business timezone, as a naive datetime."""
    return datetime.now(ZoneInfo(BUSINESS_TIMEZONE)).replace(tzinfo=None)


def hours_until(day: date, hhmm: str, now: datetime) -> float:
    minutes = to_minutes(hhmm)
    starts_at = datetime.combine(day, time(minutes // 60, minutes % 60))
    return (starts_at - now).total_seconds() / 3600
