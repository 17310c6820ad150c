"""Open/closed evaluation over weekly opening-hours periods.

Every day/time is projected onto a single "week-minutes" axis starting at
Sunday 00:00. A period whose close point is not after its open point spans
into the following week, so it is stored as one linear interval
``[open, close + MINUTES_IN_WEEK)`` instead of wrapping modularly.

All results are tri-state: ``None`` means the schedule is unknown (no
periods at all), which callers must render differently from ``False``.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, List, Optional, Tuple, Union

from models import OpeningHours, OpenStatus, Period

MINUTES_IN_DAY = 24 * 60
MINUTES_IN_WEEK = 7 * MINUTES_IN_DAY
DEFAULT_UTC_OFFSET_MINUTES = 540  # JST

DAY_LABELS_JA = ["日", "月", "火", "水", "木", "金", "土"]

HoursLike = Union[OpeningHours, dict, None]

_TIME_INPUT = re.compile(r"([0-9]{1,2}):([0-9]{2})")


def _to_minutes(hour: Optional[int], minute: Optional[int]) -> int:
    return (hour or 0) * 60 + (minute or 0)


def _to_week_minutes(day: Optional[int], minutes: Optional[int]) -> int:
    return (day or 0) * MINUTES_IN_DAY + (minutes or 0)


def _periods(hours: HoursLike) -> List[Period]:
    if hours is None:
        return []
    if isinstance(hours, dict):
        hours = OpeningHours.from_dict(hours)
    return list(hours.periods or [])


def _intervals(periods: List[Period]) -> Iterator[Tuple[int, int]]:
    """Yield (open, close) week-minute pairs, skipping malformed periods."""
    for period in periods:
        open_, close = period.open, period.close
        if open_ is None or close is None or open_.day is None or close.day is None:
            continue
        open_week = _to_week_minutes(open_.day, _to_minutes(open_.hour, open_.minute))
        close_week = _to_week_minutes(close.day, _to_minutes(close.hour, close.minute))
        if close_week <= open_week:
            close_week += MINUTES_IN_WEEK
        yield open_week, close_week


def format_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time_input(value: Optional[str]) -> Optional[int]:
    """Parse a strict 24h "HH:MM" filter value into minutes of day."""
    if not value or not isinstance(value, str):
        return None
    match = _TIME_INPUT.fullmatch(value)
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour * 60 + minute


def get_local_day_minutes(now: datetime, utc_offset_minutes: Optional[int] = None) -> Tuple[int, int]:
    """Resolve ``now`` to (day-of-week, minutes-of-day) at the given offset.

    Naive datetimes are read as UTC. Day 0 is Sunday.
    """
    offset = DEFAULT_UTC_OFFSET_MINUTES if utc_offset_minutes is None else utc_offset_minutes
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(timezone.utc) + timedelta(minutes=offset)
    day = (local.weekday() + 1) % 7
    return day, local.hour * 60 + local.minute


def is_open_at(hours: HoursLike, day: int, minutes: int) -> Optional[bool]:
    periods = _periods(hours)
    if not periods:
        return None

    target = day * MINUTES_IN_DAY + minutes
    for open_week, close_week in _intervals(periods):
        target_week = target
        # e.g. early Sunday inside a period that opened late Saturday
        if target_week < open_week:
            target_week += MINUTES_IN_WEEK
        if open_week <= target_week < close_week:
            return True
    return False


def is_open_on_day(hours: HoursLike, day: int) -> Optional[bool]:
    periods = _periods(hours)
    if not periods:
        return None

    day_start = day * MINUTES_IN_DAY
    day_end = day_start + MINUTES_IN_DAY
    for open_week, close_week in _intervals(periods):
        if open_week < day_end and close_week > day_start:
            return True
        if open_week < day_end + MINUTES_IN_WEEK and close_week > day_start + MINUTES_IN_WEEK:
            return True
    return False


def is_closed_on_day(hours: HoursLike, day: int) -> Optional[bool]:
    result = is_open_on_day(hours, day)
    return None if result is None else not result


def compute_open_days(hours: HoursLike) -> List[int]:
    """Weekday indices with any opening, cached on the record at ingestion."""
    if not _periods(hours):
        return []
    return [day for day in range(7) if is_open_on_day(hours, day)]


def is_open_now(
    hours: HoursLike,
    utc_offset_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Optional[bool]:
    now = now or datetime.now(timezone.utc)
    day, minutes = get_local_day_minutes(now, utc_offset_minutes)
    return is_open_at(hours, day, minutes)


def is_open_at_time_input(
    hours: HoursLike,
    utc_offset_minutes: Optional[int],
    time_input: Any,
    now: Optional[datetime] = None,
) -> Optional[bool]:
    """Evaluate a user "HH:MM" filter on today's local weekday.

    Returns None when the text does not parse, meaning the filter is not applied.
    """
    minutes = parse_time_input(time_input)
    if minutes is None:
        return None
    now = now or datetime.now(timezone.utc)
    day, _ = get_local_day_minutes(now, utc_offset_minutes)
    return is_open_at(hours, day, minutes)


def _next_open_label(next_week_minutes: int, current_week_minutes: int) -> str:
    # calendar days, so tomorrow morning is "明日" even when less than 24h away
    day_offset = next_week_minutes // MINUTES_IN_DAY - current_week_minutes // MINUTES_IN_DAY
    open_day = (next_week_minutes % MINUTES_IN_WEEK) // MINUTES_IN_DAY
    open_minutes = next_week_minutes % MINUTES_IN_DAY
    if day_offset <= 0:
        prefix = "本日"
    elif day_offset == 1:
        prefix = "明日"
    else:
        prefix = f"{DAY_LABELS_JA[open_day]}曜"
    return f"{prefix} {format_time(open_minutes)}"


def get_open_status_summary(
    hours: HoursLike,
    utc_offset_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> OpenStatus:
    now = now or datetime.now(timezone.utc)
    periods = _periods(hours)
    if not periods:
        return OpenStatus(is_open_now=None, next_open_label=None)

    open_now = is_open_now(hours, utc_offset_minutes, now)
    day, minutes = get_local_day_minutes(now, utc_offset_minutes)
    current = _to_week_minutes(day, minutes)

    next_open: Optional[int] = None
    for period in periods:
        open_ = period.open
        if open_ is None or open_.day is None:
            continue
        open_week = _to_week_minutes(open_.day, _to_minutes(open_.hour, open_.minute))
        for candidate in (open_week, open_week + MINUTES_IN_WEEK):
            if candidate <= current:
                continue
            if next_open is None or candidate < next_open:
                next_open = candidate

    if next_open is None:
        return OpenStatus(is_open_now=open_now, next_open_label=None)
    return OpenStatus(is_open_now=open_now, next_open_label=_next_open_label(next_open, current))
