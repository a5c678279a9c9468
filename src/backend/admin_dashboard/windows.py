from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidInputError


class TimeRange(str, Enum):
    TODAY = "today"
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    LAST_90_DAYS = "90days"
    ALL = "all"


RANGE_LABELS: Dict[TimeRange, str] = {
    TimeRange.TODAY: "Today",
    TimeRange.LAST_7_DAYS: "7 Days",
    TimeRange.LAST_30_DAYS: "30 Days",
    TimeRange.LAST_90_DAYS: "90 Days",
    TimeRange.ALL: "All",
}

RANGE_DAYS: Dict[TimeRange, int] = {
    TimeRange.TODAY: 1,
    TimeRange.LAST_7_DAYS: 7,
    TimeRange.LAST_30_DAYS: 30,
    TimeRange.LAST_90_DAYS: 90,
}


def coerce_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def normalize_datetime(dt: datetime, tz: tzinfo) -> datetime:
    """Naive timestamps coming out of the data store are UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Accept ``datetime``/``date`` objects or ISO-8601 strings (including the
    ``Z`` suffix the hosted API emits). Anything else yields ``None``.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None
    return None


def start_of_day(moment: datetime, tz: tzinfo) -> datetime:
    local = normalize_datetime(moment, tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def parse_time_range(value: Union[str, TimeRange, None]) -> TimeRange:
    if value is None:
        return TimeRange.ALL
    if isinstance(value, TimeRange):
        return value
    try:
        return TimeRange(value)
    except ValueError:
        allowed = ", ".join(item.value for item in TimeRange)
        raise InvalidInputError("range", f"unknown time range {value!r}; expected one of {allowed}") from None


def resolve_start(time_range: TimeRange, now: datetime, tz: tzinfo) -> Optional[datetime]:
    """
    Lower bound of the window, or ``None`` for ``all``.

    ``None`` means "do not filter"; callers must not turn it into the epoch.
    """

    if time_range is TimeRange.ALL:
        return None
    if time_range is TimeRange.TODAY:
        return start_of_day(now, tz)
    return normalize_datetime(now, tz) - timedelta(days=RANGE_DAYS[time_range])


def bucket_days(time_range: TimeRange, all_cap: int = 30) -> int:
    return RANGE_DAYS.get(time_range, all_cap)


@dataclass(frozen=True)
class ResolvedWindow:
    time_range: TimeRange
    start: Optional[datetime]
    label: str
    days: int
    now: datetime
    tz: tzinfo

    @property
    def today_start(self) -> datetime:
        return start_of_day(self.now, self.tz)

    @property
    def activity_start(self) -> datetime:
        """Lower bound for the bucket series: the window start or ``days`` back."""
        if self.start is not None:
            return self.start
        return normalize_datetime(self.now, self.tz) - timedelta(days=self.days)


def resolve_window(
    time_range: Union[str, TimeRange, None],
    now: datetime,
    tz: tzinfo,
    all_cap: int = 30,
) -> ResolvedWindow:
    selector = parse_time_range(time_range)
    return ResolvedWindow(
        time_range=selector,
        start=resolve_start(selector, now, tz),
        label=RANGE_LABELS[selector],
        days=bucket_days(selector, all_cap),
        now=normalize_datetime(now, tz),
        tz=tz,
    )
