"""
Aggregation engine: pure functions over row snapshots.

Every function here is deterministic for a given input (and ``now``); none of
them talk to the gateway.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .models import NOT_INFORMED, ActivityBucket, DistributionRow, GrowthPoint, Ratios
from .windows import TimeRange, normalize_datetime, parse_timestamp

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

RowOrTimestamp = Union[Mapping[str, Any], datetime, str]


def _row_time(row: RowOrTimestamp, field: str, tz: tzinfo) -> Optional[datetime]:
    value = row.get(field) if isinstance(row, Mapping) else row
    moment = parse_timestamp(value)
    if moment is None:
        return None
    return normalize_datetime(moment, tz)


def _day_label(day: date, time_range: Optional[TimeRange]) -> str:
    if time_range is TimeRange.LAST_7_DAYS:
        return WEEKDAY_LABELS[day.weekday()]
    return day.strftime("%d/%m")


def daily_buckets(
    streams: Mapping[str, Iterable[RowOrTimestamp]],
    days: int,
    now: datetime,
    tz: tzinfo,
    time_range: Optional[TimeRange] = None,
    field: str = "created_at",
) -> List[ActivityBucket]:
    """
    Count rows per local calendar day for ``[today - days + 1, today]``.

    Exactly ``days`` buckets are returned, oldest first, each carrying a zero
    for every stream. Rows outside the range or without a usable timestamp
    are dropped.
    """

    if days < 1:
        raise ValueError("days must be at least 1")
    today = normalize_datetime(now, tz).date()
    first = today - timedelta(days=days - 1)
    ordered_days = [first + timedelta(days=offset) for offset in range(days)]
    counts: Dict[date, Dict[str, int]] = {day: {name: 0 for name in streams} for day in ordered_days}

    for name, rows in streams.items():
        for row in rows:
            moment = _row_time(row, field, tz)
            if moment is None:
                continue
            slot = counts.get(moment.date())
            if slot is not None:
                slot[name] += 1

    return [
        ActivityBucket(day=day, label=_day_label(day, time_range), counts=counts[day])
        for day in ordered_days
    ]


def hourly_buckets(
    streams: Mapping[str, Iterable[RowOrTimestamp]],
    now: datetime,
    tz: tzinfo,
    field: str = "created_at",
) -> List[ActivityBucket]:
    """24 zero-filled buckets, one per hour of the current local day."""

    today = normalize_datetime(now, tz).date()
    counts = [{name: 0 for name in streams} for _ in range(24)]
    for name, rows in streams.items():
        for row in rows:
            moment = _row_time(row, field, tz)
            if moment is None or moment.date() != today:
                continue
            counts[moment.hour][name] += 1
    return [
        ActivityBucket(day=today, label=f"{hour:02d}:00", counts=counts[hour], hour=hour)
        for hour in range(24)
    ]


def growth_series(
    rows: Iterable[Mapping[str, Any]],
    tz: tzinfo,
    field: str = "created_at",
    premium_field: str = "is_premium",
) -> List[GrowthPoint]:
    users: Dict[date, int] = defaultdict(int)
    premium: Dict[date, int] = defaultdict(int)
    for row in rows:
        moment = _row_time(row, field, tz)
        if moment is None:
            continue
        day = moment.date()
        users[day] += 1
        if row.get(premium_field):
            premium[day] += 1
    return [GrowthPoint(day=day, users=users[day], premium=premium[day]) for day in sorted(users)]


def _category(value: Any) -> str:
    if value is None:
        return NOT_INFORMED
    label = str(value).strip()
    return label or NOT_INFORMED


def distribution(
    rows: Iterable[Mapping[str, Any]],
    field: str,
    limit: Optional[int] = None,
) -> List[DistributionRow]:
    """
    Count rows per value of ``field``, most frequent first.

    Null or blank values fall into the ``Not informed`` bucket. Ties keep the
    order in which their values were first seen.
    """

    counts = Counter(_category(row.get(field)) for row in rows)
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    if limit is not None:
        ordered = ordered[:limit]
    return [DistributionRow(label=label, count=count) for label, count in ordered]


def safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if not denominator:
        return 0.0
    result = numerator / denominator * scale
    return result if math.isfinite(result) else 0.0


def derive_ratios(
    total_users: int,
    premium_users: int,
    total_matches: int,
    total_messages: int,
) -> Ratios:
    return Ratios(
        premium_conversion_rate=safe_ratio(premium_users, total_users, scale=100),
        avg_matches_per_user=safe_ratio(total_matches, total_users),
        avg_messages_per_match=safe_ratio(total_messages, total_matches),
    )


def count_by(rows: Iterable[Mapping[str, Any]], field: str) -> Dict[str, int]:
    return dict(Counter(str(row.get(field)) for row in rows))


def sum_field(rows: Iterable[Mapping[str, Any]], field: str) -> float:
    total = 0.0
    for row in rows:
        value = row.get(field)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            total += value
    return int(total) if total.is_integer() else total


def count_since(
    rows: Iterable[Mapping[str, Any]],
    field: str,
    boundary: datetime,
    tz: tzinfo,
) -> int:
    start = normalize_datetime(boundary, tz)
    total = 0
    for row in rows:
        moment = _row_time(row, field, tz)
        if moment is not None and moment >= start:
            total += 1
    return total


def filter_rows(
    rows: Sequence[Mapping[str, Any]],
    term: Optional[str],
    fields: Sequence[str],
) -> List[Mapping[str, Any]]:
    """Case-insensitive substring match of ``term`` against any of ``fields``."""

    if not term:
        return list(rows)
    needle = term.lower()
    return [
        row
        for row in rows
        if any(needle in str(row.get(name) or "").lower() for name in fields)
    ]
