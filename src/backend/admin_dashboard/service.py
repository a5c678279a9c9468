from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from .dataset import daily_buckets, derive_ratios, distribution, growth_series, hourly_buckets, sum_field
from .errors import GatewayError
from .models import AnalyticsResult, OverviewResult
from .repository import MATCHES, MESSAGES, PROFILES, DataGateway, Order, eq, gte, since
from .settings import DashboardSettings
from .windows import ResolvedWindow, TimeRange, coerce_timezone, resolve_window

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

ACTIVE_USER_DAYS = 7
OVERVIEW_ACTIVITY_DAYS = 7
GROWTH_FALLBACK_DAYS = 30


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Metric(NamedTuple):
    loader: Callable[[], Any]
    default: Any


async def load_metrics(metrics: Mapping[str, Metric]) -> Tuple[Dict[str, Any], List[str]]:
    """
    Run every blocking loader in a worker thread and await them together.

    A loader failing with ``GatewayError`` only costs its own metric: the
    default is used and the name is reported in the returned failure list.
    """

    names = list(metrics)
    results = await asyncio.gather(
        *(asyncio.to_thread(metrics[name].loader) for name in names),
        return_exceptions=True,
    )
    values: Dict[str, Any] = {}
    failed: List[str] = []
    for name, result in zip(names, results):
        if isinstance(result, GatewayError):
            logger.warning("Failed to load metric %s: %s", name, result)
            values[name] = metrics[name].default
            failed.append(name)
        elif isinstance(result, BaseException):
            raise result
        else:
            values[name] = result
    return values, failed


class DashboardService:
    """
    Builds the overview and analytics tabs for one window selector.

    The gateway is injected so tests and alternative backends can stand in
    for the hosted database.
    """

    def __init__(
        self,
        gateway: DataGateway,
        settings: Optional[DashboardSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.gateway = gateway
        self.settings = settings or DashboardSettings()
        self.clock = clock
        self.tz = coerce_timezone(self.settings.timezone)

    def resolve(self, time_range: Union[str, TimeRange, None]) -> ResolvedWindow:
        return resolve_window(time_range, self.clock(), self.tz, all_cap=self.settings.activity_days_cap)

    async def overview(self, time_range: Union[str, TimeRange, None] = TimeRange.ALL) -> OverviewResult:
        window = self.resolve(time_range)
        today = window.today_start
        active_since = window.now - timedelta(days=ACTIVE_USER_DAYS)
        activity_since = window.now - timedelta(days=OVERVIEW_ACTIVITY_DAYS)
        count = self.gateway.count

        values, failed = await load_metrics(
            {
                "total_users": Metric(partial(count, PROFILES, since("created_at", window.start)), 0),
                "active_users": Metric(partial(count, PROFILES, [gte("updated_at", active_since)]), 0),
                "total_matches": Metric(partial(count, MATCHES, since("created_at", window.start)), 0),
                "total_messages": Metric(partial(count, MESSAGES, since("created_at", window.start)), 0),
                "today_matches": Metric(partial(count, MATCHES, [gte("created_at", today)]), 0),
                "today_signups": Metric(partial(count, PROFILES, [gte("created_at", today)]), 0),
                **self._activity_metrics(activity_since),
            }
        )

        activity = daily_buckets(
            self._activity_streams(values),
            OVERVIEW_ACTIVITY_DAYS,
            window.now,
            self.tz,
            time_range=TimeRange.LAST_7_DAYS,
        )
        return OverviewResult(
            time_range=window.time_range.value,
            label=window.label,
            total_users=values["total_users"],
            active_users=values["active_users"],
            total_matches=values["total_matches"],
            total_messages=values["total_messages"],
            today_matches=values["today_matches"],
            today_signups=values["today_signups"],
            activity=activity,
            failed_metrics=failed,
        )

    async def analytics(self, time_range: Union[str, TimeRange, None] = TimeRange.ALL) -> AnalyticsResult:
        window = self.resolve(time_range)
        start_filters = since("created_at", window.start)
        growth_since = window.start or window.now - timedelta(days=GROWTH_FALLBACK_DAYS)
        count = self.gateway.count
        select = self.gateway.select

        values, failed = await load_metrics(
            {
                "total_users": Metric(partial(count, PROFILES, start_filters), 0),
                "premium_users": Metric(
                    partial(count, PROFILES, [eq("is_premium", True), *start_filters]), 0
                ),
                "total_matches": Metric(partial(count, MATCHES, start_filters), 0),
                "total_messages": Metric(partial(count, MESSAGES, start_filters), 0),
                "diamonds": Metric(partial(select, PROFILES, ("diamond_count",), start_filters), []),
                "growth": Metric(
                    partial(
                        select,
                        PROFILES,
                        ("created_at", "is_premium"),
                        [gte("created_at", growth_since)],
                        Order("created_at"),
                    ),
                    [],
                ),
                "cities": Metric(partial(select, PROFILES, ("city",), start_filters), []),
                "ranks": Metric(partial(select, PROFILES, ("current_rank",), start_filters), []),
                **self._activity_metrics(window.activity_start),
            }
        )

        streams = self._activity_streams(values)
        daily = daily_buckets(streams, window.days, window.now, self.tz, time_range=window.time_range)
        hourly = hourly_buckets(streams, window.now, self.tz) if window.time_range is TimeRange.TODAY else []

        return AnalyticsResult(
            time_range=window.time_range.value,
            label=window.label,
            total_users=values["total_users"],
            premium_users=values["premium_users"],
            total_matches=values["total_matches"],
            total_messages=values["total_messages"],
            total_diamonds=sum_field(values["diamonds"], "diamond_count"),
            ratios=derive_ratios(
                values["total_users"],
                values["premium_users"],
                values["total_matches"],
                values["total_messages"],
            ),
            user_growth=growth_series(values["growth"], self.tz),
            city_distribution=distribution(values["cities"], "city", limit=self.settings.top_cities),
            rank_distribution=distribution(values["ranks"], "current_rank"),
            daily_activity=daily,
            hourly_activity=hourly,
            failed_metrics=failed,
        )

    def _activity_metrics(self, boundary: datetime) -> Dict[str, Metric]:
        filters = [gte("created_at", boundary)]
        fields = ("created_at",)
        return {
            "activity_matches": Metric(partial(self.gateway.select, MATCHES, fields, filters), []),
            "activity_messages": Metric(partial(self.gateway.select, MESSAGES, fields, filters), []),
            "activity_signups": Metric(partial(self.gateway.select, PROFILES, fields, filters), []),
        }

    @staticmethod
    def _activity_streams(values: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "matches": values["activity_matches"],
            "messages": values["activity_messages"],
            "signups": values["activity_signups"],
        }
