"""
Row-level management tabs: users, matches, moderation, withdrawals, premium
signups and daily winners.

Each view loads its rows, enriches foreign keys with profile display fields
and computes the small stat cards shown above the table.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone
from functools import partial
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .dataset import count_by, count_since, filter_rows, sum_field
from .enrichment import MATCH_USERS, REPORT_USERS, USER, ForeignKey, ProfileEnricher
from .errors import NotFoundError
from .models import ReportReason, ReportStatus, TableView, WithdrawalStatus, reason_label
from .repository import (
    DAILY_WINNERS,
    DIAMOND_WITHDRAWALS,
    MATCHES,
    PREMIUM_SIGNUPS,
    PROFILES,
    REPORTS,
    DataGateway,
    Order,
    Row,
    eq,
    in_,
    search,
)
from .service import Clock, Metric, load_metrics, utc_now
from .settings import DashboardSettings
from .transitions import parse_status
from .windows import coerce_timezone, normalize_datetime, parse_timestamp, start_of_day

PROFILE_SEARCH_FIELDS = ("id", "name", "email", "avatar_url", "city", "age")
PREMIUM_USER_FIELDS = (
    "id",
    "name",
    "email",
    "avatar_url",
    "city",
    "age",
    "diamond_count",
    "created_at",
    "updated_at",
    "premium_activated_at",
)
REPORT_SEARCH_FIELDS = (
    "reporter_name",
    "reported_name",
    "reporter_email",
    "reported_email",
    "reason",
    "comment",
)
ALL = "all"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _created_key(row: Mapping[str, Any]) -> datetime:
    moment = parse_timestamp(row.get("created_at"))
    if moment is None:
        return EPOCH
    return normalize_datetime(moment, timezone.utc)


class ManagementService:
    def __init__(
        self,
        gateway: DataGateway,
        settings: Optional[DashboardSettings] = None,
        clock: Clock = utc_now,
        enricher: Optional[ProfileEnricher] = None,
    ) -> None:
        self.gateway = gateway
        self.settings = settings or DashboardSettings()
        self.clock = clock
        self.tz = coerce_timezone(self.settings.timezone)
        self.enricher = enricher or ProfileEnricher(gateway, chunk_size=self.settings.lookup_chunk_size)

    async def users(self, term: Optional[str] = None, limit: Optional[int] = None) -> TableView:
        values, failed = await load_metrics(
            {
                "users": Metric(
                    partial(
                        self.gateway.select,
                        PROFILES,
                        None,
                        (),
                        Order("created_at", descending=True),
                        limit or self.settings.users_limit,
                    ),
                    [],
                ),
            }
        )
        rows = filter_rows(values["users"], term, ("email", "name", "id"))
        stats = {
            "total": len(rows),
            "premium": sum(1 for row in rows if row.get("is_premium")),
            "diamonds": sum_field(rows, "diamond_count"),
        }
        return TableView(name="users", rows=rows, stats=stats, failed_metrics=failed)

    async def user(self, user_id: str) -> Row:
        profile = await asyncio.to_thread(self.gateway.get, PROFILES, user_id)
        if profile is None:
            raise NotFoundError(PROFILES, user_id)
        return profile

    async def search_profiles(self, term: Optional[str], limit: Optional[int] = None) -> List[Row]:
        needle = (term or "").strip()
        if len(needle) < self.settings.search_min_length:
            return []
        return await asyncio.to_thread(
            self.gateway.select,
            PROFILES,
            PROFILE_SEARCH_FIELDS,
            [search(("name", "email"), needle)],
            None,
            limit or self.settings.profile_search_limit,
        )

    async def matches(self, term: Optional[str] = None, limit: Optional[int] = None) -> TableView:
        limit = limit or self.settings.matches_limit
        values, failed = await load_metrics(
            {"matches": Metric(partial(self._load_matches, (term or "").strip(), limit), [])}
        )
        rows = values["matches"]
        now = self.clock()
        week = count_since(rows, "created_at", now - timedelta(days=7), self.tz)
        stats = {
            "total": len(rows),
            "today": count_since(rows, "created_at", start_of_day(now, self.tz), self.tz),
            "week": week,
            "avg_per_day": round(week / 7),
        }
        return TableView(name="matches", rows=rows, stats=stats, failed_metrics=failed)

    def _load_matches(self, term: str, limit: int) -> List[Row]:
        newest_first = Order("created_at", descending=True)
        if not term:
            rows = self.gateway.select(MATCHES, order=newest_first, limit=limit)
            return self.enricher.enrich(rows, MATCH_USERS)

        profiles = self.gateway.select(PROFILES, fields=("id",), filters=[search(("name", "email"), term)])
        user_ids = [profile["id"] for profile in profiles]
        if not user_ids:
            return []
        merged: Dict[Any, Row] = {}
        for key in MATCH_USERS:
            found = self.gateway.select(
                MATCHES, filters=[in_(key.field, user_ids)], order=newest_first, limit=limit
            )
            for row in found:
                merged.setdefault(row.get("id"), row)
        rows = sorted(merged.values(), key=_created_key, reverse=True)[:limit]
        return self.enricher.enrich(rows, MATCH_USERS)

    async def reports(
        self,
        term: Optional[str] = None,
        status: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> TableView:
        status_filter = None
        if status and status != ALL:
            status_filter = parse_status(ReportStatus, status)

        values, failed = await load_metrics(
            {"reports": Metric(partial(self._load_enriched, REPORTS, REPORT_USERS), [])}
        )
        rows = [{**row, "reason_label": reason_label(row.get("reason"))} for row in values["reports"]]
        by_status = count_by(rows, "status")
        stats = {
            "total": len(rows),
            **{item.value: by_status.get(item.value, 0) for item in ReportStatus},
            "today": count_since(rows, "created_at", start_of_day(self.clock(), self.tz), self.tz),
        }

        visible = filter_rows(rows, term, REPORT_SEARCH_FIELDS)
        if status_filter is not None:
            visible = [row for row in visible if row.get("status") == status_filter.value]
        if reason and reason != ALL:
            visible = [row for row in visible if row.get("reason") == reason]
        return TableView(
            name="reports",
            rows=visible,
            stats=stats,
            sections={"reasons": [{"value": item.value, "label": reason_label(item.value)} for item in ReportReason]},
            failed_metrics=failed,
        )

    async def withdrawals(self) -> TableView:
        values, failed = await load_metrics(
            {"withdrawals": Metric(partial(self._load_enriched, DIAMOND_WITHDRAWALS, USER), [])}
        )
        rows = values["withdrawals"]
        pending = [row for row in rows if row.get("status") == WithdrawalStatus.PENDING.value]
        stats = {
            "total": len(rows),
            "pending": len(pending),
            "completed": sum(1 for row in rows if row.get("status") == WithdrawalStatus.COMPLETED.value),
            "total_amount": sum_field(rows, "amount"),
            "pending_amount": sum_field(pending, "amount"),
        }
        return TableView(name="withdrawals", rows=rows, stats=stats, failed_metrics=failed)

    async def premium(self) -> TableView:
        newest_first = Order("created_at", descending=True)
        values, failed = await load_metrics(
            {
                "signups": Metric(partial(self.gateway.select, PREMIUM_SIGNUPS, None, (), newest_first), []),
                "premium_users": Metric(
                    partial(
                        self.gateway.select,
                        PROFILES,
                        PREMIUM_USER_FIELDS,
                        [eq("is_premium", True)],
                        newest_first,
                    ),
                    [],
                ),
            }
        )
        stats = {
            "pending_signups": len(values["signups"]),
            "premium_users": len(values["premium_users"]),
        }
        return TableView(
            name="premium",
            rows=values["signups"],
            stats=stats,
            sections={"premium_users": values["premium_users"]},
            failed_metrics=failed,
        )

    async def daily_winners(self) -> TableView:
        values, failed = await load_metrics(
            {
                "winners": Metric(
                    partial(self._load_enriched, DAILY_WINNERS, USER, Order("draw_date", descending=True)),
                    [],
                )
            }
        )
        rows = values["winners"]
        month_start = normalize_datetime(self.clock(), self.tz).date().replace(day=1)
        stats = {
            "total": len(rows),
            "this_month": sum(
                1 for row in rows if (_as_date(row.get("draw_date")) or date.min) >= month_start
            ),
            "total_prize": sum_field(rows, "prize_amount"),
            "pending_social_posts": sum(1 for row in rows if not row.get("instagram_posted")),
        }
        return TableView(name="daily_winners", rows=rows, stats=stats, failed_metrics=failed)

    def _load_enriched(
        self,
        collection: str,
        keys: Sequence[ForeignKey],
        order: Order = Order("created_at", descending=True),
    ) -> List[Row]:
        rows = self.gateway.select(collection, order=order)
        return self.enricher.enrich(rows, keys)
