from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Optional, Union

from .errors import ConstraintViolation, DuplicateWinnerError, InvalidInputError, InvalidTransitionError, NotFoundError
from .models import ReportStatus, WithdrawalStatus
from .repository import (
    DAILY_WINNERS,
    DIAMOND_WITHDRAWALS,
    PREMIUM_SIGNUPS,
    PROFILES,
    REPORTS,
    DataGateway,
    Row,
    eq,
)
from .service import Clock, utc_now
from .settings import DashboardSettings
from .transitions import ensure_transition, is_terminal, parse_status

logger = logging.getLogger(__name__)


def parse_positive_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(field, "enter a valid positive number")
    if isinstance(value, str):
        value = value.strip()
        try:
            value = int(value)
        except ValueError:
            raise InvalidInputError(field, "enter a valid positive number") from None
    if not isinstance(value, int) or value <= 0:
        raise InvalidInputError(field, "enter a valid positive number")
    return value


def parse_amount(field: str, value: Any) -> float:
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(field, "enter a valid amount")
    try:
        amount = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise InvalidInputError(field, "enter a valid amount") from None
    if not math.isfinite(amount) or amount < 0:
        raise InvalidInputError(field, "enter a valid amount")
    return amount


def parse_draw_date(value: Union[str, date, None]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidInputError("draw_date", "select the draw date (YYYY-MM-DD)")


class AdminActions:
    """
    Administrative mutations.

    Input is validated before the gateway is touched; multi-step changes run
    inside one gateway transaction.
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

    # Premium

    def approve_premium_signup(self, signup_id: str) -> Row:
        """Promote the requesting profile and drop the signup, both or neither."""

        with self.gateway.transaction() as tx:
            signup = tx.get(PREMIUM_SIGNUPS, signup_id)
            if signup is None:
                raise NotFoundError(PREMIUM_SIGNUPS, signup_id)
            user_id = signup.get("user_id")
            activated_at = self.clock()
            updated = tx.update(
                PROFILES,
                {"is_premium": True, "premium_activated_at": activated_at},
                [eq("id", user_id)],
            )
            if not updated:
                raise NotFoundError(PROFILES, str(user_id))
            tx.delete(PREMIUM_SIGNUPS, [eq("id", signup_id)])
        logger.info("Approved premium signup %s for user %s", signup_id, user_id)
        return {"signup_id": signup_id, "user_id": user_id, "premium_activated_at": activated_at}

    def deny_premium_signup(self, signup_id: str) -> None:
        if not self.gateway.delete(PREMIUM_SIGNUPS, [eq("id", signup_id)]):
            raise NotFoundError(PREMIUM_SIGNUPS, signup_id)
        logger.info("Denied premium signup %s", signup_id)

    def set_premium(self, user_id: str, enabled: bool) -> Row:
        values = {
            "is_premium": enabled,
            "premium_activated_at": self.clock() if enabled else None,
        }
        with self.gateway.transaction() as tx:
            if not tx.update(PROFILES, values, [eq("id", user_id)]):
                raise NotFoundError(PROFILES, user_id)
            profile = tx.get(PROFILES, user_id)
        logger.info("Set premium=%s for user %s", enabled, user_id)
        return profile

    def toggle_premium(self, user_id: str) -> Row:
        profile = self.gateway.get(PROFILES, user_id, fields=("id", "is_premium"))
        if profile is None:
            raise NotFoundError(PROFILES, user_id)
        return self.set_premium(user_id, not profile.get("is_premium"))

    def disable_premium(self, user_id: str) -> Row:
        return self.set_premium(user_id, False)

    def grant_diamonds(self, user_id: str, amount: Any) -> Row:
        diamonds = parse_positive_int("amount", amount)
        with self.gateway.transaction() as tx:
            profile = tx.get(PROFILES, user_id, fields=("id", "diamond_count"))
            if profile is None:
                raise NotFoundError(PROFILES, user_id)
            new_count = (profile.get("diamond_count") or 0) + diamonds
            tx.update(PROFILES, {"diamond_count": new_count}, [eq("id", user_id)])
        logger.info("Granted %d diamonds to user %s (now %d)", diamonds, user_id, new_count)
        return {"id": user_id, "diamond_count": new_count}

    # Moderation and withdrawals

    def update_report_status(self, report_id: str, status: Union[str, ReportStatus]) -> Row:
        target = parse_status(ReportStatus, status)
        report = self.gateway.get(REPORTS, report_id)
        if report is None:
            raise NotFoundError(REPORTS, report_id)
        current = parse_status(ReportStatus, report.get("status"))
        ensure_transition("report", current, target)
        updated = self.gateway.update(
            REPORTS,
            {"status": target.value},
            [eq("id", report_id), eq("status", current.value)],
        )
        if not updated:
            raise InvalidTransitionError("report", current.value, target.value)
        logger.info("Report %s moved from %s to %s", report_id, current.value, target.value)
        return {**report, "status": target.value}

    def update_withdrawal_status(
        self,
        withdrawal_id: str,
        status: Union[str, WithdrawalStatus],
        notes: Optional[str] = None,
    ) -> Row:
        target = parse_status(WithdrawalStatus, status)
        withdrawal = self.gateway.get(DIAMOND_WITHDRAWALS, withdrawal_id)
        if withdrawal is None:
            raise NotFoundError(DIAMOND_WITHDRAWALS, withdrawal_id)
        current = parse_status(WithdrawalStatus, withdrawal.get("status"))
        ensure_transition("withdrawal", current, target)

        now = self.clock()
        values: Row = {"status": target.value, "updated_at": now}
        if is_terminal(target):
            values["processed_at"] = now
        if notes:
            values["notes"] = notes
        updated = self.gateway.update(
            DIAMOND_WITHDRAWALS,
            values,
            [eq("id", withdrawal_id), eq("status", current.value)],
        )
        if not updated:
            raise InvalidTransitionError("withdrawal", current.value, target.value)
        logger.info("Withdrawal %s moved from %s to %s", withdrawal_id, current.value, target.value)
        return {**withdrawal, **values}

    # Daily winners

    def add_daily_winner(
        self,
        user_id: Optional[str],
        draw_date: Union[str, date, None],
        prize_amount: Any = None,
    ) -> Row:
        if not user_id:
            raise InvalidInputError("user_id", "select a user")
        day = parse_draw_date(draw_date)
        prize = parse_amount(
            "prize_amount",
            self.settings.default_prize_amount if prize_amount is None else prize_amount,
        )
        if self.gateway.get(PROFILES, user_id, fields=("id",)) is None:
            raise NotFoundError(PROFILES, user_id)

        now = self.clock()
        try:
            winner = self.gateway.insert(
                DAILY_WINNERS,
                {
                    "user_id": user_id,
                    "draw_date": day,
                    "prize_amount": prize,
                    "awarded_at": now,
                    "instagram_posted": False,
                    "created_at": now,
                },
            )
        except ConstraintViolation as exc:
            logger.info("Rejected second winner for %s: %s", day.isoformat(), exc)
            raise DuplicateWinnerError(day.isoformat()) from exc
        logger.info("Added daily winner %s for %s", user_id, day.isoformat())
        return winner

    def toggle_social_post(self, winner_id: str) -> Row:
        with self.gateway.transaction() as tx:
            winner = tx.get(DAILY_WINNERS, winner_id, fields=("id", "instagram_posted"))
            if winner is None:
                raise NotFoundError(DAILY_WINNERS, winner_id)
            posted = not winner.get("instagram_posted")
            tx.update(DAILY_WINNERS, {"instagram_posted": posted}, [eq("id", winner_id)])
        return {"id": winner_id, "instagram_posted": posted}
