from __future__ import annotations

from datetime import date

import pytest

from backend.admin_dashboard.actions import AdminActions
from backend.admin_dashboard.errors import (
    DuplicateWinnerError,
    GatewayError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from backend.admin_dashboard.memory import InMemoryGateway
from backend.admin_dashboard.repository import DIAMOND_WITHDRAWALS, PREMIUM_SIGNUPS, PROFILES, REPORTS

from .fixtures import NOW, fixed_clock, seed_rows


class FailingDeleteGateway(InMemoryGateway):
    def delete(self, collection, filters):
        raise GatewayError(f"delete {collection}", "connection reset")


class CountingGateway(InMemoryGateway):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls = 0

    def select(self, *args, **kwargs):
        self.calls += 1
        return super().select(*args, **kwargs)

    def update(self, *args, **kwargs):
        self.calls += 1
        return super().update(*args, **kwargs)


class StaleReadGateway(InMemoryGateway):
    """Returns the status as it was before another admin changed it."""

    def __init__(self, *args, stale_status: str, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.stale_status = stale_status

    def get(self, collection, identifier, fields=None):
        row = super().get(collection, identifier, fields)
        if row is not None:
            row["status"] = self.stale_status
        return row


def _actions(gateway: InMemoryGateway) -> AdminActions:
    return AdminActions(gateway, clock=fixed_clock)


def test_approve_premium_signup_promotes_profile_and_drops_signup(gateway) -> None:
    result = _actions(gateway).approve_premium_signup("s1")

    profile = gateway.get(PROFILES, "u2")
    assert result["user_id"] == "u2"
    assert profile["is_premium"] is True
    assert profile["premium_activated_at"] == NOW
    assert gateway.get(PREMIUM_SIGNUPS, "s1") is None


def test_approve_for_missing_profile_changes_nothing(gateway) -> None:
    with pytest.raises(NotFoundError):
        _actions(gateway).approve_premium_signup("s2")

    assert gateway.get(PREMIUM_SIGNUPS, "s2") is not None


def test_approve_is_atomic_when_delete_fails() -> None:
    gateway = FailingDeleteGateway(seed_rows())

    with pytest.raises(GatewayError):
        _actions(gateway).approve_premium_signup("s1")

    profile = gateway.get(PROFILES, "u2")
    assert profile["is_premium"] is False
    assert profile.get("premium_activated_at") is None
    assert gateway.get(PREMIUM_SIGNUPS, "s1") is not None


def test_approve_unknown_signup(gateway) -> None:
    with pytest.raises(NotFoundError):
        _actions(gateway).approve_premium_signup("nope")


def test_deny_premium_signup(gateway) -> None:
    actions = _actions(gateway)

    actions.deny_premium_signup("s1")

    assert gateway.get(PREMIUM_SIGNUPS, "s1") is None
    assert gateway.get(PROFILES, "u2")["is_premium"] is False
    with pytest.raises(NotFoundError):
        actions.deny_premium_signup("s1")


def test_set_and_toggle_premium(gateway) -> None:
    actions = _actions(gateway)

    disabled = actions.disable_premium("u1")
    assert disabled["is_premium"] is False
    assert disabled["premium_activated_at"] is None

    enabled = actions.toggle_premium("u1")
    assert enabled["is_premium"] is True
    assert enabled["premium_activated_at"] == NOW

    with pytest.raises(NotFoundError):
        actions.set_premium("ghost", True)


def test_grant_diamonds_adds_to_balance(gateway) -> None:
    result = _actions(gateway).grant_diamonds("u2", "15")

    assert result == {"id": "u2", "diamond_count": 20}
    assert gateway.get(PROFILES, "u2")["diamond_count"] == 20


@pytest.mark.parametrize("amount", ["abc", "0", "-5", 0, -3, True, None, 2.5, ""])
def test_invalid_diamond_amount_never_reaches_the_gateway(amount) -> None:
    gateway = CountingGateway(seed_rows())

    with pytest.raises(InvalidInputError):
        _actions(gateway).grant_diamonds("u2", amount)

    assert gateway.calls == 0


def test_grant_diamonds_to_unknown_user(gateway) -> None:
    with pytest.raises(NotFoundError):
        _actions(gateway).grant_diamonds("ghost", 10)


def test_report_status_follows_transition_table(gateway) -> None:
    actions = _actions(gateway)

    assert actions.update_report_status("r1", "reviewed")["status"] == "reviewed"
    assert gateway.get(REPORTS, "r1")["status"] == "reviewed"

    with pytest.raises(InvalidTransitionError):
        actions.update_report_status("r3", "pending")
    with pytest.raises(InvalidInputError):
        actions.update_report_status("r1", "archived")
    with pytest.raises(NotFoundError):
        actions.update_report_status("nope", "resolved")


def test_withdrawal_approval_then_completion(gateway) -> None:
    actions = _actions(gateway)

    approved = actions.update_withdrawal_status("w1", "approved")
    assert approved["status"] == "approved"
    assert approved["updated_at"] == NOW
    assert gateway.get(DIAMOND_WITHDRAWALS, "w1").get("processed_at") is None

    actions.update_withdrawal_status("w1", "completed", notes="paid via pix")
    stored = gateway.get(DIAMOND_WITHDRAWALS, "w1")
    assert stored["status"] == "completed"
    assert stored["processed_at"] == NOW
    assert stored["notes"] == "paid via pix"


def test_withdrawal_cannot_skip_approval(gateway) -> None:
    with pytest.raises(InvalidTransitionError):
        _actions(gateway).update_withdrawal_status("w1", "completed")

    assert gateway.get(DIAMOND_WITHDRAWALS, "w1")["status"] == "pending"


def test_concurrent_status_change_is_detected() -> None:
    # w2 is already approved; this admin still sees it as pending.
    gateway = StaleReadGateway(seed_rows(), stale_status="pending")

    with pytest.raises(InvalidTransitionError):
        _actions(gateway).update_withdrawal_status("w2", "rejected")

    assert InMemoryGateway.get(gateway, DIAMOND_WITHDRAWALS, "w2")["status"] == "approved"


def test_add_daily_winner_uses_default_prize(gateway) -> None:
    winner = _actions(gateway).add_daily_winner("u2", "2024-06-15")

    assert winner["draw_date"] == date(2024, 6, 15)
    assert winner["prize_amount"] == 30.0
    assert winner["instagram_posted"] is False
    assert winner["awarded_at"] == NOW


def test_second_winner_for_the_same_date_is_rejected(gateway) -> None:
    with pytest.raises(DuplicateWinnerError) as excinfo:
        _actions(gateway).add_daily_winner("u2", "2024-06-14", 45)

    assert excinfo.value.user_message == "A winner already exists for this date!"


@pytest.mark.parametrize(
    "user_id,draw_date,prize",
    [
        (None, "2024-06-15", 30),
        ("u2", "", 30),
        ("u2", "15/06/2024", 30),
        ("u2", "2024-06-15", -1),
        ("u2", "2024-06-15", "thirty"),
        ("u2", "2024-06-15", "nan"),
    ],
)
def test_invalid_winner_input(gateway, user_id, draw_date, prize) -> None:
    with pytest.raises(InvalidInputError):
        _actions(gateway).add_daily_winner(user_id, draw_date, prize)


def test_winner_must_reference_an_existing_profile(gateway) -> None:
    with pytest.raises(NotFoundError):
        _actions(gateway).add_daily_winner("ghost", "2024-06-15")


def test_toggle_social_post(gateway) -> None:
    actions = _actions(gateway)

    assert actions.toggle_social_post("dw1") == {"id": "dw1", "instagram_posted": True}
    assert actions.toggle_social_post("dw1") == {"id": "dw1", "instagram_posted": False}
    with pytest.raises(NotFoundError):
        actions.toggle_social_post("nope")
