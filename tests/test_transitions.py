from __future__ import annotations

import pytest

from backend.admin_dashboard.errors import InvalidInputError, InvalidTransitionError
from backend.admin_dashboard.models import ReportStatus, WithdrawalStatus
from backend.admin_dashboard.transitions import (
    REPORT_TRANSITIONS,
    WITHDRAWAL_TRANSITIONS,
    allowed_targets,
    ensure_transition,
    is_terminal,
    parse_status,
)


def test_every_status_has_a_transition_entry() -> None:
    assert set(WITHDRAWAL_TRANSITIONS) == set(WithdrawalStatus)
    assert set(REPORT_TRANSITIONS) == set(ReportStatus)


@pytest.mark.parametrize(
    "current,target",
    [
        (WithdrawalStatus.PENDING, WithdrawalStatus.APPROVED),
        (WithdrawalStatus.PENDING, WithdrawalStatus.REJECTED),
        (WithdrawalStatus.APPROVED, WithdrawalStatus.COMPLETED),
        (ReportStatus.PENDING, ReportStatus.REVIEWED),
        (ReportStatus.PENDING, ReportStatus.RESOLVED),
        (ReportStatus.REVIEWED, ReportStatus.RESOLVED),
    ],
)
def test_allowed_transitions(current, target) -> None:
    ensure_transition("row", current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (WithdrawalStatus.PENDING, WithdrawalStatus.COMPLETED),
        (WithdrawalStatus.COMPLETED, WithdrawalStatus.PENDING),
        (WithdrawalStatus.REJECTED, WithdrawalStatus.APPROVED),
        (WithdrawalStatus.APPROVED, WithdrawalStatus.APPROVED),
        (ReportStatus.RESOLVED, ReportStatus.PENDING),
        (ReportStatus.REVIEWED, ReportStatus.PENDING),
    ],
)
def test_rejected_transitions(current, target) -> None:
    with pytest.raises(InvalidTransitionError):
        ensure_transition("row", current, target)


def test_terminal_states() -> None:
    assert is_terminal(WithdrawalStatus.COMPLETED)
    assert is_terminal(WithdrawalStatus.REJECTED)
    assert is_terminal(ReportStatus.RESOLVED)
    assert not is_terminal(WithdrawalStatus.APPROVED)
    assert allowed_targets(ReportStatus.REVIEWED) == frozenset({ReportStatus.RESOLVED})


def test_parse_status() -> None:
    assert parse_status(WithdrawalStatus, "approved") is WithdrawalStatus.APPROVED
    with pytest.raises(InvalidInputError):
        parse_status(ReportStatus, "archived")
