"""
Status state machines for moderation reports and diamond withdrawals.

Transitions are checked here, at the mutation boundary, instead of relying on
which buttons the UI happens to show.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Type, TypeVar, Union

from .errors import InvalidInputError, InvalidTransitionError
from .models import ReportStatus, WithdrawalStatus

StatusT = TypeVar("StatusT", ReportStatus, WithdrawalStatus)

WITHDRAWAL_TRANSITIONS: Dict[WithdrawalStatus, FrozenSet[WithdrawalStatus]] = {
    WithdrawalStatus.PENDING: frozenset({WithdrawalStatus.APPROVED, WithdrawalStatus.REJECTED}),
    WithdrawalStatus.APPROVED: frozenset({WithdrawalStatus.COMPLETED}),
    WithdrawalStatus.COMPLETED: frozenset(),
    WithdrawalStatus.REJECTED: frozenset(),
}

REPORT_TRANSITIONS: Dict[ReportStatus, FrozenSet[ReportStatus]] = {
    ReportStatus.PENDING: frozenset({ReportStatus.REVIEWED, ReportStatus.RESOLVED}),
    ReportStatus.REVIEWED: frozenset({ReportStatus.RESOLVED}),
    ReportStatus.RESOLVED: frozenset(),
}

_TABLES = {
    WithdrawalStatus: WITHDRAWAL_TRANSITIONS,
    ReportStatus: REPORT_TRANSITIONS,
}


def parse_status(status_type: Type[StatusT], value: Union[str, StatusT]) -> StatusT:
    if isinstance(value, status_type):
        return value
    try:
        return status_type(value)
    except ValueError:
        allowed = ", ".join(item.value for item in status_type)
        raise InvalidInputError("status", f"unknown status {value!r}; expected one of {allowed}") from None


def is_terminal(status: Union[ReportStatus, WithdrawalStatus]) -> bool:
    return not _TABLES[type(status)][status]


def allowed_targets(status: Union[ReportStatus, WithdrawalStatus]) -> FrozenSet:
    return _TABLES[type(status)][status]


def ensure_transition(entity: str, current: StatusT, target: StatusT) -> None:
    if target not in _TABLES[type(current)][current]:
        raise InvalidTransitionError(entity, current.value, target.value)
