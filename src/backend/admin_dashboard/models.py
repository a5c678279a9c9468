from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ReportReason(str, Enum):
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    HARASSMENT = "harassment"
    FAKE_PROFILE = "fake_profile"
    SPAM = "spam"
    UNDERAGE = "underage"
    VIOLENCE = "violence"
    HATE_SPEECH = "hate_speech"
    NUDITY = "nudity"
    OTHER = "other"


REPORT_REASON_LABELS: Dict[ReportReason, str] = {
    ReportReason.INAPPROPRIATE_CONTENT: "Inappropriate Content",
    ReportReason.HARASSMENT: "Harassment",
    ReportReason.FAKE_PROFILE: "Fake Profile",
    ReportReason.SPAM: "Spam",
    ReportReason.UNDERAGE: "Underage",
    ReportReason.VIOLENCE: "Violence",
    ReportReason.HATE_SPEECH: "Hate Speech",
    ReportReason.NUDITY: "Nudity",
    ReportReason.OTHER: "Other",
}

NOT_INFORMED = "Not informed"


def reason_label(reason: Optional[str]) -> str:
    try:
        return REPORT_REASON_LABELS[ReportReason(reason)]
    except ValueError:
        return reason or NOT_INFORMED


@dataclass(frozen=True)
class ActivityBucket:
    """
    Counts per metric stream for one calendar day (or one hour of today).

    ``counts`` always carries every stream name, zero-filled.
    """

    day: date
    label: str
    counts: Dict[str, int]
    hour: Optional[int] = None

    def __getitem__(self, name: str) -> int:
        return self.counts[name]


@dataclass(frozen=True)
class GrowthPoint:
    day: date
    users: int
    premium: int


@dataclass(frozen=True)
class DistributionRow:
    label: str
    count: int


@dataclass(frozen=True)
class Ratios:
    premium_conversion_rate: float = 0.0
    avg_matches_per_user: float = 0.0
    avg_messages_per_match: float = 0.0


@dataclass(frozen=True)
class OverviewResult:
    time_range: str
    label: str
    total_users: int = 0
    active_users: int = 0
    total_matches: int = 0
    total_messages: int = 0
    today_matches: int = 0
    today_signups: int = 0
    activity: Sequence[ActivityBucket] = field(default_factory=list)
    failed_metrics: Sequence[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class AnalyticsResult:
    time_range: str
    label: str
    total_users: int = 0
    premium_users: int = 0
    total_matches: int = 0
    total_messages: int = 0
    total_diamonds: int = 0
    ratios: Ratios = field(default_factory=Ratios)
    user_growth: Sequence[GrowthPoint] = field(default_factory=list)
    city_distribution: Sequence[DistributionRow] = field(default_factory=list)
    rank_distribution: Sequence[DistributionRow] = field(default_factory=list)
    daily_activity: Sequence[ActivityBucket] = field(default_factory=list)
    hourly_activity: Sequence[ActivityBucket] = field(default_factory=list)
    failed_metrics: Sequence[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class TableView:
    """
    Row-level management view: enriched rows plus summary stats.

    ``sections`` holds secondary row lists shown on the same tab (premium
    users next to pending signups, for instance).
    """

    name: str
    rows: Sequence[Mapping[str, Any]]
    stats: Dict[str, float] = field(default_factory=dict)
    sections: Dict[str, Sequence[Mapping[str, Any]]] = field(default_factory=dict)
    failed_metrics: Sequence[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return _serialize(self)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _serialize(obj: Any) -> Any:
    """
    Convert result dataclasses into JSON-serialisable primitives.

    Dataclass attributes become camelCase keys; database rows keep their
    column names.
    """

    if isinstance(obj, ActivityBucket):
        payload: Dict[str, Any] = {"date": obj.day.isoformat(), "label": obj.label}
        if obj.hour is not None:
            payload["hour"] = obj.hour
        payload.update(obj.counts)
        return payload
    if isinstance(obj, GrowthPoint):
        return {"date": obj.day.isoformat(), "users": obj.users, "premium": obj.premium}
    if is_dataclass(obj) and not isinstance(obj, type):
        return {_camel(item.name): _serialize(getattr(obj, item.name)) for item in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Mapping):
        return {str(key): _serialize(value) for key, value in obj.items()}
    if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
        return [_serialize(item) for item in obj]
    return obj


def to_primitive(obj: Any) -> Any:
    """Public entry point for serializing rows returned by admin actions."""
    return _serialize(obj)
