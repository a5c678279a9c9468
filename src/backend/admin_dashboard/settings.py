"""
Runtime configuration for the admin dashboard.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "ADMIN_DASHBOARD_"
DEFAULT_LOG_LEVEL = "INFO"


class DashboardSettings(BaseModel):
    database_url: Optional[str] = None
    """SQLAlchemy URL of the dating app database (service-role access)."""

    timezone: str = "America/Sao_Paulo"
    """Timezone used for "today" and for calendar-day buckets."""

    activity_days_cap: int = Field(30, ge=1)
    """Number of daily buckets shown when the window selector is ``all``."""

    top_cities: int = 10
    matches_limit: int = 100
    users_limit: int = 50
    profile_search_limit: int = 10
    search_min_length: int = 2

    lookup_chunk_size: int = 200
    """Maximum number of ids per batched profile lookup."""

    default_prize_amount: float = 30.0
    cors_origins: List[str] = ["*"]
    """Origins allowed to call the API from a browser."""

    cors_allow_credentials: bool = False
    """Only honoured when ``cors_origins`` lists explicit origins."""

    create_schema: bool = False
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("log_level", mode="before")
    @classmethod
    def known_log_level(cls, value: object) -> str:
        name = str(value or DEFAULT_LOG_LEVEL).strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            return DEFAULT_LOG_LEVEL
        return name


def _env(name: str) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name)


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = _env(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_settings(dotenv: bool = True) -> DashboardSettings:
    if dotenv:
        load_dotenv()
    defaults = DashboardSettings()
    return DashboardSettings(
        database_url=_env("DATABASE_URL") or defaults.database_url,
        timezone=_env("TIMEZONE") or defaults.timezone,
        activity_days_cap=max(1, _env_int("ACTIVITY_DAYS_CAP", defaults.activity_days_cap)),
        top_cities=_env_int("TOP_CITIES", defaults.top_cities),
        matches_limit=_env_int("MATCHES_LIMIT", defaults.matches_limit),
        users_limit=_env_int("USERS_LIMIT", defaults.users_limit),
        profile_search_limit=_env_int("PROFILE_SEARCH_LIMIT", defaults.profile_search_limit),
        search_min_length=_env_int("SEARCH_MIN_LENGTH", defaults.search_min_length),
        lookup_chunk_size=_env_int("LOOKUP_CHUNK_SIZE", defaults.lookup_chunk_size),
        default_prize_amount=_env_float("DEFAULT_PRIZE", defaults.default_prize_amount),
        cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
        cors_allow_credentials=_env_bool("CORS_ALLOW_CREDENTIALS", defaults.cors_allow_credentials),
        create_schema=_env_bool("CREATE_SCHEMA", defaults.create_schema),
        log_level=_env("LOG_LEVEL") or defaults.log_level,
    )
