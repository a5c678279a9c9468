"""
SQLAlchemy table definitions for the dating app collections.

The hosted database owns these tables; the definitions mirror its columns so
that ``SQLGateway`` can build queries and so tests/local setups can create
an equivalent schema.
"""

from __future__ import annotations

from sqlalchemy import JSON as SAJSON
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()
json_type = SAJSON().with_variant(JSONB, "postgresql")

profiles = Table(
    "profiles",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("email", String(255)),
    Column("name", String(255)),
    Column("age", Integer),
    Column("city", String(255)),
    Column("bio", Text),
    Column("avatar_url", Text),
    Column("current_rank", String(64)),
    Column("favorite_heroes", json_type),
    Column("favorite_lines", json_type),
    Column("is_premium", Boolean, nullable=False, default=False),
    Column("diamond_count", Integer, nullable=False, default=0),
    Column("is_active", Boolean, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True)),
    Column("premium_activated_at", DateTime(timezone=True)),
    Column("min_age_filter", Integer),
    Column("max_age_filter", Integer),
    Column("selected_ranks_filter", json_type),
    Column("selected_states_filter", json_type),
    Column("selected_cities_filter", json_type),
    Column("selected_lanes_filter", json_type),
    Column("selected_heroes_filter", json_type),
    Column("compatibility_mode_filter", Boolean),
    Column("ml_user_id", String(64)),
    Column("ml_zone_id", String(64)),
    CheckConstraint("diamond_count >= 0", name="ck_profiles_diamond_count"),
)

matches = Table(
    "matches",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user1_id", String(64), index=True),
    Column("user2_id", String(64), index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
)

messages = Table(
    "messages",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("match_id", String(64), index=True),
    Column("sender_id", String(64)),
    Column("content", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
)

reports = Table(
    "reports",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("reporter_id", String(64)),
    Column("reported_id", String(64)),
    Column("match_id", String(64)),
    Column("reason", String(64), nullable=False),
    Column("comment", Text),
    Column("status", String(32), nullable=False, default="pending"),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

diamond_withdrawals = Table(
    "diamond_withdrawals",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("amount", Integer, nullable=False),
    Column("ml_user_id", String(64)),
    Column("ml_zone_id", String(64)),
    Column("status", String(32), nullable=False, default="pending"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True)),
    Column("processed_at", DateTime(timezone=True)),
    Column("notes", Text),
)

premium_signups = Table(
    "premium_signups",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("name", String(255)),
    Column("email", String(255)),
    Column("phone", String(64)),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

daily_winners = Table(
    "daily_winners",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("draw_date", Date, nullable=False),
    Column("prize_amount", Float, nullable=False),
    Column("awarded_at", DateTime(timezone=True)),
    Column("instagram_posted", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True)),
    UniqueConstraint("draw_date", name="uq_daily_winners_draw_date"),
)

TABLES = {table.name: table for table in metadata.sorted_tables}

# Unique keys enforced by the storage layer, keyed by collection.
UNIQUE_KEYS = {
    "daily_winners": (("draw_date",),),
}
