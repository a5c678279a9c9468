from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List


# Saturday 2024-06-15, 12:00 in America/Sao_Paulo (UTC-3).
NOW = datetime(2024, 6, 15, 15, 0, tzinfo=timezone.utc)


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


def seed_rows() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "profiles": [
            {
                "id": "u1",
                "name": "Alice",
                "email": "alice@example.com",
                "avatar_url": "https://cdn.example.com/u1.png",
                "city": "São Paulo",
                "current_rank": "Mythic",
                "is_premium": True,
                "diamond_count": 10,
                "created_at": utc(2024, 6, 15, 13),
                "updated_at": utc(2024, 6, 15, 13),
            },
            {
                "id": "u2",
                "name": "Bruno",
                "email": "bruno@example.com",
                "avatar_url": None,
                "city": "Rio de Janeiro",
                "current_rank": "Epic",
                "is_premium": False,
                "diamond_count": 5,
                "created_at": utc(2024, 6, 10),
                "updated_at": utc(2024, 6, 14),
            },
            {
                "id": "u3",
                "name": "Carla",
                "email": "carla@example.com",
                "avatar_url": None,
                "city": None,
                "current_rank": "Mythic",
                "is_premium": False,
                "diamond_count": 0,
                "created_at": utc(2024, 5, 1),
                "updated_at": utc(2024, 5, 2),
            },
            {
                "id": "u4",
                "name": "Diego",
                "email": "diego@example.com",
                "avatar_url": None,
                "city": "São Paulo",
                "current_rank": None,
                "is_premium": True,
                "diamond_count": 20,
                "created_at": utc(2024, 1, 10),
                "updated_at": utc(2024, 6, 15, 10),
            },
        ],
        "matches": [
            {"id": "m1", "user1_id": "u1", "user2_id": "u2", "created_at": utc(2024, 6, 15, 14)},
            {"id": "m2", "user1_id": "u2", "user2_id": "u3", "created_at": utc(2024, 6, 13, 15)},
            {"id": "m3", "user1_id": "u3", "user2_id": "u4", "created_at": utc(2024, 6, 13, 16)},
            {"id": "m4", "user1_id": "u1", "user2_id": "u4", "created_at": utc(2024, 3, 1)},
            {"id": "m5", "user1_id": "u2", "user2_id": "ghost", "created_at": utc(2024, 6, 14)},
        ],
        "messages": [
            {"id": "msg1", "match_id": "m1", "created_at": utc(2024, 6, 15, 14, 30)},
            {"id": "msg2", "match_id": "m2", "created_at": utc(2024, 6, 13, 15, 30)},
            {"id": "msg3", "match_id": "m4", "created_at": utc(2024, 3, 2)},
        ],
        "reports": [
            {
                "id": "r1",
                "reporter_id": "u1",
                "reported_id": "u2",
                "reason": "harassment",
                "comment": "rude messages",
                "status": "pending",
                "created_at": utc(2024, 6, 15, 13, 30),
            },
            {
                "id": "r2",
                "reporter_id": "u3",
                "reported_id": "u4",
                "reason": "spam",
                "comment": None,
                "status": "reviewed",
                "created_at": utc(2024, 6, 10),
            },
            {
                "id": "r3",
                "reporter_id": "u2",
                "reported_id": "ghost",
                "reason": "fake_profile",
                "comment": None,
                "status": "resolved",
                "created_at": utc(2024, 6, 1),
            },
        ],
        "diamond_withdrawals": [
            {"id": "w1", "user_id": "u2", "amount": 100, "status": "pending", "created_at": utc(2024, 6, 14)},
            {"id": "w2", "user_id": "u4", "amount": 250, "status": "approved", "created_at": utc(2024, 6, 12)},
            {"id": "w3", "user_id": "u1", "amount": 50, "status": "completed", "created_at": utc(2024, 6, 1)},
        ],
        "premium_signups": [
            {"id": "s1", "user_id": "u2", "name": "Bruno", "created_at": utc(2024, 6, 14)},
            {"id": "s2", "user_id": "ghost", "name": "Ghost", "created_at": utc(2024, 6, 13)},
        ],
        "daily_winners": [
            {
                "id": "dw1",
                "user_id": "u1",
                "draw_date": date(2024, 6, 14),
                "prize_amount": 30.0,
                "instagram_posted": False,
            },
            {
                "id": "dw2",
                "user_id": "u4",
                "draw_date": date(2024, 5, 20),
                "prize_amount": 50.0,
                "instagram_posted": True,
            },
        ],
    }
