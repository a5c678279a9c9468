from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from backend.admin_dashboard.errors import ConstraintViolation
from backend.admin_dashboard.memory import InMemoryGateway
from backend.admin_dashboard.repository import DAILY_WINNERS, PROFILES, eq

from .fixtures import seed_rows


class SlowCheckGateway(InMemoryGateway):
    """Widens the gap between the uniqueness check and the append."""

    def _check_unique(self, collection, row, ignore):
        super()._check_unique(collection, row, ignore)
        time.sleep(0.01)


def _winner(identifier: str, user_id: str, draw_date: date) -> dict:
    return {
        "id": identifier,
        "user_id": user_id,
        "draw_date": draw_date,
        "prize_amount": 30.0,
        "instagram_posted": False,
    }


def test_rollback_keeps_writes_from_other_threads(gateway) -> None:
    started = threading.Event()

    def add_winner() -> None:
        started.wait()
        gateway.insert(DAILY_WINNERS, _winner("new", "u3", date(2024, 6, 16)))

    writer = threading.Thread(target=add_winner)
    writer.start()
    with pytest.raises(RuntimeError):
        with gateway.transaction() as tx:
            tx.update(PROFILES, {"is_premium": True}, [eq("id", "u2")])
            started.set()
            writer.join(timeout=0.2)
            assert writer.is_alive()
            raise RuntimeError("abort")
    writer.join()

    assert gateway.get(DAILY_WINNERS, "new") is not None
    assert gateway.get(PROFILES, "u2")["is_premium"] is False


def test_concurrent_inserts_respect_unique_keys() -> None:
    gateway = SlowCheckGateway(seed_rows())

    def add_winner(index: int) -> bool:
        try:
            gateway.insert(DAILY_WINNERS, _winner(f"w{index}", "u2", date(2024, 6, 20)))
        except ConstraintViolation:
            return False
        return True

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(add_winner, range(8)))

    assert outcomes.count(True) == 1
    assert gateway.count(DAILY_WINNERS, [eq("draw_date", date(2024, 6, 20))]) == 1


def test_nested_calls_inside_a_transaction_do_not_deadlock(gateway) -> None:
    with gateway.transaction() as tx:
        tx.insert(DAILY_WINNERS, _winner("inner", "u2", date(2024, 6, 21)))
        assert tx.get(DAILY_WINNERS, "inner")["user_id"] == "u2"

    assert gateway.count(DAILY_WINNERS) == 3
