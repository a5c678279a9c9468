"""
In-memory gateway used by tests and local demos.

Rows are plain dicts kept per collection. The storage-level unique keys from
``schema.UNIQUE_KEYS`` are enforced on insert and update, and
``transaction()`` restores a snapshot when the block raises.

Every call holds one re-entrant lock, and a transaction keeps it until the
block exits, so other threads never interleave with (or get rolled back by)
an open transaction.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import ConstraintViolation, GatewayError
from .repository import DataGateway, Filter, Order, Row, new_id
from .schema import TABLES, UNIQUE_KEYS
from .windows import normalize_datetime, parse_timestamp


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_timestamp(value)
        if parsed is not None:
            value = parsed
    if isinstance(value, datetime):
        return normalize_datetime(value, timezone.utc)
    return value


class InMemoryGateway(DataGateway):
    def __init__(
        self,
        data: Optional[Mapping[str, Iterable[Mapping[str, Any]]]] = None,
        unique_keys: Optional[Mapping[str, Tuple[Tuple[str, ...], ...]]] = None,
    ):
        self.tables: Dict[str, List[Row]] = {name: [] for name in TABLES}
        self._lock = threading.RLock()
        self.unique_keys = dict(UNIQUE_KEYS if unique_keys is None else unique_keys)
        for collection, rows in (data or {}).items():
            for row in rows:
                self.insert(collection, row)

    def count(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        with self._lock:
            return sum(1 for _ in self._matching(collection, filters))

    def select(
        self,
        collection: str,
        fields: Optional[Sequence[str]] = None,
        filters: Sequence[Filter] = (),
        order: Optional[Order] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        with self._lock:
            rows = list(self._matching(collection, filters))
            if order is not None:
                present = [row for row in rows if row.get(order.field) is not None]
                missing = [row for row in rows if row.get(order.field) is None]
                present.sort(key=lambda row: _comparable(row[order.field]), reverse=order.descending)
                rows = present + missing
            if limit is not None:
                rows = rows[:limit]
            if fields:
                return [{name: row.get(name) for name in fields} for row in rows]
            return [dict(row) for row in rows]

    def insert(self, collection: str, values: Mapping[str, Any]) -> Row:
        with self._lock:
            table = self._table(collection)
            row = dict(values)
            row.setdefault("id", new_id())
            self._check_unique(collection, row, ignore=None)
            table.append(row)
            return dict(row)

    def update(self, collection: str, values: Mapping[str, Any], filters: Sequence[Filter]) -> int:
        if not filters:
            raise GatewayError(f"update {collection}", "refusing to write without a filter")
        with self._lock:
            targets = list(self._matching(collection, filters))
            for row in targets:
                candidate = {**row, **values}
                self._check_unique(collection, candidate, ignore=row)
            for row in targets:
                row.update(values)
            return len(targets)

    def delete(self, collection: str, filters: Sequence[Filter]) -> int:
        if not filters:
            raise GatewayError(f"delete {collection}", "refusing to write without a filter")
        with self._lock:
            table = self._table(collection)
            doomed = {id(row) for row in self._matching(collection, filters)}
            self.tables[collection] = [row for row in table if id(row) not in doomed]
            return len(doomed)

    @contextmanager
    def transaction(self) -> Iterator["InMemoryGateway"]:
        with self._lock:
            snapshot = copy.deepcopy(self.tables)
            try:
                yield self
            except Exception:
                self.tables = snapshot
                raise

    def _table(self, collection: str) -> List[Row]:
        try:
            return self.tables[collection]
        except KeyError:
            raise GatewayError(f"access {collection}", "unknown collection") from None

    def _matching(self, collection: str, filters: Sequence[Filter]) -> Iterator[Row]:
        for row in self._table(collection):
            if all(self._matches(row, item) for item in filters):
                yield row

    @staticmethod
    def _matches(row: Row, item: Filter) -> bool:
        if item.op == "eq":
            return _comparable(row.get(item.field)) == _comparable(item.value)
        if item.op == "gte":
            value = row.get(item.field)
            if value is None:
                return False
            return _comparable(value) >= _comparable(item.value)
        if item.op == "in":
            return row.get(item.field) in item.value
        if item.op == "search":
            term = str(item.value).lower()
            return any(term in str(row.get(name) or "").lower() for name in item.field)
        raise GatewayError(f"filter {item.field}", f"unsupported operator {item.op!r}")

    def _check_unique(self, collection: str, row: Row, ignore: Optional[Row]) -> None:
        existing = [other for other in self._table(collection) if other is not ignore]
        for other in existing:
            if other.get("id") == row.get("id"):
                raise ConstraintViolation(f"insert {collection}", f"duplicate id {row.get('id')!r}")
        for key in self.unique_keys.get(collection, ()):
            values = tuple(_unique_value(row.get(name)) for name in key)
            if any(value is None for value in values):
                continue
            for other in existing:
                if tuple(_unique_value(other.get(name)) for name in key) == values:
                    raise ConstraintViolation(
                        f"write {collection}",
                        f"unique key {', '.join(key)} already holds {values!r}",
                    )


def _unique_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            return value
    return value
