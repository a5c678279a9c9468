from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import create_engine, func, or_, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.schema import Column, Table

from .errors import ConstraintViolation, GatewayError
from .schema import TABLES, metadata
from .settings import DashboardSettings

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

PROFILES = "profiles"
MATCHES = "matches"
MESSAGES = "messages"
REPORTS = "reports"
DIAMOND_WITHDRAWALS = "diamond_withdrawals"
PREMIUM_SIGNUPS = "premium_signups"
DAILY_WINNERS = "daily_winners"


@dataclass(frozen=True)
class Filter:
    """
    One predicate of a gateway query.

    ``op`` is one of ``eq``, ``gte``, ``in`` or ``search``. ``search`` carries
    a tuple of field names and matches when any of them contains ``value``
    (case-insensitive).
    """

    op: str
    field: Union[str, Tuple[str, ...]]
    value: Any


@dataclass(frozen=True)
class Order:
    field: str
    descending: bool = False


def eq(field: str, value: Any) -> Filter:
    return Filter("eq", field, value)


def gte(field: str, value: Any) -> Filter:
    return Filter("gte", field, value)


def in_(field: str, values: Sequence[Any]) -> Filter:
    return Filter("in", field, tuple(values))


def search(fields: Sequence[str], term: str) -> Filter:
    return Filter("search", tuple(fields), term)


def since(field: str, boundary: Optional[datetime]) -> List[Filter]:
    """A ``gte`` filter, or no filter at all when the window is unbounded."""
    if boundary is None:
        return []
    return [gte(field, boundary)]


def new_id() -> str:
    return str(uuid.uuid4())


class DataGateway:
    """
    Data-access boundary for the dating app collections.

    Reads are independent and side-effect free; no consistency is promised
    across separate calls. ``transaction()`` groups writes so they apply
    together or not at all.
    """

    def count(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        raise NotImplementedError

    def select(
        self,
        collection: str,
        fields: Optional[Sequence[str]] = None,
        filters: Sequence[Filter] = (),
        order: Optional[Order] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        raise NotImplementedError

    def insert(self, collection: str, values: Mapping[str, Any]) -> Row:
        raise NotImplementedError

    def update(self, collection: str, values: Mapping[str, Any], filters: Sequence[Filter]) -> int:
        raise NotImplementedError

    def delete(self, collection: str, filters: Sequence[Filter]) -> int:
        raise NotImplementedError

    def transaction(self):
        raise NotImplementedError

    def get(self, collection: str, identifier: str, fields: Optional[Sequence[str]] = None) -> Optional[Row]:
        rows = self.select(collection, fields=fields, filters=[eq("id", identifier)], limit=1)
        return rows[0] if rows else None


def _to_utc(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


class SQLGateway(DataGateway):
    """
    Gateway over the tables declared in ``schema.py`` using SQLAlchemy Core.

    Each call runs in its own short transaction unless the gateway was handed
    out by ``transaction()``, in which case all calls share one connection.
    """

    def __init__(
        self,
        engine: Engine,
        tables: Optional[Mapping[str, Table]] = None,
        connection: Optional[Connection] = None,
    ):
        self.engine = engine
        self.tables = dict(tables or TABLES)
        self._connection = connection

    def count(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        table = self._table(collection)
        stmt = select(func.count()).select_from(table).where(*self._clauses(table, filters))
        return int(self._run(f"count {collection}", lambda conn: conn.execute(stmt).scalar_one()))

    def select(
        self,
        collection: str,
        fields: Optional[Sequence[str]] = None,
        filters: Sequence[Filter] = (),
        order: Optional[Order] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        table = self._table(collection)
        columns = [self._column(table, name) for name in fields] if fields else [table]
        stmt = select(*columns).where(*self._clauses(table, filters))
        if order is not None:
            column = self._column(table, order.field)
            stmt = stmt.order_by(column.desc() if order.descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        def _fetch(conn: Connection) -> List[Row]:
            return [dict(row._mapping) for row in conn.execute(stmt)]

        return self._run(f"select {collection}", _fetch)

    def insert(self, collection: str, values: Mapping[str, Any]) -> Row:
        table = self._table(collection)
        payload = {key: _to_utc(value) for key, value in values.items()}
        payload.setdefault("id", new_id())
        self._run(f"insert {collection}", lambda conn: conn.execute(table.insert().values(**payload)))
        return payload

    def update(self, collection: str, values: Mapping[str, Any], filters: Sequence[Filter]) -> int:
        table = self._table(collection)
        self._require_filters("update", collection, filters)
        payload = {key: _to_utc(value) for key, value in values.items()}
        stmt = table.update().where(*self._clauses(table, filters)).values(**payload)
        return self._run(f"update {collection}", lambda conn: conn.execute(stmt).rowcount)

    def delete(self, collection: str, filters: Sequence[Filter]) -> int:
        table = self._table(collection)
        self._require_filters("delete", collection, filters)
        stmt = table.delete().where(*self._clauses(table, filters))
        return self._run(f"delete {collection}", lambda conn: conn.execute(stmt).rowcount)

    @contextmanager
    def transaction(self) -> Iterator["SQLGateway"]:
        if self._connection is not None:
            yield self
            return
        try:
            with self.engine.begin() as connection:
                yield SQLGateway(self.engine, self.tables, connection=connection)
        except SQLAlchemyError as exc:
            raise GatewayError("transaction", str(exc)) from exc

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
            return
        with self.engine.begin() as connection:
            yield connection

    def _run(self, operation: str, action):
        try:
            with self._connect() as connection:
                return action(connection)
        except IntegrityError as exc:
            raise ConstraintViolation(operation, str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            raise GatewayError(operation, str(exc)) from exc

    def _table(self, collection: str) -> Table:
        try:
            return self.tables[collection]
        except KeyError:
            raise GatewayError(f"access {collection}", "unknown collection") from None

    @staticmethod
    def _column(table: Table, name: str) -> Column:
        try:
            return table.c[name]
        except KeyError:
            raise GatewayError(f"access {table.name}.{name}", "unknown field") from None

    def _clauses(self, table: Table, filters: Sequence[Filter]) -> List[ColumnElement]:
        clauses: List[ColumnElement] = []
        for item in filters:
            if item.op == "eq":
                column = self._column(table, item.field)
                clauses.append(column.is_(None) if item.value is None else column == _to_utc(item.value))
            elif item.op == "gte":
                clauses.append(self._column(table, item.field) >= _to_utc(item.value))
            elif item.op == "in":
                clauses.append(self._column(table, item.field).in_([_to_utc(value) for value in item.value]))
            elif item.op == "search":
                # Literal substring match: % and _ in the term are escaped.
                term = str(item.value)
                clauses.append(
                    or_(*(self._column(table, name).icontains(term, autoescape=True) for name in item.field))
                )
            else:
                raise GatewayError(f"filter {table.name}", f"unsupported operator {item.op!r}")
        return clauses

    @staticmethod
    def _require_filters(operation: str, collection: str, filters: Sequence[Filter]) -> None:
        if not filters:
            raise GatewayError(f"{operation} {collection}", "refusing to write without a filter")


def build_gateway(settings: DashboardSettings) -> Optional[DataGateway]:
    if not settings.database_url:
        return None
    engine = create_engine(settings.database_url, future=True)
    if settings.create_schema:
        metadata.create_all(engine, checkfirst=True)
    logger.info("Using SQL gateway on %s", engine.url.render_as_string(hide_password=True))
    return SQLGateway(engine)
