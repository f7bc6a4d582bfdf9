"""
Order store adapter backed by SQLAlchemy.

The store speaks plain row mappings and filter expressions from
``relayer.storage.filters``; decoding rows into the public shapes is left to
the services so a malformed row fails loudly where it is used.
"""

import logging
import os
import threading
from contextlib import nullcontext
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence

from sqlalchemy import and_, create_engine, delete, false, func, insert, or_, select, true, update
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.elements import ColumnElement

from . import filters as f
from .models import Base

logger = logging.getLogger(__name__)

# Bound parameter ceiling of older SQLite builds, the lowest a deployment may have
MAX_BOUND_PARAMETERS = 999


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith(":memory:") or url in ("sqlite://", "sqlite:///"))


def create_store_engine(url: str) -> Engine:
    """
    Create an engine for the given database URL.

    SQLite connections are shared across the service's worker threads, an
    in-memory database additionally needs a single static connection.
    """
    kwargs: Dict[str, Any] = {}
    if url.startswith("sqlite"):
        database = make_url(url).database
        if database and database != ":memory:":
            parent = os.path.dirname(database)
            if parent and not os.path.exists(parent):
                os.makedirs(parent)
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def _column_value(value: Any) -> Any:
    # Enum members are stored by value
    return getattr(value, "value", value)


def compile_filter(node: f.Filter, table) -> ColumnElement:
    """
    Compile a filter expression into a SQLAlchemy clause for ``table``.

    Raises:
        KeyError: If the filter names a column the table does not have
    """
    if isinstance(node, f.Eq):
        return table.c[node.field] == _column_value(node.value)
    if isinstance(node, f.In):
        return table.c[node.field].in_([_column_value(v) for v in node.values])
    if isinstance(node, f.Gte):
        return table.c[node.field] >= _column_value(node.value)
    if isinstance(node, f.And):
        if not node.clauses:
            return true()
        return and_(*(compile_filter(clause, table) for clause in node.clauses))
    if isinstance(node, f.Or):
        if not node.clauses:
            return false()
        return or_(*(compile_filter(clause, table) for clause in node.clauses))
    raise TypeError(f"Unsupported filter node: {node!r}")


class OrderStore:
    """
    Row-level access to the relayer tables.

    Every method takes the mapped entity class naming the table to use and
    runs in its own connection, so calls from different threads do not
    share transactions.
    """

    def __init__(self, engine: Engine):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine for the relayer database
        """
        self.engine = engine
        # One shared in-memory connection must not be used concurrently
        self._lock = threading.RLock() if _is_memory_sqlite(str(engine.url)) else None
        logger.info(f"Order store initialized on {engine.url.render_as_string(hide_password=True)}")

    @classmethod
    def from_url(cls, url: str, create_schema: bool = True) -> 'OrderStore':
        store = cls(create_store_engine(url))
        if create_schema:
            store.create_schema()
        return store

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def _guard(self):
        return self._lock if self._lock is not None else nullcontext()

    @staticmethod
    def columns(entity) -> FrozenSet[str]:
        """Names of the columns of an entity's table."""
        return frozenset(entity.__table__.c.keys())

    @staticmethod
    def _primary_key(table):
        return list(table.primary_key.columns)[0]

    @staticmethod
    def rows_per_chunk(entity, chunk_size: int) -> int:
        """Largest chunk not above ``chunk_size`` whose insert fits the bound parameter limit."""
        return max(1, min(chunk_size, MAX_BOUND_PARAMETERS // len(entity.__table__.c)))

    def find(
        self,
        entity,
        where: Optional[f.Filter] = None,
        order_by_key: bool = False,
        skip: Optional[int] = None,
        take: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch rows matching a filter.

        Args:
            entity: Mapped entity class
            where: Filter expression, all rows when omitted
            order_by_key: Order ascending by primary key
            skip: Rows to skip
            take: Maximum rows to return

        Returns:
            List of row mappings
        """
        table = entity.__table__
        stmt = select(table)
        if where is not None:
            stmt = stmt.where(compile_filter(where, table))
        if order_by_key:
            stmt = stmt.order_by(self._primary_key(table).asc())
        if skip:
            stmt = stmt.offset(skip)
        if take is not None:
            stmt = stmt.limit(take)

        with self._guard(), self.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(stmt)]

    def count(self, entity, where: Optional[f.Filter] = None) -> int:
        table = entity.__table__
        stmt = select(func.count()).select_from(table)
        if where is not None:
            stmt = stmt.where(compile_filter(where, table))
        with self._guard(), self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one()

    def find_one(self, entity, key: str) -> Optional[Dict[str, Any]]:
        """Fetch a single row by primary key, or None."""
        table = entity.__table__
        stmt = select(table).where(self._primary_key(table) == key)
        with self._guard(), self.engine.connect() as conn:
            row = conn.execute(stmt).first()
        return dict(row._mapping) if row is not None else None

    def insert(self, entity, record: Dict[str, Any]) -> None:
        """
        Insert a single row.

        Raises:
            sqlalchemy.exc.IntegrityError: If a row with the same key exists
        """
        with self._guard(), self.engine.begin() as conn:
            conn.execute(insert(entity.__table__), [record])

    def save(self, entity, records: Sequence[Dict[str, Any]], chunk_size: int) -> int:
        """
        Upsert rows in chunks.

        Each chunk commits on its own; when a later chunk fails the earlier
        ones stay written. Chunks are capped so a multi-row insert stays
        within MAX_BOUND_PARAMETERS.

        Returns:
            Number of rows written
        """
        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive: {chunk_size}")

        chunk_size = self.rows_per_chunk(entity, chunk_size)
        table = entity.__table__
        key = self._primary_key(table)
        written = 0
        for start in range(0, len(records), chunk_size):
            chunk = list(records[start:start + chunk_size])
            keys = [record[key.name] for record in chunk]
            with self._guard(), self.engine.begin() as conn:
                conn.execute(delete(table).where(key.in_(keys)))
                conn.execute(insert(table), chunk)
            written += len(chunk)
            logger.debug(f"Saved chunk of {len(chunk)} rows into {table.name}")
        return written

    def update(self, entity, key: str, values: Dict[str, Any]) -> bool:
        """Update columns of one row. Returns False when the row does not exist."""
        table = entity.__table__
        stmt = update(table).where(self._primary_key(table) == key).values(**values)
        with self._guard(), self.engine.begin() as conn:
            return conn.execute(stmt).rowcount > 0

    def delete(self, entity, keys: Iterable[str]) -> int:
        table = entity.__table__
        keys = list(keys)
        if not keys:
            return 0
        stmt = delete(table).where(self._primary_key(table).in_(keys))
        with self._guard(), self.engine.begin() as conn:
            return conn.execute(stmt).rowcount
