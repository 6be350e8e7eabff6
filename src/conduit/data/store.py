"""Synchronous SQLite backing store.

Table-level operations for the dispatcher: insert, bulk insert, query,
update, delete. Values and selection arguments are always bound as
parameters; table and column names are validated and quoted.

Connection URL format::

    sqlite:///path/to/tasks.db     # SQLite file
    sqlite:///:memory:             # In-memory SQLite

Thread safety:
    - One connection opened with ``check_same_thread=False``
    - Every statement runs under the store's ``threading.RLock``, so
      conflicting writes from different threads are serialized here and
      not by the dispatcher
"""

from __future__ import annotations

import logging
import re
import sqlite3
import sys
import threading
import time
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from conduit.data.errors import DataError, QueryError

logger = logging.getLogger("conduit.data")

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_ORDER_TERM = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)(?:\s+(ASC|DESC))?\s*", re.IGNORECASE)


@runtime_checkable
class BackingStore(Protocol):
    """What the dispatcher needs from a store.

    ``insert`` and ``bulk_insert`` report failure with a non-positive
    result instead of raising, so the caller decides how to surface it.
    """

    def insert(self, table: str, values: Mapping[str, Any]) -> int: ...

    def bulk_insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int: ...

    def query(
        self,
        table: str,
        columns: Sequence[str] | None = None,
        where: str | None = None,
        args: Sequence[Any] = (),
        order_by: str | None = None,
    ) -> list[dict[str, Any]]: ...

    def update(
        self, table: str, values: Mapping[str, Any], where: str | None = None, args: Sequence[Any] = ()
    ) -> int: ...

    def delete(self, table: str, where: str | None = None, args: Sequence[Any] = ()) -> int: ...

    def close(self) -> None: ...


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Database connection configuration."""

    url: str
    echo: bool = False


def quote_identifier(name: str) -> str:
    """Quote a table or column name, rejecting anything but plain identifiers."""
    if not _IDENTIFIER.fullmatch(name):
        msg = f"Invalid SQL identifier: {name!r}"
        raise QueryError(msg)
    return f'"{name}"'


def order_clause(order_by: str) -> str:
    """Validate ``"col [ASC|DESC], ..."`` and return it with quoted columns."""
    terms: list[str] = []
    for raw in order_by.split(","):
        m = _ORDER_TERM.fullmatch(raw)
        if m is None:
            msg = f"Invalid sort order: {order_by!r}"
            raise QueryError(msg)
        column, direction = m.groups()
        terms.append(f'"{column}" {direction.upper()}' if direction else f'"{column}"')
    return ", ".join(terms)


def _parse_sqlite_path(url: str) -> str:
    """Extract the file path from a sqlite:// URL."""
    # sqlite:///path/to/db  ->  path/to/db
    # sqlite:///:memory:    ->  :memory:
    prefix = "sqlite:///"
    if url.startswith(prefix):
        return url[len(prefix) :]
    prefix_short = "sqlite://"
    if url.startswith(prefix_short):
        return url[len(prefix_short) :]
    msg = f"Invalid SQLite URL: {url!r}"
    raise DataError(msg)


def _detect_driver(url: str) -> str:
    if url.startswith("sqlite"):
        return "sqlite"
    msg = f"Unsupported database URL scheme: {url!r}. Supported: sqlite:///path"
    raise DataError(msg)


class SQLiteStore:
    """SQLite implementation of ``BackingStore``.

    Usage::

        store = SQLiteStore("sqlite:///tasks.db")
        store.connect()
        key = store.insert("tasks", {"description": "Buy milk", "priority": 1})
        rows = store.query("tasks", where="priority > ?", args=(0,))
        store.close()
    """

    __slots__ = ("_config", "_conn", "_lock")

    def __init__(self, url: str, /, *, echo: bool = False) -> None:
        _detect_driver(url)
        self._config = DatabaseConfig(url=url, echo=echo)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def connected(self) -> bool:
        return self._conn is not None

    # -- Lifecycle --

    def connect(self) -> None:
        """Open the connection. Calling it twice is a no-op."""
        with self._lock:
            if self._conn is not None:
                return
            path = _parse_sqlite_path(self._config.url)
            try:
                conn = sqlite3.connect(path, autocommit=True, check_same_thread=False)
            except sqlite3.Error as exc:
                msg = f"Cannot open database {self._config.url!r}: {exc}"
                raise DataError(msg) from exc
            conn.row_factory = sqlite3.Row
            # WAL for concurrent readers; not available for :memory:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            self._conn = conn
            logger.debug("Opened %s", self._config.url)

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logger.debug("Closed %s", self._config.url)

    def __enter__(self) -> SQLiteStore:
        self.connect()
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            msg = f"Store is not connected: {self._config.url}"
            raise DataError(msg)
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run several statements atomically.

        Commits on clean exit, rolls back on exception. Holds the store
        lock for the whole block.
        """
        with self._lock:
            conn = self._connection()
            conn.autocommit = False
            try:
                yield conn
                conn.commit()
            except BaseException:
                conn.rollback()
                raise
            finally:
                conn.autocommit = True

    # -- Echo / query logging --

    def _log_query(self, sql: str, params: Sequence[Any], elapsed: float) -> None:
        """Log a statement to stderr when echo is enabled."""
        if not self._config.echo:
            return
        ms = elapsed * 1000
        param_str = f"  params={params!r}" if params else ""
        print(f"[conduit.data] {ms:6.1f}ms  {sql}{param_str}", file=sys.stderr)

    def _run(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        t0 = time.perf_counter()
        try:
            with self._lock:
                return self._connection().execute(sql, tuple(params))
        finally:
            self._log_query(sql, params, time.perf_counter() - t0)

    # -- Raw access --

    def execute_script(self, sql: str, /) -> None:
        """Execute several SQL statements at once (schema setup)."""
        t0 = time.perf_counter()
        try:
            with self._lock:
                self._connection().executescript(sql)
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc
        finally:
            self._log_query(sql, (), time.perf_counter() - t0)

    def fetch_val(self, sql: str, /, *params: Any) -> Any:
        """Return the first column of the first row, or ``None``."""
        try:
            with self._lock:
                row = self._run(sql, params).fetchone()
        except (sqlite3.Error, OverflowError) as exc:
            raise QueryError(str(exc)) from exc
        return None if row is None else row[0]

    # -- Table operations --

    def _insert_sql(self, table: str, values: Mapping[str, Any]) -> tuple[str, tuple[Any, ...]]:
        if not values:
            return f"INSERT INTO {quote_identifier(table)} DEFAULT VALUES", ()
        columns = ", ".join(quote_identifier(c) for c in values)
        placeholders = ", ".join("?" for _ in values)
        sql = f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES ({placeholders})"
        return sql, tuple(values.values())

    def insert(self, table: str, values: Mapping[str, Any]) -> int:
        """Insert one row and return its rowid, or ``-1`` if nothing was written.

        Constraint violations, unknown columns, integers too large for
        SQLite and other statement errors are logged and reported as ``-1``.
        """
        try:
            sql, params = self._insert_sql(table, values)
            cursor = self._run(sql, params)
        except (sqlite3.Error, OverflowError, QueryError) as exc:
            logger.warning("Error inserting %r into %s: %s", dict(values), table, exc)
            return -1
        return cursor.lastrowid or -1

    def bulk_insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """Insert all *rows* in one transaction.

        Returns the number of rows inserted, or ``-1`` after rolling back if
        any row fails.
        """
        try:
            with self.transaction() as conn:
                for values in rows:
                    sql, params = self._insert_sql(table, values)
                    t0 = time.perf_counter()
                    conn.execute(sql, params)
                    self._log_query(sql, params, time.perf_counter() - t0)
        except (sqlite3.Error, OverflowError, QueryError) as exc:
            logger.warning("Error bulk inserting %d rows into %s: %s", len(rows), table, exc)
            return -1
        return len(rows)

    def query(
        self,
        table: str,
        columns: Sequence[str] | None = None,
        where: str | None = None,
        args: Sequence[Any] = (),
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        """Select rows from *table* as dicts."""
        projection = ", ".join(quote_identifier(c) for c in columns) if columns else "*"
        sql = f"SELECT {projection} FROM {quote_identifier(table)}"
        if where:
            sql += f" WHERE {where}"
        if order_by:
            sql += f" ORDER BY {order_clause(order_by)}"
        try:
            with self._lock:
                cursor = self._run(sql, args)
                return [dict(row) for row in cursor.fetchall()]
        except (sqlite3.Error, OverflowError) as exc:
            raise QueryError(str(exc)) from exc

    def update(
        self, table: str, values: Mapping[str, Any], where: str | None = None, args: Sequence[Any] = ()
    ) -> int:
        """Update matching rows and return how many changed."""
        if not values:
            msg = f"Empty values for update of {table}"
            raise QueryError(msg)
        assignments = ", ".join(f"{quote_identifier(c)} = ?" for c in values)
        sql = f"UPDATE {quote_identifier(table)} SET {assignments}"
        if where:
            sql += f" WHERE {where}"
        try:
            return self._run(sql, (*values.values(), *args)).rowcount
        except (sqlite3.Error, OverflowError) as exc:
            raise QueryError(str(exc)) from exc

    def delete(self, table: str, where: str | None = None, args: Sequence[Any] = ()) -> int:
        """Delete matching rows and return how many were removed."""
        sql = f"DELETE FROM {quote_identifier(table)}"
        if where:
            sql += f" WHERE {where}"
        try:
            return self._run(sql, args).rowcount
        except (sqlite3.Error, OverflowError) as exc:
            raise QueryError(str(exc)) from exc
