"""Synchronous SQLite backing store for conduit providers.

Table in, dicts out. Not an ORM.

Basic usage::

    from conduit.data import SQLiteStore

    with SQLiteStore("sqlite:///tasks.db") as store:
        key = store.insert("tasks", {"description": "Buy milk", "priority": 1})
        rows = store.query("tasks", order_by="priority DESC")
"""

from conduit.data._mapping import map_rows
from conduit.data.errors import DataError, QueryError
from conduit.data.schema import create_schema, create_table_sql
from conduit.data.store import BackingStore, DatabaseConfig, SQLiteStore

__all__ = [
    "BackingStore",
    "DataError",
    "DatabaseConfig",
    "QueryError",
    "SQLiteStore",
    "create_schema",
    "create_table_sql",
    "map_rows",
]
