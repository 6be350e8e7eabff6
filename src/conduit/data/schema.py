"""Schema creation for a contract's collections.

Creates one table per collection with an autoincrementing key column and
records the contract version in ``PRAGMA user_version``. Existing tables
are left alone; a version mismatch is logged, not migrated.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from conduit.data.store import SQLiteStore, quote_identifier

if TYPE_CHECKING:
    from conduit.contract import Collection, Contract

logger = logging.getLogger("conduit.data")


def create_table_sql(collection: Collection) -> str:
    """Return the ``CREATE TABLE IF NOT EXISTS`` statement for *collection*."""
    columns = [f"{quote_identifier(collection.key_column)} INTEGER PRIMARY KEY AUTOINCREMENT"]
    columns.extend(f"{quote_identifier(c.name)} {c.sql_type}" for c in collection.columns)
    body = ",\n    ".join(columns)
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(collection.table)} (\n    {body}\n)"


def create_schema(store: SQLiteStore, contract: Contract) -> int:
    """Create every table *contract* needs and return the schema version."""
    current = store.fetch_val("PRAGMA user_version") or 0
    if current and current != contract.version:
        logger.warning(
            "Schema version %d of %s does not match contract version %d; tables are not migrated",
            current,
            store.url,
            contract.version,
        )
    tables: dict[str, Collection] = {}
    for collection in contract.collections:
        tables.setdefault(collection.table, collection)
    script = ";\n".join(create_table_sql(c) for c in tables.values())
    if script:
        store.execute_script(script + ";")
    if not current:
        store.execute_script(f"PRAGMA user_version = {int(contract.version)};")
        current = contract.version
    logger.debug("Schema ready for %s (version %d, %d tables)", contract.authority, current, len(tables))
    return current
