"""Provider contracts.

A contract names the authority a provider answers for and the collections
it exposes. Contracts are frozen: build one at import time and share it
between the provider and its callers::

    contract = Contract(
        authority="com.example.todolist",
        collections=(
            Collection(
                path="tasks",
                columns=(Column("description", "TEXT NOT NULL"),
                         Column("priority", "INTEGER NOT NULL")),
            ),
        ),
    )
    contract.content_uri("tasks")   # com.example.todolist/tasks
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from conduit.errors import ConfigurationError
from conduit.uri import SCHEME, ResourceUri

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

DIR_BASE_TYPE = "vnd.android.cursor.dir"
ITEM_BASE_TYPE = "vnd.android.cursor.item"


@dataclass(frozen=True, slots=True)
class Column:
    """A table column: name plus its SQL type and constraints."""

    name: str
    sql_type: str = "TEXT"


@dataclass(frozen=True, slots=True)
class Collection:
    """A collection of items backed by one table.

    ``table`` defaults to the last path segment, so ``tasks`` lives in the
    ``tasks`` table and ``archive/tasks`` in ``tasks`` as well unless told
    otherwise.
    """

    path: str
    columns: tuple[Column, ...] = ()
    table: str = ""
    key_column: str = "_id"

    def __post_init__(self) -> None:
        path = self.path.strip("/")
        if not path:
            msg = "Collection path must not be empty"
            raise ConfigurationError(msg)
        object.__setattr__(self, "path", path)
        if not self.table:
            object.__setattr__(self, "table", path.rsplit("/", 1)[-1])
        for name in (self.table, self.key_column, *(c.name for c in self.columns)):
            if not _IDENTIFIER.fullmatch(name):
                msg = f"Invalid SQL identifier {name!r} in collection {path!r}"
                raise ConfigurationError(msg)

    @property
    def column_names(self) -> tuple[str, ...]:
        return (self.key_column, *(c.name for c in self.columns))


@dataclass(frozen=True, slots=True)
class Contract:
    """The authority a provider answers for, and its collections."""

    authority: str
    collections: tuple[Collection, ...] = ()
    version: int = 1
    _by_path: dict[str, Collection] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.authority or "/" in self.authority:
            msg = f"Invalid authority {self.authority!r}"
            raise ConfigurationError(msg)
        for collection in self.collections:
            if collection.path in self._by_path:
                msg = f"Duplicate collection path {collection.path!r} in {self.authority}"
                raise ConfigurationError(msg)
            self._by_path[collection.path] = collection

    @property
    def base_uri(self) -> ResourceUri:
        return ResourceUri(authority=self.authority, scheme=SCHEME)

    def collection(self, path: str) -> Collection:
        """Return the collection registered at *path*.

        Raises ``KeyError`` if the contract has no such collection.
        """
        return self._by_path[path.strip("/")]

    def content_uri(self, path: str) -> ResourceUri:
        """Return the canonical identifier of the collection at *path*."""
        collection = self.collection(path)
        return ResourceUri(
            authority=self.authority,
            segments=tuple(collection.path.split("/")),
            scheme=SCHEME,
        )

    def dir_type(self, path: str) -> str:
        """MIME type of a whole collection."""
        return f"{DIR_BASE_TYPE}/vnd.{self.authority}.{self.collection(path).path.replace('/', '.')}"

    def item_type(self, path: str) -> str:
        """MIME type of a single item in a collection."""
        return f"{ITEM_BASE_TYPE}/vnd.{self.authority}.{self.collection(path).path.replace('/', '.')}"


@dataclass(frozen=True, slots=True)
class Task:
    """A row of the ``tasks`` collection."""

    _id: int
    description: str
    priority: int


TASKS = Collection(
    path="tasks",
    columns=(
        Column("description", "TEXT NOT NULL"),
        Column("priority", "INTEGER NOT NULL"),
    ),
)

TASK_CONTRACT = Contract(
    authority="com.example.android.todolist",
    collections=(TASKS,),
)
