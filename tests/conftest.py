"""Shared fixtures: an in-memory store stand-in and a recording observer."""

import threading
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from conduit.contract import TASK_CONTRACT
from conduit.notify import Change, ChangeNotifier

TASKS_URI = TASK_CONTRACT.content_uri("tasks")


class FakeStore:
    """Records every call; ``insert`` returns ``next_key``."""

    def __init__(self, next_key: int = 1) -> None:
        self.next_key = next_key
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.rowcount = 1
        self.rows: list[dict[str, Any]] = []
        self.closed = False

    def insert(self, table: str, values: Mapping[str, Any]) -> int:
        self.calls.append(("insert", (table, dict(values))))
        return self.next_key

    def bulk_insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        self.calls.append(("bulk_insert", (table, list(rows))))
        return len(rows) if self.next_key > 0 else -1

    def query(self, table, columns=None, where=None, args=(), order_by=None):
        self.calls.append(("query", (table, columns, where, tuple(args), order_by)))
        return list(self.rows)

    def update(self, table, values, where=None, args=()):
        self.calls.append(("update", (table, dict(values), where, tuple(args))))
        return self.rowcount

    def delete(self, table, where=None, args=()):
        self.calls.append(("delete", (table, where, tuple(args))))
        return self.rowcount

    def close(self) -> None:
        self.closed = True


class Recorder:
    """Observer callback that remembers every change it saw."""

    def __init__(self) -> None:
        self.changes: list[Change] = []
        self._lock = threading.Lock()

    def __call__(self, change: Change) -> None:
        with self._lock:
            self.changes.append(change)

    @property
    def uris(self) -> list[str]:
        return [str(c.uri) for c in self.changes]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def notifier():
    notifier = ChangeNotifier()
    yield notifier
    notifier.close()


@pytest.fixture
def recorder(notifier: ChangeNotifier) -> Recorder:
    recorder = Recorder()
    notifier.register(TASKS_URI, recorder)
    return recorder
