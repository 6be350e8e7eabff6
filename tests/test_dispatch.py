"""Tests for conduit.dispatch — classify, execute, notify."""

import pytest

from conduit.contract import TASK_CONTRACT, Task
from conduit.dispatch import Dispatcher
from conduit.errors import UnrecognizedIdentifier, WriteFailed
from conduit.notify import ChangeNotifier
from conduit.routing import MatchCode, build_uri_matcher
from conduit.uri import ResourceUri

from conftest import TASKS_URI, FakeStore, Recorder

AUTH = TASK_CONTRACT.authority
VALUES = {"description": "Buy milk", "priority": 1}


@pytest.fixture
def dispatcher(store: FakeStore, notifier: ChangeNotifier) -> Dispatcher:
    return Dispatcher(TASK_CONTRACT, build_uri_matcher(TASK_CONTRACT), store, notifier)


class TestInsert:
    def test_returns_item_identifier(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        store.next_key = 7
        new_uri = dispatcher.insert(f"{AUTH}/tasks", VALUES)

        assert new_uri == ResourceUri.parse(f"{AUTH}/tasks/7")
        assert str(new_uri) == f"content://{AUTH}/tasks/7"
        assert dispatcher.classify(new_uri) == MatchCode.ITEM

    def test_calls_store_with_table_and_values(
        self, dispatcher: Dispatcher, store: FakeStore
    ) -> None:
        dispatcher.insert(f"{AUTH}/tasks", VALUES)
        assert store.calls == [("insert", ("tasks", VALUES))]

    def test_notifies_once_on_collection(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        store.next_key = 7
        dispatcher.insert(f"{AUTH}/tasks", VALUES)
        assert notifier.flush(timeout=5)

        assert recorder.uris == [f"{AUTH}/tasks"]
        assert recorder.changes[0].operation == "insert"

    def test_does_not_mutate_caller_values(self, dispatcher: Dispatcher) -> None:
        values = dict(VALUES)
        dispatcher.insert(f"{AUTH}/tasks", values)
        assert values == VALUES

    @pytest.mark.parametrize("key", [-1, 0])
    def test_non_positive_key_raises_write_failed(
        self,
        dispatcher: Dispatcher,
        store: FakeStore,
        notifier: ChangeNotifier,
        recorder: Recorder,
        key: int,
    ) -> None:
        store.next_key = key
        with pytest.raises(WriteFailed) as exc_info:
            dispatcher.insert(f"{AUTH}/tasks", VALUES)
        assert notifier.flush(timeout=5)

        assert exc_info.value.uri == f"{AUTH}/tasks"
        assert recorder.changes == []

    def test_item_identifier_rejected_without_store_call(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        with pytest.raises(UnrecognizedIdentifier):
            dispatcher.insert(f"{AUTH}/tasks/3", VALUES)
        assert notifier.flush(timeout=5)

        assert store.calls == []
        assert recorder.changes == []

    def test_unknown_identifier_rejected_without_store_call(
        self, dispatcher: Dispatcher, store: FakeStore
    ) -> None:
        with pytest.raises(UnrecognizedIdentifier, match="unknown"):
            dispatcher.insert(f"{AUTH}/unknown", VALUES)
        assert store.calls == []

    def test_malformed_identifier_rejected(self, dispatcher: Dispatcher, store: FakeStore) -> None:
        with pytest.raises(UnrecognizedIdentifier):
            dispatcher.insert("", VALUES)
        assert store.calls == []


class TestBulkInsert:
    def test_inserts_all_rows_and_notifies_once(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        count = dispatcher.bulk_insert(TASKS_URI, [VALUES, VALUES, VALUES])
        assert notifier.flush(timeout=5)

        assert count == 3
        assert len(recorder.changes) == 1

    def test_empty_batch_is_noop(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        assert dispatcher.bulk_insert(TASKS_URI, []) == 0
        assert notifier.flush(timeout=5)
        assert store.calls == []
        assert recorder.changes == []

    def test_failure_raises_write_failed(self, dispatcher: Dispatcher, store: FakeStore) -> None:
        store.next_key = -1
        with pytest.raises(WriteFailed):
            dispatcher.bulk_insert(TASKS_URI, [VALUES])

    def test_item_identifier_rejected(self, dispatcher: Dispatcher, store: FakeStore) -> None:
        with pytest.raises(UnrecognizedIdentifier):
            dispatcher.bulk_insert(f"{AUTH}/tasks/1", [VALUES])
        assert store.calls == []


class TestQuery:
    def test_collection_passes_selection_through(
        self, dispatcher: Dispatcher, store: FakeStore
    ) -> None:
        dispatcher.query(TASKS_URI, ["description"], "priority > ?", [1], "priority DESC")
        assert store.calls == [
            ("query", ("tasks", ["description"], "priority > ?", (1,), "priority DESC"))
        ]

    def test_item_is_scoped_to_key(self, dispatcher: Dispatcher, store: FakeStore) -> None:
        dispatcher.query(f"{AUTH}/tasks/9")
        assert store.calls == [("query", ("tasks", None, '"_id" = ?', (9,), None))]

    def test_item_combines_with_selection(self, dispatcher: Dispatcher, store: FakeStore) -> None:
        dispatcher.query(f"{AUTH}/tasks/9", selection="priority = ?", selection_args=[2])
        assert store.calls == [
            ("query", ("tasks", None, '"_id" = ? AND (priority = ?)', (9, 2), None))
        ]

    def test_maps_rows(self, dispatcher: Dispatcher, store: FakeStore) -> None:
        store.rows = [{"_id": 1, "description": "a", "priority": "3"}]
        assert dispatcher.query(TASKS_URI, as_type=Task) == [Task(_id=1, description="a", priority=3)]

    def test_does_not_notify(
        self, dispatcher: Dispatcher, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        dispatcher.query(TASKS_URI)
        assert notifier.flush(timeout=5)
        assert recorder.changes == []

    def test_unknown_identifier(self, dispatcher: Dispatcher) -> None:
        with pytest.raises(UnrecognizedIdentifier):
            dispatcher.query(f"{AUTH}/nope")


class TestUpdateDelete:
    def test_update_item_notifies_item(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        assert dispatcher.update(f"{AUTH}/tasks/4", {"priority": 2}) == 1
        assert notifier.flush(timeout=5)

        assert store.calls == [("update", ("tasks", {"priority": 2}, '"_id" = ?', (4,)))]
        assert recorder.uris == [f"{AUTH}/tasks/4"]
        assert recorder.changes[0].operation == "update"

    def test_update_without_changes_does_not_notify(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        store.rowcount = 0
        assert dispatcher.update(TASKS_URI, {"priority": 2}) == 0
        assert notifier.flush(timeout=5)
        assert recorder.changes == []

    def test_delete_collection(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        store.rowcount = 3
        assert dispatcher.delete(TASKS_URI, "priority < ?", [2]) == 3
        assert notifier.flush(timeout=5)

        assert store.calls == [("delete", ("tasks", "priority < ?", (2,)))]
        assert recorder.changes[0].operation == "delete"

    def test_delete_nothing_does_not_notify(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        store.rowcount = 0
        assert dispatcher.delete(f"{AUTH}/tasks/99") == 0
        assert notifier.flush(timeout=5)
        assert recorder.changes == []

    def test_unknown_identifier(self, dispatcher: Dispatcher, store: FakeStore) -> None:
        with pytest.raises(UnrecognizedIdentifier):
            dispatcher.delete(f"{AUTH}/tasks/abc")
        assert store.calls == []


class TestGetType:
    def test_collection(self, dispatcher: Dispatcher) -> None:
        assert dispatcher.get_type(TASKS_URI) == f"vnd.android.cursor.dir/vnd.{AUTH}.tasks"

    def test_item(self, dispatcher: Dispatcher) -> None:
        assert dispatcher.get_type(f"{AUTH}/tasks/1") == f"vnd.android.cursor.item/vnd.{AUTH}.tasks"

    def test_unknown(self, dispatcher: Dispatcher) -> None:
        with pytest.raises(UnrecognizedIdentifier):
            dispatcher.get_type(f"{AUTH}/projects")


class TestObserverIsolation:
    def test_failing_observer_does_not_affect_result(
        self, dispatcher: Dispatcher, store: FakeStore, notifier: ChangeNotifier, recorder: Recorder
    ) -> None:
        def boom(change) -> None:
            raise RuntimeError("observer failed")

        notifier.register(TASKS_URI, boom)
        store.next_key = 5

        assert dispatcher.insert(TASKS_URI, VALUES) == ResourceUri.parse(f"{AUTH}/tasks/5")
        assert notifier.flush(timeout=5)
        assert len(recorder.changes) == 1
