"""Tests for conduit.contract — collections, canonical identifiers, MIME types."""

import pytest

from conduit.contract import TASK_CONTRACT, TASKS, Collection, Column, Contract
from conduit.errors import ConfigurationError
from conduit.uri import ResourceUri

AUTH = "com.example.android.todolist"


class TestCollection:
    def test_table_defaults_to_last_segment(self) -> None:
        assert Collection(path="archive/tasks").table == "tasks"

    def test_path_is_normalized(self) -> None:
        assert Collection(path="/tasks/").path == "tasks"

    def test_explicit_table(self) -> None:
        assert Collection(path="tasks", table="todo_items").table == "todo_items"

    def test_column_names(self) -> None:
        assert TASKS.column_names == ("_id", "description", "priority")

    def test_empty_path(self) -> None:
        with pytest.raises(ConfigurationError, match="must not be empty"):
            Collection(path="/")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"path": "tasks", "table": "bad table"},
            {"path": "tasks", "key_column": "1d"},
            {"path": "tasks", "columns": (Column("drop;"),)},
            {"path": "my-tasks"},
        ],
    )
    def test_invalid_identifier(self, kwargs: dict) -> None:
        with pytest.raises(ConfigurationError, match="Invalid SQL identifier"):
            Collection(**kwargs)


class TestContract:
    def test_content_uri(self) -> None:
        uri = TASK_CONTRACT.content_uri("tasks")
        assert str(uri) == f"content://{AUTH}/tasks"
        assert uri == ResourceUri.parse(f"{AUTH}/tasks")

    def test_base_uri(self) -> None:
        assert str(TASK_CONTRACT.base_uri) == f"content://{AUTH}"

    def test_collection_lookup(self) -> None:
        assert TASK_CONTRACT.collection("/tasks") is TASKS

    def test_unknown_collection(self) -> None:
        with pytest.raises(KeyError):
            TASK_CONTRACT.collection("projects")

    def test_mime_types(self) -> None:
        assert TASK_CONTRACT.dir_type("tasks") == f"vnd.android.cursor.dir/vnd.{AUTH}.tasks"
        assert TASK_CONTRACT.item_type("tasks") == f"vnd.android.cursor.item/vnd.{AUTH}.tasks"

    def test_nested_mime_type(self) -> None:
        contract = Contract(authority="com.example", collections=(Collection(path="archive/tasks"),))
        assert contract.dir_type("archive/tasks") == "vnd.android.cursor.dir/vnd.com.example.archive.tasks"

    @pytest.mark.parametrize("authority", ["", "com.example/tasks"])
    def test_invalid_authority(self, authority: str) -> None:
        with pytest.raises(ConfigurationError, match="Invalid authority"):
            Contract(authority=authority)

    def test_duplicate_path(self) -> None:
        with pytest.raises(ConfigurationError, match="Duplicate collection path"):
            Contract(authority="com.example", collections=(Collection(path="a"), Collection(path="/a")))

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            TASK_CONTRACT.authority = "other"  # type: ignore[misc]
