"""Tests for key-value storage and thread serialization."""

import json

import pytest

from meowchat.core import ConversationThread, Message
from meowchat.errors import StorageError
from meowchat.serialization import (
    thread_from_dict,
    thread_to_dict,
    threads_from_json,
    threads_to_json,
)
from meowchat.storage import KeyValueStorage


class TestKeyValueStorage:
    def test_missing_file_reads_empty(self, tmp_path):
        storage = KeyValueStorage(tmp_path / "none.json")
        assert storage.get("anything") is None
        assert storage.keys() == []

    def test_set_is_visible_to_new_instance(self, tmp_path):
        path = tmp_path / "nested" / "storage.json"
        KeyValueStorage(path).set("k", "v")
        assert KeyValueStorage(path).get("k") == "v"

    def test_remove(self, storage):
        storage.set("a", "1")
        storage.set("b", "2")
        storage.remove("a")
        storage.remove("never-set")
        assert storage.keys() == ["b"]

    def test_no_temp_files_left_behind(self, tmp_path):
        storage = KeyValueStorage(tmp_path / "storage.json")
        storage.set("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["storage.json"]

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(StorageError):
            KeyValueStorage(path).get("k")

    def test_non_object_file_raises(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(StorageError):
            KeyValueStorage(path).get("k")


@pytest.fixture
def sample_thread():
    return ConversationThread(
        id="1736935200000",
        name="Cat pictures",
        messages=[
            Message(role="user", content="Draw a cat"),
            Message(role="assistant", content="Here you go", image="data:image/png;base64,iVBORw0KGgo="),
        ],
        created_at=1736935200000,
        updated_at=1736935260000,
    )


class TestSerialization:
    def test_uses_stored_key_names(self, sample_thread):
        data = thread_to_dict(sample_thread)
        assert data["createdAt"] == 1736935200000
        assert data["updatedAt"] == 1736935260000
        assert "image" not in data["messages"][0]
        assert data["messages"][1]["image"].startswith("data:image/png")

    def test_round_trip(self, sample_thread):
        assert threads_from_json(threads_to_json([sample_thread])) == [sample_thread]

    def test_non_ascii_preserved(self):
        thread = ConversationThread(id="x", name="新对话", created_at=1, updated_at=1)
        text = threads_to_json([thread])
        assert "新对话" in text
        assert threads_from_json(text)[0].name == "新对话"

    def test_missing_fields_get_defaults(self):
        thread = thread_from_dict({"id": 42, "createdAt": 5})
        assert thread.id == "42"
        assert thread.name == "New conversation"
        assert thread.messages == []
        assert thread.updated_at == 5

    def test_duplicate_ids_dropped(self, sample_thread):
        raw = json.dumps([thread_to_dict(sample_thread), {**thread_to_dict(sample_thread), "name": "dup"}])
        threads = threads_from_json(raw)
        assert len(threads) == 1
        assert threads[0].name == "Cat pictures"
