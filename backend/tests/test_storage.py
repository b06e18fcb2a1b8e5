import json

import pytest

from kami.storage import FileStore, MemoryStore, StorageError, create_store


RECORDS = [
    {"id": "1", "username": "alice", "tags": ["a", "b"], "balance": 10},
    {"id": "2", "username": "bob", "tags": [], "balance": None},
]


def test_backends_return_identical_reads(tmp_path) -> None:
    memory = MemoryStore()
    disk = FileStore(tmp_path)
    for backend in (memory, disk):
        backend.put("users", RECORDS)

    assert memory.get("users") == disk.get("users") == RECORDS
    assert memory.get("gods") == disk.get("gods") == []


def test_memory_store_hands_out_copies() -> None:
    store = MemoryStore()
    store.put("users", RECORDS)

    snapshot = store.get("users")
    snapshot[0]["username"] = "mallory"
    snapshot.append({"id": "3"})

    assert store.get("users") == RECORDS


def test_file_store_survives_reload(tmp_path) -> None:
    FileStore(tmp_path).put("messages", [{"id": "msg_1", "message": "hello"}])

    reloaded = FileStore(tmp_path)
    assert reloaded.get("messages") == [{"id": "msg_1", "message": "hello"}]
    assert json.loads((tmp_path / "messages.json").read_text(encoding="utf-8"))[0]["id"] == "msg_1"


def test_corrupt_file_reads_as_empty(tmp_path) -> None:
    store = FileStore(tmp_path)
    store.get("gods")
    (tmp_path / "gods.json").write_text("{not json", encoding="utf-8")

    assert store.get("gods") == []


@pytest.mark.parametrize("content", ['{"id": "god_1"}', '"gods"', "42", '[{"id": "god_1"}, "stray"]'])
def test_non_list_file_reads_as_empty(tmp_path, content: str) -> None:
    store = FileStore(tmp_path)
    store.get("gods")
    (tmp_path / "gods.json").write_text(content, encoding="utf-8")

    assert store.get("gods") == []


def test_unknown_collection_is_rejected() -> None:
    with pytest.raises(StorageError):
        MemoryStore().get("payments")
    with pytest.raises(StorageError):
        MemoryStore().put("payments", [])


def test_create_store_selects_backend(tmp_path) -> None:
    assert isinstance(create_store("memory"), MemoryStore)
    file_store = create_store("file", tmp_path)
    assert isinstance(file_store, FileStore)
    assert file_store.data_dir == tmp_path
    with pytest.raises(StorageError):
        create_store("postgres")


def test_transaction_is_reentrant() -> None:
    store = MemoryStore()
    with store.transaction():
        with store.transaction():
            store.put("users", RECORDS)
    assert len(store.get("users")) == 2
