import json
import threading

import pytest

from qaforge.storage.base import CHUNKS, QUESTIONS
from qaforge.storage.file_store import LocalJsonStore
from qaforge.storage.memory_store import InMemoryStore


def test_memory_store_crud():
    store = InMemoryStore()
    qid = store.create_record(QUESTIONS, {"project_id": "p1", "question": "Q?", "answered": False})

    record = store.get_record(QUESTIONS, qid)
    assert record["id"] == qid
    assert record["question"] == "Q?"
    assert "created_at" in record

    # Returned records are copies
    record["question"] = "tampered"
    assert store.get_record(QUESTIONS, qid)["question"] == "Q?"

    store.update_record(QUESTIONS, qid, {"answered": True, "id": "ignored"})
    assert store.get_record(QUESTIONS, qid)["answered"] is True
    assert store.get_record(QUESTIONS, qid)["id"] == qid

    with pytest.raises(KeyError):
        store.update_record(QUESTIONS, "missing", {"answered": True})
    assert store.get_record(QUESTIONS, "missing") is None
    assert store.get_record("unknown-kind", qid) is None


def test_memory_store_filters_and_delete():
    store = InMemoryStore()
    for i in range(4):
        store.create_record(CHUNKS, {"project_id": "p1" if i < 3 else "p2", "file_name": "a.md", "ordinal": i + 1})

    assert len(store.list_records(CHUNKS)) == 4
    assert len(store.list_records(CHUNKS, {"project_id": "p1"})) == 3
    assert store.list_records(CHUNKS, {"project_id": "p1", "ordinal": 2})[0]["ordinal"] == 2

    assert store.delete_records(CHUNKS, {"project_id": "p1"}) == 3
    assert [r["project_id"] for r in store.list_records(CHUNKS)] == ["p2"]
    assert store.delete_records(CHUNKS, {"project_id": "p1"}) == 0


def test_memory_store_concurrent_writes():
    store = InMemoryStore()

    def writer(n):
        for i in range(50):
            store.create_record(QUESTIONS, {"writer": n, "i": i})

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.list_records(QUESTIONS)) == 200


def test_local_json_store_persists(tmp_path):
    data_dir = tmp_path / "records"
    store = LocalJsonStore(str(data_dir))
    cid = store.create_record(CHUNKS, {"project_id": "p1", "content": "Ünïcode text"})
    store.create_record(CHUNKS, {"project_id": "p1", "content": "second"})
    store.update_record(CHUNKS, cid, {"size": 12})
    store.delete_records(CHUNKS, {"content": "second"})

    on_disk = json.loads((data_dir / "chunks.json").read_text(encoding="utf-8"))
    assert list(on_disk) == [cid]
    assert not (data_dir / "chunks.json.tmp").exists()

    reopened = LocalJsonStore(str(data_dir))
    record = reopened.get_record(CHUNKS, cid)
    assert record["content"] == "Ünïcode text"
    assert record["size"] == 12
    assert reopened.list_records(QUESTIONS) == []
