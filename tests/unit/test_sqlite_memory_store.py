"""
Unit tests for the SQLite-backed memory store and the underlying KVStore.
"""

import pytest

from memory_engine.memory.engine import MemoryEngine
from memory_engine.memory.errors import RecordNotFound, StoreUnavailable
from memory_engine.memory.schemas import MemoryQuery
from memory_engine.memory.store import SQLiteMemoryStore
from memory_engine.persist.sqlite_store import KVStore


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteMemoryStore(tmp_path / "memories.db")
    yield store
    store.close()


class TestKVStore:

    def test_set_get_delete(self, tmp_path):
        with KVStore(tmp_path / "kv.db") as kv:
            kv.set("memories", "mem:u1:a", b"one")

            assert kv.get("memories", "mem:u1:a") == b"one"
            assert kv.delete("memories", "mem:u1:a")
            assert not kv.delete("memories", "mem:u1:a")
            assert kv.get("memories", "mem:u1:a") is None

    def test_prefix_listing(self, tmp_path):
        with KVStore(tmp_path / "kv.db") as kv:
            for key in ["mem:u1:b", "mem:u1:a", "mem:u2:a"]:
                kv.set("memories", key, key.encode())

            assert [key for key, _ in kv.items("memories", prefix="mem:u1:")] == ["mem:u1:a", "mem:u1:b"]
            assert len(kv.items("memories", limit=2)) == 2

    def test_unknown_table_rejected(self, tmp_path):
        with KVStore(tmp_path / "kv.db") as kv:
            with pytest.raises(ValueError):
                kv.get("users; DROP TABLE memories", "x")


class TestSQLiteMemoryStore:

    def test_insert_and_get(self, sqlite_store, make_record):
        record = make_record("Likes jazz", tags=["music"], category="Preferences")
        sqlite_store.insert(record)

        assert sqlite_store.get(record.id) == record
        assert sqlite_store.get("mem_missing") is None

    def test_duplicate_insert_rejected(self, sqlite_store, make_record):
        record = make_record("Likes jazz")
        sqlite_store.insert(record)

        with pytest.raises(ValueError):
            sqlite_store.insert(record)

    def test_list_by_owner_newest_first(self, sqlite_store, make_record):
        sqlite_store.insert(make_record("old", days_ago=3))
        sqlite_store.insert(make_record("new", days_ago=1))
        sqlite_store.insert(make_record("other owner", owner_id="user_10"))

        records = sqlite_store.list_by_owner("user_1")

        assert [r.content for r in records] == ["new", "old"]

    def test_persona_filter(self, sqlite_store, make_record):
        sqlite_store.insert(make_record("a", persona_id="lyra"))
        sqlite_store.insert(make_record("b", persona_id="orion"))

        assert [r.content for r in sqlite_store.list_by_owner("user_1", "lyra")] == ["a"]

    def test_malformed_rows(self, sqlite_store, make_record):
        sqlite_store.insert(make_record("valid"))
        sqlite_store.kv.set("memories", "mem:user_1:bad", b"{not json")

        raw = sqlite_store.list_raw_by_owner("user_1")

        assert "{not json" in raw
        assert [r.content for r in sqlite_store.list_by_owner("user_1")] == ["valid"]

    def test_patch_and_delete(self, sqlite_store, make_record):
        record = make_record("Likes jazz")
        sqlite_store.insert(record)

        updated = sqlite_store.patch_tags(record.id, ["music"], "Preferences")
        assert sqlite_store.get(record.id).tags == ("music",)
        assert updated.updated_at is not None

        sqlite_store.delete(record.id)
        assert sqlite_store.get(record.id) is None
        with pytest.raises(RecordNotFound):
            sqlite_store.delete(record.id)

    def test_closed_connection_is_store_unavailable(self, tmp_path):
        store = SQLiteMemoryStore(tmp_path / "memories.db")
        store.close()

        with pytest.raises(StoreUnavailable):
            store.list_raw_by_owner("user_1")

    def test_persistence_across_instances(self, tmp_path, make_record, clock):
        path = tmp_path / "memories.db"
        first = SQLiteMemoryStore(path)
        first.insert(make_record("User's favorite color is green"))
        first.close()

        second = SQLiteMemoryStore(path)
        ranked = MemoryEngine(second, clock=clock).search(MemoryQuery(text="color", owner_id="user_1"))
        second.close()

        assert len(ranked) == 1
