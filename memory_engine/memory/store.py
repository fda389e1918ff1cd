"""
Memory store backends.

The engine never owns durable state: every call reads a fresh snapshot
through one of these backends, injected by the caller.
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from memory_engine.persist.sqlite_store import KVStore

from .errors import RecordNotFound, StoreUnavailable
from .schemas import MemoryRecord, utcnow


logger = logging.getLogger(__name__)

RawRecord = Union[Dict[str, Any], str]


def _newest_first(records: List[MemoryRecord]) -> List[MemoryRecord]:
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)


def _decode_records(raw_items: Iterable[RawRecord], persona_id: Optional[str]) -> List[MemoryRecord]:
    records = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            logger.warning("Skipping undecodable memory entry")
            continue
        try:
            record = MemoryRecord.from_storage_dict(raw)
        except ValidationError as e:
            logger.warning("Skipping malformed memory %s: %s", raw.get("id"), e.errors()[0]["msg"])
            continue
        if persona_id is not None and record.persona_id != persona_id:
            continue
        records.append(record)
    return _newest_first(records)


class MemoryStoreBackend(ABC):
    """Interface the engine consumes from the external memory store."""

    @abstractmethod
    def list_raw_by_owner(self, owner_id: str, persona_id: Optional[str] = None) -> List[RawRecord]:
        """
        Raw stored entries for an owner, without validation.

        Entries that fail to decode are returned as their raw text so callers
        doing best-effort analytics can count them.
        """

    @abstractmethod
    def get(self, record_id: str) -> Optional[MemoryRecord]:
        """Fetch one record by id, None when missing."""

    @abstractmethod
    def insert(self, record: MemoryRecord) -> MemoryRecord:
        """Store a new record and return it."""

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Remove a record; RecordNotFound when it does not exist."""

    @abstractmethod
    def _replace(self, record: MemoryRecord) -> None:
        """Overwrite an existing record (labels only; used by patch_tags)."""

    def list_by_owner(self, owner_id: str, persona_id: Optional[str] = None) -> List[MemoryRecord]:
        """
        Valid records for an owner, newest first.

        Args:
            owner_id: Owner to list
            persona_id: Optional persona filter

        Returns:
            List of MemoryRecord (malformed entries are skipped)
        """
        return _decode_records(self.list_raw_by_owner(owner_id, persona_id), persona_id)

    def patch_tags(
        self,
        record_id: str,
        tags: Optional[Iterable[str]],
        category: Optional[str],
    ) -> MemoryRecord:
        """
        Replace a record's tags and/or category. Content is never touched.

        Raises:
            RecordNotFound: If no record has this id
        """
        current = self.get(record_id)
        if current is None:
            raise RecordNotFound(record_id)

        updated = current.with_labels(tags=tags, category=category, now=utcnow())
        self._replace(updated)
        return updated


class InMemoryMemoryStore(MemoryStoreBackend):
    """
    Process-local store, mainly for tests and demos.

    Holds storage dicts rather than models so malformed legacy entries can
    be injected with `insert_raw()`.
    """

    def __init__(self, records: Optional[Iterable[MemoryRecord]] = None):
        self._rows: Dict[str, RawRecord] = {}
        self._lock = threading.Lock()
        for record in records or []:
            self.insert(record)

    def __len__(self) -> int:
        return len(self._rows)

    def insert_raw(self, key: str, raw: RawRecord) -> None:
        """Store an unvalidated entry under key."""
        with self._lock:
            self._rows[key] = raw

    def list_raw_by_owner(self, owner_id: str, persona_id: Optional[str] = None) -> List[RawRecord]:
        with self._lock:
            rows = list(self._rows.values())

        result = []
        for raw in rows:
            if isinstance(raw, dict):
                if raw.get("owner_id") != owner_id:
                    continue
                if persona_id is not None and raw.get("persona_id") != persona_id:
                    continue
            result.append(raw)
        return result

    def get(self, record_id: str) -> Optional[MemoryRecord]:
        with self._lock:
            raw = self._rows.get(record_id)
        if not isinstance(raw, dict):
            return None
        try:
            return MemoryRecord.from_storage_dict(raw)
        except ValidationError:
            return None

    def insert(self, record: MemoryRecord) -> MemoryRecord:
        with self._lock:
            if record.id in self._rows:
                raise ValueError(f"Memory record already exists: {record.id}")
            self._rows[record.id] = record.to_storage_dict()
        return record

    def _replace(self, record: MemoryRecord) -> None:
        with self._lock:
            self._rows[record.id] = record.to_storage_dict()

    def delete(self, record_id: str) -> None:
        with self._lock:
            if record_id not in self._rows:
                raise RecordNotFound(record_id)
            del self._rows[record_id]


class SQLiteMemoryStore(MemoryStoreBackend):
    """
    Persistent store on the SQLite KVStore.

    Tables:
    - memories: `mem:<owner_id>:<record_id>` → record JSON
    - memory_ids: `<record_id>` → primary key in `memories`

    Any sqlite3 error surfaces as StoreUnavailable.
    """

    TABLE = "memories"
    ID_TABLE = "memory_ids"

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        """
        Initialize memory store.

        Args:
            db_path: Path to SQLite database (default: data/memory/memories.db)
        """
        if db_path is None:
            db_path = Path("data/memory/memories.db")

        try:
            self.kv = KVStore(db_path, tables=(self.TABLE, self.ID_TABLE))
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Cannot open memory database {db_path}: {e}") from e

    @staticmethod
    def _make_key(owner_id: str, record_id: str) -> str:
        return f"mem:{owner_id}:{record_id}"

    def close(self) -> None:
        self.kv.close()

    def list_raw_by_owner(self, owner_id: str, persona_id: Optional[str] = None) -> List[RawRecord]:
        try:
            rows = self.kv.items(self.TABLE, prefix=f"mem:{owner_id}:")
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to list memories for {owner_id}: {e}") from e

        result: List[RawRecord] = []
        for _, value in rows:
            text = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                result.append(text)
                continue
            if not isinstance(data, dict):
                result.append(text)
                continue
            # Prefix also matches owners whose id extends this one
            if data.get("owner_id") != owner_id:
                continue
            if persona_id is not None and data.get("persona_id") != persona_id:
                continue
            result.append(data)
        return result

    def _primary_key(self, record_id: str) -> Optional[str]:
        try:
            value = self.kv.get(self.ID_TABLE, record_id)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to look up memory {record_id}: {e}") from e
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    def get(self, record_id: str) -> Optional[MemoryRecord]:
        key = self._primary_key(record_id)
        if key is None:
            return None
        try:
            value = self.kv.get(self.TABLE, key)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to read memory {record_id}: {e}") from e
        if value is None:
            return None

        try:
            return MemoryRecord.from_storage_dict(json.loads(value))
        except (json.JSONDecodeError, ValueError):
            return None

    def _write(self, record: MemoryRecord) -> None:
        key = self._make_key(record.owner_id, record.id)
        payload = json.dumps(record.to_storage_dict()).encode("utf-8")
        try:
            self.kv.set(self.TABLE, key, payload)
            self.kv.set(self.ID_TABLE, record.id, key.encode("utf-8"))
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to write memory {record.id}: {e}") from e

    def insert(self, record: MemoryRecord) -> MemoryRecord:
        if self._primary_key(record.id) is not None:
            raise ValueError(f"Memory record already exists: {record.id}")
        self._write(record)
        return record

    def _replace(self, record: MemoryRecord) -> None:
        self._write(record)

    def delete(self, record_id: str) -> None:
        key = self._primary_key(record_id)
        if key is None:
            raise RecordNotFound(record_id)
        try:
            self.kv.delete(self.TABLE, key)
            self.kv.delete(self.ID_TABLE, record_id)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to delete memory {record_id}: {e}") from e
