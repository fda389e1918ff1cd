"""
SQLite-backed key-value store.

One table per namespace, each row holding a key, a BLOB value and the write
timestamp. Used by the memory store with the `memories` table and keys like
`mem:<owner_id>:<record_id>`.
"""

import sqlite3
import time
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union


DEFAULT_TABLES = ("memories",)


class KVStore:
    """
    File-backed SQLite key-value store.

    Thread-safe with WAL mode; one connection shared across threads.
    """

    def __init__(self, db_path: Union[str, Path], tables: Iterable[str] = DEFAULT_TABLES):
        """
        Initialize KV store at given path.

        Args:
            db_path: Path to SQLite database file
            tables: Table names to create
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.tables = tuple(tables)

        # Initialize connection
        self._conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,  # Allow multi-threaded access
            timeout=10.0,
        )

        # Enable WAL mode for better concurrency
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")

        self._init_tables()

    def _init_tables(self) -> None:
        """Create tables if they don't exist."""
        for table in self.tables:
            self._conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    ts INTEGER NOT NULL
                )
            """)

            self._conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{table}_ts
                ON {table}(ts)
            """)

        self._conn.commit()

    def _check_table(self, table: str) -> str:
        # Table names are interpolated into SQL
        if table not in self.tables:
            raise ValueError(f"Unknown table: {table}")
        return table

    def set(self, table: str, key: str, value: bytes) -> None:
        """
        Set a key-value pair in the specified table.

        Args:
            table: Table name
            key: String key
            value: Binary value
        """
        ts = int(time.time())

        self._conn.execute(
            f"INSERT OR REPLACE INTO {self._check_table(table)} (key, value, ts) VALUES (?, ?, ?)",
            (key, value, ts)
        )
        self._conn.commit()

    def get(self, table: str, key: str) -> Optional[bytes]:
        """
        Get value for a key from the specified table.

        Returns:
            Binary value if found, None otherwise
        """
        cursor = self._conn.execute(
            f"SELECT value FROM {self._check_table(table)} WHERE key = ?",
            (key,)
        )
        row = cursor.fetchone()
        return row[0] if row else None

    def delete(self, table: str, key: str) -> bool:
        """
        Delete a key from the specified table.

        Returns:
            True if a row was removed
        """
        cursor = self._conn.execute(
            f"DELETE FROM {self._check_table(table)} WHERE key = ?",
            (key,)
        )
        self._conn.commit()
        return cursor.rowcount > 0

    def items(self, table: str, prefix: str = "", limit: Optional[int] = None) -> List[Tuple[str, bytes]]:
        """
        List (key, value) pairs whose key starts with prefix, ordered by key.

        Args:
            table: Table name
            prefix: Key prefix ("" for all keys)
            limit: Maximum rows (None for all)
        """
        sql = f"SELECT key, value FROM {self._check_table(table)} WHERE substr(key, 1, ?) = ? ORDER BY key"
        params: Tuple = (len(prefix), prefix)
        if limit is not None:
            sql += " LIMIT ?"
            params = params + (limit,)

        return [(row[0], row[1]) for row in self._conn.execute(sql, params)]

    def close(self) -> None:
        """Close database connection."""
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
