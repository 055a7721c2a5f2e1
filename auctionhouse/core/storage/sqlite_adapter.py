import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from auctionhouse.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class KeyValueStore(Protocol):
    """Byte-string key-value store available in the local trusted context."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore:
    """
    In-process key-value store.

    Used for tests and as the fallback when no persistent store exists;
    contents do not survive a restart.
    """

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))


class SQLiteStore:
    """
    SQLite backend for local client storage.

    One kv table, partitioned by bucket so the reference lists and the
    sealed-bid secrets can share a database file without key collisions.
    """

    def __init__(self, db_path: Path, bucket: str = "default"):
        self.db_path = Path(db_path)
        self.bucket = bucket
        self._conn_local = threading.local()

        if not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()
        logger.debug(f"SQLiteStore opened at {self.db_path} (bucket={bucket})")

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # WAL lets readers proceed while another thread writes
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    bucket TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value BLOB NOT NULL,
                    PRIMARY KEY (bucket, key)
                )
            """)

    def with_bucket(self, bucket: str) -> "SQLiteStore":
        """Open a view of the same database file under another bucket."""
        return SQLiteStore(self.db_path, bucket=bucket)

    # =========================================================================
    # Key-Value Operations
    # =========================================================================

    def get(self, key: str) -> Optional[bytes]:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT value FROM kv_store WHERE bucket = ? AND key = ?",
            (self.bucket, key)
        )
        row = cursor.fetchone()
        return bytes(row['value']) if row else None

    def set(self, key: str, value: bytes) -> None:
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (bucket, key, value) VALUES (?, ?, ?)",
                (self.bucket, key, value)
            )

    def remove(self, key: str) -> None:
        conn = self._get_conn()
        with conn:
            conn.execute(
                "DELETE FROM kv_store WHERE bucket = ? AND key = ?",
                (self.bucket, key)
            )

    def keys(self, prefix: str = "") -> List[str]:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT key FROM kv_store WHERE bucket = ? AND key LIKE ? ESCAPE '\\' ORDER BY key",
            (self.bucket, _escape_like(prefix) + "%")
        )
        return [row['key'] for row in cursor]

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
