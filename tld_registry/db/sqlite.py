"""
tld_registry.db.sqlite — the host's SQLite store

One table, `kv(k BLOB PRIMARY KEY, v BLOB NOT NULL)`, ordered by memcmp on
the key. Prefix scans are range queries `[prefix, prefix_hi)`.

The connection runs in autocommit mode. The journal writes a committed
outermost transaction through `batch()`, which wraps the whole flush in
`BEGIN IMMEDIATE ... COMMIT`, so a registration reaches disk entirely or not
at all.
"""

from __future__ import annotations

import os
import sqlite3
from typing import Iterator, Optional, Tuple

_SCHEMA = "CREATE TABLE IF NOT EXISTS kv (k BLOB PRIMARY KEY, v BLOB NOT NULL)"
_UPSERT = "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v"
_DELETE = "DELETE FROM kv WHERE k = ?"

MEMORY = ":memory:"


def _prefix_hi(prefix: bytes) -> Optional[bytes]:
    """
    Smallest key above every key starting with `prefix`; None when unbounded.

    b"ab\\x01" -> b"ab\\x02", b"a\\xff" -> b"b", b"\\xff\\xff" -> None
    """
    p = bytearray(prefix)
    while p and p[-1] == 0xFF:
        p.pop()
    if not p:
        return None
    p[-1] += 1
    return bytes(p)


class SQLiteBatch:
    __slots__ = ("_conn", "_open")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._open = False

    def __enter__(self) -> "SQLiteBatch":
        if self._open:
            raise RuntimeError("batch already open")
        self._conn.execute("BEGIN IMMEDIATE")
        self._open = True
        return self

    def put(self, key: bytes, value: bytes) -> None:
        self._require_open()
        self._conn.execute(_UPSERT, (key, value))

    def delete(self, key: bytes) -> None:
        self._require_open()
        self._conn.execute(_DELETE, (key,))

    def _require_open(self) -> None:
        if not self._open:
            raise RuntimeError("batch not open")

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self._open = False
        self._conn.execute("COMMIT" if exc_type is None else "ROLLBACK")
        return None


class SQLiteKV:
    """Use `open_sqlite_kv(path)` to construct."""

    __slots__ = ("_conn",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, key: bytes) -> Optional[bytes]:
        row = self._conn.execute("SELECT v FROM kv WHERE k = ?", (key,)).fetchone()
        return bytes(row[0]) if row is not None else None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        hi = _prefix_hi(prefix)
        if hi is None:
            cur = self._conn.execute("SELECT k, v FROM kv WHERE k >= ? ORDER BY k", (prefix,))
        else:
            cur = self._conn.execute("SELECT k, v FROM kv WHERE k >= ? AND k < ? ORDER BY k", (prefix, hi))
        try:
            for k, v in cur:
                yield bytes(k), bytes(v)
        finally:
            cur.close()

    def put(self, key: bytes, value: bytes) -> None:
        self._conn.execute(_UPSERT, (key, value))

    def delete(self, key: bytes) -> None:
        self._conn.execute(_DELETE, (key,))

    def batch(self) -> SQLiteBatch:
        return SQLiteBatch(self._conn)

    def close(self) -> None:
        self._conn.close()


def open_sqlite_kv(path: str, *, create: bool = True) -> SQLiteKV:
    """Open the store at `path` (":memory:" for a throwaway one)."""
    if path != MEMORY and not create and not os.path.exists(path):
        raise FileNotFoundError(f"no store at {path}")
    conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
    if path != MEMORY:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute(_SCHEMA)
    return SQLiteKV(conn)


__all__ = ["MEMORY", "SQLiteKV", "SQLiteBatch", "open_sqlite_kv"]
