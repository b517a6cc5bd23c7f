"""
tld_registry.db — where a host keeps its state.

`open_kv(uri)` accepts:

- "sqlite:///path/to/tldreg.db"   SQLite file
- "path/to/tldreg.db"             same, without the scheme
- "memory://"                     in-memory SQLite, gone on close
"""

from __future__ import annotations

from .kv import KV, META, STATE, Batch, Prefix
from .sqlite import MEMORY, open_sqlite_kv


def _store_path(uri: str) -> str:
    u = uri.strip()
    if u.startswith("memory://"):
        return MEMORY
    if u.startswith("sqlite:///"):
        return u[len("sqlite:///") :] or MEMORY
    if u.endswith(".db"):
        return u
    raise ValueError(f"Unsupported DB URI: {uri!r}")


def open_kv(uri: str, create: bool = True) -> KV:
    """
    Open the store named by `uri`.

    Raises ValueError for an unsupported URI and FileNotFoundError when
    `create` is False and the file does not exist.
    """
    return open_sqlite_kv(_store_path(uri), create=create)


__all__ = [
    "KV",
    "Batch",
    "Prefix",
    "STATE",
    "META",
    "open_kv",
]
