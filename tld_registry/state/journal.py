"""
tld_registry.state.journal — journaling writes, checkpoints, revert/commit.

A write journal layered over a KV store. It supports nested checkpoints via a
stack of overlays. Writes go to the top overlay; reads consult overlays from
top → base. `commit()` merges the top overlay into the next layer, or flushes
it into the KV through a single batch when it is the last layer. `revert()`
discards the top overlay.

Key properties
--------------
- Deletions are explicit markers (`None`) so they shadow lower layers.
- Nested checkpoints (begin/commit/revert) with O(changes) merge cost.
- Prefix scans merge overlay writes with the base so callers always see the
  state the current checkpoint would commit.

Intended usage
--------------
    j = Journal(kv)
    j.begin()
    j.set(key, b"value")
    j.commit()          # depth 0 again: flushed to kv
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from ..db.kv import KV


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


class Journal:
    """
    Copy-on-write overlay stack over a `KV`.

    API highlights
    --------------
    - begin() / commit() / revert() / depth()
    - get(), has(), set(), delete(), iter_prefix()
    - commit_to(marker) / revert_to(marker)

    With no checkpoint open, writes go straight to the KV.
    """

    def __init__(self, kv: KV) -> None:
        self._kv = kv
        self._layers: List[Dict[bytes, Optional[bytes]]] = []

    @property
    def kv(self) -> KV:
        return self._kv

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of open checkpoints (0 when idle)."""
        return len(self._layers)

    def begin(self) -> int:
        """Open a checkpoint. Returns the new depth marker."""
        self._layers.append({})
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or flush it to the KV."""
        if not self._layers:
            raise RuntimeError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            self._layers[-1].update(top)
            return
        self._flush(top)

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise RuntimeError("revert without an open checkpoint")
        self._layers.pop()

    def commit_to(self, marker: int) -> None:
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.revert()

    def _flush(self, writes: Dict[bytes, Optional[bytes]]) -> None:
        if not writes:
            return
        with self._kv.batch() as b:
            for k, v in writes.items():
                if v is None:
                    b.delete(k)
                else:
                    b.put(k, v)

    # --------------------------------------------------------------------- #
    # Reads
    # --------------------------------------------------------------------- #

    def get(self, key: bytes | bytearray | memoryview) -> Optional[bytes]:
        k = _b(key, name="key")
        for layer in reversed(self._layers):
            if k in layer:
                return layer[k]
        return self._kv.get(k)

    def has(self, key: bytes | bytearray | memoryview) -> bool:
        return self.get(key) is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """(key, value) pairs under `prefix` as seen from the top overlay, in byte order."""
        merged: Dict[bytes, Optional[bytes]] = dict(self._kv.iter_prefix(prefix))
        for layer in self._layers:
            for k, v in layer.items():
                if k.startswith(prefix):
                    merged[k] = v
        for k in sorted(merged):
            v = merged[k]
            if v is not None:
                yield k, v

    # --------------------------------------------------------------------- #
    # Writes
    # --------------------------------------------------------------------- #

    def set(self, key: bytes | bytearray | memoryview, value: bytes | bytearray | memoryview) -> None:
        k = _b(key, name="key")
        v = _b(value, name="value")
        if self._layers:
            self._layers[-1][k] = v
        else:
            self._kv.put(k, v)

    def delete(self, key: bytes | bytearray | memoryview) -> None:
        k = _b(key, name="key")
        if self._layers:
            self._layers[-1][k] = None
        else:
            self._kv.delete(k)


__all__ = ["Journal"]
