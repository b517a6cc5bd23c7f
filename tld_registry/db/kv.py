"""
tld_registry.db.kv — key layout and the store interface the host writes to

Everything the host persists lives in one flat byte-keyed store, split into
two buckets:

- STATE (b"s:") : contract storage slots, balances, code markers, nonces
- META  (b"m:") : well-known contract addresses recorded by `tldreg init`

`Prefix.key(*parts)` appends each part length-prefixed, so distinct part
tuples never share a key and every slot of one contract sorts under
`STATE.key(b"stor", address)`:

>>> STATE.key(b"stor", b"\\x01" * 20, b"rec").startswith(STATE.key(b"stor", b"\\x01" * 20))
True

Fixed-size integers (token ids, counters, balances) are stored as big-endian
words; `from_be(None) == 0` so an unset counter reads as zero.
"""

from __future__ import annotations

from typing import Iterator, Optional, Protocol, Tuple, Union

Part = Union[bytes, bytearray, memoryview, str, int]


def _uvarint(n: int) -> bytes:
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if not n:
            out.append(b)
            return bytes(out)
        out.append(0x80 | b)


def length_prefixed(data: bytes) -> bytes:
    """LEB128 length followed by `data`."""
    return _uvarint(len(data)) + bytes(data)


def be_u64(n: int) -> bytes:
    if not (0 <= n < (1 << 64)):
        raise ValueError("be_u64 out of range")
    return n.to_bytes(8, "big")


def be_u256(n: int) -> bytes:
    if not (0 <= n < (1 << 256)):
        raise ValueError("be_u256 out of range")
    return n.to_bytes(32, "big")


def from_be(b: Optional[bytes]) -> int:
    return int.from_bytes(b, "big") if b else 0


def _part(p: Part) -> bytes:
    if isinstance(p, (bytes, bytearray, memoryview)):
        return bytes(p)
    if isinstance(p, str):
        return p.encode("utf-8")
    if isinstance(p, int) and p >= 0:
        return be_u64(p)
    raise TypeError(f"unsupported key part: {p!r}")


class Prefix:
    """One bucket of the store; `raw` is its byte prefix."""

    __slots__ = ("raw",)

    def __init__(self, tag: bytes) -> None:
        if not tag:
            raise ValueError("bucket tag must be non-empty")
        self.raw = bytes(tag) + b":"

    def key(self, *parts: Part) -> bytes:
        return self.raw + b"".join(length_prefixed(_part(p)) for p in parts)


STATE = Prefix(b"s")
META = Prefix(b"m")


class Batch(Protocol):
    """Atomic group of writes: applied on clean exit, dropped if an exception escapes."""

    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


class KV(Protocol):
    def get(self, key: bytes) -> Optional[bytes]: ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """(key, value) pairs under `prefix`, in byte order."""
        ...

    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def batch(self) -> Batch: ...
    def close(self) -> None: ...


__all__ = [
    "KV",
    "Batch",
    "Prefix",
    "STATE",
    "META",
    "length_prefixed",
    "be_u64",
    "be_u256",
    "from_be",
]
