"""
tld_registry.runtime.context — call environment and clocks

`CallEnv` is the small, immutable record a contract operation sees while it
runs inside `Host.transaction(...)`: who called, which contract was called,
how much value was attached and the timestamp of the enclosing top-level
transaction. Nested calls share the outermost timestamp so every contract
touched by one operation agrees on "now".

Addresses are opaque raw bytes (20 bytes for accounts and contracts created by
the host). Hex strings (with or without "0x") are accepted by helpers and
normalized to bytes.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Union

ADDRESS_LEN = 20
ZERO_ADDRESS = b"\x00" * ADDRESS_LEN


# ----------------------------- helpers ----------------------------- #

class ContextError(Exception):
    """Validation or coercion failure for CallEnv / address inputs."""


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_bytes(value: Union[bytes, bytearray, memoryview, str]) -> bytes:
    """
    Coerce `value` to bytes.
    - If str, interpret as hex (with or without '0x'); odd-length hex is rejected.
    - If a bytes-like object, copy to immutable bytes.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise ContextError(f"hex string must have even length, got {len(h)}")
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise ContextError(f"invalid hex string: {value!r}") from e
    raise ContextError(f"cannot convert type {type(value).__name__} to bytes")


def to_address(value: Union[bytes, bytearray, memoryview, str]) -> bytes:
    """Like `to_bytes` but insists on a 20-byte address."""
    b = to_bytes(value)
    if len(b) != ADDRESS_LEN:
        raise ContextError(f"address must be {ADDRESS_LEN} bytes, got {len(b)}")
    return b


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def _require_non_negative_int(name: str, v: Any) -> int:
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContextError(f"{name} must be int, got {type(v).__name__}")
    if v < 0:
        raise ContextError(f"{name} must be non-negative, got {v}")
    return v


# ----------------------------- models ------------------------------ #

@dataclass(frozen=True)
class CallEnv:
    """
    Per-call environment.

    Fields
    ------
    caller:     Immediate caller address.
    to:         Called contract address (or None for a plain value move).
    value:      Value attached to the call, already credited to `to`.
    timestamp:  Seconds since epoch, fixed by the outermost transaction.
    depth:      1 for a top-level operation, +1 per nested transaction.
    """
    caller: bytes
    to: Optional[bytes]
    value: int
    timestamp: int
    depth: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "caller", to_bytes(self.caller))
        if self.to is not None:
            object.__setattr__(self, "to", to_bytes(self.to))
        object.__setattr__(self, "value", _require_non_negative_int("value", self.value))
        object.__setattr__(self, "timestamp", _require_non_negative_int("timestamp", self.timestamp))
        object.__setattr__(self, "depth", _require_non_negative_int("depth", self.depth))

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["caller"] = to_hex(self.caller)
        d["to"] = to_hex(self.to) if self.to is not None else None
        return d


# ----------------------------- clocks ------------------------------ #

class SystemClock:
    """Wall-clock seconds (int)."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Settable clock for tests and simulations.

    >>> clk = ManualClock(1_000)
    >>> clk.advance(60)
    1060
    """

    def __init__(self, start: int = 0) -> None:
        self._now = _require_non_negative_int("start", start)

    def now(self) -> int:
        return self._now

    def set(self, ts: int) -> None:
        self._now = _require_non_negative_int("timestamp", ts)

    def advance(self, seconds: int) -> int:
        self._now += _require_non_negative_int("seconds", seconds)
        return self._now


__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "ContextError",
    "to_bytes",
    "to_address",
    "to_hex",
    "CallEnv",
    "SystemClock",
    "ManualClock",
]
