"""
tld_registry.contracts.base
===========================

Contracts are thin handles `(host, address)` over storage owned by the host.
Every handle is rebuilt from the code marker the host stores at deployment,
so a host re-opened on a persisted store gets the same objects back through
`Host.contract(address)`.

Storage slots are composite keys scoped to the contract address; values are
canonical CBOR (`tld_registry.encoding`) or fixed-width big-endian integers.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional, Type, TypeVar

from .. import encoding
from ..db.kv import be_u256, from_be
from ..errors import NotFound
from ..runtime.context import to_bytes, to_hex

KINDS: Dict[str, Type["Contract"]] = {}

C = TypeVar("C", bound="Contract")


def register_kind(cls: Type[C]) -> Type[C]:
    if not cls.KIND:
        raise ValueError(f"{cls.__name__} has no KIND")
    KINDS[cls.KIND] = cls
    return cls


class Contract:
    KIND: ClassVar[str] = ""

    def __init__(self, host, address: bytes) -> None:
        self.host = host
        self.address = bytes(address)

    @classmethod
    def at(cls: Type[C], host, address: bytes | str) -> C:
        addr = to_bytes(address)
        if host.code_of(addr) != cls.KIND:
            raise NotFound(f"no {cls.KIND} contract at address", address=addr)
        return cls(host, addr)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({to_hex(self.address)})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Contract) and other.address == self.address and other.host is self.host

    def __hash__(self) -> int:
        return hash(self.address)

    # --- storage helpers ---

    def _get(self, *slot: Any) -> Optional[bytes]:
        return self.host.sload(self.address, *slot)

    def _set(self, *slot: Any, value: bytes) -> None:
        self.host.sstore(self.address, *slot, value=value)

    def _delete(self, *slot: Any) -> None:
        self.host.sdelete(self.address, *slot)

    def _get_obj(self, *slot: Any) -> Any:
        raw = self._get(*slot)
        return encoding.loads(raw) if raw is not None else None

    def _set_obj(self, *slot: Any, value: Any) -> None:
        self._set(*slot, value=encoding.dumps(value))

    def _get_int(self, *slot: Any) -> int:
        return from_be(self._get(*slot))

    def _set_int(self, *slot: Any, value: int) -> None:
        self._set(*slot, value=be_u256(value))

    def _incr(self, *slot: Any) -> int:
        """Bump the counter at `slot` and return the new value."""
        n = self._get_int(*slot) + 1
        self._set_int(*slot, value=n)
        return n

    def _emit(self, event: str, /, **args: Any) -> None:
        self.host.emit(self.address, event, args)


__all__ = ["KINDS", "Contract", "register_kind"]
