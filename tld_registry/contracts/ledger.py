"""
tld_registry.contracts.ledger — append-only registration history

Every successful top-level registration is appended once and never updated or
deleted, whatever later happens to the name (renewal, resolver change, burn).
Two secondary indices keep entry *indices* in append order:

- by owner  (the registrant)
- by source (the registry that appended it; always the caller of `append`)

Only registries may append: the caller must carry the "registry" code
marker, so an arbitrary account cannot file entries against someone else's
address.

Storage layout
--------------
- b"count"                          → number of entries (u256)
- (b"entry", i32)                   → cbor entry
- (b"owner#", owner)                → per-owner count
- (b"owner", owner, k32)            → index of the k-th entry of owner
- (b"source#", source)              → per-source count
- (b"source", source, k32)          → index of the k-th entry of source
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from ..db.kv import be_u256, from_be
from ..errors import NotFound, Unauthorized
from ..runtime.context import to_hex
from .base import Contract, register_kind


@dataclass(frozen=True)
class LedgerEntry:
    full_name: str
    owner: bytes
    registration_date: int
    expiration_date: int
    registration_price: int
    source: bytes

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["owner"] = to_hex(self.owner)
        d["source"] = to_hex(self.source)
        return d

    @classmethod
    def from_storage(cls, raw: Dict[str, Any]) -> "LedgerEntry":
        return cls(
            full_name=raw["full_name"],
            owner=raw["owner"],
            registration_date=raw["registration_date"],
            expiration_date=raw["expiration_date"],
            registration_price=raw["registration_price"],
            source=raw["source"],
        )


@register_kind
class RecordLedger(Contract):
    KIND = "record-ledger"
    WRITER_KIND = "registry"

    @classmethod
    def deploy(cls, host, deployer: bytes) -> "RecordLedger":
        with host.transaction(caller=deployer):
            ledger = cls(host, host.create_contract(cls.KIND, deployer))
        return ledger

    def append(
        self,
        caller: bytes,
        full_name: str,
        owner: bytes,
        registration_date: int,
        expiration_date: int,
        price: int,
    ) -> int:
        """Append an entry sourced from `caller` (a registry); returns its index."""
        if self.host.code_of(caller) != self.WRITER_KIND:
            raise Unauthorized("only registries may append entries", caller=caller)
        entry = LedgerEntry(
            full_name=full_name,
            owner=bytes(owner),
            registration_date=int(registration_date),
            expiration_date=int(expiration_date),
            registration_price=int(price),
            source=bytes(caller),
        )
        with self.host.transaction(caller=caller, to=self.address):
            index = self._get_int(b"count")
            self._set_obj(b"entry", be_u256(index), value=asdict(entry))
            self._set_int(b"count", value=index + 1)
            self._index(b"owner", entry.owner, index)
            self._index(b"source", entry.source, index)
            self._emit(
                "RecordAdded",
                index=index,
                full_name=entry.full_name,
                owner=entry.owner,
                source=entry.source,
                registration_date=entry.registration_date,
                expiration_date=entry.expiration_date,
                price=entry.registration_price,
            )
        return index

    def _index(self, kind: bytes, who: bytes, index: int) -> None:
        k = self._get_int(kind + b"#", who)
        self._set_int(kind, who, be_u256(k), value=index)
        self._set_int(kind + b"#", who, value=k + 1)

    def _indexed(self, kind: bytes, who: bytes) -> List[LedgerEntry]:
        n = self._get_int(kind + b"#", bytes(who))
        return [self.entry_at(from_be(self._get(kind, bytes(who), be_u256(k)))) for k in range(n)]

    # --- views ---

    def count(self) -> int:
        return self._get_int(b"count")

    def count_by_owner(self, owner: bytes) -> int:
        return self._get_int(b"owner#", bytes(owner))

    def count_by_source(self, source: bytes) -> int:
        return self._get_int(b"source#", bytes(source))

    def entry_at(self, index: int) -> LedgerEntry:
        if index < 0 or index >= self.count():
            raise NotFound("ledger index out of bounds", index=index, count=self.count())
        return LedgerEntry.from_storage(self._get_obj(b"entry", be_u256(index)))

    def all_entries(self) -> List[LedgerEntry]:
        return [self.entry_at(i) for i in range(self.count())]

    def entries_by_owner(self, owner: bytes) -> List[LedgerEntry]:
        return self._indexed(b"owner", owner)

    def entries_by_source(self, source: bytes) -> List[LedgerEntry]:
        return self._indexed(b"source", source)


__all__ = ["LedgerEntry", "RecordLedger"]
