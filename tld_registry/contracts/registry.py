"""
tld_registry.contracts.registry — one namespace's name records

A Registry owns every name of one namespace (TLD): it enforces uniqueness,
prices registrations and renewals by label length, hands out ownership
tokens, keeps each name's resolver and expiry, and manages sub-names.

Ownership vs. resolver
----------------------
The *holder of the ownership token* bound to a name is its owner; that is the
only fact authorization looks at. The record's `resolver` is a separate,
independently mutable routing attribute that starts out as the registrant.

Atomicity
---------
Each mutator runs in one host transaction under the registry's reentrancy
latch (`guarded`). The latch is checked before the call parses its
arguments or pulls payment, so a reentrant call is refused as such whatever
it passes. Payment is pulled into the registry when the transaction opens; the
price is forwarded to the fee receiver and any excess refunded to the caller
before the transaction commits. A failed forward or refund raises
`TransferFailed` and the whole operation (token mint, record, address-book
link, ledger entry, value moves) is rolled back.

Storage layout
--------------
- b"cfg"                 → cbor RegistryConfig
- b"prices"              → cbor [[length, price], ...]
- (b"rec", node)         → cbor {"name", "resolver", "expires"}
- (b"tok", node)         → token id (u256)
- (b"node", id32)        → node
- b"access:owner"        → administrator (see Ownable)

Events
------
- "DomainRegistered"  {name, node, owner, token_id, expires, price}
- "DomainRenewed"     {name, node, expires, price}
- "ResolverSet"       {name, node, resolver}
- "SubDomainCreated"  {name, parent, node, owner, token_id, expires}
- "DomainBurned"      {name, node, token_id}
- "PriceSet"          {length, price}
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..db.kv import be_u256, from_be
from ..errors import (AlreadyRegistered, InsufficientPayment, InvalidLength,
                      InvalidName, NotFound, NotOwner, TransferFailed)
from ..hashing import (check_label, full_name, label_length, name_hash,
                       resolve_path, sub_hash)
from ..logging import get_logger
from ..runtime.context import to_hex
from ..runtime.guard import guarded
from .address_book import ResolverAddressBook
from .base import register_kind
from .ledger import RecordLedger
from .ownable import Ownable
from .pricing import PriceTable, PriceTier
from .token import NameToken

log = get_logger(__name__)


@dataclass(frozen=True)
class RegistryConfig:
    tld: str
    token: bytes
    address_book: bytes
    ledger: bytes
    fee_receiver: bytes
    expiration_period: int


@dataclass(frozen=True)
class DomainRecord:
    name: str
    resolver: bytes
    expires: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "resolver": to_hex(self.resolver), "expires": self.expires}


@register_kind
class Registry(Ownable):
    KIND = "registry"

    @classmethod
    def deploy(
        cls,
        host,
        deployer: bytes,
        *,
        tld: str,
        name: str,
        symbol: str,
        address_book: bytes,
        ledger: bytes,
        fee_receiver: bytes,
        expiration_period: int,
        price_tiers: Iterable[Tuple[int, int]] = (),
    ) -> "Registry":
        tld = check_label(tld)
        if not tld:
            raise InvalidName("namespace label must be non-empty")
        if expiration_period <= 0:
            raise ValueError("expiration period must be positive")
        with host.transaction(caller=deployer):
            registry = cls(host, host.create_contract(cls.KIND, deployer))
            token = NameToken.deploy(host, registry.address, name=name, symbol=symbol)
            config = RegistryConfig(
                tld=tld,
                token=token.address,
                address_book=bytes(address_book),
                ledger=bytes(ledger),
                fee_receiver=bytes(fee_receiver),
                expiration_period=int(expiration_period),
            )
            registry._set_obj(b"cfg", value=asdict(config))
            registry._set_obj(b"prices", value=PriceTable(price_tiers).to_list())
            registry._init_owner(deployer)
        log.info("registry deployed", extra={"tld": tld, "registry": to_hex(registry.address)})
        return registry

    # ------------------------------------------------------------------ #
    # Wiring
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> RegistryConfig:
        return RegistryConfig(**self._get_obj(b"cfg"))

    @property
    def tld(self) -> str:
        return self.config.tld

    @property
    def token(self) -> NameToken:
        return NameToken(self.host, self.config.token)

    @property
    def address_book(self) -> ResolverAddressBook:
        return ResolverAddressBook(self.host, self.config.address_book)

    @property
    def ledger(self) -> RecordLedger:
        return RecordLedger(self.host, self.config.ledger)

    def _prices(self) -> PriceTable:
        return PriceTable.from_list(self._get_obj(b"prices"))

    def _price(self, length: int) -> int:
        try:
            return self._prices().price_for(length)
        except NotFound:
            raise InvalidLength(length) from None

    # ------------------------------------------------------------------ #
    # Node bookkeeping
    # ------------------------------------------------------------------ #

    def _record(self, node: bytes) -> Optional[DomainRecord]:
        raw = self._get_obj(b"rec", node)
        return DomainRecord(**raw) if raw is not None else None

    def _require_record(self, node: bytes, name: str) -> DomainRecord:
        rec = self._record(node)
        if rec is None:
            raise NotFound("name is not registered", name=name)
        return rec

    def _write_record(self, node: bytes, rec: DomainRecord) -> None:
        self._set_obj(b"rec", node, value={"name": rec.name, "resolver": rec.resolver, "expires": rec.expires})

    def _token_id(self, node: bytes) -> Optional[int]:
        raw = self._get(b"tok", node)
        return from_be(raw) if raw is not None else None

    def _holder(self, node: bytes) -> Optional[bytes]:
        token_id = self._token_id(node)
        return self.token.owner_of(token_id) if token_id is not None else None

    def _require_holder(self, node: bytes, caller: bytes, name: str) -> None:
        if self._holder(node) != bytes(caller):
            raise NotOwner(name=name, caller=caller)

    def _issue(self, node: bytes, owner: bytes, record: DomainRecord) -> int:
        token_id = self.token.mint(self.address, owner)
        self._set_int(b"tok", node, value=token_id)
        self._set(b"node", be_u256(token_id), value=node)
        self._write_record(node, record)
        return token_id

    def _settle(self, cfg: RegistryConfig, payer: bytes, payment: int, price: int) -> None:
        if price and not self.host.send(self.address, cfg.fee_receiver, price):
            raise TransferFailed("fee forward failed", recipient=cfg.fee_receiver, amount=price)
        refund = payment - price
        if refund and not self.host.send(self.address, payer, refund):
            raise TransferFailed("refund failed", recipient=payer, amount=refund)

    # ------------------------------------------------------------------ #
    # Mutators
    # ------------------------------------------------------------------ #

    def register_domain(self, caller: bytes, name: str, payment: int) -> int:
        """
        Register top-level `name` for `caller`, paying `payment`.

        Returns the new ownership token id. Raises AlreadyRegistered,
        InvalidLength, InsufficientPayment or TransferFailed.
        """
        caller = bytes(caller)
        with guarded(self.host, self.address, caller=caller, value=payment) as env:
            label = check_label(name)
            cfg = self.config
            node = name_hash(label, cfg.tld)
            display = full_name(label, cfg.tld)
            if self._token_id(node) is not None:
                raise AlreadyRegistered(name=display)
            price = self._price(label_length(label))
            if payment < price:
                raise InsufficientPayment(price, payment)

            expires = env.timestamp + cfg.expiration_period
            token_id = self._issue(node, caller, DomainRecord(name=display, resolver=caller, expires=expires))
            self._settle(cfg, caller, payment, price)
            self.address_book.link_name(self.address, node, caller, display)
            self.ledger.append(self.address, display, caller, env.timestamp, expires, price)
            self._emit(
                "DomainRegistered",
                name=display,
                node=node,
                owner=caller,
                token_id=token_id,
                expires=expires,
                price=price,
            )

        log.info(
            "domain registered",
            extra={"domain": display, "owner": caller, "token_id": token_id, "price": price},
        )
        return token_id

    def renew_domain(self, caller: bytes, name: str, payment: int) -> int:
        """
        Extend `name` by one expiration period. The extension is added to the
        current expiry, even when that expiry is already in the past.
        Returns the new expiry.
        """
        caller = bytes(caller)
        with guarded(self.host, self.address, caller=caller, value=payment):
            cfg = self.config
            labels, node = resolve_path(name, cfg.tld)
            rec = self._require_record(node, name)
            self._require_holder(node, caller, rec.name)
            price = self._price(label_length(labels[-1]))
            if payment < price:
                raise InsufficientPayment(price, payment)

            expires = rec.expires + cfg.expiration_period
            self._write_record(node, DomainRecord(name=rec.name, resolver=rec.resolver, expires=expires))
            self._settle(cfg, caller, payment, price)
            self._emit("DomainRenewed", name=rec.name, node=node, expires=expires, price=price)

        log.info("domain renewed", extra={"domain": rec.name, "expires": expires, "price": price})
        return expires

    def set_resolver(self, caller: bytes, name: str, resolver: bytes) -> None:
        caller = bytes(caller)
        with guarded(self.host, self.address, caller=caller):
            node = self.generate_hash(name)
            rec = self._require_record(node, name)
            self._require_holder(node, caller, rec.name)
            self._write_record(node, DomainRecord(name=rec.name, resolver=bytes(resolver), expires=rec.expires))
            self._emit("ResolverSet", name=rec.name, node=node, resolver=bytes(resolver))

    def set_primary_domain(self, caller: bytes, name: str) -> None:
        caller = bytes(caller)
        with guarded(self.host, self.address, caller=caller):
            node = self.generate_hash(name)
            rec = self._require_record(node, name)
            self._require_holder(node, caller, rec.name)
            self.address_book.set_primary_name(self.address, caller, node)

    def create_sub_domain(self, caller: bytes, parent: str, sub: str, owner: bytes) -> int:
        """
        Create `sub` under `parent` for `owner`. Only the holder of the parent
        may do this; no payment is taken and no ledger entry is written.
        """
        caller = bytes(caller)
        owner = bytes(owner)
        with guarded(self.host, self.address, caller=caller) as env:
            label = check_label(sub)
            if not label:
                raise InvalidLength(0)
            cfg = self.config
            parent_labels, parent_node = resolve_path(parent, cfg.tld)
            node = sub_hash(parent_node, label)
            display = full_name(".".join([label] + list(reversed(parent_labels))), cfg.tld)

            parent_rec = self._require_record(parent_node, parent)
            self._require_holder(parent_node, caller, parent_rec.name)
            if self._token_id(node) is not None:
                raise AlreadyRegistered(name=display)

            expires = env.timestamp + cfg.expiration_period
            token_id = self._issue(node, owner, DomainRecord(name=display, resolver=owner, expires=expires))
            self.address_book.link_name(self.address, node, owner, display)
            self._emit(
                "SubDomainCreated",
                name=display,
                parent=parent_node,
                node=node,
                owner=owner,
                token_id=token_id,
                expires=expires,
            )

        log.info("sub-domain created", extra={"domain": display, "owner": owner, "token_id": token_id})
        return token_id

    def burn_domain(self, caller: bytes, name: str) -> None:
        """Administrator only. The ledger keeps its historical entry."""
        caller = bytes(caller)
        with guarded(self.host, self.address, caller=caller):
            self._require_owner(caller)
            node = self.generate_hash(name)
            rec = self._require_record(node, name)
            token_id = self._token_id(node)
            if token_id is not None:
                self.token.burn(self.address, token_id)
                self._delete(b"node", be_u256(token_id))
                self._delete(b"tok", node)
            self._delete(b"rec", node)
            self.address_book.unlink_name(self.address, node)
            self._emit("DomainBurned", name=rec.name, node=node, token_id=token_id or 0)

        log.info("domain burned", extra={"domain": rec.name})

    def set_price_config(self, caller: bytes, length: int, price: int) -> None:
        """Administrator only: set the price of `length`, adding a tier if needed."""
        with guarded(self.host, self.address, caller=caller):
            self._require_owner(caller)
            prices = self._prices()
            prices.upsert(length, price)
            self._set_obj(b"prices", value=prices.to_list())
            self._emit("PriceSet", length=length, price=price)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def generate_hash(self, name: str) -> bytes:
        return resolve_path(name, self.tld)[1]

    def get_domain_price(self, name: str) -> int:
        labels = resolve_path(name, self.tld)[0]
        return self._price(label_length(labels[-1]))

    def price_tiers(self) -> List[PriceTier]:
        return self._prices().tiers

    def get_domain(self, name: str) -> DomainRecord:
        return self._require_record(self.generate_hash(name), name)

    def get_expiration(self, name: str) -> int:
        return self.get_domain(name).expires

    def get_resolver(self, name: str) -> Optional[bytes]:
        """The resolver while the name is live; None once it has expired."""
        rec = self.get_domain(name)
        return rec.resolver if rec.expires > self.host.now() else None

    def token_of(self, name: str) -> Optional[int]:
        return self._token_id(self.generate_hash(name))

    def domain_of_token(self, token_id: int) -> DomainRecord:
        node = self._get(b"node", be_u256(token_id)) if token_id > 0 else None
        rec = self._record(node) if node is not None else None
        if rec is None:
            raise NotFound("no domain bound to token", token_id=token_id)
        return rec

    def owner_of_domain(self, name: str) -> bytes:
        holder = self._holder(self.generate_hash(name))
        if holder is None:
            raise NotFound("name is not registered", name=name)
        return holder

    def check_ownership(self, name: str, caller: bytes) -> bool:
        """True iff `caller` holds the token of `name`. A malformed name is held by nobody."""
        try:
            node = self.generate_hash(name)
        except InvalidName:
            return False
        holder = self._holder(node)
        return holder is not None and holder == bytes(caller)

    def is_available(self, name: str) -> bool:
        return self.token_of(name) is None


__all__ = ["Registry", "RegistryConfig", "DomainRecord"]
