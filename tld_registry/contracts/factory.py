"""
tld_registry.contracts.factory — spawns one Registry per namespace label

The factory holds the configuration every new namespace is wired with: the
shared address book and record ledger, the fee receiver, the flat creation fee,
and the default price tiers and expiration period. Each deployed Registry gets
its *own* price table seeded from the defaults at deployment, so later
changes to the defaults never reprice existing namespaces.

Storage layout
--------------
- b"cfg"                  → cbor FactoryConfig
- (b"ns", label)          → registry address
- b"ns#"                  → number of namespaces
- (b"nsi", i32)           → label of the i-th namespace (deployment order)
- b"access:owner"         → administrator (see Ownable)

Events
------
- "NamespaceDeployed"  {label, registry, owner, fee}
- "ConfigUpdated"      {address_book, ledger, fee_receiver, fee}
- "DefaultPricesSet"   {tiers}
- "Withdrawn"          {to, amount}
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Iterable, List, Optional, Tuple

from ..config import DEFAULT_EXPIRATION_PERIOD, DEFAULT_NAMESPACE_FEE, DEFAULT_PRICE_TIERS
from ..db.kv import be_u256
from ..errors import InvalidName, LabelTaken, TransferFailed, Unauthorized, WrongFee
from ..hashing import canonicalize, check_label
from ..logging import get_logger
from ..runtime.context import to_hex
from ..runtime.guard import guarded
from .address_book import ResolverAddressBook
from .base import register_kind
from .ledger import RecordLedger
from .ownable import Ownable
from .pricing import PriceTable
from .registry import Registry

log = get_logger(__name__)


@dataclass(frozen=True)
class FactoryConfig:
    address_book: bytes
    ledger: bytes
    fee_receiver: bytes
    fee: int
    expiration_period: int
    price_tiers: Tuple[Tuple[int, int], ...]

    @classmethod
    def from_storage(cls, raw: dict) -> "FactoryConfig":
        tiers = tuple((int(length), int(price)) for length, price in raw["price_tiers"])
        return cls(**{**raw, "price_tiers": tiers})


@register_kind
class NamespaceFactory(Ownable):
    KIND = "namespace-factory"

    @classmethod
    def deploy(
        cls,
        host,
        deployer: bytes,
        *,
        address_book: bytes,
        ledger: bytes,
        fee_receiver: bytes,
        fee: int = DEFAULT_NAMESPACE_FEE,
        expiration_period: int = DEFAULT_EXPIRATION_PERIOD,
        price_tiers: Iterable[Tuple[int, int]] = DEFAULT_PRICE_TIERS,
    ) -> "NamespaceFactory":
        if fee < 0:
            raise ValueError("fee must be non-negative")
        if expiration_period <= 0:
            raise ValueError("expiration period must be positive")
        tiers = tuple((t.length, t.price) for t in PriceTable(price_tiers))
        with host.transaction(caller=deployer):
            factory = cls(host, host.create_contract(cls.KIND, deployer))
            factory._store_config(
                FactoryConfig(
                    address_book=bytes(address_book),
                    ledger=bytes(ledger),
                    fee_receiver=bytes(fee_receiver),
                    fee=int(fee),
                    expiration_period=int(expiration_period),
                    price_tiers=tiers,
                )
            )
            factory._init_owner(deployer)
        return factory

    def _store_config(self, cfg: FactoryConfig) -> None:
        raw = asdict(cfg)
        raw["price_tiers"] = [list(t) for t in cfg.price_tiers]
        self._set_obj(b"cfg", value=raw)

    def config(self) -> FactoryConfig:
        return FactoryConfig.from_storage(self._get_obj(b"cfg"))

    # ------------------------------------------------------------------ #
    # Namespaces
    # ------------------------------------------------------------------ #

    def deploy_namespace(self, caller: bytes, name: str, symbol: str, label: str, payment: int) -> Registry:
        """
        Deploy the Registry for `label`, charging exactly the configured fee.

        The whole payment goes to the fee receiver; the new Registry's
        administrator is `caller`.
        """
        caller = bytes(caller)
        with guarded(self.host, self.address, caller=caller, value=payment):
            label = check_label(label)
            if not label:
                raise InvalidName("namespace label must be non-empty")
            if self._get(b"ns", label) is not None:
                raise LabelTaken(label)
            cfg = self.config()
            if payment != cfg.fee:
                raise WrongFee(cfg.fee, payment)
            if payment and not self.host.send(self.address, cfg.fee_receiver, payment):
                raise TransferFailed("namespace fee forward failed", recipient=cfg.fee_receiver, amount=payment)

            registry = Registry.deploy(
                self.host,
                self.address,
                tld=label,
                name=name,
                symbol=symbol,
                address_book=cfg.address_book,
                ledger=cfg.ledger,
                fee_receiver=cfg.fee_receiver,
                expiration_period=cfg.expiration_period,
                price_tiers=cfg.price_tiers,
            )
            self._set(b"ns", label, value=registry.address)
            n = self._get_int(b"ns#")
            self._set(b"nsi", be_u256(n), value=label.encode("utf-8"))
            self._set_int(b"ns#", value=n + 1)
            registry.transfer_ownership(self.address, caller)
            self._emit("NamespaceDeployed", label=label, registry=registry.address, owner=caller, fee=payment)

        log.info(
            "namespace deployed",
            extra={"label": label, "registry": to_hex(registry.address), "owner": caller},
        )
        return registry

    def get_namespace(self, label: str) -> Optional[Registry]:
        addr = self._get(b"ns", canonicalize(label))
        return Registry(self.host, addr) if addr is not None else None

    def namespaces(self) -> List[Tuple[str, bytes]]:
        out: List[Tuple[str, bytes]] = []
        for i in range(self._get_int(b"ns#")):
            label = self._get(b"nsi", be_u256(i)).decode("utf-8")  # type: ignore[union-attr]
            out.append((label, self._get(b"ns", label)))  # type: ignore[arg-type]
        return out

    # ------------------------------------------------------------------ #
    # Administration
    # ------------------------------------------------------------------ #

    def set_config(self, caller: bytes, resolver: bytes, record_ledger: bytes, fee_receiver: bytes, fee: int) -> None:
        """Administrator only: replace the shared wiring and fee together."""
        with guarded(self.host, self.address, caller=caller):
            if fee < 0:
                raise ValueError("fee must be non-negative")
            self._require_owner(caller)
            cfg = replace(
                self.config(),
                address_book=bytes(resolver),
                ledger=bytes(record_ledger),
                fee_receiver=bytes(fee_receiver),
                fee=int(fee),
            )
            self._store_config(cfg)
            self._emit(
                "ConfigUpdated",
                address_book=cfg.address_book,
                ledger=cfg.ledger,
                fee_receiver=cfg.fee_receiver,
                fee=cfg.fee,
            )

    def set_default_prices(self, caller: bytes, tiers: Iterable[Tuple[int, int]]) -> None:
        """Administrator only: tiers seeded into namespaces deployed from now on."""
        with guarded(self.host, self.address, caller=caller):
            self._require_owner(caller)
            table = PriceTable(tiers)
            cfg = replace(self.config(), price_tiers=tuple((t.length, t.price) for t in table))
            self._store_config(cfg)
            self._emit("DefaultPricesSet", tiers=table.to_list())

    def withdraw(self, caller: bytes) -> int:
        """Fee receiver only: sweep the factory's balance to the fee receiver."""
        caller = bytes(caller)
        with guarded(self.host, self.address, caller=caller):
            cfg = self.config()
            if caller != cfg.fee_receiver:
                raise Unauthorized("only the fee receiver may withdraw", caller=caller)
            amount = self.host.balance_of(self.address)
            if amount and not self.host.send(self.address, cfg.fee_receiver, amount):
                raise TransferFailed("withdrawal failed", recipient=cfg.fee_receiver, amount=amount)
            self._emit("Withdrawn", to=cfg.fee_receiver, amount=amount)
        log.info("factory balance withdrawn", extra={"amount": amount})
        return amount


def deploy_stack(
    host,
    deployer: bytes,
    *,
    fee_receiver: bytes,
    fee: int = DEFAULT_NAMESPACE_FEE,
    expiration_period: int = DEFAULT_EXPIRATION_PERIOD,
    price_tiers: Iterable[Tuple[int, int]] = DEFAULT_PRICE_TIERS,
) -> Tuple[ResolverAddressBook, RecordLedger, NamespaceFactory]:
    """Deploy a shared address book and record ledger plus a factory wired to both."""
    with host.transaction(caller=deployer):
        book = ResolverAddressBook.deploy(host, deployer)
        ledger = RecordLedger.deploy(host, deployer)
        factory = NamespaceFactory.deploy(
            host,
            deployer,
            address_book=book.address,
            ledger=ledger.address,
            fee_receiver=fee_receiver,
            fee=fee,
            expiration_period=expiration_period,
            price_tiers=price_tiers,
        )
    return book, ledger, factory


__all__ = ["FactoryConfig", "NamespaceFactory", "deploy_stack"]
