"""
tld_registry.contracts — the naming system's contracts.

- NameToken            ownership tokens, one instance per Registry
- ResolverAddressBook  owner → linked names and primary name, shared
- RecordLedger         append-only history of registrations, shared
- Registry             per-namespace name records, pricing, renewals
- NamespaceFactory     spawns one Registry per namespace label

Importing this package registers every contract kind with `KINDS`, which
`Host.contract(address)` uses to rebuild handles.
"""

from .address_book import ResolverAddressBook
from .base import KINDS, Contract, register_kind
from .factory import FactoryConfig, NamespaceFactory, deploy_stack
from .ledger import LedgerEntry, RecordLedger
from .pricing import PriceTable, PriceTier
from .registry import DomainRecord, Registry, RegistryConfig
from .token import NameToken

__all__ = [
    "KINDS",
    "Contract",
    "register_kind",
    "NameToken",
    "ResolverAddressBook",
    "RecordLedger",
    "LedgerEntry",
    "PriceTable",
    "PriceTier",
    "Registry",
    "RegistryConfig",
    "DomainRecord",
    "NamespaceFactory",
    "FactoryConfig",
    "deploy_stack",
]
