"""
tld_registry — hierarchical, time-bounded name registry

Namespaces (TLDs) are spawned by a `NamespaceFactory`; each gets its own
`Registry` handing out ownership tokens for names, charging length-tiered
fees on registration and renewal, and feeding a shared append-only
`RecordLedger`. Everything runs against an in-process, journaled `Host`.

    from tld_registry import Host, ManualClock, deploy_stack

    host = Host.open("memory://", clock=ManualClock(1_700_000_000))
    book, ledger, factory = deploy_stack(host, admin, fee_receiver=treasury)
    registry = factory.deploy_namespace(alice, "Anim Names", "ANIM", "anim", payment=100)
    token_id = registry.register_domain(alice, "alice", payment=5)
"""

from .contracts import (DomainRecord, LedgerEntry, NameToken,
                        NamespaceFactory, PriceTable, PriceTier, RecordLedger,
                        Registry, ResolverAddressBook, deploy_stack)
from .errors import RegistryError
from .runtime import Host, ManualClock, SystemClock
from .version import __version__

__all__ = [
    "__version__",
    "Host",
    "ManualClock",
    "SystemClock",
    "RegistryError",
    "NameToken",
    "ResolverAddressBook",
    "RecordLedger",
    "LedgerEntry",
    "PriceTable",
    "PriceTier",
    "Registry",
    "DomainRecord",
    "NamespaceFactory",
    "deploy_stack",
]
