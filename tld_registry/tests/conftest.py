# -*- coding: utf-8 -*-
"""
tld_registry.tests.conftest
===========================

Pytest fixtures for the registry contracts.

Goals:
- A **deterministic host** over an in-memory store with a `ManualClock`, so
  expiries are exact.
- **Funded accounts** with stable addresses derived from tags.
- A deployed stack: shared address book + record ledger, a factory wired to
  both, and one namespace ("anim") owned by `alice`, priced {3:10, 4:5, 5:3}.

Usage (inside a test file):
    def test_flow(registry, accounts):
        alice = accounts["alice"]
        token_id = registry.register_domain(alice, "alice", 5)
        assert registry.check_ownership("alice", alice)
"""
from __future__ import annotations

import hashlib
import os
from typing import Dict

import pytest
from hypothesis import settings

from tld_registry.config import DAY
from tld_registry.contracts import Registry, deploy_stack
from tld_registry.runtime import Host, ManualClock

# Prefer UTC everywhere.
os.environ.setdefault("TZ", "UTC")

# Hypothesis: fewer examples locally, more on CI; no deadline (sqlite timing varies).
settings.register_profile("local", settings(max_examples=60, deadline=None))
settings.register_profile("ci", settings(max_examples=200, deadline=None))
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE") or ("ci" if os.environ.get("CI") else "local"))

GENESIS_TS = 1_700_000_000
PERIOD = 365 * DAY
TIERS = ((3, 10), (4, 5), (5, 3))
NAMESPACE_FEE = 100
STARTING_BALANCE = 10_000


def det_address(tag: str) -> bytes:
    """Stable 20-byte address from a tag."""
    return hashlib.sha3_256(tag.encode("utf-8")).digest()[:20]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(GENESIS_TS)


@pytest.fixture
def host(clock: ManualClock):
    h = Host.open("memory://", clock=clock)
    yield h
    h.close()


@pytest.fixture
def accounts(host: Host) -> Dict[str, bytes]:
    names = ("admin", "treasury", "alice", "bob", "carol", "mallory")
    out = {n: det_address(f"tldreg-test/{n}") for n in names}
    for n in ("alice", "bob", "carol", "mallory"):
        host.mint_balance(out[n], STARTING_BALANCE)
    return out


@pytest.fixture
def stack(host: Host, accounts: Dict[str, bytes]):
    return deploy_stack(
        host,
        accounts["admin"],
        fee_receiver=accounts["treasury"],
        fee=NAMESPACE_FEE,
        expiration_period=PERIOD,
        price_tiers=TIERS,
    )


@pytest.fixture
def address_book(stack):
    return stack[0]


@pytest.fixture
def ledger(stack):
    return stack[1]


@pytest.fixture
def factory(stack):
    return stack[2]


@pytest.fixture
def registry(factory, accounts: Dict[str, bytes]) -> Registry:
    return factory.deploy_namespace(accounts["alice"], "Anim Names", "ANIM", "anim", NAMESPACE_FEE)


@pytest.fixture
def event_names(host: Host):
    def _names(since: int = 0):
        return [e.name for e in host.events.since(since)]

    return _names
