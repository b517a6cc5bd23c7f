# -*- coding: utf-8 -*-
"""
NamespaceFactory tests
- label uniqueness and exact fee
- fee forwarding, registry wiring and ownership hand-over
- withdraw, wholesale config replacement, default price seeding
"""

from __future__ import annotations

import pytest

from tld_registry.errors import (InvalidName, LabelTaken, TransferFailed,
                                 Unauthorized, WrongFee)

from .conftest import NAMESPACE_FEE, PERIOD, det_address


def test_deploy_namespace_wires_registry(host, factory, address_book, ledger, accounts):
    bob, treasury = accounts["bob"], accounts["treasury"]
    treasury_before = host.balance_of(treasury)

    registry = factory.deploy_namespace(bob, "Bob Names", "BOB", "Bob", NAMESPACE_FEE)

    assert host.balance_of(treasury) - treasury_before == NAMESPACE_FEE
    assert host.balance_of(factory.address) == 0
    assert registry.tld == "bob"
    assert registry.owner == bob
    cfg = registry.config
    assert cfg.address_book == address_book.address
    assert cfg.ledger == ledger.address
    assert cfg.fee_receiver == treasury
    assert cfg.expiration_period == PERIOD
    assert registry.token.name == "Bob Names"
    assert registry.token.symbol == "BOB"
    assert registry.token.minter == registry.address
    assert factory.get_namespace("bob") == registry
    assert factory.get_namespace("BOB") == registry
    assert factory.get_namespace("nope") is None

    ev = host.events.filter(name="NamespaceDeployed")[-1]
    assert ev.args == {"label": "bob", "registry": registry.address, "owner": bob, "fee": NAMESPACE_FEE}


def test_label_taken(factory, registry, accounts):
    with pytest.raises(LabelTaken):
        factory.deploy_namespace(accounts["bob"], "x", "X", "anim", NAMESPACE_FEE)
    with pytest.raises(LabelTaken):
        factory.deploy_namespace(accounts["bob"], "x", "X", "ANIM", NAMESPACE_FEE)


@pytest.mark.parametrize("payment", [0, NAMESPACE_FEE - 1, NAMESPACE_FEE + 1, 10 * NAMESPACE_FEE])
def test_wrong_fee_even_when_overpaying(host, factory, accounts, payment):
    bob = accounts["bob"]
    before = host.balance_of(bob)
    with pytest.raises(WrongFee):
        factory.deploy_namespace(bob, "x", "X", "xyz", payment)
    assert host.balance_of(bob) == before
    assert factory.get_namespace("xyz") is None


def test_invalid_labels(factory, accounts):
    with pytest.raises(InvalidName):
        factory.deploy_namespace(accounts["bob"], "x", "X", "", NAMESPACE_FEE)
    with pytest.raises(InvalidName):
        factory.deploy_namespace(accounts["bob"], "x", "X", "a.b", NAMESPACE_FEE)


def test_failed_fee_forward_leaves_label_free(host, factory, accounts):
    def reject(host_, sender, amount):
        raise RuntimeError("closed")

    host.set_receiver(accounts["treasury"], reject)
    with pytest.raises(TransferFailed):
        factory.deploy_namespace(accounts["bob"], "x", "X", "xyz", NAMESPACE_FEE)
    assert factory.get_namespace("xyz") is None
    assert factory.namespaces() == []


def test_namespaces_in_deployment_order(factory, accounts):
    a = factory.deploy_namespace(accounts["bob"], "Z", "Z", "zzz", NAMESPACE_FEE)
    b = factory.deploy_namespace(accounts["carol"], "A", "A", "aaa", NAMESPACE_FEE)
    assert factory.namespaces() == [("zzz", a.address), ("aaa", b.address)]


def test_withdraw_sweeps_balance_to_fee_receiver(host, factory, accounts):
    bob, treasury = accounts["bob"], accounts["treasury"]
    assert host.send(bob, factory.address, 70)
    before = host.balance_of(treasury)

    with pytest.raises(Unauthorized):
        factory.withdraw(bob)

    assert factory.withdraw(treasury) == 70
    assert host.balance_of(treasury) - before == 70
    assert host.balance_of(factory.address) == 0
    assert factory.withdraw(treasury) == 0


def test_set_config_is_admin_only_and_wholesale(host, factory, address_book, ledger, accounts):
    admin, bob = accounts["admin"], accounts["bob"]
    new_receiver = det_address("new-receiver")

    with pytest.raises(Unauthorized):
        factory.set_config(bob, address_book.address, ledger.address, new_receiver, 7)

    factory.set_config(admin, address_book.address, ledger.address, new_receiver, 7)
    cfg = factory.config()
    assert (cfg.fee_receiver, cfg.fee) == (new_receiver, 7)
    assert cfg.expiration_period == PERIOD

    with pytest.raises(WrongFee):
        factory.deploy_namespace(bob, "x", "X", "xyz", NAMESPACE_FEE)
    registry = factory.deploy_namespace(bob, "x", "X", "xyz", 7)
    assert host.balance_of(new_receiver) == 7
    assert registry.config.fee_receiver == new_receiver

    with pytest.raises(Unauthorized):
        factory.withdraw(accounts["treasury"])


def test_default_prices_seed_new_namespaces_only(factory, registry, accounts):
    admin, bob = accounts["admin"], accounts["bob"]

    with pytest.raises(Unauthorized):
        factory.set_default_prices(bob, [(3, 1)])

    factory.set_default_prices(admin, [(3, 1), (8, 2)])
    fresh = factory.deploy_namespace(bob, "x", "X", "xyz", NAMESPACE_FEE)

    assert [(t.length, t.price) for t in fresh.price_tiers()] == [(3, 1), (8, 2)]
    assert [(t.length, t.price) for t in registry.price_tiers()] == [(3, 10), (4, 5), (5, 3)]


def test_registry_prices_are_independent(factory, registry, accounts):
    other = factory.deploy_namespace(accounts["bob"], "x", "X", "xyz", NAMESPACE_FEE)
    registry.set_price_config(accounts["alice"], 4, 99)
    assert registry.get_domain_price("abcd") == 99
    assert other.get_domain_price("abcd") == 5
