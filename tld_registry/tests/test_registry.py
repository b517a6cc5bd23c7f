# -*- coding: utf-8 -*-
"""
Registry tests
- Registration: pricing by length, refunds, fee forwarding, token ids, expiry
- Renewal: additive extension, ownership checks
- Resolver binding vs. token ownership
- Sub-names, burn, admin price configuration, primary names
"""

from __future__ import annotations

import pytest

from tld_registry.errors import (AlreadyRegistered, InsufficientPayment,
                                 InvalidLength, InvalidName, NotFound,
                                 NotOwner, TransferFailed, Unauthorized)
from tld_registry.hashing import name_hash, sub_hash

from .conftest import GENESIS_TS, PERIOD, STARTING_BALANCE, det_address


# ----------------------------------------------------------------------------- registration


def test_four_char_name_forwards_price_and_refunds_excess(host, registry, accounts):
    alice, treasury = accounts["alice"], accounts["treasury"]
    alice_before = host.balance_of(alice)
    treasury_before = host.balance_of(treasury)

    token_id = registry.register_domain(alice, "abcd", 6)

    assert token_id == 1
    assert host.balance_of(treasury) - treasury_before == 5
    assert alice_before - host.balance_of(alice) == 5
    assert host.balance_of(registry.address) == 0
    assert registry.token_of("abcd") == 1
    assert registry.generate_hash("abcd") == name_hash("abcd", "anim")
    assert registry.get_expiration("abcd") == GENESIS_TS + PERIOD
    assert registry.domain_of_token(1).name == "abcd.anim"


def test_register_then_check_ownership_and_reject_duplicates(registry, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    registry.register_domain(alice, "alice", 3)

    assert registry.check_ownership("alice", alice)
    assert not registry.check_ownership("alice", bob)
    assert registry.owner_of_domain("alice") == alice
    assert not registry.is_available("alice")

    with pytest.raises(AlreadyRegistered):
        registry.register_domain(bob, "alice", 3)
    with pytest.raises(AlreadyRegistered):
        registry.register_domain(alice, "ALICE", 3)


@pytest.mark.parametrize("name", ["a..b", "alice.", ".alice", "a.b.c..d", "ali\x00ce"])
def test_check_ownership_is_false_for_malformed_names(registry, accounts, name):
    alice = accounts["alice"]
    registry.register_domain(alice, "alice", 3)
    assert registry.check_ownership(name, alice) is False


def test_record_starts_with_registrant_as_resolver(registry, accounts):
    alice = accounts["alice"]
    registry.register_domain(alice, "Alice", 3)
    rec = registry.get_domain("alice")
    assert rec.name == "alice.anim"
    assert rec.resolver == alice
    assert registry.get_resolver("ALICE") == alice


def test_registration_events_in_order(host, registry, accounts, event_names):
    mark = host.events.mark()
    registry.register_domain(accounts["bob"], "bobby", 3)
    assert event_names(mark) == ["Transfer", "NameLinked", "RecordAdded", "DomainRegistered"]
    ev = host.events.filter(name="DomainRegistered")[-1]
    assert ev.address == registry.address
    assert ev.args["name"] == "bobby.anim"
    assert ev.args["token_id"] == 1
    assert ev.args["price"] == 3
    assert ev.args["expires"] == GENESIS_TS + PERIOD


@pytest.mark.parametrize("name", ["", "ab", "abcdef", "x"])
def test_unpriced_lengths_fail_invalid_length(registry, accounts, name):
    with pytest.raises(InvalidLength):
        registry.get_domain_price(name)
    with pytest.raises(InvalidLength):
        registry.register_domain(accounts["alice"], name, 1_000)


@pytest.mark.parametrize("name,price", [("abc", 10), ("abcd", 5), ("abcde", 3)])
def test_exact_payment_succeeds_and_one_less_fails(host, registry, accounts, name, price):
    bob = accounts["bob"]
    assert registry.get_domain_price(name) == price

    with pytest.raises(InsufficientPayment) as ei:
        registry.register_domain(bob, name, price - 1)
    assert ei.value.data == {"price": price, "payment": price - 1}
    assert registry.is_available(name)
    assert host.balance_of(bob) == STARTING_BALANCE

    registry.register_domain(bob, name, price)
    assert host.balance_of(bob) == STARTING_BALANCE - price


def test_check_order_already_registered_before_length_before_payment(registry, accounts):
    alice = accounts["alice"]
    registry.register_domain(alice, "abcd", 5)
    with pytest.raises(AlreadyRegistered):
        registry.register_domain(alice, "abcd", 0)
    with pytest.raises(InvalidLength):
        registry.register_domain(alice, "ab", 0)


def test_labels_with_separator_or_control_chars_are_rejected(registry, accounts):
    with pytest.raises(InvalidName):
        registry.register_domain(accounts["alice"], "a.bc", 10)
    with pytest.raises(InvalidName):
        registry.register_domain(accounts["alice"], "ab\x00c", 10)


def test_short_balance_fails_without_side_effects(host, registry, ledger):
    pauper = det_address("pauper")
    host.mint_balance(pauper, 2)
    with pytest.raises(TransferFailed):
        registry.register_domain(pauper, "abcde", 3)
    assert host.balance_of(pauper) == 2
    assert registry.is_available("abcde")
    assert ledger.count() == 0


def test_failed_fee_forward_rolls_back_everything(host, registry, ledger, accounts, event_names):
    alice, treasury = accounts["alice"], accounts["treasury"]
    alice_before = host.balance_of(alice)
    treasury_before = host.balance_of(treasury)

    def reject(host_, sender, amount):
        raise RuntimeError("treasury is closed")

    host.set_receiver(treasury, reject)
    mark = host.events.mark()
    with pytest.raises(TransferFailed):
        registry.register_domain(alice, "abcd", 6)

    assert registry.is_available("abcd")
    assert registry.token.total_minted() == 0
    assert ledger.count() == 0
    assert host.balance_of(alice) == alice_before
    assert host.balance_of(treasury) == treasury_before
    assert event_names(mark) == []
    with pytest.raises(NotFound):
        registry.get_domain("abcd")


def test_failed_refund_rolls_back_but_exact_payment_needs_no_refund(host, registry, accounts):
    carol = accounts["carol"]

    def reject(host_, sender, amount):
        raise RuntimeError("no refunds please")

    host.set_receiver(carol, reject)
    with pytest.raises(TransferFailed) as ei:
        registry.register_domain(carol, "carol", 4)
    assert ei.value.message == "refund failed"
    assert registry.is_available("carol")
    assert host.balance_of(carol) == STARTING_BALANCE

    registry.register_domain(carol, "carol", 3)
    assert registry.check_ownership("carol", carol)


def test_token_ids_are_monotonic_from_one(registry, accounts):
    ids = [registry.register_domain(accounts["bob"], n, 3) for n in ("aaaaa", "bbbbb", "ccccc")]
    assert ids == [1, 2, 3]
    assert registry.token.balance_of(accounts["bob"]) == 3


def test_token_lookup_for_unknown_name_and_token_zero(registry):
    assert registry.token_of("nobody") is None
    with pytest.raises(NotFound):
        registry.domain_of_token(0)
    with pytest.raises(NotFound):
        registry.domain_of_token(42)
    with pytest.raises(NotFound):
        registry.owner_of_domain("nobody")
    assert not registry.check_ownership("nobody", b"\x00" * 20)


# ----------------------------------------------------------------------------- renewal


def test_renew_adds_one_period(registry, accounts, clock):
    alice = accounts["alice"]
    registry.register_domain(alice, "abcd", 5)
    clock.advance(10)
    assert registry.renew_domain(alice, "abcd", 5) == GENESIS_TS + 2 * PERIOD
    assert registry.get_expiration("abcd") == GENESIS_TS + 2 * PERIOD


def test_renew_after_expiry_extends_from_stale_expiry(registry, accounts, clock):
    alice = accounts["alice"]
    registry.register_domain(alice, "abcd", 5)
    clock.advance(3 * PERIOD)
    assert registry.get_resolver("abcd") is None

    new_expiry = registry.renew_domain(alice, "abcd", 5)
    assert new_expiry == GENESIS_TS + 2 * PERIOD
    assert new_expiry < clock.now()
    assert registry.get_resolver("abcd") is None


def test_renew_requires_holder_and_payment(host, registry, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    registry.register_domain(alice, "abcd", 5)

    with pytest.raises(NotOwner):
        registry.renew_domain(bob, "abcd", 5)
    with pytest.raises(InsufficientPayment):
        registry.renew_domain(alice, "abcd", 4)
    with pytest.raises(NotFound):
        registry.renew_domain(alice, "wxyz", 5)

    before = host.balance_of(alice)
    registry.renew_domain(alice, "abcd", 9)
    assert before - host.balance_of(alice) == 5


def test_renew_emits_event(host, registry, accounts):
    alice = accounts["alice"]
    registry.register_domain(alice, "abcde", 3)
    registry.renew_domain(alice, "abcde", 3)
    ev = host.events.filter(name="DomainRenewed")[-1]
    assert ev.args == {
        "name": "abcde.anim",
        "node": name_hash("abcde", "anim"),
        "expires": GENESIS_TS + 2 * PERIOD,
        "price": 3,
    }


# ----------------------------------------------------------------------------- resolver


def test_set_resolver_is_independent_of_ownership(registry, accounts):
    alice, bob, carol = accounts["alice"], accounts["bob"], accounts["carol"]
    registry.register_domain(alice, "abcd", 5)

    registry.set_resolver(alice, "abcd", carol)
    assert registry.get_resolver("abcd") == carol
    assert registry.owner_of_domain("abcd") == alice

    with pytest.raises(NotOwner):
        registry.set_resolver(bob, "abcd", bob)
    with pytest.raises(NotOwner):
        registry.set_resolver(carol, "abcd", carol)


def test_reads_on_unknown_names_fail_not_found(registry):
    with pytest.raises(NotFound):
        registry.get_expiration("ghost")
    with pytest.raises(NotFound):
        registry.get_resolver("ghost")
    with pytest.raises(NotFound):
        registry.get_domain("ghost")


def test_resolver_hidden_once_expired(registry, accounts, clock):
    alice = accounts["alice"]
    registry.register_domain(alice, "abcd", 5)
    clock.set(GENESIS_TS + PERIOD - 1)
    assert registry.get_resolver("abcd") == alice
    clock.set(GENESIS_TS + PERIOD)
    assert registry.get_resolver("abcd") is None
    assert registry.get_domain("abcd").resolver == alice
    assert registry.check_ownership("abcd", alice)


# ----------------------------------------------------------------------------- sub-names


def test_sub_domain_is_scoped_under_parent(registry, ledger, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    registry.register_domain(alice, "alice", 3)

    token_id = registry.create_sub_domain(alice, "alice", "Blog", bob)

    assert token_id == 2
    node = registry.generate_hash("blog.alice")
    assert node == sub_hash(name_hash("alice", "anim"), "blog")
    assert node != name_hash("blog", "anim")
    assert node != name_hash("blog.alice", "anim")
    assert registry.owner_of_domain("blog.alice") == bob
    assert registry.get_domain("blog.alice").name == "blog.alice.anim"
    assert registry.get_resolver("blog.alice") == bob
    assert ledger.count() == 1


def test_sub_domain_takes_no_payment(host, registry, accounts):
    alice = accounts["alice"]
    registry.register_domain(alice, "alice", 3)
    before = host.balance_of(alice)
    registry.create_sub_domain(alice, "alice", "www", alice)
    assert host.balance_of(alice) == before


def test_sub_domain_rules(registry, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    registry.register_domain(alice, "alice", 3)

    with pytest.raises(NotOwner):
        registry.create_sub_domain(bob, "alice", "blog", bob)
    with pytest.raises(NotFound):
        registry.create_sub_domain(alice, "nobody", "blog", bob)
    with pytest.raises(InvalidLength):
        registry.create_sub_domain(alice, "alice", "", bob)

    registry.create_sub_domain(alice, "alice", "blog", bob)
    with pytest.raises(AlreadyRegistered):
        registry.create_sub_domain(alice, "alice", "BLOG", alice)


def test_nested_sub_domains_and_renewal_by_leaf_length(registry, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    registry.register_domain(alice, "alice", 3)
    registry.create_sub_domain(alice, "alice", "blog", bob)
    registry.create_sub_domain(bob, "blog.alice", "img", bob)

    assert registry.get_domain("img.blog.alice").name == "img.blog.alice.anim"
    assert registry.get_domain_price("blog.alice") == 5
    assert registry.renew_domain(bob, "blog.alice", 5) == GENESIS_TS + 2 * PERIOD


def test_sub_domain_expiry_follows_creation_time(registry, accounts, clock):
    alice = accounts["alice"]
    registry.register_domain(alice, "alice", 3)
    clock.advance(1000)
    registry.create_sub_domain(alice, "alice", "blog", alice)
    assert registry.get_expiration("blog.alice") == GENESIS_TS + 1000 + PERIOD


# ----------------------------------------------------------------------------- burn


def test_burn_is_admin_only_and_keeps_ledger_history(registry, ledger, address_book, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    registry.register_domain(bob, "abcd", 5)
    node = registry.generate_hash("abcd")

    with pytest.raises(Unauthorized):
        registry.burn_domain(bob, "abcd")

    registry.burn_domain(alice, "abcd")

    assert registry.is_available("abcd")
    assert registry.token.owner_of(1) is None
    assert registry.token.balance_of(bob) == 0
    assert address_book.linked_owner(node) is None
    with pytest.raises(NotFound):
        registry.get_domain("abcd")
    with pytest.raises(NotFound):
        registry.domain_of_token(1)
    assert ledger.count() == 1
    assert ledger.entry_at(0).full_name == "abcd.anim"

    with pytest.raises(NotFound):
        registry.burn_domain(alice, "abcd")

    assert registry.register_domain(bob, "abcd", 5) == 2
    assert ledger.count() == 2


# ----------------------------------------------------------------------------- pricing admin


def test_set_price_config_updates_and_appends(registry, accounts):
    alice, bob = accounts["alice"], accounts["bob"]

    with pytest.raises(Unauthorized):
        registry.set_price_config(bob, 6, 1)

    registry.set_price_config(alice, 4, 7)
    registry.set_price_config(alice, 6, 2)

    assert [(t.length, t.price) for t in registry.price_tiers()] == [(3, 10), (4, 7), (5, 3), (6, 2)]
    assert registry.get_domain_price("abcd") == 7
    assert registry.register_domain(bob, "abcdef", 2) == 1


# ----------------------------------------------------------------------------- primary names


def test_set_primary_domain(registry, address_book, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    registry.register_domain(alice, "alice", 3)

    with pytest.raises(NotOwner):
        registry.set_primary_domain(bob, "alice")
    with pytest.raises(NotFound):
        registry.set_primary_domain(alice, "ghost")

    registry.set_primary_domain(alice, "Alice")
    assert address_book.primary_name(alice) == registry.generate_hash("alice")
    assert address_book.primary_display(alice) == "alice.anim"


def test_primary_follows_token_transfer(registry, address_book, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    token_id = registry.register_domain(alice, "alice", 3)
    registry.set_primary_domain(alice, "alice")

    registry.token.transfer(alice, bob, token_id)
    assert registry.owner_of_domain("alice") == bob
    with pytest.raises(NotOwner):
        registry.set_primary_domain(alice, "alice")

    registry.set_primary_domain(bob, "alice")
    node = registry.generate_hash("alice")
    assert address_book.linked_owner(node) == bob
    assert address_book.primary_name(bob) == node
    assert address_book.primary_name(alice) is None
    assert node not in address_book.names_of(alice)
