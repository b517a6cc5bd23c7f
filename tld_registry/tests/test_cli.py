# -*- coding: utf-8 -*-
"""
End-to-end CLI tests against a throwaway SQLite store.
"""

from __future__ import annotations

import json

import logging

import pytest
from typer.testing import CliRunner

from tld_registry.cli import app
from tld_registry.logging import JSONFormatter

from .conftest import det_address

runner = CliRunner()

ADMIN = "0x" + det_address("admin").hex()
TREASURY = "0x" + det_address("treasury").hex()
ALICE = "0x" + det_address("alice").hex()
BOB = "0x" + det_address("bob").hex()


@pytest.fixture
def invoke(tmp_path):
    base = ["--db", f"sqlite:///{tmp_path / 'cli.db'}", "--log-level", "ERROR"]

    def _run(*args: str, json_out: bool = True, code: int = 0):
        argv = base + (["--json"] if json_out else []) + list(args)
        result = runner.invoke(app, argv, env={"TLDREG_LOG_FORMAT": "text"})
        assert result.exit_code == code, result.output
        if code == 0 and json_out:
            return json.loads(result.stdout)
        return result

    return _run


@pytest.fixture
def initialized(invoke):
    invoke("init", "--deployer", ADMIN, "--fee-receiver", TREASURY, "--fee", "100", "--period", "365d", "--tiers", "3:10,4:5,5:3")
    invoke("fund", ALICE, "1000")
    invoke("fund", BOB, "1000")
    invoke("deploy", "anim", "--caller", ALICE, "--name", "Anim Names", "--symbol", "ANIM")
    return invoke


def test_init_reports_stack(invoke):
    out = invoke("init", "--deployer", ADMIN, "--fee-receiver", TREASURY, "--tiers", "3:10,4:5")
    assert out["fee_receiver"] == TREASURY
    assert out["price_tiers"] == "3:10,4:5"
    assert out["factory"].startswith("0x")

    again = invoke("init", "--deployer", ADMIN, "--fee-receiver", TREASURY, code=1)
    assert "already initialized" in again.output


def test_register_and_whois(initialized):
    invoke = initialized
    out = invoke("register", "alice.anim", "--caller", ALICE)
    assert out == {
        "name": "alice.anim",
        "token_id": 1,
        "owner": ALICE,
        "expires": out["expires"],
        "paid": 3,
    }

    who = invoke("whois", "alice.anim")
    assert who["owner"] == ALICE
    assert who["token_id"] == 1
    assert who["resolver"] == ALICE
    assert who["live_resolver"] == ALICE

    assert invoke("balance", ALICE)["balance"] == 1000 - 100 - 3
    assert invoke("balance", TREASURY)["balance"] == 100 + 3


def test_records_and_namespaces(initialized):
    invoke = initialized
    invoke("register", "alice.anim", "--caller", ALICE)
    invoke("register", "bob.anim", "--caller", BOB, "--payment", "20")

    rows = invoke("records")
    assert [r["full_name"] for r in rows] == ["alice.anim", "bob.anim"]
    assert [r["registration_price"] for r in rows] == [3, 10]

    mine = invoke("records", "--owner", BOB)
    assert [r["full_name"] for r in mine] == ["bob.anim"]
    assert [r["full_name"] for r in invoke("records", "--namespace", "anim")] == ["alice.anim", "bob.anim"]

    spaces = invoke("namespaces")
    assert [(s["label"], s["owner"]) for s in spaces] == [("anim", ALICE)]


def test_subdomain_and_primary(initialized):
    invoke = initialized
    invoke("register", "alice.anim", "--caller", ALICE)
    sub = invoke("subdomain", "alice.anim", "blog", "--caller", ALICE, "--owner", BOB)
    assert sub["name"] == "blog.alice.anim"
    assert sub["owner"] == BOB

    out = invoke("set-primary", "alice.anim", "--caller", ALICE)
    assert out["primary"] == "alice.anim"


def test_admin_commands(initialized):
    invoke = initialized
    out = invoke("set-price", "anim", "3", "50", "--caller", ALICE)
    assert out["price_tiers"].startswith("3:50")
    invoke("set-price", "anim", "3", "50", "--caller", BOB, code=1)

    # fees were forwarded at deploy time; nothing is left to sweep
    assert invoke("withdraw", "--caller", TREASURY)["amount"] == 0
    invoke("withdraw", "--caller", ALICE, code=1)


def test_registry_errors_exit_one(initialized):
    invoke = initialized
    invoke("register", "alice.anim", "--caller", ALICE)
    result = invoke("register", "alice.anim", "--caller", BOB, code=1)
    assert "REG/ALREADY_REGISTERED" in result.output

    result = invoke("register", "al.anim", "--caller", ALICE, "--payment", "1", code=1)
    assert "REG/INVALID_LENGTH" in result.output

    result = invoke("whois", "alice.nope", code=1)
    assert "REG/NOT_FOUND" in result.output


def test_bad_input_exits_two(initialized):
    invoke = initialized
    invoke("register", "alice.anim", "--caller", "0xnothex", code=2)
    invoke("register", "noseparator", "--caller", ALICE, code=2)


def test_uninitialized_store(invoke):
    result = invoke("namespaces", code=1)
    assert "not initialized" in result.output


def test_table_output(initialized):
    result = initialized("namespaces", json_out=False)
    assert "anim" in result.output


def test_failed_command_is_logged_under_its_trace(initialized, caplog):
    invoke = initialized
    invoke("register", "alice.anim", "--caller", ALICE)
    caplog.handler.setFormatter(JSONFormatter())
    with caplog.at_level(logging.INFO, logger="tld_registry"):
        invoke("--log-level", "INFO", "register", "alice.anim", "--caller", BOB, code=1)

    lines = [json.loads(line) for line in caplog.text.splitlines() if line.startswith("{")]
    failed = [p for p in lines if p["msg"] == "command failed"]
    assert len(failed) == 1
    assert failed[0]["code"] == "REG/ALREADY_REGISTERED"
    assert failed[0]["command"] == "register"
    assert failed[0]["namespace"] == "anim"
    assert failed[0]["trace_id"]
