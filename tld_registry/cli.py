
"""
tld_registry.cli
----------------

Command line front-end over a persisted host store.

Examples
--------
# One-time setup: shared address book + record ledger + factory
tldreg --db sqlite:///tldreg.db init --deployer 0x<admin> --fee-receiver 0x<treasury>

# Devnet faucet, then spawn a namespace and register a name in it
tldreg fund 0x<alice> 1000
tldreg deploy anim --caller 0x<alice> --name "Anim Names" --symbol ANIM --payment 100
tldreg register alice.anim --caller 0x<alice> --payment 5

# Inspect
tldreg whois alice.anim
tldreg records --owner 0x<alice> --json

Full names are "<path>.<tld>"; the last label selects the namespace.
Registry errors print their code and exit with status 1; malformed input
exits with status 2.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from . import logging as rlog
from .config import Config, format_price_tiers, load_config, parse_duration, parse_price_tiers
from .contracts import NamespaceFactory, RecordLedger, Registry, ResolverAddressBook, deploy_stack
from .errors import NotFound, RegistryError
from .runtime import ContextError, Host, to_address, to_hex
from .version import runtime_banner

app = typer.Typer(
    name="tldreg",
    add_completion=False,
    no_args_is_help=True,
    help="Register and manage names in per-namespace registries.",
)

log = rlog.get_logger("tld_registry.cli")

_META_KEYS = ("address_book", "ledger", "factory")


@dataclass
class _State:
    config: Config
    json_out: bool


# -------------------- utils --------------------


def _state(ctx: typer.Context) -> _State:
    return ctx.obj  # type: ignore[return-value]


def _addr(value: str, what: str = "address") -> bytes:
    try:
        return to_address(value)
    except ContextError as e:
        raise typer.BadParameter(f"{what}: {e}") from e


def _split_name(full: str) -> Tuple[str, str]:
    path, sep, tld = full.rpartition(".")
    if not sep or not path or not tld:
        raise typer.BadParameter(f"expected <name>.<tld>, got {full!r}")
    return path, tld


@contextmanager
def _host(ctx: typer.Context) -> Iterator[Host]:
    """Open the store for one command; every log line it produces shares a trace id."""
    with rlog.trace_scope():
        rlog.bind(command=ctx.info_name)
        host = Host.open(_state(ctx).config.db_uri)
        try:
            yield host
        except RegistryError as e:
            log.info("command failed", extra={"code": e.code})
            typer.secho(f"error {e.code}: {e.message}", fg=typer.colors.RED, err=True)
            if e.data:
                typer.echo(json.dumps(e.data, sort_keys=True), err=True)
            raise typer.Exit(1)
        finally:
            host.close()


def _stack(host: Host) -> Tuple[ResolverAddressBook, RecordLedger, NamespaceFactory]:
    addrs = [host.get_meta(k) for k in _META_KEYS]
    if any(a is None for a in addrs):
        raise NotFound("store is not initialized; run `tldreg init` first")
    book, ledger, factory = (host.contract(a) for a in addrs)  # type: ignore[arg-type]
    return book, ledger, factory


def _registry(host: Host, tld: str) -> Registry:
    _, _, factory = _stack(host)
    registry = factory.get_namespace(tld)
    if registry is None:
        raise NotFound("no such namespace", label=tld)
    rlog.bind(namespace=registry.tld)
    return registry


def _jsonable(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return to_hex(v)
    if isinstance(v, dict):
        return {k: _jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    return v


def _output(ctx: typer.Context, data: Dict[str, Any], title: Optional[str] = None) -> None:
    data = _jsonable(data)
    if _state(ctx).json_out:
        typer.echo(json.dumps(data, indent=2, sort_keys=True))
        return
    table = Table(title=title, show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value", overflow="fold")
    for k, v in data.items():
        table.add_row(k, "-" if v is None else str(v))
    Console().print(table)


def _output_rows(ctx: typer.Context, rows: List[Dict[str, Any]], title: str) -> None:
    rows = [_jsonable(r) for r in rows]
    if _state(ctx).json_out:
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    if not rows:
        typer.echo(f"No {title.lower()}.")
        return
    table = Table(title=title)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for r in rows:
        table.add_row(*("-" if v is None else str(v) for v in r.values()))
    Console().print(table)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(runtime_banner())
        raise typer.Exit()


# -------------------- commands --------------------


@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(None, "--db", help="KV URI (default: $TLDREG_DB or sqlite:///tldreg.db)."),
    json_out: bool = typer.Option(False, "--json", help="Output results as JSON."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG/INFO/WARNING/ERROR."),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    cfg = load_config(overrides={"db_uri": db} if db else None)
    rlog.configure(json=cfg.logging.json, level=log_level or cfg.logging.level)
    rlog.bind(component="cli")
    ctx.obj = _State(config=cfg, json_out=json_out)


@app.command("init")
def cmd_init(
    ctx: typer.Context,
    deployer: str = typer.Option(..., "--deployer", help="Administrator address (0x-hex)."),
    fee_receiver: str = typer.Option(..., "--fee-receiver", help="Receives registration and namespace fees."),
    fee: Optional[int] = typer.Option(None, "--fee", help="Namespace creation fee (default from config)."),
    period: Optional[str] = typer.Option(None, "--period", help="Expiration period, e.g. 365d."),
    tiers: Optional[str] = typer.Option(None, "--tiers", help='Default price tiers, e.g. "3:10,4:5,5:3".'),
) -> None:
    """Deploy the shared address book, record ledger and namespace factory."""
    defaults = _state(ctx).config.namespace
    admin = _addr(deployer, "--deployer")
    receiver = _addr(fee_receiver, "--fee-receiver")
    try:
        price_tiers = parse_price_tiers(tiers) if tiers else defaults.price_tiers
        expiration = parse_duration(period) if period else defaults.expiration_period
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    with _host(ctx) as host:
        if host.get_meta("factory") is not None:
            typer.secho("store already initialized", fg=typer.colors.YELLOW, err=True)
            raise typer.Exit(1)
        with host.transaction(caller=admin):
            book, ledger, factory = deploy_stack(
                host,
                admin,
                fee_receiver=receiver,
                fee=defaults.namespace_fee if fee is None else fee,
                expiration_period=expiration,
                price_tiers=price_tiers,
            )
            for key, contract in zip(_META_KEYS, (book, ledger, factory)):
                host.set_meta(key, contract.address)
        cfg = factory.config()
        _output(
            ctx,
            {
                "address_book": book.address,
                "ledger": ledger.address,
                "factory": factory.address,
                "fee_receiver": cfg.fee_receiver,
                "fee": cfg.fee,
                "expiration_period": cfg.expiration_period,
                "price_tiers": format_price_tiers(cfg.price_tiers),
            },
            title="Initialized",
        )


@app.command("fund")
def cmd_fund(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Account to credit (0x-hex)."),
    amount: int = typer.Argument(..., min=0, help="Amount to credit."),
) -> None:
    """Credit an account from the devnet faucet."""
    who = _addr(address)
    with _host(ctx) as host:
        with host.transaction(caller=who):
            balance = host.mint_balance(who, amount)
        _output(ctx, {"address": who, "balance": balance})


@app.command("balance")
def cmd_balance(ctx: typer.Context, address: str = typer.Argument(..., help="Account (0x-hex).")) -> None:
    """Show an account's balance."""
    who = _addr(address)
    with _host(ctx) as host:
        _output(ctx, {"address": who, "balance": host.balance_of(who)})


@app.command("deploy")
def cmd_deploy(
    ctx: typer.Context,
    label: str = typer.Argument(..., help="Namespace label (TLD)."),
    caller: str = typer.Option(..., "--caller", help="Paying account; becomes the registry administrator."),
    name: str = typer.Option("", "--name", help="Ownership token name (default: '<LABEL> Names')."),
    symbol: str = typer.Option("", "--symbol", help="Ownership token symbol (default: upper-case label)."),
    payment: Optional[int] = typer.Option(None, "--payment", help="Payment; must equal the namespace fee."),
) -> None:
    """Deploy the registry for a new namespace."""
    who = _addr(caller, "--caller")
    with _host(ctx) as host:
        _, _, factory = _stack(host)
        fee = factory.config().fee if payment is None else payment
        registry = factory.deploy_namespace(
            who, name or f"{label} Names", symbol or label.upper(), label, fee
        )
        _output(ctx, {"label": registry.tld, "registry": registry.address, "token": registry.token.address, "owner": registry.owner})


@app.command("register")
def cmd_register(
    ctx: typer.Context,
    full_name: str = typer.Argument(..., help="Name to register, e.g. alice.anim."),
    caller: str = typer.Option(..., "--caller", help="Registrant (0x-hex)."),
    payment: Optional[int] = typer.Option(None, "--payment", help="Payment (default: the exact price)."),
) -> None:
    """Register a top-level name."""
    who = _addr(caller, "--caller")
    path, tld = _split_name(full_name)
    with _host(ctx) as host:
        registry = _registry(host, tld)
        amount = registry.get_domain_price(path) if payment is None else payment
        token_id = registry.register_domain(who, path, amount)
        rec = registry.get_domain(path)
        _output(ctx, {"name": rec.name, "token_id": token_id, "owner": who, "expires": rec.expires, "paid": amount})


@app.command("renew")
def cmd_renew(
    ctx: typer.Context,
    full_name: str = typer.Argument(..., help="Name to renew."),
    caller: str = typer.Option(..., "--caller", help="Current holder (0x-hex)."),
    payment: Optional[int] = typer.Option(None, "--payment", help="Payment (default: the exact price)."),
) -> None:
    """Extend a name by one expiration period."""
    who = _addr(caller, "--caller")
    path, tld = _split_name(full_name)
    with _host(ctx) as host:
        registry = _registry(host, tld)
        amount = registry.get_domain_price(path) if payment is None else payment
        expires = registry.renew_domain(who, path, amount)
        _output(ctx, {"name": full_name, "expires": expires, "paid": amount})


@app.command("set-resolver")
def cmd_set_resolver(
    ctx: typer.Context,
    full_name: str = typer.Argument(..., help="Name to update."),
    resolver: str = typer.Argument(..., help="New resolver address (0x-hex)."),
    caller: str = typer.Option(..., "--caller", help="Current holder (0x-hex)."),
) -> None:
    """Point a name at a new resolver address."""
    who = _addr(caller, "--caller")
    target = _addr(resolver, "resolver")
    path, tld = _split_name(full_name)
    with _host(ctx) as host:
        registry = _registry(host, tld)
        registry.set_resolver(who, path, target)
        _output(ctx, {"name": full_name, "resolver": target})


@app.command("set-primary")
def cmd_set_primary(
    ctx: typer.Context,
    full_name: str = typer.Argument(..., help="Name to make primary."),
    caller: str = typer.Option(..., "--caller", help="Current holder (0x-hex)."),
) -> None:
    """Make a name the caller's primary (reverse) name."""
    who = _addr(caller, "--caller")
    path, tld = _split_name(full_name)
    with _host(ctx) as host:
        registry = _registry(host, tld)
        registry.set_primary_domain(who, path)
        _output(ctx, {"owner": who, "primary": registry.address_book.primary_display(who)})


@app.command("subdomain")
def cmd_subdomain(
    ctx: typer.Context,
    parent: str = typer.Argument(..., help="Parent name, e.g. alice.anim."),
    sub: str = typer.Argument(..., help="Sub-name label, e.g. blog."),
    caller: str = typer.Option(..., "--caller", help="Holder of the parent (0x-hex)."),
    owner: Optional[str] = typer.Option(None, "--owner", help="Owner of the sub-name (default: caller)."),
) -> None:
    """Create a sub-name under a name you hold."""
    who = _addr(caller, "--caller")
    holder = _addr(owner, "--owner") if owner else who
    path, tld = _split_name(parent)
    with _host(ctx) as host:
        registry = _registry(host, tld)
        token_id = registry.create_sub_domain(who, path, sub, holder)
        rec = registry.domain_of_token(token_id)
        _output(ctx, {"name": rec.name, "token_id": token_id, "owner": holder, "expires": rec.expires})


@app.command("whois")
def cmd_whois(ctx: typer.Context, full_name: str = typer.Argument(..., help="Name to look up.")) -> None:
    """Show a name's record, holder and token."""
    path, tld = _split_name(full_name)
    with _host(ctx) as host:
        registry = _registry(host, tld)
        rec = registry.get_domain(path)
        _output(
            ctx,
            {
                "name": rec.name,
                "node": registry.generate_hash(path),
                "owner": registry.owner_of_domain(path),
                "token_id": registry.token_of(path),
                "resolver": rec.resolver,
                "live_resolver": registry.get_resolver(path),
                "expires": rec.expires,
            },
            title=rec.name,
        )


@app.command("records")
def cmd_records(
    ctx: typer.Context,
    owner: Optional[str] = typer.Option(None, "--owner", help="Only entries registered by this owner."),
    namespace: Optional[str] = typer.Option(None, "--namespace", help="Only entries from this namespace's registry."),
) -> None:
    """List registration history from the record ledger."""
    if owner and namespace:
        raise typer.BadParameter("use at most one of --owner / --namespace")
    with _host(ctx) as host:
        _, ledger, _ = _stack(host)
        if owner:
            entries = ledger.entries_by_owner(_addr(owner, "--owner"))
        elif namespace:
            entries = ledger.entries_by_source(_registry(host, namespace).address)
        else:
            entries = ledger.all_entries()
        _output_rows(ctx, [e.to_dict() for e in entries], title="Records")


@app.command("namespaces")
def cmd_namespaces(ctx: typer.Context) -> None:
    """List deployed namespaces."""
    with _host(ctx) as host:
        _, _, factory = _stack(host)
        rows = []
        for label, address in factory.namespaces():
            registry = Registry(host, address)
            rows.append({"label": label, "registry": address, "owner": registry.owner})
        _output_rows(ctx, rows, title="Namespaces")


@app.command("set-price")
def cmd_set_price(
    ctx: typer.Context,
    label: str = typer.Argument(..., help="Namespace label."),
    length: int = typer.Argument(..., min=1, help="Name length the price applies to."),
    price: int = typer.Argument(..., min=0, help="Price for that length."),
    caller: str = typer.Option(..., "--caller", help="Registry administrator (0x-hex)."),
) -> None:
    """Set a namespace's price for one name length."""
    who = _addr(caller, "--caller")
    with _host(ctx) as host:
        registry = _registry(host, label)
        registry.set_price_config(who, length, price)
        tiers = tuple((t.length, t.price) for t in registry.price_tiers())
        _output(ctx, {"label": registry.tld, "price_tiers": format_price_tiers(tiers)})


@app.command("withdraw")
def cmd_withdraw(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller", help="The factory's fee receiver (0x-hex)."),
) -> None:
    """Sweep the factory's balance to the fee receiver."""
    who = _addr(caller, "--caller")
    with _host(ctx) as host:
        _, _, factory = _stack(host)
        amount = factory.withdraw(who)
        _output(ctx, {"to": who, "amount": amount})


if __name__ == "__main__":  # pragma: no cover
    app()
