"""
tld_registry.runtime.host — sequential, journaled execution host

The host is the ledger every contract in this package runs against. It owns:

- a `Journal` over the persistent KV (nested checkpoints),
- native value balances and value moves between addresses,
- contract address derivation and code markers (the contract *kind*),
- the event sink,
- a transient, non-persisted store (used by `guard` for latches),
- an injected clock.

Transactions
------------
Every state-changing contract operation runs inside

    with host.transaction(caller=c, to=contract, value=v) as env:
        ...

which opens a checkpoint, moves `v` from `c` to `contract` (raising
`TransferFailed` on a short balance) and then either commits on normal exit
or reverts every journaled write and drops every event produced inside the
block when an exception escapes. Nested transactions form nested
checkpoints; only the outermost commit reaches disk, through one KV batch.

Outbound value
--------------
`send(frm, to, amount)` never raises. It runs in its own nested transaction,
invokes the receive hook registered for `to` (if any) and reports success as
a bool. A failing hook (including a reentrancy attempt) reverts just the send
and yields False. Callers decide whether a False is fatal.
"""

from __future__ import annotations

import hashlib
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from ..db import META, STATE, open_kv
from ..db.kv import KV, be_u64, be_u256, from_be
from ..errors import NotFound, TransferFailed
from ..logging import get_logger
from ..state import Journal
from .context import ADDRESS_LEN, CallEnv, SystemClock, to_bytes, to_hex
from .events import Event, EventSink

log = get_logger(__name__)

ReceiveHook = Callable[["Host", bytes, int], None]

_CREATE_DOMAIN = b"tldreg/create"


class Host:
    def __init__(self, kv: KV, *, clock: Any = None) -> None:
        self.journal = Journal(kv)
        self.events = EventSink()
        self.clock = clock if clock is not None else SystemClock()
        self.transient: Dict[Any, Any] = {}
        self._receivers: Dict[bytes, ReceiveHook] = {}
        self._envs: List[CallEnv] = []

    @classmethod
    def open(cls, uri: str = "memory://", *, clock: Any = None) -> "Host":
        """Open a host over the KV at `uri` (see `tld_registry.db.open_kv`)."""
        return cls(open_kv(uri), clock=clock)

    def close(self) -> None:
        if self.journal.depth():
            raise RuntimeError("cannot close host with an open transaction")
        self.journal.kv.close()

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    @property
    def env(self) -> Optional[CallEnv]:
        """Environment of the innermost open transaction, if any."""
        return self._envs[-1] if self._envs else None

    def now(self) -> int:
        return self._envs[0].timestamp if self._envs else self.clock.now()

    @contextmanager
    def transaction(self, *, caller: bytes, to: Optional[bytes] = None, value: int = 0) -> Iterator[CallEnv]:
        env = CallEnv(caller=caller, to=to, value=value, timestamp=self.now(), depth=len(self._envs) + 1)
        if env.value and env.to is None:
            raise ValueError("value requires a recipient")

        self.journal.begin()
        mark = self.events.mark()
        self._envs.append(env)
        try:
            if env.value:
                self._move(env.caller, env.to, env.value)  # type: ignore[arg-type]
            yield env
        except BaseException as exc:
            self.journal.revert()
            self.events.truncate(mark)
            log.debug(
                "transaction reverted",
                extra={"depth": env.depth, "caller": env.caller, "error": type(exc).__name__},
            )
            raise
        else:
            self.journal.commit()
        finally:
            self._envs.pop()

    # ------------------------------------------------------------------ #
    # Value
    # ------------------------------------------------------------------ #

    def balance_of(self, address: bytes) -> int:
        return from_be(self.journal.get(STATE.key(b"bal", address)))

    def _set_balance(self, address: bytes, amount: int) -> None:
        self.journal.set(STATE.key(b"bal", address), be_u256(amount))

    def _move(self, frm: bytes, to: bytes, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        have = self.balance_of(frm)
        if have < amount:
            raise TransferFailed("insufficient balance", sender=frm, balance=have, amount=amount)
        if frm == to or amount == 0:
            return
        self._set_balance(frm, have - amount)
        self._set_balance(to, self.balance_of(to) + amount)

    def mint_balance(self, address: bytes, amount: int) -> int:
        """Credit `amount` out of thin air (faucet for local setups and tests)."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        new = self.balance_of(address) + amount
        self._set_balance(address, new)
        return new

    def set_receiver(self, address: bytes, hook: Optional[ReceiveHook]) -> None:
        """Install (or remove with None) the receive hook run when `address` is paid via `send`."""
        if hook is None:
            self._receivers.pop(bytes(address), None)
        else:
            self._receivers[bytes(address)] = hook

    def send(self, frm: bytes, to: bytes, amount: int) -> bool:
        try:
            with self.transaction(caller=frm, to=to, value=amount):
                hook = self._receivers.get(bytes(to))
                if hook is not None:
                    hook(self, frm, amount)
        except Exception as exc:
            log.warning(
                "value transfer failed",
                extra={"sender": frm, "recipient": to, "amount": amount, "error": str(exc)},
            )
            return False
        return True

    # ------------------------------------------------------------------ #
    # Contracts
    # ------------------------------------------------------------------ #

    def next_nonce(self, address: bytes) -> int:
        key = STATE.key(b"nonce", address)
        n = from_be(self.journal.get(key))
        self.journal.set(key, be_u64(n + 1))
        return n

    def create_contract(self, kind: str, deployer: bytes) -> bytes:
        """Derive a fresh address for `deployer` and mark it with contract `kind`."""
        nonce = self.next_nonce(deployer)
        address = hashlib.sha3_256(_CREATE_DOMAIN + bytes(deployer) + be_u64(nonce)).digest()[:ADDRESS_LEN]
        self.journal.set(STATE.key(b"code", address), kind.encode("ascii"))
        log.debug("contract created", extra={"kind": kind, "address": address, "deployer": deployer})
        return address

    def code_of(self, address: bytes) -> Optional[str]:
        raw = self.journal.get(STATE.key(b"code", address))
        return raw.decode("ascii") if raw is not None else None

    def contract(self, address: bytes | str):
        """Rebuild the contract handle deployed at `address`."""
        from ..contracts import KINDS

        addr = to_bytes(address)
        kind = self.code_of(addr)
        if kind is None or kind not in KINDS:
            raise NotFound("no contract at address", address=addr)
        return KINDS[kind](self, addr)

    # ------------------------------------------------------------------ #
    # Contract storage
    # ------------------------------------------------------------------ #

    def sload(self, address: bytes, *slot: Any) -> Optional[bytes]:
        return self.journal.get(STATE.key(b"stor", address, *slot))

    def sstore(self, address: bytes, *slot: Any, value: bytes) -> None:
        self.journal.set(STATE.key(b"stor", address, *slot), value)

    def sdelete(self, address: bytes, *slot: Any) -> None:
        self.journal.delete(STATE.key(b"stor", address, *slot))

    def sscan(self, address: bytes, *slot: Any) -> Iterator[Tuple[bytes, bytes]]:
        """(full key, value) pairs stored under the slot prefix, in key order."""
        return self.journal.iter_prefix(STATE.key(b"stor", address, *slot))

    # ------------------------------------------------------------------ #
    # Events & metadata
    # ------------------------------------------------------------------ #

    def emit(self, address: bytes, name: str, args: Optional[Dict[str, Any]] = None) -> Event:
        ev = self.events.append(address, name, args)
        log.debug("event", extra={"event": name, "address": to_hex(address)})
        return ev

    def get_meta(self, name: str) -> Optional[bytes]:
        return self.journal.get(META.key(name))

    def set_meta(self, name: str, value: bytes) -> None:
        self.journal.set(META.key(name), value)


__all__ = ["Host", "ReceiveHook"]
