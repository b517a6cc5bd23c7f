"""
tld_registry.runtime.guard — non-reentrancy latch

A latch keyed by (contract address, scope) held in the host's transient
store for the duration of a guarded section. Contract mutators open their
section with `guarded`, which checks the latch before anything else happens
and then runs the body in a host transaction with the latch held:

    with guarded(host, addr, caller=c, value=v) as env:
        label = check_label(name)
        ...

Entering a section whose latch is already held raises `ReentrancyBlocked`
before the call parses its arguments or moves any value. The attempt also
*trips* the latch: when the outer section finishes it raises
`ReentrancyBlocked` too, so the outer operation is rolled back even when the
reentrant failure was swallowed on the way up (e.g. by a value transfer that
only reports success as a bool).
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Tuple

from ..errors import ReentrancyBlocked
from .context import CallEnv

_HELD = "held"
_TRIPPED = "tripped"


def _latch_key(address: bytes, scope: bytes) -> Tuple[str, bytes, bytes]:
    return ("reentrancy", bytes(address), scope)


def is_entered(host, address: bytes, scope: bytes = b"default") -> bool:
    return _latch_key(address, scope) in host.transient


def _refuse_if_entered(host, key: Tuple[str, bytes, bytes]) -> None:
    if key in host.transient:
        host.transient[key] = _TRIPPED
        raise ReentrancyBlocked(address=key[1], scope=key[2])


@contextmanager
def nonreentrant(host, address: bytes, scope: bytes = b"default") -> Iterator[None]:
    key = _latch_key(address, scope)
    _refuse_if_entered(host, key)
    host.transient[key] = _HELD
    try:
        yield
    except Exception as exc:
        if host.transient.get(key) == _TRIPPED:
            raise ReentrancyBlocked("reentrant call attempted during operation", address=address, scope=scope) from exc
        raise
    else:
        if host.transient.get(key) == _TRIPPED:
            raise ReentrancyBlocked("reentrant call attempted during operation", address=address, scope=scope)
    finally:
        host.transient.pop(key, None)


@contextmanager
def guarded(
    host,
    address: bytes,
    *,
    caller: bytes,
    value: int = 0,
    scope: bytes = b"default",
) -> Iterator[CallEnv]:
    """
    Latch check, then `host.transaction(caller, address, value)` with the
    latch held. A tripped latch fails inside the transaction, so the whole
    section reverts.
    """
    _refuse_if_entered(host, _latch_key(address, scope))
    with host.transaction(caller=caller, to=address, value=value) as env, nonreentrant(host, address, scope):
        yield env


__all__ = ["nonreentrant", "guarded", "is_entered"]
