from __future__ import annotations

"""
Canonical value encoding for contract storage
=============================================

Every structured value a contract persists (records, ledger entries, config
maps, price tier lists) goes through canonical CBOR via `cbor2`, so the same
logical value always yields the same bytes on disk.

Integers that must sort or compare as keys (token ids, counters, balances) are
stored as fixed-width big-endian words instead; see `tld_registry.db.kv`.
"""

from typing import Any

import cbor2


def dumps(obj: Any) -> bytes:
    """Encode `obj` as canonical CBOR."""
    return cbor2.dumps(obj, canonical=True)


def loads(buf: bytes) -> Any:
    return cbor2.loads(buf)


__all__ = ["dumps", "loads"]
