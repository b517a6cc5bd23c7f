"""
tld_registry.contracts.ownable
==============================

Administrative ownership for contracts:

- read the current owner (`owner`)
- initialize the owner once (`_init_owner`, during deployment)
- check that a caller is the owner (`_require_owner`)
- hand ownership to a new account (`transfer_ownership`)

Events:
    - "OwnershipTransferred" args: {"previous": bytes, "new": bytes}

`transfer_ownership` rejects an empty `new_owner`; there is no renounce path,
so an owned contract always has an administrator.
"""

from __future__ import annotations

from typing import Optional

from ..errors import Unauthorized
from ..runtime.guard import guarded
from .base import Contract

OWNER_SLOT = b"access:owner"


class Ownable(Contract):
    @property
    def owner(self) -> Optional[bytes]:
        v = self._get(OWNER_SLOT)
        return v if v else None

    def _init_owner(self, owner: bytes) -> None:
        if self._get(OWNER_SLOT):
            return
        self._set(OWNER_SLOT, value=bytes(owner))

    def _require_owner(self, caller: bytes) -> None:
        owner = self.owner
        if owner is None or owner != bytes(caller):
            raise Unauthorized("caller is not the contract owner", caller=caller, owner=owner)

    def transfer_ownership(self, caller: bytes, new_owner: bytes) -> None:
        """Owner-only. Emits OwnershipTransferred."""
        with guarded(self.host, self.address, caller=caller):
            if not new_owner:
                raise ValueError("new owner must be non-empty")
            self._require_owner(caller)
            previous = self.owner or b""
            self._set(OWNER_SLOT, value=bytes(new_owner))
            self._emit("OwnershipTransferred", previous=previous, new=bytes(new_owner))


__all__ = ["OWNER_SLOT", "Ownable"]
