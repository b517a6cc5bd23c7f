"""
tld_registry.contracts.token — non-fungible ownership tokens

One `NameToken` per Registry. The deploying Registry is the *minter*: it is
the only caller allowed to mint and burn. Ids start at 1 and grow by one per
mint; 0 is never allocated and stands for "no token".

Storage layout
--------------
- b"meta"                  → cbor {"name", "symbol", "minter"}
- b"next"                  → last allocated id (u256)
- (b"owner", id32)         → holder address
- (b"bal", holder)         → number of tokens held (u256)

Events
------
- "Transfer" {"from": bytes, "to": bytes, "token_id": int}
  (from = zero address on mint, to = zero address on burn)
"""

from __future__ import annotations

from typing import Optional

from ..db.kv import be_u256
from ..errors import NotFound, NotOwner, Unauthorized
from ..runtime.context import ZERO_ADDRESS
from .base import Contract, register_kind

NO_TOKEN = 0


@register_kind
class NameToken(Contract):
    KIND = "name-token"

    @classmethod
    def deploy(cls, host, deployer: bytes, *, name: str, symbol: str) -> "NameToken":
        with host.transaction(caller=deployer):
            token = cls(host, host.create_contract(cls.KIND, deployer))
            token._set_obj(b"meta", value={"name": name, "symbol": symbol, "minter": bytes(deployer)})
        return token

    # --- views ---

    def _meta(self) -> dict:
        return self._get_obj(b"meta") or {}

    @property
    def name(self) -> str:
        return self._meta().get("name", "")

    @property
    def symbol(self) -> str:
        return self._meta().get("symbol", "")

    @property
    def minter(self) -> bytes:
        return self._meta().get("minter", b"")

    def total_minted(self) -> int:
        return self._get_int(b"next")

    def owner_of(self, token_id: int) -> Optional[bytes]:
        if token_id == NO_TOKEN:
            return None
        return self._get(b"owner", be_u256(token_id))

    def balance_of(self, holder: bytes) -> int:
        return self._get_int(b"bal", bytes(holder))

    # --- mutators ---

    def _require_minter(self, caller: bytes) -> None:
        if bytes(caller) != self.minter:
            raise Unauthorized("only the minter may mint or burn", caller=caller)

    def mint(self, caller: bytes, to: bytes) -> int:
        with self.host.transaction(caller=caller, to=self.address):
            self._require_minter(caller)
            token_id = self._incr(b"next")
            self._set(b"owner", be_u256(token_id), value=bytes(to))
            self._set_int(b"bal", bytes(to), value=self.balance_of(to) + 1)
            self._emit("Transfer", **{"from": ZERO_ADDRESS, "to": bytes(to), "token_id": token_id})
        return token_id

    def burn(self, caller: bytes, token_id: int) -> None:
        with self.host.transaction(caller=caller, to=self.address):
            self._require_minter(caller)
            holder = self.owner_of(token_id)
            if holder is None:
                raise NotFound("token does not exist", token_id=token_id)
            self._delete(b"owner", be_u256(token_id))
            self._set_int(b"bal", holder, value=self.balance_of(holder) - 1)
            self._emit("Transfer", **{"from": holder, "to": ZERO_ADDRESS, "token_id": token_id})

    def transfer(self, caller: bytes, to: bytes, token_id: int) -> None:
        """Holder-only transfer of `token_id` to `to`."""
        with self.host.transaction(caller=caller, to=self.address):
            holder = self.owner_of(token_id)
            if holder is None:
                raise NotFound("token does not exist", token_id=token_id)
            if holder != bytes(caller):
                raise NotOwner("caller does not hold the token", token_id=token_id)
            if not to:
                raise ValueError("recipient must be non-empty")
            self._set(b"owner", be_u256(token_id), value=bytes(to))
            self._set_int(b"bal", holder, value=self.balance_of(holder) - 1)
            self._set_int(b"bal", bytes(to), value=self.balance_of(to) + 1)
            self._emit("Transfer", **{"from": holder, "to": bytes(to), "token_id": token_id})


__all__ = ["NO_TOKEN", "NameToken"]
