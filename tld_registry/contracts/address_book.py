"""
tld_registry.contracts.address_book
===================================

A shared **node ↔ owner** address book. Registries link each name-hash
(*node*) they hand out to its owner; an owner may then designate one of its
nodes as its *primary* (reverse) name for display.

Key properties
--------------
- **Registry-scoped authority**: the registry that first linked a node is the
  only caller allowed to relink, unlink, or make it primary.
- **Forward table**: `node(32) → {owner, registry, display}`.
- **Reverse primary**: `owner → node` (at most one node per owner).
- **Safe updates**: moving a node to a new owner or unlinking it clears the
  previous owner's primary if it pointed at that node; setting a new primary
  overwrites the previous one.

Events
------
- "NameLinked"          {node, owner, registry}
- "NameUnlinked"        {node, owner}
- "PrimaryNameSet"      {owner, node}
- "PrimaryNameCleared"  {owner, node}
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import NotFound, Unauthorized
from ..hashing import HASH_LEN
from .base import Contract, register_kind


def _node(node: bytes) -> bytes:
    n = bytes(node)
    if len(n) != HASH_LEN:
        raise ValueError("node must be 32 bytes")
    return n


@register_kind
class ResolverAddressBook(Contract):
    KIND = "address-book"

    @classmethod
    def deploy(cls, host, deployer: bytes) -> "ResolverAddressBook":
        with host.transaction(caller=deployer):
            book = cls(host, host.create_contract(cls.KIND, deployer))
        return book

    # -------- views --------

    def _link(self, node: bytes) -> Optional[Dict[str, Any]]:
        return self._get_obj(b"link", _node(node))

    def linked_owner(self, node: bytes) -> Optional[bytes]:
        link = self._link(node)
        return link["owner"] if link else None

    def linked_registry(self, node: bytes) -> Optional[bytes]:
        link = self._link(node)
        return link["registry"] if link else None

    def display_name(self, node: bytes) -> Optional[str]:
        link = self._link(node)
        return (link.get("display") or None) if link else None

    def primary_name(self, owner: bytes) -> Optional[bytes]:
        return self._get(b"primary", bytes(owner))

    def primary_display(self, owner: bytes) -> Optional[str]:
        node = self.primary_name(owner)
        return self.display_name(node) if node is not None else None

    def names_of(self, owner: bytes) -> List[bytes]:
        return list(self._get_obj(b"names", bytes(owner)) or [])

    # -------- internals --------

    def _authorize(self, caller: bytes, link: Optional[Dict[str, Any]]) -> None:
        if link is not None and link["registry"] != bytes(caller):
            raise Unauthorized("node is managed by another registry", caller=caller, registry=link["registry"])

    def _detach(self, node: bytes, owner: bytes) -> None:
        names = [n for n in self.names_of(owner) if n != node]
        if names:
            self._set_obj(b"names", owner, value=names)
        else:
            self._delete(b"names", owner)
        if self.primary_name(owner) == node:
            self._delete(b"primary", owner)
            self._emit("PrimaryNameCleared", owner=owner, node=node)

    def _attach(self, node: bytes, owner: bytes, registry: bytes, display: str) -> None:
        self._set_obj(b"link", node, value={"owner": owner, "registry": registry, "display": display})
        names = self.names_of(owner)
        if node not in names:
            names.append(node)
            self._set_obj(b"names", owner, value=names)
        self._emit("NameLinked", node=node, owner=owner, registry=registry)

    # -------- mutators --------

    def link_name(self, caller: bytes, node: bytes, owner: bytes, display: str = "") -> None:
        node = _node(node)
        owner = bytes(owner)
        with self.host.transaction(caller=caller, to=self.address):
            link = self._link(node)
            self._authorize(caller, link)
            if link is not None and link["owner"] != owner:
                self._detach(node, link["owner"])
            if not display and link is not None:
                display = link.get("display", "")
            self._attach(node, owner, bytes(caller), display)

    def set_primary_name(self, caller: bytes, owner: bytes, node: bytes) -> None:
        """
        Make `node` the primary name of `owner`. Only the registry that linked
        the node may call this; it vouches for `owner` holding the name, so a
        stale link is moved to `owner` first.
        """
        node = _node(node)
        owner = bytes(owner)
        with self.host.transaction(caller=caller, to=self.address):
            link = self._link(node)
            if link is None:
                raise NotFound("node is not linked", node=node)
            self._authorize(caller, link)
            if link["owner"] != owner:
                self._detach(node, link["owner"])
                self._attach(node, owner, link["registry"], link.get("display", ""))
            self._set(b"primary", owner, value=node)
            self._emit("PrimaryNameSet", owner=owner, node=node)

    def unlink_name(self, caller: bytes, node: bytes) -> None:
        node = _node(node)
        with self.host.transaction(caller=caller, to=self.address):
            link = self._link(node)
            if link is None:
                return
            self._authorize(caller, link)
            self._detach(node, link["owner"])
            self._delete(b"link", node)
            self._emit("NameUnlinked", node=node, owner=link["owner"])


__all__ = ["ResolverAddressBook"]
