"""
tld_registry.hashing — name canonicalization and name-hashes

Canonical form
--------------
Names are compared case-insensitively with ASCII-only folding (A–Z → a–z);
every other character is kept as is. A *label* is one step of the hierarchy:
it must not contain "." (the hierarchy separator) or ASCII control
characters. Pricing length is the UTF-8 byte length of the canonical label.

Hashes
------
Keccak-256 over domain-separated, length-prefixed parts:

    name_hash(name, tld)    = keccak256(b"tldreg:name" | lp(name) | lp(tld))
    sub_hash(parent, sub)   = keccak256(b"tldreg:sub"  | parent(32) | lp(sub))

A sub-name is hashed under its parent's 32-byte id, never its text, so
"blog" under "alice" cannot collide with any flat top-level name.

Dotted paths ("blog.alice") resolve right to left: the last label is the
top-level name, each label before it a sub-name of the node to its right.

    >>> path_hash("Blog.Alice", "anim") == sub_hash(name_hash("alice", "anim"), "blog")
    True
"""

from __future__ import annotations

from typing import List, Tuple

from Crypto.Hash import keccak as _keccak

from .db.kv import length_prefixed
from .errors import InvalidName

HASH_LEN = 32
NAME_DOMAIN = b"tldreg:name"
SUB_DOMAIN = b"tldreg:sub"
SEPARATOR = "."

_UPPER_TO_LOWER = {c: c + 32 for c in range(ord("A"), ord("Z") + 1)}


def keccak256(*chunks: bytes) -> bytes:
    h = _keccak.new(digest_bits=256)
    for c in chunks:
        h.update(c)
    return h.digest()


def canonicalize(name: str) -> str:
    """ASCII-only lower-casing."""
    return name.translate(_UPPER_TO_LOWER)


def label_length(label: str) -> int:
    return len(label.encode("utf-8"))


def check_label(label: str) -> str:
    """Canonicalize `label` and reject separators and control characters."""
    if not isinstance(label, str):
        raise InvalidName("label must be a string", label=repr(label))
    canon = canonicalize(label)
    if SEPARATOR in canon:
        raise InvalidName("label must not contain '.'", label=canon)
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in canon):
        raise InvalidName("label contains control characters", label=canon)
    return canon


def split_path(path: str) -> List[str]:
    """
    Split a dotted path into canonical labels, top-level first.

    >>> split_path("Blog.alice")
    ['alice', 'blog']
    """
    if not isinstance(path, str):
        raise InvalidName("name must be a string", name=repr(path))
    parts = path.split(SEPARATOR)
    if len(parts) > 1 and not all(parts):
        raise InvalidName("empty label in dotted name", name=path)
    return [check_label(part) for part in reversed(parts)]


def name_hash(name: str, tld: str) -> bytes:
    return keccak256(
        NAME_DOMAIN,
        length_prefixed(canonicalize(name).encode("utf-8")),
        length_prefixed(canonicalize(tld).encode("utf-8")),
    )


def sub_hash(parent: bytes, sub: str) -> bytes:
    if len(parent) != HASH_LEN:
        raise ValueError("parent hash must be 32 bytes")
    return keccak256(SUB_DOMAIN, bytes(parent), length_prefixed(canonicalize(sub).encode("utf-8")))


def path_hash(path: str, tld: str) -> bytes:
    return resolve_path(path, tld)[1]


def full_name(path: str, tld: str) -> str:
    """Display form stored in records: "<path>.<tld>" with canonical labels."""
    labels = split_path(path)
    return SEPARATOR.join(list(reversed(labels)) + [canonicalize(tld)])


def resolve_path(path: str, tld: str) -> Tuple[List[str], bytes]:
    """(labels top-level first, hash of the full path)."""
    labels = split_path(path)
    node = name_hash(labels[0], tld)
    for sub in labels[1:]:
        node = sub_hash(node, sub)
    return labels, node


__all__ = [
    "HASH_LEN",
    "keccak256",
    "canonicalize",
    "label_length",
    "check_label",
    "split_path",
    "name_hash",
    "sub_hash",
    "path_hash",
    "full_name",
    "resolve_path",
]
