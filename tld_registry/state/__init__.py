"""
tld_registry.state — journaled view over the persistent KV.

Re-exports:
    Journal  — nested checkpoints (begin/commit/revert) over a KV
"""

from .journal import Journal

__all__ = ["Journal"]
