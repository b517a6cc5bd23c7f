"""
Version information for tld_registry.

- __version__: semantic version of the package (PEP 440 core)
- version_tuple(): (major, minor, patch) as ints
- runtime_banner(): short human-readable banner for logs and `tldreg --version`
"""

from __future__ import annotations

import os
import platform
from typing import Tuple

# Can be overridden at build time with the env var TLDREG_VERSION.
__version__ = os.getenv("TLDREG_VERSION", "0.1.0")


def version_tuple() -> Tuple[int, int, int]:
    core = __version__.split("+", 1)[0]
    parts = (core.split(".") + ["0", "0", "0"])[:3]
    out = []
    for p in parts:
        digits = "".join(ch for ch in p if ch.isdigit())
        out.append(int(digits) if digits else 0)
    return out[0], out[1], out[2]


def runtime_banner() -> str:
    return f"tld-registry {__version__} (python {platform.python_version()})"


__all__ = ["__version__", "version_tuple", "runtime_banner"]
