"""
tld_registry.config — runtime configuration for registries and the CLI.

This module centralizes knobs for:
  • Storage location (KV URI used by the CLI / long-lived hosts)
  • Namespace defaults (expiration period, price tiers, namespace creation fee)
  • Logging (level, format)

Configuration may be provided via environment variables. Safe defaults are chosen so a
local developer run works out of the box.

Environment variables (all optional):
  TLDREG_DB                  -> KV URI, e.g. "sqlite:///tldreg.db" or "memory://"
  TLDREG_EXPIRATION_PERIOD   -> seconds, or "<n>d" / "<n>h" (default: 365d)
  TLDREG_PRICE_TIERS         -> "len:price,len:price,..." (default: "3:10,4:5,5:3")
  TLDREG_NAMESPACE_FEE       -> integer (default: 100)
  TLDREG_LOG_LEVEL           -> DEBUG/INFO/WARNING/... (default: INFO)
  TLDREG_LOG_FORMAT          -> json/text (default: auto, by TTY)

Programmatic usage:
    from tld_registry.config import get_config
    cfg = get_config()
    period = cfg.namespace.expiration_period
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Dict, Mapping, Optional, Tuple, Union

# ----------------------------- helpers -------------------------------------

DAY = 24 * 60 * 60
DEFAULT_EXPIRATION_PERIOD = 365 * DAY
DEFAULT_PRICE_TIERS: Tuple[Tuple[int, int], ...] = ((3, 10), (4, 5), (5, 3))
DEFAULT_NAMESPACE_FEE = 100
DEFAULT_DB_URI = "sqlite:///tldreg.db"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd])?\s*$")
_UNIT = {"s": 1, "m": 60, "h": 60 * 60, "d": DAY}


def parse_duration(s: Union[str, int]) -> int:
    """
    Parse a duration in seconds:
      "31536000", "365d", "12h", 3600 -> seconds (int)
    """
    if isinstance(s, int):
        if s <= 0:
            raise ValueError("duration must be positive")
        return s
    m = _DURATION_RE.match(str(s))
    if not m:
        raise ValueError(f"invalid duration: {s!r}")
    out = int(m.group(1)) * _UNIT[m.group(2) or "s"]
    if out <= 0:
        raise ValueError("duration must be positive")
    return out


def parse_price_tiers(s: str) -> Tuple[Tuple[int, int], ...]:
    """
    Parse "3:10,4:5,5:3" into ((3, 10), (4, 5), (5, 3)).

    Order is preserved; a repeated length keeps its last price in the position
    of its first occurrence (same as repeated upserts into a price table).
    """
    tiers: Dict[int, int] = {}
    for chunk in s.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        length_s, sep, price_s = chunk.partition(":")
        if not sep:
            raise ValueError(f"invalid price tier {chunk!r} (expected len:price)")
        length, price = int(length_s), int(price_s)
        if length <= 0:
            raise ValueError("tier length must be positive")
        if price < 0:
            raise ValueError("tier price must be non-negative")
        tiers[length] = price
    return tuple(tiers.items())


def format_price_tiers(tiers: Tuple[Tuple[int, int], ...]) -> str:
    return ",".join(f"{length}:{price}" for length, price in tiers)


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class NamespaceDefaults:
    expiration_period: int = DEFAULT_EXPIRATION_PERIOD
    price_tiers: Tuple[Tuple[int, int], ...] = DEFAULT_PRICE_TIERS
    namespace_fee: int = DEFAULT_NAMESPACE_FEE


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json: Optional[bool] = None


@dataclass(frozen=True)
class Config:
    db_uri: str
    namespace: NamespaceDefaults
    logging: LoggingConfig

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def _json_flag(value: Optional[str]) -> Optional[bool]:
    v = (value or "").strip().lower()
    if v == "json":
        return True
    if v == "text":
        return False
    return None


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, object]] = None,
) -> Config:
    """
    Build a Config from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'db_uri', 'expiration_period', 'price_tiers', 'namespace_fee',
          'log_level', 'log_json'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    tiers = overrides.get("price_tiers")
    if tiers is None:
        tiers = parse_price_tiers(env.get("TLDREG_PRICE_TIERS", format_price_tiers(DEFAULT_PRICE_TIERS)))

    fee = int(overrides.get("namespace_fee", env.get("TLDREG_NAMESPACE_FEE", DEFAULT_NAMESPACE_FEE)))  # type: ignore[arg-type]
    if fee < 0:
        raise ValueError("namespace fee must be non-negative")

    namespace = NamespaceDefaults(
        expiration_period=parse_duration(
            overrides.get("expiration_period", env.get("TLDREG_EXPIRATION_PERIOD", DEFAULT_EXPIRATION_PERIOD))  # type: ignore[arg-type]
        ),
        price_tiers=tuple((int(length), int(price)) for length, price in tiers),  # type: ignore[union-attr]
        namespace_fee=fee,
    )

    log_json = overrides.get("log_json", _json_flag(env.get("TLDREG_LOG_FORMAT")))
    logging_cfg = LoggingConfig(
        level=str(overrides.get("log_level", env.get("TLDREG_LOG_LEVEL", "INFO"))).upper(),
        json=log_json,  # type: ignore[arg-type]
    )

    return Config(
        db_uri=str(overrides.get("db_uri", env.get("TLDREG_DB", DEFAULT_DB_URI))),
        namespace=namespace,
        logging=logging_cfg,
    )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Cached global config. Suitable for application bootstraps and module-level consumers.
    """
    return load_config()


__all__ = [
    "DAY",
    "DEFAULT_EXPIRATION_PERIOD",
    "DEFAULT_PRICE_TIERS",
    "DEFAULT_NAMESPACE_FEE",
    "Config",
    "NamespaceDefaults",
    "LoggingConfig",
    "parse_duration",
    "parse_price_tiers",
    "format_price_tiers",
    "load_config",
    "get_config",
]
