"""
tld_registry.contracts.pricing — length-tiered prices

A small ordered list of `(length, price)` tiers, searched linearly by exact
length. There is no default price: a length without a tier has no price.
`upsert` replaces the price of an existing length in place or appends a new
tier, so tier order is first-insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from ..errors import NotFound


@dataclass(frozen=True)
class PriceTier:
    length: int
    price: int

    def __post_init__(self) -> None:
        if not isinstance(self.length, int) or self.length <= 0:
            raise ValueError("tier length must be a positive integer")
        if not isinstance(self.price, int) or self.price < 0:
            raise ValueError("tier price must be a non-negative integer")


class PriceTable:
    def __init__(self, tiers: Iterable[Tuple[int, int] | PriceTier] = ()) -> None:
        self._tiers: List[PriceTier] = []
        for t in tiers:
            if isinstance(t, PriceTier):
                self.upsert(t.length, t.price)
            else:
                self.upsert(*t)

    def get(self, length: int) -> Optional[int]:
        for tier in self._tiers:
            if tier.length == length:
                return tier.price
        return None

    def price_for(self, length: int) -> int:
        price = self.get(length)
        if price is None:
            raise NotFound("no price tier for length", length=length)
        return price

    def upsert(self, length: int, price: int) -> PriceTier:
        tier = PriceTier(length, price)
        for i, existing in enumerate(self._tiers):
            if existing.length == length:
                self._tiers[i] = tier
                return tier
        self._tiers.append(tier)
        return tier

    @property
    def tiers(self) -> List[PriceTier]:
        return list(self._tiers)

    # storage form: [[length, price], ...]
    def to_list(self) -> List[List[int]]:
        return [[t.length, t.price] for t in self._tiers]

    @classmethod
    def from_list(cls, raw: Optional[Sequence[Sequence[int]]]) -> "PriceTable":
        return cls((int(length), int(price)) for length, price in (raw or ()))

    def __iter__(self) -> Iterator[PriceTier]:
        return iter(self.tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    def __repr__(self) -> str:
        return "PriceTable(%s)" % ", ".join(f"{t.length}:{t.price}" for t in self._tiers)


__all__ = ["PriceTier", "PriceTable"]
