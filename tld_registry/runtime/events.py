"""
tld_registry.runtime.events — in-process event sink

Contracts emit named events with a small argument map. The sink keeps them in
emission order and supports marks/truncation so a reverted transaction drops
exactly the events it produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .context import to_hex


@dataclass(frozen=True)
class Event:
    address: bytes
    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": to_hex(self.address),
            "name": self.name,
            "args": {k: (to_hex(v) if isinstance(v, (bytes, bytearray)) else v) for k, v in self.args.items()},
        }


class EventSink:
    def __init__(self) -> None:
        self._events: List[Event] = []

    def append(self, address: bytes, name: str, args: Optional[Dict[str, Any]] = None) -> Event:
        ev = Event(address=bytes(address), name=name, args=dict(args or {}))
        self._events.append(ev)
        return ev

    def mark(self) -> int:
        return len(self._events)

    def truncate(self, mark: int) -> None:
        del self._events[mark:]

    def since(self, mark: int) -> List[Event]:
        return list(self._events[mark:])

    def filter(self, *, name: Optional[str] = None, address: Optional[bytes] = None) -> List[Event]:
        return [
            e
            for e in self._events
            if (name is None or e.name == name) and (address is None or e.address == address)
        ]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))


__all__ = ["Event", "EventSink"]
