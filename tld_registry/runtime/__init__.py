"""
tld_registry.runtime — the in-process execution host contracts run against.

Re-exports:
    Host, CallEnv, SystemClock, ManualClock, Event, EventSink, nonreentrant
"""

from .context import ZERO_ADDRESS, CallEnv, ContextError, ManualClock, SystemClock, to_address, to_bytes, to_hex
from .events import Event, EventSink
from .guard import nonreentrant
from .host import Host

__all__ = [
    "Host",
    "CallEnv",
    "ContextError",
    "SystemClock",
    "ManualClock",
    "Event",
    "EventSink",
    "nonreentrant",
    "ZERO_ADDRESS",
    "to_address",
    "to_bytes",
    "to_hex",
]
