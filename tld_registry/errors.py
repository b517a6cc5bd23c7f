"""
tld_registry.errors
-------------------

A small, consistent error system for the registry, its ledger and the
namespace factory.

Design goals
------------
- One root `RegistryError` with a machine-friendly `code` and optional `data`.
- One concrete subclass per failure kind, so callers can `except NotOwner:`.
- Safe JSON representation (`to_dict`) suitable for logs and the CLI.

Every error aborts the enclosing host transaction: state writes, ledger
appends, token allocations and value transfers of that operation are rolled
back before the exception reaches the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping


class ErrorCode(str, Enum):
    ALREADY_REGISTERED = "REG/ALREADY_REGISTERED"
    INSUFFICIENT_PAYMENT = "REG/INSUFFICIENT_PAYMENT"
    INVALID_LENGTH = "REG/INVALID_LENGTH"
    INVALID_NAME = "REG/INVALID_NAME"
    NOT_OWNER = "REG/NOT_OWNER"
    NOT_FOUND = "REG/NOT_FOUND"
    TRANSFER_FAILED = "REG/TRANSFER_FAILED"
    REENTRANCY_BLOCKED = "REG/REENTRANCY_BLOCKED"
    UNAUTHORIZED = "REG/UNAUTHORIZED"
    LABEL_TAKEN = "REG/LABEL_TAKEN"
    WRONG_FEE = "REG/WRONG_FEE"


@dataclass(eq=False)
class RegistryError(Exception):
    """
    Root error for registry components.

    Attributes
    ----------
    code: str
        Machine-stable error code (see ErrorCode).
    message: str
        Human hint suitable for logs.
    data: dict
        Optional machine data (names, hashes, amounts). JSON-serializable.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(f"{self.code}: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": _jsonmap(self.data)}

    def __str__(self) -> str:
        parts = [f"{self.code}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


class AlreadyRegistered(RegistryError):
    def __init__(self, message: str = "name already registered", **data: Any) -> None:
        super().__init__(code=ErrorCode.ALREADY_REGISTERED.value, message=message, data=_jsonmap(data))


class InsufficientPayment(RegistryError):
    def __init__(self, price: int, payment: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_PAYMENT.value,
            message="payment below price",
            data={"price": price, "payment": payment},
        )


class InvalidLength(RegistryError):
    def __init__(self, length: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_LENGTH.value,
            message=f"no price tier for length {length}",
            data={"length": length},
        )


class InvalidName(RegistryError):
    def __init__(self, message: str = "invalid name", **data: Any) -> None:
        super().__init__(code=ErrorCode.INVALID_NAME.value, message=message, data=_jsonmap(data))


class NotOwner(RegistryError):
    def __init__(self, message: str = "caller does not hold the name", **data: Any) -> None:
        super().__init__(code=ErrorCode.NOT_OWNER.value, message=message, data=_jsonmap(data))


class NotFound(RegistryError):
    def __init__(self, message: str = "not found", **data: Any) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND.value, message=message, data=_jsonmap(data))


class TransferFailed(RegistryError):
    def __init__(self, message: str = "value transfer failed", **data: Any) -> None:
        super().__init__(code=ErrorCode.TRANSFER_FAILED.value, message=message, data=_jsonmap(data))


class ReentrancyBlocked(RegistryError):
    def __init__(self, message: str = "reentrant call blocked", **data: Any) -> None:
        super().__init__(code=ErrorCode.REENTRANCY_BLOCKED.value, message=message, data=_jsonmap(data))


class Unauthorized(RegistryError):
    def __init__(self, message: str = "caller is not authorized", **data: Any) -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED.value, message=message, data=_jsonmap(data))


class LabelTaken(RegistryError):
    def __init__(self, label: str) -> None:
        super().__init__(
            code=ErrorCode.LABEL_TAKEN.value,
            message=f"namespace {label!r} already deployed",
            data={"label": label},
        )


class WrongFee(RegistryError):
    def __init__(self, fee: int, payment: int) -> None:
        super().__init__(
            code=ErrorCode.WRONG_FEE.value,
            message="payment must equal the namespace fee",
            data={"fee": fee, "payment": payment},
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    # Keep JSON primitives; hex-encode bytes; stringify the rest.
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "ErrorCode",
    "RegistryError",
    "AlreadyRegistered",
    "InsufficientPayment",
    "InvalidLength",
    "InvalidName",
    "NotOwner",
    "NotFound",
    "TransferFailed",
    "ReentrancyBlocked",
    "Unauthorized",
    "LabelTaken",
    "WrongFee",
]
