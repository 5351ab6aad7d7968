"""Deployment request model and input-mode validation."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Sequence

from eth_utils import to_hex

from .errors import ConflictingModeError, MissingModeError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
HASH_ZERO = b"\x00" * 32
# CPK global salt
DEFAULT_SALT_NONCE = 0xCFE33A586323E7325BE6AA6ECD8B4600D232A9037E83C8ECE69413B777DABE65
# DefaultCallbackHandler shipped with Safe 1.1.1
DEFAULT_FALLBACK_HANDLER = "0x40A930851BD2e590Bd5A5C981b436de25742E980"


class Operation(IntEnum):
    CALL = 0
    DELEGATE_CALL = 1


@dataclass(frozen=True)
class DeploymentRequest:
    """Normalised parameters for one ``createProxyAndExecTransaction`` call.

    Fields left as ``None`` are filled in by :func:`safelaunch.defaults.resolve_defaults`.
    """

    mastercopy: Optional[str] = None
    salt_nonce: Optional[int] = None
    initializer: Optional[bytes] = None
    setup: bool = False
    owners: Optional[Sequence[str]] = None
    threshold: Optional[int] = None
    to: Optional[str] = None
    value: Optional[int] = None
    data: Optional[bytes] = None
    operation: Optional[int] = None
    fallback_handler: Optional[str] = None
    payment_token: Optional[str] = None
    payment: Optional[int] = None
    payment_receiver: Optional[str] = None
    log: bool = False

    @property
    def has_initializer(self) -> bool:
        return bool(self.initializer)

    def serialise(self) -> Dict[str, Any]:
        payload = asdict(self)
        for key in ("initializer", "data"):
            if payload[key] is not None:
                payload[key] = to_hex(payload[key])
        if payload["owners"] is not None:
            payload["owners"] = list(payload["owners"])
        return payload


def validate_request(request: DeploymentRequest) -> DeploymentRequest:
    """Enforce that exactly one of initializer payload and setup mode is used."""

    if request.has_initializer and request.setup:
        raise ConflictingModeError("Provide EITHER an initializer payload OR --setup args")
    if not request.has_initializer and not request.setup:
        raise MissingModeError("Must provide an initializer payload or --setup args")
    return request


__all__ = [
    "DEFAULT_FALLBACK_HANDLER",
    "DEFAULT_SALT_NONCE",
    "DeploymentRequest",
    "HASH_ZERO",
    "Operation",
    "ZERO_ADDRESS",
    "validate_request",
]
