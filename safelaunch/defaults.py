"""Fill unset request fields from the address book, the signer and fixed defaults."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict

from .address_book import MASTERCOPY, AddressBook
from .request import (
    DEFAULT_FALLBACK_HANDLER,
    DEFAULT_SALT_NONCE,
    HASH_ZERO,
    ZERO_ADDRESS,
    DeploymentRequest,
    Operation,
)
from .signer import Signer

# Intrinsic to the request shape, independent of network and of setup mode.
STATIC_DEFAULTS: Dict[str, Any] = {
    "salt_nonce": DEFAULT_SALT_NONCE,
    "threshold": 1,
    "to": ZERO_ADDRESS,
    "value": 0,
    "data": HASH_ZERO,
    "operation": int(Operation.DELEGATE_CALL),
    "fallback_handler": DEFAULT_FALLBACK_HANDLER,
    "payment_token": ZERO_ADDRESS,
    "payment": 0,
    "payment_receiver": ZERO_ADDRESS,
}


async def resolve_defaults(
    request: DeploymentRequest,
    *,
    address_book: AddressBook,
    network: str,
    signer: Signer,
) -> DeploymentRequest:
    """Return a copy of ``request`` with every optional field populated.

    The signer is only consulted when setup mode needs a default owner list.
    """

    updates: Dict[str, Any] = {
        field: default for field, default in STATIC_DEFAULTS.items() if getattr(request, field) is None
    }
    if request.mastercopy is None:
        updates["mastercopy"] = address_book.lookup(network, MASTERCOPY)
    if request.setup and not request.owners:
        updates["owners"] = (await signer.get_address(),)
    elif request.owners is not None:
        updates["owners"] = tuple(request.owners)
    return replace(request, **updates)


__all__ = ["STATIC_DEFAULTS", "resolve_defaults"]
