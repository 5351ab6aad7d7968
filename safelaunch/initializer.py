"""Encoding of the Safe ``setup`` initializer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .abi import GNOSIS_SAFE_ABI, decode_with_selector, encode_with_selector, function_signature
from .errors import EncodingError

SETUP_FUNCTION = "setup"
SETUP_SIGNATURE = function_signature(GNOSIS_SAFE_ABI, SETUP_FUNCTION)


@dataclass(frozen=True)
class SetupArguments:
    """The eight ``setup`` arguments in call order."""

    owners: Sequence[str]
    threshold: int
    to: str
    data: bytes
    fallback_handler: str
    payment_token: str
    payment: int
    payment_receiver: str

    def as_list(self) -> List[object]:
        return [
            list(self.owners),
            self.threshold,
            self.to,
            self.data,
            self.fallback_handler,
            self.payment_token,
            self.payment,
            self.payment_receiver,
        ]


def encode_setup(
    owners: Sequence[str],
    threshold: int,
    to: str,
    data: bytes,
    fallback_handler: str,
    payment_token: str,
    payment: int,
    payment_receiver: str,
) -> bytes:
    """Return ``setup(...)`` calldata for a freshly created Safe proxy.

    The output depends only on the arguments, so the same inputs always
    produce the same bytes. Type or shape mismatches raise
    :class:`~safelaunch.errors.EncodingError`.
    """

    if isinstance(owners, (str, bytes)) or not isinstance(owners, Sequence):
        raise EncodingError("owners must be a sequence of addresses")
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise EncodingError(f"threshold must be an integer, got {type(threshold).__name__}")
    arguments = SetupArguments(
        owners=owners,
        threshold=threshold,
        to=to,
        data=data,
        fallback_handler=fallback_handler,
        payment_token=payment_token,
        payment=payment,
        payment_receiver=payment_receiver,
    )
    return encode_with_selector(GNOSIS_SAFE_ABI, SETUP_FUNCTION, arguments.as_list())


def decode_setup(payload: bytes) -> SetupArguments:
    owners, threshold, to, data, fallback_handler, payment_token, payment, payment_receiver = decode_with_selector(
        GNOSIS_SAFE_ABI, SETUP_FUNCTION, payload
    )
    return SetupArguments(
        owners=list(owners),
        threshold=threshold,
        to=to,
        data=data,
        fallback_handler=fallback_handler,
        payment_token=payment_token,
        payment=payment,
        payment_receiver=payment_receiver,
    )


__all__ = ["SETUP_SIGNATURE", "SetupArguments", "decode_setup", "encode_setup"]
