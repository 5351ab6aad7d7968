"""Contract handles bound to a signer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_utils import to_checksum_address

from .abi import encode_with_selector, load_abi
from .signer import Signer


@dataclass(frozen=True)
class ContractHandle:
    """ABI plus address, optionally bound to a :class:`Signer` for writes."""

    name: str
    address: str
    abi: List[Dict[str, Any]]
    signer: Optional[Signer] = None

    def encode(self, method: str, *args: Any) -> bytes:
        return encode_with_selector(self.abi, method, args)

    def build_transaction(self, method: str, *args: Any, value: int = 0, gas: Optional[int] = None) -> Dict[str, Any]:
        tx: Dict[str, Any] = {"to": self.address, "value": value, "data": self.encode(method, *args)}
        if gas is not None:
            tx["gas"] = gas
        return tx

    async def transact(self, method: str, *args: Any, value: int = 0, gas: Optional[int] = None) -> str:
        """Submit ``method(args)`` through the bound signer and return the transaction hash."""

        if self.signer is None:
            raise ValueError(f"{self.name} handle at {self.address} is read-only")
        tx = self.build_transaction(method, *args, value=value, gas=gas)
        return await self.signer.send_transaction(tx)


def instantiate_contract(
    address: str,
    name: str,
    *,
    signer: Optional[Signer] = None,
    write: bool = False,
) -> ContractHandle:
    if write and signer is None:
        raise ValueError("a signer is required for a write-enabled contract handle")
    return ContractHandle(
        name=name,
        address=to_checksum_address(address),
        abi=load_abi(name),
        signer=signer if write else None,
    )


__all__ = ["ContractHandle", "instantiate_contract"]
