"""Signer capability used to identify the caller and submit transactions."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TransactionNotFound

from .core import AppContext, get_context

PRIVATE_KEY_ENV = "PRIVATE_KEY"
DEFAULT_POLL_INTERVAL = 2.0


class Signer(ABC):
    """Externally owned account that can sign and broadcast transactions.

    Implementations never expose key material. ``send_transaction`` returns
    the ``0x`` prefixed hash once the node has accepted the transaction and
    ``wait_for_receipt`` suspends until it is mined.
    """

    @abstractmethod
    async def get_address(self) -> str:
        ...

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    async def wait_for_receipt(self, tx_hash: str) -> Mapping[str, Any]:
        ...


class Web3Signer(Signer):
    """:class:`Signer` backed by a local ``eth_account`` key and a web3 client."""

    def __init__(self, web3: Web3, account: LocalAccount, *, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self.web3 = web3
        self.account = account
        self.poll_interval = poll_interval

    async def get_address(self) -> str:
        return Web3.to_checksum_address(self.account.address)

    def _prepare_transaction(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        web3 = self.web3
        tx.setdefault("from", self.account.address)
        tx.setdefault("chainId", web3.eth.chain_id)
        tx.setdefault("nonce", web3.eth.get_transaction_count(self.account.address))
        tx.setdefault("value", 0)
        if "gas" not in tx:
            estimate = web3.eth.estimate_gas({k: tx[k] for k in ("from", "to", "data", "value") if k in tx})
            tx["gas"] = int(estimate) + 100_000
        if "maxFeePerGas" not in tx or "maxPriorityFeePerGas" not in tx:
            base = web3.eth.gas_price
            tx["maxPriorityFeePerGas"] = Web3.to_wei(1, "gwei")
            tx["maxFeePerGas"] = max(base * 2, Web3.to_wei(3, "gwei"))
        return tx

    def _sign_and_send(self, tx: Dict[str, Any]) -> str:
        prepared = self._prepare_transaction(dict(tx))
        signed = self.account.sign_transaction(prepared)
        tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        return await asyncio.to_thread(self._sign_and_send, tx)

    async def wait_for_receipt(self, tx_hash: str) -> Mapping[str, Any]:
        while True:
            try:
                return await asyncio.to_thread(self.web3.eth.get_transaction_receipt, tx_hash)
            except TransactionNotFound:
                await asyncio.sleep(self.poll_interval)


def load_signer(
    context: Optional[AppContext] = None,
    *,
    key_name: str = PRIVATE_KEY_ENV,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Web3Signer:
    """Build a :class:`Web3Signer` from the private key held in the secret store."""

    context = context or get_context()
    secret = context.secrets.require(
        key_name,
        prompt_text=f"Enter private key for {key_name}: ",
        sensitive=True,
    )
    account: LocalAccount = Account.from_key(secret)
    context.ledger.log(
        "signer_load",
        params={"label": key_name},
        result={"address": Web3.to_checksum_address(account.address)},
    )
    return Web3Signer(context.get_web3(), account, poll_interval=poll_interval)


__all__ = ["PRIVATE_KEY_ENV", "Signer", "Web3Signer", "load_signer"]
