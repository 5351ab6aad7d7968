from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import keyring
import keyring.backend
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from safelaunch.address_book import AddressBook  # noqa: E402
from safelaunch.core import AppContext, EnvStore, ForensicLedger, SecretStore  # noqa: E402
from safelaunch.signer import Signer  # noqa: E402

SIGNER_ADDRESS = "0x1111111111111111111111111111111111111111"
MASTERCOPY_ADDRESS = "0x34cfac646f301356faa8b21e94227e3583fe3f5f"
FACTORY_ADDRESS = "0x0fb4340432e56c014fa96286de17222822a9281b"
TX_HASH = "0x" + "ab" * 32


class MemoryKeyring(keyring.backend.KeyringBackend):
    priority = 1

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self._data.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self._data[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        self._data.pop((service, username), None)


class FakeSigner(Signer):
    """Records submitted transactions and replays a scripted receipt."""

    def __init__(
        self,
        address: str = SIGNER_ADDRESS,
        *,
        receipt: Optional[Mapping[str, Any]] = None,
        send_error: Optional[Exception] = None,
        tx_hash: str = TX_HASH,
    ) -> None:
        self.address = address
        self.receipt = receipt if receipt is not None else {"status": 1, "blockNumber": 7, "gasUsed": 250_000, "logs": []}
        self.send_error = send_error
        self.tx_hash = tx_hash
        self.address_reads = 0
        self.sent: List[Dict[str, Any]] = []
        self.waited: List[str] = []

    async def get_address(self) -> str:
        self.address_reads += 1
        return self.address

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(dict(tx))
        return self.tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> Mapping[str, Any]:
        self.waited.append(tx_hash)
        return self.receipt


class PendingSigner(FakeSigner):
    """Signer whose receipt never arrives."""

    async def wait_for_receipt(self, tx_hash: str) -> Mapping[str, Any]:
        self.waited.append(tx_hash)
        await asyncio.Event().wait()
        raise AssertionError("unreachable")


@pytest.fixture()
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("SAFELAUNCH_STATE_DIR", str(tmp_path))
    monkeypatch.delenv("AUDIT_HMAC_KEY", raising=False)
    keyring.set_keyring(MemoryKeyring())
    return tmp_path


@pytest.fixture()
def context(isolated_home: Path) -> AppContext:
    ledger = ForensicLedger(isolated_home / "logs" / "audit.jsonl")
    env_store = EnvStore(isolated_home / ".env")
    secrets = SecretStore(ledger, env_store, backend=MemoryKeyring())
    logger = logging.getLogger("safelaunch.tests")
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return AppContext(ledger=ledger, env_store=env_store, secrets=secrets, logger=logger)


@pytest.fixture()
def address_book() -> AddressBook:
    return AddressBook(
        {
            "testnet": {
                "gnosisSafe": {
                    "mastercopy": MASTERCOPY_ADDRESS,
                    "cpkFactory": FACTORY_ADDRESS,
                }
            }
        }
    )


@pytest.fixture()
def signer() -> FakeSigner:
    return FakeSigner()
