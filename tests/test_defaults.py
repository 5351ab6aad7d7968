from __future__ import annotations

import asyncio

import pytest
from eth_utils import to_checksum_address

from conftest import MASTERCOPY_ADDRESS, SIGNER_ADDRESS, FakeSigner
from safelaunch.address_book import AddressBook
from safelaunch.defaults import resolve_defaults
from safelaunch.errors import ConfigurationError
from safelaunch.request import (
    DEFAULT_FALLBACK_HANDLER,
    DEFAULT_SALT_NONCE,
    HASH_ZERO,
    ZERO_ADDRESS,
    DeploymentRequest,
)


def _resolve(request: DeploymentRequest, book: AddressBook, signer: FakeSigner, network: str = "testnet"):
    return asyncio.run(resolve_defaults(request, address_book=book, network=network, signer=signer))


def test_setup_without_owners_uses_signer(address_book: AddressBook, signer: FakeSigner) -> None:
    resolved = _resolve(DeploymentRequest(setup=True), address_book, signer)
    assert list(resolved.owners) == [SIGNER_ADDRESS]
    assert signer.address_reads == 1


def test_static_defaults_applied(address_book: AddressBook, signer: FakeSigner) -> None:
    resolved = _resolve(DeploymentRequest(initializer=b"\x01"), address_book, signer)
    assert resolved.mastercopy == to_checksum_address(MASTERCOPY_ADDRESS)
    assert resolved.salt_nonce == DEFAULT_SALT_NONCE
    assert resolved.threshold == 1
    assert resolved.operation == 1
    assert resolved.to == ZERO_ADDRESS
    assert resolved.value == 0
    assert resolved.data == HASH_ZERO
    assert resolved.fallback_handler == DEFAULT_FALLBACK_HANDLER
    assert resolved.payment_token == ZERO_ADDRESS
    assert resolved.payment == 0
    assert resolved.payment_receiver == ZERO_ADDRESS
    # owners are only derived in setup mode
    assert resolved.owners is None
    assert signer.address_reads == 0


def test_explicit_values_are_kept(address_book: AddressBook, signer: FakeSigner) -> None:
    owners = ("0x" + "2" * 40, "0x" + "3" * 40)
    request = DeploymentRequest(
        setup=True,
        owners=owners,
        threshold=2,
        operation=0,
        mastercopy="0x" + "4" * 40,
        salt_nonce=5,
        payment=10,
    )
    resolved = _resolve(request, address_book, signer)
    assert resolved.owners == owners
    assert resolved.threshold == 2
    assert resolved.operation == 0
    assert resolved.mastercopy == "0x" + "4" * 40
    assert resolved.salt_nonce == 5
    assert resolved.payment == 10
    assert signer.address_reads == 0


def test_missing_mastercopy_entry(signer: FakeSigner) -> None:
    with pytest.raises(ConfigurationError):
        _resolve(DeploymentRequest(setup=True), AddressBook({}), signer)


def test_explicit_mastercopy_skips_address_book(signer: FakeSigner) -> None:
    resolved = _resolve(DeploymentRequest(setup=True, mastercopy="0x" + "5" * 40), AddressBook({}), signer)
    assert resolved.mastercopy == "0x" + "5" * 40
