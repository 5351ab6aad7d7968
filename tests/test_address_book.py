from __future__ import annotations

import json
from pathlib import Path

import pytest
from eth_utils import to_checksum_address

from safelaunch.address_book import CPK_FACTORY, MASTERCOPY, AddressBook
from safelaunch.errors import ConfigurationError


def test_nested_entries_are_flattened_and_checksummed() -> None:
    book = AddressBook({"dev": {"gnosisSafe": {"mastercopy": "0x" + "ab" * 20}}})
    assert book.lookup("dev", MASTERCOPY) == to_checksum_address("0x" + "ab" * 20)
    assert book.get("dev", CPK_FACTORY) is None
    assert book.networks == ["dev"]


def test_lookup_missing_entry_raises() -> None:
    book = AddressBook({"dev": {"gnosisSafe": {"mastercopy": "0x" + "ab" * 20}}})
    with pytest.raises(ConfigurationError):
        book.lookup("dev", CPK_FACTORY)
    with pytest.raises(ConfigurationError):
        book.lookup("elsewhere", MASTERCOPY)


def test_invalid_address_rejected() -> None:
    with pytest.raises(ConfigurationError):
        AddressBook({"dev": {"gnosisSafe": {"mastercopy": "0x1234"}}})


def test_builtin_has_cpk_entries() -> None:
    book = AddressBook.builtin()
    for network in ("mainnet", "rinkeby"):
        assert book.get(network, MASTERCOPY)
        assert book.get(network, CPK_FACTORY)


def test_file_overlay(tmp_path: Path) -> None:
    path = tmp_path / "book.json"
    factory = "0x" + "cd" * 20
    path.write_text(json.dumps({"rinkeby": {"gnosisSafe": {"cpkFactory": factory}}}), encoding="utf-8")
    book = AddressBook.load(path)
    assert book.lookup("rinkeby", CPK_FACTORY) == to_checksum_address(factory)
    assert book.lookup("rinkeby", MASTERCOPY) == AddressBook.builtin().lookup("rinkeby", MASTERCOPY)


def test_missing_file_is_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        AddressBook.from_file(tmp_path / "absent.json")
