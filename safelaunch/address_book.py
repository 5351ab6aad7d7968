"""Network scoped registry of deployed contract addresses."""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from eth_utils import is_hex_address, to_checksum_address

from .errors import ConfigurationError

MASTERCOPY = "gnosisSafe.mastercopy"
CPK_FACTORY = "gnosisSafe.cpkFactory"

# Safe 1.1.1 mastercopy and the Contract Proxy Kit factory
BUILTIN_ENTRIES: Dict[str, Dict[str, Any]] = {
    "mainnet": {
        "gnosisSafe": {
            "mastercopy": "0x34CfAC646f301356fAa8B21e94227e3583Fe3F5F",
            "cpkFactory": "0x0fB4340432e56c014fa96286de17222822a9281b",
        }
    },
    "rinkeby": {
        "gnosisSafe": {
            "mastercopy": "0x34CfAC646f301356fAa8B21e94227e3583Fe3F5F",
            "cpkFactory": "0x0fB4340432e56c014fa96286de17222822a9281b",
        }
    },
}


def _flatten(tree: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    flat: Dict[str, str] = {}
    for key, value in tree.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten(value, name))
            continue
        if not isinstance(value, str) or not is_hex_address(value):
            raise ConfigurationError(f"Address book entry '{name}' is not an address: {value!r}")
        flat[name] = to_checksum_address(value)
    return flat


class AddressBook:
    """Read-only mapping of ``network -> logical name -> address``.

    Logical names are dotted paths such as ``gnosisSafe.mastercopy``; nested
    JSON objects are flattened on load.
    """

    def __init__(self, entries: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        networks: Dict[str, Mapping[str, str]] = {}
        for network, tree in (entries or {}).items():
            if not isinstance(tree, Mapping):
                raise ConfigurationError(f"Address book for network '{network}' must be an object")
            networks[network] = MappingProxyType(_flatten(tree))
        self._networks: Mapping[str, Mapping[str, str]] = MappingProxyType(networks)

    @classmethod
    def builtin(cls) -> "AddressBook":
        return cls(BUILTIN_ENTRIES)

    @classmethod
    def from_file(cls, path: Path) -> "AddressBook":
        try:
            payload = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Address book file not found: {path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Address book file {path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigurationError("Address book JSON must map network names to objects")
        return cls(payload)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AddressBook":
        """Built-in entries, overlaid with ``path`` when given."""

        book = cls.builtin()
        if path is not None:
            book = book.merged(cls.from_file(path))
        return book

    def merged(self, other: "AddressBook") -> "AddressBook":
        combined: Dict[str, Dict[str, str]] = {network: dict(names) for network, names in self._networks.items()}
        for network, names in other._networks.items():
            combined.setdefault(network, {}).update(names)
        return AddressBook(combined)

    @property
    def networks(self) -> list[str]:
        return sorted(self._networks)

    def for_network(self, network: str) -> Dict[str, str]:
        return dict(self._networks.get(network, {}))

    def get(self, network: str, name: str) -> Optional[str]:
        return self._networks.get(network, {}).get(name)

    def lookup(self, network: str, name: str) -> str:
        address = self.get(network, name)
        if address is None:
            raise ConfigurationError(f"No '{name}' address configured for network '{network}'")
        return address


__all__ = ["AddressBook", "BUILTIN_ENTRIES", "CPK_FACTORY", "MASTERCOPY"]
