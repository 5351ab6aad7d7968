"""ABI fragments and encode-by-selector helpers."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError as AbiDecodingError
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_utils import event_abi_to_log_topic, function_signature_to_4byte_selector, to_checksum_address

from .errors import EncodingError

GNOSIS_SAFE_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "address[]", "name": "_owners", "type": "address[]"},
            {"internalType": "uint256", "name": "_threshold", "type": "uint256"},
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "bytes", "name": "data", "type": "bytes"},
            {"internalType": "address", "name": "fallbackHandler", "type": "address"},
            {"internalType": "address", "name": "paymentToken", "type": "address"},
            {"internalType": "uint256", "name": "payment", "type": "uint256"},
            {"internalType": "address payable", "name": "paymentReceiver", "type": "address"},
        ],
        "name": "setup",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

CPK_FACTORY_ABI: List[Dict[str, Any]] = [
    {
        "anonymous": False,
        "inputs": [{"indexed": False, "internalType": "contract Proxy", "name": "proxy", "type": "address"}],
        "name": "ProxyCreation",
        "type": "event",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "masterCopy", "type": "address"},
            {"internalType": "uint256", "name": "saltNonce", "type": "uint256"},
            {"internalType": "address", "name": "fallbackHandler", "type": "address"},
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "value", "type": "uint256"},
            {"internalType": "bytes", "name": "data", "type": "bytes"},
            {"internalType": "enum Enum.Operation", "name": "operation", "type": "uint8"},
        ],
        "name": "createProxyAndExecTransaction",
        "outputs": [{"internalType": "bool", "name": "execTransactionSuccess", "type": "bool"}],
        "stateMutability": "payable",
        "type": "function",
    },
]

CONTRACT_ABIS: Dict[str, List[Dict[str, Any]]] = {
    "IGnosisSafe": GNOSIS_SAFE_ABI,
    "CPKFactory": CPK_FACTORY_ABI,
}


def load_abi(name: str) -> List[Dict[str, Any]]:
    """Return the bundled ABI for ``name``."""

    try:
        return CONTRACT_ABIS[name]
    except KeyError:
        raise ValueError(f"No ABI bundled for contract '{name}'") from None


def _entry(abi_entries: Sequence[Dict[str, Any]], name: str, kind: str) -> Dict[str, Any]:
    for entry in abi_entries:
        if entry.get("type") == kind and entry.get("name") == name:
            return entry
    raise ValueError(f"{kind.capitalize()} '{name}' not found in ABI")


def input_types(entry: Dict[str, Any]) -> List[str]:
    return [str(param.get("type", "")) for param in entry.get("inputs", [])]


def function_signature(abi_entries: Sequence[Dict[str, Any]], method: str) -> str:
    entry = _entry(abi_entries, method, "function")
    return f"{method}({','.join(input_types(entry))})"


def selector(abi_entries: Sequence[Dict[str, Any]], method: str) -> bytes:
    return function_signature_to_4byte_selector(function_signature(abi_entries, method))


def encode_with_selector(abi_entries: Sequence[Dict[str, Any]], method: str, args: Sequence[Any]) -> bytes:
    """Encode ``method(args)`` as calldata: 4-byte selector followed by ABI arguments."""

    entry = _entry(abi_entries, method, "function")
    types = input_types(entry)
    if len(args) != len(types):
        raise EncodingError(f"Method '{method}' expects {len(types)} arguments, received {len(args)}")
    try:
        encoded = encode(types, list(args))
    except (AbiEncodingError, TypeError, ValueError, OverflowError) as exc:
        raise EncodingError(f"Cannot encode arguments for {function_signature(abi_entries, method)}: {exc}") from exc
    return selector(abi_entries, method) + encoded


def decode_with_selector(abi_entries: Sequence[Dict[str, Any]], method: str, payload: bytes) -> List[Any]:
    """Inverse of :func:`encode_with_selector`; addresses come back checksummed."""

    entry = _entry(abi_entries, method, "function")
    expected = selector(abi_entries, method)
    if bytes(payload[:4]) != expected:
        raise EncodingError(f"Payload selector {payload[:4].hex()} does not match {expected.hex()} ({method})")
    types = input_types(entry)
    try:
        values = decode(types, bytes(payload[4:]))
    except (AbiDecodingError, TypeError, ValueError) as exc:
        raise EncodingError(f"Cannot decode {method} payload: {exc}") from exc
    return [_normalise_decoded(value, abi_type) for value, abi_type in zip(values, types)]


def _normalise_decoded(value: Any, abi_type: str) -> Any:
    if abi_type.endswith("[]"):
        return [_normalise_decoded(item, abi_type[:-2]) for item in value]
    if abi_type == "address":
        return to_checksum_address(value)
    return value


def event_topic(abi_entries: Sequence[Dict[str, Any]], name: str) -> bytes:
    return event_abi_to_log_topic(_entry(abi_entries, name, "event"))


def decode_event_data(abi_entries: Sequence[Dict[str, Any]], name: str, data: bytes) -> List[Any]:
    """Decode the non-indexed arguments of an event log."""

    entry = _entry(abi_entries, name, "event")
    types = [str(param["type"]) for param in entry.get("inputs", []) if not param.get("indexed")]
    values = decode(types, bytes(data))
    return [_normalise_decoded(value, abi_type) for value, abi_type in zip(values, types)]


__all__ = [
    "CONTRACT_ABIS",
    "CPK_FACTORY_ABI",
    "GNOSIS_SAFE_ABI",
    "decode_event_data",
    "decode_with_selector",
    "encode_with_selector",
    "event_topic",
    "function_signature",
    "load_abi",
    "selector",
]
