from __future__ import annotations

import pytest
from eth_utils import to_checksum_address

from safelaunch.errors import EncodingError
from safelaunch.initializer import SETUP_SIGNATURE, decode_setup, encode_setup
from safelaunch.request import DEFAULT_FALLBACK_HANDLER, HASH_ZERO, ZERO_ADDRESS

OWNERS = [
    "0x1111111111111111111111111111111111111111",
    "0x2222222222222222222222222222222222222222",
    to_checksum_address("0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"),
]


def _default_args(**overrides):
    args = {
        "owners": OWNERS[:1],
        "threshold": 1,
        "to": ZERO_ADDRESS,
        "data": HASH_ZERO,
        "fallback_handler": DEFAULT_FALLBACK_HANDLER,
        "payment_token": ZERO_ADDRESS,
        "payment": 0,
        "payment_receiver": ZERO_ADDRESS,
    }
    args.update(overrides)
    return args


def test_selector_matches_safe_setup() -> None:
    assert SETUP_SIGNATURE == "setup(address[],uint256,address,bytes,address,address,uint256,address)"
    payload = encode_setup(**_default_args())
    assert payload[:4].hex() == "b63e800d"


def test_encoding_is_deterministic() -> None:
    assert encode_setup(**_default_args()) == encode_setup(**_default_args())


@pytest.mark.parametrize(
    "overrides",
    [
        {},
        {"owners": OWNERS, "threshold": 2, "payment": 10**18, "payment_receiver": OWNERS[1]},
        {
            "owners": OWNERS[1:],
            "threshold": 2,
            "to": OWNERS[2],
            "data": bytes.fromhex("a9059cbb") + b"\x00" * 64,
            "payment_token": OWNERS[0],
            "payment": 12345,
        },
    ],
)
def test_decode_recovers_arguments(overrides) -> None:
    args = _default_args(**overrides)
    decoded = decode_setup(encode_setup(**args))
    assert decoded.owners == [to_checksum_address(owner) for owner in args["owners"]]
    assert decoded.threshold == args["threshold"]
    assert decoded.to == to_checksum_address(args["to"])
    assert decoded.data == args["data"]
    assert decoded.fallback_handler == to_checksum_address(args["fallback_handler"])
    assert decoded.payment_token == to_checksum_address(args["payment_token"])
    assert decoded.payment == args["payment"]
    assert decoded.payment_receiver == to_checksum_address(args["payment_receiver"])


@pytest.mark.parametrize(
    "overrides",
    [
        {"threshold": -1},
        {"threshold": "1"},
        {"owners": "0x1111111111111111111111111111111111111111"},
        {"owners": ["not-an-address"]},
        {"to": "0x1234"},
        {"data": "0xdeadbeef"},
        {"payment": -5},
    ],
)
def test_malformed_fields_raise_encoding_error(overrides) -> None:
    with pytest.raises(EncodingError):
        encode_setup(**_default_args(**overrides))


def test_decode_rejects_foreign_selector() -> None:
    payload = encode_setup(**_default_args())
    with pytest.raises(EncodingError):
        decode_setup(b"\x00\x00\x00\x00" + payload[4:])
