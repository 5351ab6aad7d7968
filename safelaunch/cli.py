"""Command line front end for safelaunch."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from eth_utils import is_0x_prefixed, is_hex
from web3 import Web3

from . import __version__
from .core import AppContext, get_context
from .deploy import SafeDeployer
from .errors import ConfirmationTimeoutError, SafelaunchError
from .progress import ProgressReporter
from .request import DeploymentRequest, validate_request
from .signer import Signer, load_signer


def _uint(value: str) -> int:
    text = value.strip().lower()
    number = int(text, 16) if text.startswith("0x") else int(text, 10)
    if number < 0:
        raise ValueError(f"expected an unsigned integer, got {value!r}")
    return number


def _bytes(value: str) -> bytes:
    text = value.strip()
    if not is_0x_prefixed(text) or not is_hex(text):
        raise ValueError(f"expected 0x-prefixed hex, got {value!r}")
    return Web3.to_bytes(hexstr=text)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="safelaunch", description="Deploy a Gnosis Safe proxy through the CPK factory")
    parser.add_argument("--version", action="store_true", help="Display version information and exit")
    parser.add_argument("--network", default=None, help="Address book network (default: $SAFELAUNCH_NETWORK or rinkeby)")
    parser.add_argument("--address-book", type=Path, default=None, help="JSON file extending the built-in address book")
    subparsers = parser.add_subparsers(dest="command")

    deploy = subparsers.add_parser(
        "deploy-and-exec",
        help="Send a tx to CPKFactory.createProxyAndExecTransaction()",
    )
    deploy.add_argument("--mastercopy", help="The deployed implementation code the created proxy should point to")
    deploy.add_argument("--saltnonce", type=_uint, default=None, help="Salt nonce for the proxy address (default: CPK global salt)")
    deploy.add_argument("--initializer", type=_bytes, default=None, help="Payload for gnosis safe proxy setup")
    deploy.add_argument("--setup", action="store_true", help="Initialize the gnosis safe by calling its setup function")
    deploy.add_argument("owners", nargs="*", help="Supply with --setup: list of owners. Defaults to the signer.")
    deploy.add_argument("--threshold", type=_uint, default=None, help="Supply with --setup: required confirmations")
    deploy.add_argument("--to", default=None, help="Supply with --setup: to address")
    deploy.add_argument("--value", type=_uint, default=None, help="Value for execTransaction")
    deploy.add_argument("--data", type=_bytes, default=None, help="Supply with --setup: payload for optional delegate call")
    deploy.add_argument("--operation", type=int, default=None, help="Operation type, default 1 (delegate call)")
    deploy.add_argument("--fallbackhandler", default=None, help="Handler for fallback calls to the Safe")
    deploy.add_argument("--paymenttoken", default=None, help="Supply with --setup: payment token (0 is ETH)")
    deploy.add_argument("--payment", type=_uint, default=None, help="Supply with --setup: value that should be paid")
    deploy.add_argument("--paymentreceiver", default=None, help="Supply with --setup: payment receiver (0 is tx.origin)")
    deploy.add_argument("--timeout", type=float, default=None, help="Give up waiting for the receipt after N seconds")
    deploy.add_argument("--log", action="store_true", help="Log progress to stderr")

    subparsers.add_parser("address-book", help="Show the address book entries for the active network")
    return parser


def _request_from_args(args: argparse.Namespace) -> DeploymentRequest:
    return DeploymentRequest(
        mastercopy=args.mastercopy,
        salt_nonce=args.saltnonce,
        initializer=args.initializer,
        setup=args.setup,
        owners=tuple(args.owners) if args.owners else None,
        threshold=args.threshold,
        to=args.to,
        value=args.value,
        data=args.data,
        operation=args.operation,
        fallback_handler=args.fallbackhandler,
        payment_token=args.paymenttoken,
        payment=args.payment,
        payment_receiver=args.paymentreceiver,
        log=args.log,
    )


def build_signer(context: AppContext) -> Signer:
    return load_signer(context)


async def _deploy(deployer: SafeDeployer, request: DeploymentRequest, timeout: Optional[float]) -> Dict[str, Any]:
    result = await deployer.deploy(request)
    try:
        await asyncio.wait_for(deployer.confirm(result), timeout)
    except asyncio.TimeoutError:
        raise ConfirmationTimeoutError(
            f"No receipt for {result.tx_hash} after {timeout}s", tx_hash=result.tx_hash
        ) from None
    return result.serialise()


def _handle_deploy(args: argparse.Namespace, context: AppContext) -> Any:
    request = _request_from_args(args)
    # Mode errors surface before the key prompt or any RPC connection.
    validate_request(request)
    deployer = SafeDeployer(
        address_book=context.address_book(args.address_book),
        network=context.network(args.network),
        signer=build_signer(context),
        context=context,
        reporter=ProgressReporter(enabled=request.log),
    )
    return asyncio.run(_deploy(deployer, request, args.timeout))


def _handle_address_book(args: argparse.Namespace, context: AppContext) -> Any:
    network = context.network(args.network)
    return {"network": network, "entries": context.address_book(args.address_book).for_network(network)}


def _report_error(context: AppContext, exc: BaseException) -> None:
    payload: Dict[str, Any] = {"error": type(exc).__name__, "message": str(exc)}
    tx_hash = getattr(exc, "tx_hash", None)
    if tx_hash is not None:
        payload["tx_hash"] = tx_hash
    context.logger.error("%s: %s", payload["error"], payload["message"])
    context.ledger.log("cli_error", ok=False, severity="ERROR", result=payload)
    json.dump(payload, sys.stderr, indent=2, default=str)
    sys.stderr.write("\n")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.version:
        print(f"safelaunch {__version__}")
        return 0
    if args.command is None:
        parser.print_help()
        return 1
    handlers = {
        "deploy-and-exec": _handle_deploy,
        "address-book": _handle_address_book,
    }
    context = get_context()
    try:
        result = handlers[args.command](args, context)
    except SafelaunchError as exc:
        _report_error(context, exc)
        return 1
    except Exception as exc:
        context.logger.exception("Unexpected failure")
        _report_error(context, exc)
        return 1
    if result is not None:
        json.dump(result, sys.stdout, indent=2, default=str)
        sys.stdout.write("\n")
    return 0


def run() -> None:
    sys.exit(main())


__all__ = ["build_signer", "main", "run"]
