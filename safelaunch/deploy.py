"""Safe deployment orchestration through the CPK factory."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from eth_utils import to_checksum_address
from hexbytes import HexBytes

from .abi import CPK_FACTORY_ABI, decode_event_data, event_topic
from .address_book import CPK_FACTORY, AddressBook
from .contracts import instantiate_contract
from .core import AppContext, get_context
from .defaults import resolve_defaults
from .errors import EncodingError, ExecutionRevertedError, SafelaunchError, SubmissionError
from .initializer import encode_setup
from .progress import ProgressReporter
from .request import DeploymentRequest, Operation, validate_request
from .signer import Signer

FACTORY_METHOD = "createProxyAndExecTransaction"
# Submission-time ceiling, not an estimate.
GAS_LIMIT = 3_000_000
PROXY_CREATION_TOPIC = HexBytes(event_topic(CPK_FACTORY_ABI, "ProxyCreation"))


def proxy_from_receipt(receipt: Mapping[str, Any], factory: str) -> Optional[str]:
    """Return the proxy announced by the factory's ``ProxyCreation`` event, if any."""

    for entry in receipt.get("logs") or []:
        topics = entry.get("topics") or []
        if not topics or HexBytes(topics[0]) != PROXY_CREATION_TOPIC:
            continue
        if to_checksum_address(entry["address"]) != factory:
            continue
        (proxy,) = decode_event_data(CPK_FACTORY_ABI, "ProxyCreation", HexBytes(entry["data"]))
        return proxy
    return None


@dataclass
class DeploymentResult:
    """Outcome of one factory call.

    Created as soon as the transaction hash exists. ``confirmation`` is the
    task waiting for the receipt; cancelling it (for example through
    ``asyncio.wait_for``) abandons the wait without touching the transaction.
    """

    tx_hash: str
    factory: str
    network: str
    confirmation: "asyncio.Task[Mapping[str, Any]]" = field(repr=False)
    status: str = "submitted"
    receipt: Optional[Mapping[str, Any]] = field(default=None, repr=False)
    proxy: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.status in {"confirmed", "failed"}

    async def wait(self) -> "DeploymentResult":
        try:
            receipt = await self.confirmation
        except ExecutionRevertedError as exc:
            self.status = "failed"
            self.receipt = exc.receipt
            raise
        self.status = "confirmed"
        self.receipt = receipt
        self.proxy = proxy_from_receipt(receipt, self.factory)
        return self

    def cancel(self) -> bool:
        return self.confirmation.cancel()

    def serialise(self) -> Dict[str, Any]:
        receipt = self.receipt or {}
        return {
            "tx_hash": self.tx_hash,
            "network": self.network,
            "factory": self.factory,
            "status": self.status,
            "block": receipt.get("blockNumber"),
            "gas_used": receipt.get("gasUsed"),
            "proxy": self.proxy,
        }


async def _confirm(signer: Signer, tx_hash: str) -> Mapping[str, Any]:
    receipt = await signer.wait_for_receipt(tx_hash)
    if int(receipt.get("status", 0)) != 1:
        raise ExecutionRevertedError(f"Transaction {tx_hash} reverted", tx_hash=tx_hash, receipt=receipt)
    return receipt


class DeploymentInvoker:
    """Submit ``createProxyAndExecTransaction`` and track its confirmation."""

    def __init__(
        self,
        *,
        address_book: AddressBook,
        network: str,
        signer: Signer,
        context: Optional[AppContext] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self.address_book = address_book
        self.network = network
        self.signer = signer
        self.context = context or get_context()
        self.reporter = reporter or ProgressReporter()

    async def submit(
        self,
        *,
        mastercopy: str,
        salt_nonce: int,
        fallback_handler: str,
        to: str,
        value: int,
        data: bytes,
        operation: int,
    ) -> DeploymentResult:
        try:
            operation = Operation(operation)
        except ValueError:
            raise EncodingError(f"operation must be 0 (call) or 1 (delegate-call), got {operation!r}") from None
        factory_address = self.address_book.lookup(self.network, CPK_FACTORY)
        self.reporter.factory(factory_address)
        factory = instantiate_contract(factory_address, "CPKFactory", signer=self.signer, write=True)
        params = {
            "factory": factory.address,
            "mastercopy": mastercopy,
            "salt_nonce": hex(salt_nonce),
            "to": to,
            "value": value,
            "operation": int(operation),
        }
        try:
            tx_hash = await factory.transact(
                FACTORY_METHOD,
                mastercopy,
                salt_nonce,
                fallback_handler,
                to,
                value,
                data,
                int(operation),
                gas=GAS_LIMIT,
            )
        except SafelaunchError as exc:
            self.context.ledger.log("deploy_submit", params=params, ok=False, severity="ERROR", result={"error": str(exc)})
            raise
        except Exception as exc:
            self.context.ledger.log("deploy_submit", params=params, ok=False, severity="ERROR", result={"error": str(exc)})
            raise SubmissionError(f"{FACTORY_METHOD} was rejected before inclusion: {exc}") from exc
        self.context.ledger.log("deploy_submit", params=params, result={"tx_hash": tx_hash})
        self.context.logger.info("Submitted %s via %s: %s", FACTORY_METHOD, factory.address, tx_hash)
        self.reporter.submitted(self.network, tx_hash)
        confirmation = asyncio.ensure_future(_confirm(self.signer, tx_hash))
        return DeploymentResult(
            tx_hash=tx_hash,
            factory=factory.address,
            network=self.network,
            confirmation=confirmation,
        )


class SafeDeployer:
    """Run validate → default → encode → submit for one :class:`DeploymentRequest`."""

    def __init__(
        self,
        *,
        address_book: AddressBook,
        network: str,
        signer: Signer,
        context: Optional[AppContext] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self.address_book = address_book
        self.network = network
        self.signer = signer
        self.context = context or get_context()
        self.reporter = reporter

    def _reporter(self, request: DeploymentRequest) -> ProgressReporter:
        return self.reporter or ProgressReporter(enabled=request.log)

    async def prepare(self, request: DeploymentRequest) -> Tuple[DeploymentRequest, bytes]:
        """Validate and default ``request`` and return it with the initializer to submit."""

        ledger = self.context.ledger
        try:
            validate_request(request)
        except SafelaunchError as exc:
            ledger.log("deploy_validate", ok=False, severity="ERROR", result={"error": str(exc)})
            raise
        ledger.log("deploy_validate", params={"setup": request.setup, "initializer": request.has_initializer})
        resolved = await resolve_defaults(
            request,
            address_book=self.address_book,
            network=self.network,
            signer=self.signer,
        )
        ledger.log("deploy_defaults", params={"network": self.network}, result=resolved.serialise())
        if not resolved.setup:
            return resolved, bytes(resolved.initializer or b"")
        try:
            initializer = encode_setup(
                resolved.owners or (),
                resolved.threshold,
                resolved.to,
                resolved.data,
                resolved.fallback_handler,
                resolved.payment_token,
                resolved.payment,
                resolved.payment_receiver,
            )
        except EncodingError as exc:
            ledger.log("deploy_encode", ok=False, severity="ERROR", result={"error": str(exc)})
            raise
        ledger.log("deploy_encode", result={"length": len(initializer)})
        return resolved, initializer

    async def deploy(self, request: DeploymentRequest, *, reporter: Optional[ProgressReporter] = None) -> DeploymentResult:
        """Submit the factory call; the returned result is not yet confirmed."""

        reporter = reporter or self._reporter(request)
        resolved, initializer = await self.prepare(request)
        reporter.arguments({**resolved.serialise(), "initializer": "0x" + initializer.hex()})
        invoker = DeploymentInvoker(
            address_book=self.address_book,
            network=self.network,
            signer=self.signer,
            context=self.context,
            reporter=reporter,
        )
        return await invoker.submit(
            mastercopy=resolved.mastercopy,
            salt_nonce=resolved.salt_nonce,
            fallback_handler=resolved.fallback_handler,
            to=resolved.to,
            value=resolved.value,
            data=initializer,
            operation=resolved.operation,
        )

    async def confirm(self, result: DeploymentResult, *, reporter: Optional[ProgressReporter] = None) -> DeploymentResult:
        """Wait for ``result`` to be mined and record the outcome."""

        reporter = reporter or self.reporter or ProgressReporter()
        try:
            await result.wait()
        except ExecutionRevertedError as exc:
            self.context.ledger.log(
                "deploy_confirm",
                params={"tx_hash": result.tx_hash},
                ok=False,
                severity="ERROR",
                result={"error": str(exc)},
            )
            raise
        self.context.ledger.log("deploy_confirm", params={"tx_hash": result.tx_hash}, result=result.serialise())
        if result.proxy:
            reporter.proxy(result.proxy)
        reporter.done()
        return result

    async def deploy_and_wait(self, request: DeploymentRequest) -> DeploymentResult:
        reporter = self._reporter(request)
        result = await self.deploy(request, reporter=reporter)
        return await self.confirm(result, reporter=reporter)


__all__ = [
    "DeploymentInvoker",
    "DeploymentResult",
    "FACTORY_METHOD",
    "GAS_LIMIT",
    "SafeDeployer",
    "proxy_from_receipt",
]
