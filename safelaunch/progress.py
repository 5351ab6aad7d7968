"""Human readable progress output, printed only when ``--log`` is set."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from rich.console import Console

EXPLORER_TX_URLS: Dict[str, str] = {
    "mainnet": "https://etherscan.io/tx/",
    "rinkeby": "https://rinkeby.etherscan.io/tx/",
    "goerli": "https://goerli.etherscan.io/tx/",
    "sepolia": "https://sepolia.etherscan.io/tx/",
}


def explorer_url(network: str, tx_hash: str) -> Optional[str]:
    base = EXPLORER_TX_URLS.get(network)
    return f"{base}{tx_hash}" if base else None


class ProgressReporter:
    def __init__(self, enabled: bool = False, console: Optional[Console] = None) -> None:
        self.enabled = enabled
        self.console = console or Console(stderr=True, highlight=False)

    def arguments(self, payload: Dict[str, Any]) -> None:
        if self.enabled:
            self.console.print("\n[bold]TaskArgs:[/]")
            self.console.print_json(json.dumps(payload, default=str))

    def factory(self, address: str) -> None:
        if self.enabled:
            self.console.print(f"CPK Factory: {address}")

    def submitted(self, network: str, tx_hash: str) -> None:
        if not self.enabled:
            return
        self.console.print(f"\n Creation Tx Hash: {tx_hash}")
        url = explorer_url(network, tx_hash)
        if url:
            self.console.print(url, markup=False)

    def proxy(self, address: str) -> None:
        if self.enabled:
            self.console.print(f"[green]✅ ProxyCreation[/] {address}")

    def done(self) -> None:
        if self.enabled:
            self.console.print("Done ✅")


__all__ = ["EXPLORER_TX_URLS", "ProgressReporter", "explorer_url"]
