"""safelaunch: deploy a Gnosis Safe proxy and run its first transaction in one call."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
