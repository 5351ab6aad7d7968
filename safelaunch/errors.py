"""Error taxonomy for Safe deployments."""

from __future__ import annotations

from typing import Optional


class SafelaunchError(RuntimeError):
    """Base class for every failure surfaced by a deployment run."""


class ConflictingModeError(SafelaunchError):
    """Raised when both an initializer payload and ``--setup`` were supplied."""


class MissingModeError(SafelaunchError):
    """Raised when neither an initializer payload nor ``--setup`` was supplied."""


class ConfigurationError(SafelaunchError):
    """Raised when a required address book entry is absent."""


class EncodingError(SafelaunchError):
    """Raised when call arguments do not match their ABI types."""


class SubmissionError(SafelaunchError):
    """Raised when the signer or node rejects a transaction before inclusion."""


class ExecutionRevertedError(SafelaunchError):
    """Raised when a mined transaction ends with a failed status."""

    def __init__(self, message: str, *, tx_hash: str, receipt: Optional[object] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
        self.receipt = receipt


class ConfirmationTimeoutError(SafelaunchError):
    """Raised when the receipt wait is abandoned; the transaction may still be mined."""

    def __init__(self, message: str, *, tx_hash: str) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


__all__ = [
    "ConfigurationError",
    "ConfirmationTimeoutError",
    "ConflictingModeError",
    "EncodingError",
    "ExecutionRevertedError",
    "MissingModeError",
    "SafelaunchError",
    "SubmissionError",
]
