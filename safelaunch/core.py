"""Core context primitives: forensic ledger, configuration and logging."""

from __future__ import annotations

import getpass
import hashlib
import hmac
import json
import logging
import os
import stat
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from web3 import Web3
from web3.providers.eth_tester import EthereumTesterProvider

try:  # pragma: no cover - optional dependency at runtime
    import keyring  # type: ignore
except Exception:  # pragma: no cover - keyring may not be installed
    keyring = None  # type: ignore

from .address_book import AddressBook
from .utils.paths import state_dir

ENV_PATH_DEFAULT = Path(".env")
SERVICE_ENV_VAR = "SAFELAUNCH_KEYRING_SERVICE"
HMAC_KEY_ENV = "AUDIT_HMAC_KEY"
DEFAULT_SERVICE = "safelaunch"
RPC_ENV_KEY = "RPC_URL"
NETWORK_ENV_KEY = "SAFELAUNCH_NETWORK"
ADDRESS_BOOK_ENV_KEY = "SAFELAUNCH_ADDRESS_BOOK"
DEFAULT_NETWORK = "rinkeby"
SIGNATURE_OK = "✅"
SIGNATURE_WARN = "⚠️"
SIGNATURE_ERR = "💥"


def log_dir() -> Path:
    return state_dir() / "logs"


def _ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _ensure_file_permissions(path: Path) -> None:
    try:
        path.chmod(stat.S_IRUSR | stat.S_IWUSR)
    except OSError:  # pragma: no cover - permission handling best effort
        return


class ForensicLedger:
    """Append-only forensic log with hash chaining and optional HMAC."""

    def __init__(self, path: Optional[Path] = None, hmac_key_env: str = HMAC_KEY_ENV) -> None:
        self.path = path or log_dir() / "safelaunch_audit.jsonl"
        self.hmac_key_env = hmac_key_env
        _ensure_directory(self.path.parent)
        self.path.touch(exist_ok=True)
        _ensure_file_permissions(self.path)

    def _load_last_hash(self) -> str:
        try:
            lines = self.path.read_bytes().splitlines()
        except OSError:
            return ""
        if not lines:
            return ""
        try:
            payload = json.loads(lines[-1].decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return ""
        return str(payload.get("hash", ""))

    def _hmac_key(self) -> Optional[bytes]:
        service = os.getenv(SERVICE_ENV_VAR, DEFAULT_SERVICE)
        secret: Optional[str] = None
        if keyring is not None:
            try:
                secret = keyring.get_password(service, self.hmac_key_env)
            except Exception:  # pragma: no cover - backend failures depend on host
                secret = None
        if not secret:
            secret = os.getenv(self.hmac_key_env)
        return secret.encode("utf-8") if secret else None

    def _signature(self, ok: bool, severity: str) -> str:
        if not ok:
            return SIGNATURE_ERR
        if severity.upper() in {"WARNING", "WARN"}:
            return SIGNATURE_WARN
        return SIGNATURE_OK

    def log(
        self,
        action: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        result: Optional[Dict[str, Any]] = None,
        ok: bool = True,
        severity: str = "INFO",
    ) -> Dict[str, Any]:
        """Append a forensic record and return the serialised payload."""

        record = {
            "ts": time.time(),
            "action": action,
            "params": params or {},
            "result": result or {},
            "ok": bool(ok),
            "severity": severity.upper(),
            "signature": self._signature(ok, severity),
        }
        envelope = {"prev": self._load_last_hash(), **record}
        digest_input = json.dumps(envelope, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
        envelope["hash"] = hashlib.sha256(digest_input).hexdigest()
        hmac_key = self._hmac_key()
        if hmac_key:
            hmac_input = json.dumps(envelope, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
            envelope["hmac"] = hmac.new(hmac_key, hmac_input, hashlib.sha256).hexdigest()
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(envelope, ensure_ascii=False, default=str) + "\n")
        return envelope


class EnvStore:
    """Handle flat key/value persistence in a ``.env`` file."""

    def __init__(self, path: Path = ENV_PATH_DEFAULT) -> None:
        self.path = path
        self._cache: Optional[Dict[str, str]] = None
        load_dotenv(self.path, override=False)

    def _load(self) -> Dict[str, str]:
        if self._cache is not None:
            return self._cache
        if not self.path.exists():
            self._cache = {}
            return self._cache
        values: Dict[str, str] = {}
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if not line or line.strip().startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip()
        self._cache = values
        return values

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        if value is None:
            value = os.getenv(key)
        return value


class SecretStore:
    """Secret resolution with keyring-first semantics, then ``.env``/environment."""

    def __init__(
        self,
        ledger: ForensicLedger,
        env_store: EnvStore,
        *,
        service_name: Optional[str] = None,
        backend: Optional[Any] = None,
    ) -> None:
        self.ledger = ledger
        self.env_store = env_store
        self.service_name = service_name or os.getenv(SERVICE_ENV_VAR, DEFAULT_SERVICE)
        self.backend = backend if backend is not None else keyring

    def _preview(self, value: str) -> str:
        if len(value) <= 4:
            return "*" * len(value)
        return value[:2] + "*" * (len(value) - 4) + value[-2:]

    def _from_keyring(self, key: str) -> Optional[str]:
        if self.backend is None:
            return None
        try:
            return self.backend.get_password(self.service_name, key)
        except Exception:  # pragma: no cover - backend failures depend on host
            return None

    def get(
        self,
        key: str,
        *,
        prompt_text: Optional[str] = None,
        allow_prompt: bool = True,
        sensitive: bool = True,
        default: Optional[str] = None,
    ) -> Optional[str]:
        value = self._from_keyring(key)
        if value:
            self.ledger.log(
                "secret_get",
                params={"key": key, "source": "keyring"},
                result={"preview": self._preview(value)},
            )
            return value
        env_value = self.env_store.get(key)
        if env_value:
            self.ledger.log(
                "secret_get",
                params={"key": key, "source": "env"},
                result={"preview": self._preview(env_value)},
            )
            return env_value
        if allow_prompt and prompt_text:
            prompt = getpass.getpass if sensitive else input
            entered = prompt(prompt_text).strip()
            if entered:
                self.ledger.log("secret_prompt", params={"key": key}, result={"source": "prompt"})
                return entered
        if default is not None:
            return default
        self.ledger.log(
            "secret_missing",
            params={"key": key},
            ok=False,
            severity="WARNING",
        )
        return None

    def require(
        self,
        key: str,
        *,
        prompt_text: Optional[str] = None,
        sensitive: bool = True,
    ) -> str:
        value = self.get(key, prompt_text=prompt_text, allow_prompt=prompt_text is not None, sensitive=sensitive)
        if value is None:
            raise RuntimeError(f"missing required secret {key}")
        return value


@dataclass
class AppContext:
    """Container exposing the ledger, configuration, logger and web3 client."""

    ledger: ForensicLedger
    env_store: EnvStore
    secrets: SecretStore
    logger: logging.Logger
    _web3: Optional[Web3] = None

    def network(self, override: Optional[str] = None) -> str:
        if override:
            return override
        return self.env_store.get(NETWORK_ENV_KEY) or DEFAULT_NETWORK

    def address_book(self, override: Optional[Path] = None) -> AddressBook:
        path = override
        if path is None:
            configured = self.env_store.get(ADDRESS_BOOK_ENV_KEY)
            path = Path(configured) if configured else None
        book = AddressBook.load(path)
        self.ledger.log(
            "address_book_load",
            params={"path": str(path) if path else None},
            result={"networks": book.networks},
        )
        return book

    def get_web3(self, *, auto_connect: bool = True) -> Optional[Web3]:
        if self._web3 is None and auto_connect:
            self._web3 = self._connect_web3()
        return self._web3

    def _connect_web3(self) -> Web3:
        rpc = self.secrets.get(RPC_ENV_KEY, allow_prompt=False)
        if rpc:
            w3 = Web3(Web3.HTTPProvider(rpc))
            try:
                if w3.is_connected():
                    self.ledger.log(
                        "web3_connect",
                        params={"rpc": rpc},
                        result={"chain_id": w3.eth.chain_id},
                    )
                    return w3
            except Exception as exc:
                self.ledger.log(
                    "web3_connect",
                    params={"rpc": rpc},
                    ok=False,
                    severity="WARNING",
                    result={"error": str(exc)},
                )
        tester = Web3(EthereumTesterProvider())
        self.ledger.log(
            "web3_connect",
            params={"rpc": "tester"},
            result={"mode": "ethereum-tester"},
        )
        return tester


_CONTEXT: Optional[AppContext] = None


def _configure_logger() -> logging.Logger:
    logger = logging.getLogger("safelaunch")
    if logger.handlers:
        return logger
    directory = log_dir()
    _ensure_directory(directory)
    formatter = logging.Formatter("%(asctime)s - safelaunch - %(levelname)s - %(message)s")
    file_handler = logging.FileHandler(directory / "safelaunch.log", encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(logging.WARNING)
    logger.setLevel(logging.INFO)
    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.info("%s Logger initialised", SIGNATURE_OK)
    return logger


def initialise_context(service_name: Optional[str] = None, *, env_path: Path = ENV_PATH_DEFAULT) -> AppContext:
    global _CONTEXT
    ledger = ForensicLedger()
    env_store = EnvStore(env_path)
    secrets = SecretStore(ledger, env_store, service_name=service_name)
    logger = _configure_logger()
    _CONTEXT = AppContext(ledger=ledger, env_store=env_store, secrets=secrets, logger=logger)
    return _CONTEXT


def get_context() -> AppContext:
    if _CONTEXT is None:
        return initialise_context()
    return _CONTEXT


__all__ = [
    "AppContext",
    "EnvStore",
    "ForensicLedger",
    "SecretStore",
    "get_context",
    "initialise_context",
]
