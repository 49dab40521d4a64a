"""Network sessions against the NEAR JSON-RPC API.

A session lives for one relay call: it resolves the signer's access key,
broadcasts one signed transaction and is closed on every exit path.
API docs: https://docs.near.org/api/rpc/introduction
"""

import base64
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from chainweaver.config import NetworkConfig
from chainweaver.relay.base import (
    FailureKind,
    LookupResult,
    NetworkError,
    TransactionOutcome,
)
from chainweaver.relay.transaction import SignedTransaction
from chainweaver.signing.base import PublicKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessKeyState:
    """Access key state needed to build a transaction."""
    nonce: int
    block_hash: str


class NetworkSession(ABC):
    """One-shot connection to the ledger network."""

    def __init__(self, config: NetworkConfig):
        self.config = config

    @abstractmethod
    async def view_access_key(self, account_id: str, public_key: PublicKey) -> AccessKeyState:
        """Resolve current nonce and a recent block hash for the signer's key."""
        pass

    @abstractmethod
    async def broadcast(self, transaction: SignedTransaction) -> str:
        """Broadcast and wait for inclusion.

        Returns:
            Network-assigned transaction hash
        """
        pass

    @abstractmethod
    async def transaction_status(self, tx_hash: str, sender_id: str) -> LookupResult:
        """Look up a previously broadcast transaction."""
        pass

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> "NetworkSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False


def _error_path(error: Any) -> tuple[list[str], Any]:
    """Walk a nested NEAR error object down to its innermost variant."""
    path: list[str] = []
    node = error
    while True:
        if isinstance(node, dict) and "kind" in node:
            node = node["kind"]
        elif isinstance(node, dict) and len(node) == 1 and next(iter(node))[:1].isupper():
            # Variant names are CamelCase, payload fields are snake_case
            key, node = next(iter(node.items()))
            path.append(key)
        elif isinstance(node, str):
            path.append(node)
            return path, None
        else:
            return path, node


def describe_execution_error(error: Any) -> tuple[FailureKind, str]:
    """Turn a NEAR transaction error object into a kind and message.

    Handles both InvalidTxError (rejected before execution) and
    ActionError (failed during execution) shapes.
    """
    path, detail = _error_path(error)
    leaf = path[-1] if path else ""
    info = detail if isinstance(detail, dict) else {}

    if leaf == "NotEnoughBalance":
        return FailureKind.INSUFFICIENT_BALANCE, (
            f"Sender {info.get('signer_id')} does not have enough balance "
            f"{info.get('balance')} for operation costing {info.get('cost')}"
        )
    if "Balance" in leaf:
        return FailureKind.INSUFFICIENT_BALANCE, f"{leaf}: {json.dumps(info)}"
    if leaf == "AccountDoesNotExist":
        return FailureKind.ACCOUNT_NOT_FOUND, f"Account {info.get('account_id')} does not exist"
    if leaf == "InvalidNonce":
        return FailureKind.REJECTED, (
            f"Transaction nonce {info.get('tx_nonce')} must be larger than "
            f"nonce of the used access key {info.get('ak_nonce')}"
        )

    name = ".".join(path) or "TransactionError"
    if detail is None:
        return FailureKind.REJECTED, name
    return FailureKind.REJECTED, f"{name}: {json.dumps(detail)}"


def rpc_error_to_exception(error: dict, transport_status: Optional[int] = None) -> NetworkError:
    """Map a JSON-RPC error object to a NetworkError."""
    cause = error.get("cause") or {}
    name = cause.get("name") or error.get("name") or ""
    info = cause.get("info") or {}

    if name == "TIMEOUT_ERROR":
        return NetworkError(
            "Network timed out waiting for the transaction to be included",
            FailureKind.TIMEOUT,
            transport_status,
        )
    if name == "UNKNOWN_ACCOUNT":
        return NetworkError(
            f"Account {info.get('requested_account_id')} does not exist",
            FailureKind.ACCOUNT_NOT_FOUND,
            transport_status,
        )
    if name == "UNKNOWN_ACCESS_KEY":
        return NetworkError(
            f"Access key {info.get('public_key')} does not exist",
            FailureKind.ACCESS_KEY_NOT_FOUND,
            transport_status,
        )
    if name == "INVALID_TRANSACTION":
        kind, message = describe_execution_error(error.get("data") or info)
        return NetworkError(message, kind, transport_status)

    data = error.get("data")
    message = data if isinstance(data, str) else error.get("message") or "Unknown RPC error"
    return NetworkError(f"{name or 'RPC_ERROR'}: {message}", FailureKind.PROTOCOL, transport_status)


class NearRpcSession(NetworkSession):
    """NEAR JSON-RPC session over httpx."""

    def __init__(self, config: NetworkConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.submission_timeout)
        self._request_id = 0

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: Any) -> Any:
        """Make a JSON-RPC call and return its result."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": f"chainweaver-{self._request_id}",
            "method": method,
            "params": params,
        }

        try:
            response = await self._client.post(self.config.rpc_url, json=payload)
        except httpx.TimeoutException:
            raise NetworkError(
                f"Request to {self.config.rpc_url} timed out ({method})",
                FailureKind.TIMEOUT,
            ) from None
        except httpx.RequestError as e:
            raise NetworkError(
                f"Could not reach {self.config.rpc_url}: {e}",
                FailureKind.CONNECTION,
            ) from e

        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and data.get("error"):
            raise rpc_error_to_exception(data["error"], status if status >= 400 else None)

        if status == 408:
            raise NetworkError(f"RPC request timed out ({method})", FailureKind.TIMEOUT, status)
        if status >= 400:
            raise NetworkError(
                f"RPC request failed with HTTP {status}: {response.text[:200]}",
                FailureKind.PROTOCOL,
                status,
            )
        if not isinstance(data, dict) or "result" not in data:
            raise NetworkError(f"Malformed RPC response for {method}", FailureKind.PROTOCOL, status)

        return data["result"]

    async def view_access_key(self, account_id: str, public_key: PublicKey) -> AccessKeyState:
        result = await self._call(
            "query",
            {
                "request_type": "view_access_key",
                "finality": "final",
                "account_id": account_id,
                "public_key": str(public_key),
            },
        )

        # Older nodes report a missing key inside the result
        if result.get("error"):
            raise NetworkError(str(result["error"]), FailureKind.ACCESS_KEY_NOT_FOUND)

        try:
            return AccessKeyState(nonce=int(result["nonce"]), block_hash=result["block_hash"])
        except (KeyError, TypeError, ValueError):
            raise NetworkError("Malformed access key response", FailureKind.PROTOCOL) from None

    async def broadcast(self, transaction: SignedTransaction) -> str:
        encoded = base64.b64encode(transaction.serialize()).decode()
        result = await self._call("broadcast_tx_commit", [encoded])

        failure = (result.get("status") or {}).get("Failure")
        if failure:
            kind, message = describe_execution_error(failure)
            raise NetworkError(message, kind)

        try:
            return result["transaction"]["hash"]
        except (KeyError, TypeError):
            raise NetworkError("Broadcast response is missing the transaction hash") from None

    async def transaction_status(self, tx_hash: str, sender_id: str) -> LookupResult:
        try:
            result = await self._call("tx", [tx_hash, sender_id])
        except NetworkError as e:
            if e.kind in (FailureKind.TIMEOUT, FailureKind.PROTOCOL):
                return LookupResult(tx_hash, TransactionOutcome.UNKNOWN, str(e))
            raise

        failure = (result.get("status") or {}).get("Failure")
        if failure:
            _, message = describe_execution_error(failure)
            return LookupResult(tx_hash, TransactionOutcome.FAILED, message)
        return LookupResult(tx_hash, TransactionOutcome.INCLUDED)
