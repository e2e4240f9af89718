"""
Minimal Ethereum JSON-RPC client.

Only the handful of read methods the gate flows need are exposed. Requests go
through one ``requests.Session`` per client so connection pooling applies
across the calls of a single access attempt.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

LATEST_BLOCK = "latest"


class RpcError(Exception):
    """Raised when the RPC endpoint is unreachable or answers with an error.

    Attributes:
        method: JSON-RPC method that failed.
        code: JSON-RPC error code when the node returned one.
    """

    def __init__(self, method: str, message: str, *, code: int | None = None) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


def _block_tag(block: int | str) -> str:
    if isinstance(block, int):
        if block < 0:
            raise ValueError("block number must be non-negative")
        return hex(block)
    return block


class EthereumRpcClient:
    """
    JSON-RPC 2.0 client over HTTP.

    Args:
        url: Node endpoint.
        timeout: Per-request timeout in seconds.
        session: Optional pre-built ``requests.Session`` (tests pass a mock).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def request(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC call and return its ``result`` field."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning("RPC %s transport failure: %s", method, exc)
            raise RpcError(method, "endpoint unreachable") from exc

        if response.status_code != 200:
            raise RpcError(method, f"HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise RpcError(method, "invalid JSON response") from exc

        if not isinstance(body, dict):
            raise RpcError(method, "non-object response")
        if body.get("error"):
            error = body["error"]
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            raise RpcError(method, message, code=code)
        if "result" not in body:
            raise RpcError(method, "response missing result")
        return body["result"]

    def eth_call(self, to: str, data: str, *, block: int | str = LATEST_BLOCK) -> str:
        """Execute a read-only contract call and return the hex-encoded result."""
        result = self.request("eth_call", [{"to": to, "data": data}, _block_tag(block)])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcError("eth_call", "non-hex result")
        return result

    def block_number(self) -> int:
        """Return the current chain head block number."""
        result = self.request("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as exc:
            raise RpcError("eth_blockNumber", "non-hex result") from exc


def build_rpc_client() -> EthereumRpcClient:
    """Build a client from ``config.ethereum``."""
    from gate_repo.config import config

    return EthereumRpcClient(config.ethereum.rpc_url, timeout=config.ethereum.timeout_seconds)
