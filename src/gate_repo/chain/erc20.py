"""ERC-20 calldata encoding and result decoding.

Only three read methods are used:

    balanceOf(address) -> uint256   selector 0x70a08231
    name()             -> string    selector 0x06fdde03
    decimals()         -> uint8     selector 0x313ce567
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import is_address, to_checksum_address

from gate_repo.chain.rpc import LATEST_BLOCK, EthereumRpcClient, RpcError

BALANCE_OF_SELECTOR = "0x70a08231"
NAME_SELECTOR = "0x06fdde03"
DECIMALS_SELECTOR = "0x313ce567"

# decimals() is uint8 on paper; anything larger is a broken contract.
MAX_DECIMALS = 77


@dataclass(slots=True, frozen=True)
class TokenMetadata:
    """Resolved ERC-20 display name and decimal precision."""

    name: str
    decimals: int


def is_valid_address(address: str | None) -> bool:
    """Return ``True`` for a 20-byte hex address (checksummed or not)."""
    return bool(address) and is_address(address)


def encode_balance_of(address: str) -> str:
    """Return ``balanceOf(address)`` calldata: selector plus the left-padded address word."""
    if not is_valid_address(address):
        raise ValueError(f"invalid address: {address!r}")
    word = address.lower().removeprefix("0x").rjust(64, "0")
    return BALANCE_OF_SELECTOR + word


def _result_bytes(method: str, result: str) -> bytes:
    try:
        raw = bytes.fromhex(result.removeprefix("0x"))
    except ValueError as exc:
        raise RpcError(method, "non-hex result") from exc
    if not raw:
        raise RpcError(method, "empty result (not a contract?)")
    return raw


def decode_uint256(method: str, result: str) -> int:
    try:
        (value,) = decode(["uint256"], _result_bytes(method, result))
    except (DecodingError, ValueError) as exc:
        raise RpcError(method, "malformed uint256 result") from exc
    return int(value)


def decode_name(result: str) -> str:
    """Decode ``name()``; falls back to ``bytes32`` for pre-standard tokens."""
    raw = _result_bytes("name", result)
    try:
        (value,) = decode(["string"], raw)
        return str(value)
    except (DecodingError, ValueError, OverflowError):
        pass
    if len(raw) == 32:
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace")
    raise RpcError("name", "malformed string result")


def fetch_balance_raw(
    client: EthereumRpcClient, contract: str, address: str, *, block: int | str = LATEST_BLOCK
) -> int:
    """Return the raw integer ``balanceOf`` for ``address`` at ``block``."""
    result = client.eth_call(to_checksum_address(contract), encode_balance_of(address), block=block)
    return decode_uint256("balanceOf", result)


def fetch_token_metadata(client: EthereumRpcClient, contract: str) -> TokenMetadata:
    """Resolve the token's ``name()`` and ``decimals()``."""
    target = to_checksum_address(contract)
    name = decode_name(client.eth_call(target, NAME_SELECTOR))
    decimals = decode_uint256("decimals", client.eth_call(target, DECIMALS_SELECTOR))
    if decimals > MAX_DECIMALS:
        raise RpcError("decimals", f"implausible decimals value {decimals}")
    return TokenMetadata(name=name, decimals=decimals)
