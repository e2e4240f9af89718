"""Address-ownership proof via a personal_sign signature.

The client signs a fixed challenge that embeds the claimed address; the server
recovers the signer and requires it to match the claim, case-insensitively.
"""

from __future__ import annotations

import logging

from eth_account import Account
from eth_account.messages import encode_defunct

from gate_repo.access.errors import InvalidSignature

logger = logging.getLogger(__name__)

CHALLENGE_TEMPLATE = "GateRepo: Verifying my address is {address}"


def challenge_message(address: str) -> str:
    """Return the exact text the client must sign (address verbatim)."""
    return CHALLENGE_TEMPLATE.format(address=address)


def recover_signer(address: str, signature: str) -> str:
    """Recover the checksummed address that signed ``address``'s challenge.

    Raises:
        InvalidSignature: The signature is not well-formed hex or recovery fails.
    """
    try:
        signature_bytes = bytes.fromhex(signature.removeprefix("0x"))
        return Account.recover_message(
            encode_defunct(text=challenge_message(address)), signature=signature_bytes
        )
    except Exception as exc:
        # eth_keys/eth_account raise assorted ValueError/BadSignature types.
        logger.debug("Signature recovery failed: %s", exc)
        raise InvalidSignature() from exc


def verify_address(address: str, signature: str) -> str:
    """Return the recovered signer when it matches ``address``.

    Raises:
        InvalidSignature: Recovery failed or the signer is a different address.
    """
    recovered = recover_signer(address, signature)
    if recovered.lower() != address.lower():
        raise InvalidSignature()
    return recovered
