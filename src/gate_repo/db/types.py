"""Shared DB-layer dataclasses for repository contracts."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any


class BalanceStrategy(Enum):
    """How a gate measures an address's token balance.

    LIVE reads ``balanceOf`` at the current chain head. SNAPSHOT reads the
    balance as of the block pinned when the gate was created.
    """

    LIVE = "live"
    SNAPSHOT = "snapshot"


@dataclass(slots=True, frozen=True)
class Gate:
    """
    One token-gated repository offer.

    Attributes:
        id: Opaque gate identifier (uuid4 hex).
        repo_owner: GitHub owner (user or organization) of the target repository.
        repo_name: Target repository name.
        contract: ERC-20 contract address, as supplied at creation.
        contract_name: Token display name resolved at creation.
        contract_decimals: Token decimal precision resolved at creation.
        num_tokens: Minimum token amount required, in whole-token units.
        block_number: Pinned block for snapshot checks; ``0`` for live checks.
        read_only: Grant ``pull`` permission instead of the platform default.
        dynamic_check: Use the live balance instead of the pinned snapshot.
        num_invites: Total invite capacity.
        used_invites: Invites already consumed.
        creator_id: Owning user id; their credential issues invitations.
        created_at: Creation timestamp (SQLite ``CURRENT_TIMESTAMP`` text).
    """

    id: str
    repo_owner: str
    repo_name: str
    contract: str
    contract_name: str
    contract_decimals: int
    num_tokens: Decimal
    block_number: int
    read_only: bool
    dynamic_check: bool
    num_invites: int
    used_invites: int
    creator_id: int
    created_at: str | None = None

    @property
    def strategy(self) -> BalanceStrategy:
        return BalanceStrategy.LIVE if self.dynamic_check else BalanceStrategy.SNAPSHOT

    @property
    def remaining_invites(self) -> int:
        return max(self.num_invites - self.used_invites, 0)

    @property
    def has_capacity(self) -> bool:
        return self.used_invites < self.num_invites

    @property
    def full_name(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Gate:
        return cls(
            id=row["id"],
            repo_owner=row["repo_owner"],
            repo_name=row["repo_name"],
            contract=row["contract"],
            contract_name=row["contract_name"],
            contract_decimals=int(row["contract_decimals"]),
            num_tokens=Decimal(row["num_tokens"]),
            block_number=int(row["block_number"]),
            read_only=bool(row["read_only"]),
            dynamic_check=bool(row["dynamic_check"]),
            num_invites=int(row["num_invites"]),
            used_invites=int(row["used_invites"]),
            creator_id=int(row["creator_id"]),
            created_at=row["created_at"],
        )

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize the fields a prospective invitee may see."""
        return {
            "id": self.id,
            "repo_owner": self.repo_owner,
            "repo_name": self.repo_name,
            "contract": self.contract,
            "contract_name": self.contract_name,
            "contract_decimals": self.contract_decimals,
            "num_tokens": str(self.num_tokens),
            "block_number": self.block_number,
            "read_only": self.read_only,
            "dynamic_check": self.dynamic_check,
            "num_invites": self.num_invites,
            "used_invites": self.used_invites,
            "remaining_invites": self.remaining_invites,
        }


@dataclass(slots=True, frozen=True)
class Credential:
    """
    External API access token linked to a local user.

    Attributes:
        id: Row id; higher ids were linked later.
        user_id: Owning local user.
        provider: External platform key (``"github"``).
        access_token: Bearer token used to act on the user's behalf.
        provider_account_id: The user's numeric id on the platform, when known.
    """

    id: int
    user_id: int
    provider: str
    access_token: str
    provider_account_id: str | None = None

    def __repr__(self) -> str:
        # Keep tokens out of logs and tracebacks.
        return f"Credential(id={self.id}, user_id={self.user_id}, provider={self.provider!r})"


@dataclass(slots=True, frozen=True)
class SessionRecord:
    """Authenticated session row."""

    session_id: str
    user_id: int
    created_at: str | None
    expires_at: str | None
