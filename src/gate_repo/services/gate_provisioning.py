"""
Gate provisioning service used by the gate routes and the CLI.

Creating a gate resolves everything the access flow later treats as fixed:
the token's display name and decimals, and (for snapshot gates) the block the
balance check is pinned to. Listing and deletion are scoped to the creator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from gate_repo.access.errors import (
    CredentialMissing,
    GateNotFound,
    MissingParameters,
    NotGateCreator,
    RepositoryAccessDenied,
    TokenMetadataUnavailable,
)
from gate_repo.chain.erc20 import fetch_token_metadata, is_valid_address
from gate_repo.chain.rpc import EthereumRpcClient, RpcError
from gate_repo.db import gates_repo, users_repo
from gate_repo.db.types import Gate
from gate_repo.github.client import GitHubClientFactory, GitHubError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GateRequest:
    """
    Validated creation parameters.

    Attributes:
        repo_owner: Repository owner login.
        repo_name: Repository name.
        contract: ERC-20 contract address.
        num_tokens: Minimum whole-token balance, strictly positive.
        num_invites: Invite capacity, at least one.
        read_only: Invite with ``pull`` permission.
        dynamic_check: Check the live balance instead of a pinned snapshot.
    """

    repo_owner: str
    repo_name: str
    contract: str
    num_tokens: Decimal
    num_invites: int
    read_only: bool = False
    dynamic_check: bool = False


def parse_gate_request(
    *,
    owner: str | None,
    repo: str | None,
    contract: str | None,
    num_tokens: Any,
    num_invites: Any,
    read_only: bool = False,
    dynamic_check: bool = False,
) -> GateRequest:
    """Normalize raw creation input.

    Raises:
        MissingParameters: A field is empty or out of range.
    """
    owner = (owner or "").strip()
    repo = (repo or "").strip()
    contract = (contract or "").strip()
    if not owner or not repo:
        raise MissingParameters("Repository owner and name are required.")
    if not is_valid_address(contract):
        raise MissingParameters("Token contract must be a 20-byte hex address.")

    try:
        tokens = Decimal(str(num_tokens))
    except (InvalidOperation, ValueError) as exc:
        raise MissingParameters("Token amount must be a number.") from exc
    if not tokens.is_finite() or tokens <= 0:
        raise MissingParameters("Token amount must be greater than zero.")

    try:
        invites = int(num_invites)
    except (TypeError, ValueError) as exc:
        raise MissingParameters("Invite count must be an integer.") from exc
    if invites < 1:
        raise MissingParameters("Invite count must be at least 1.")

    return GateRequest(
        repo_owner=owner,
        repo_name=repo,
        contract=contract,
        num_tokens=tokens,
        num_invites=invites,
        read_only=bool(read_only),
        dynamic_check=bool(dynamic_check),
    )


class GateProvisioner:
    """
    Creates, lists and deletes gates.

    Args:
        rpc: JSON-RPC client for token metadata and the head block number.
        client_factory: Builds GitHub clients from access tokens.
    """

    def __init__(self, rpc: EthereumRpcClient, client_factory: GitHubClientFactory) -> None:
        self.rpc = rpc
        self.client_factory = client_factory

    def create_gate(self, creator_id: int, request: GateRequest) -> Gate:
        """Verify admin access, resolve token metadata and persist a new gate.

        Raises:
            CredentialMissing: The creator has no linked GitHub account.
            RepositoryAccessDenied: The repository is missing or not administered
                by the creator.
            TokenMetadataUnavailable: ``name()``/``decimals()`` or the block
                number could not be read.
        """
        credential = users_repo.get_credential_for_user(creator_id)
        if credential is None:
            raise CredentialMissing()

        self._require_admin(credential.access_token, request.repo_owner, request.repo_name)

        try:
            metadata = fetch_token_metadata(self.rpc, request.contract)
            block_number = 0 if request.dynamic_check else self.rpc.block_number()
        except RpcError as exc:
            logger.warning("Token lookup for %s failed: %s", request.contract, exc)
            raise TokenMetadataUnavailable() from exc

        gate_id = gates_repo.create_gate(
            creator_id=creator_id,
            repo_owner=request.repo_owner,
            repo_name=request.repo_name,
            contract=request.contract,
            contract_name=metadata.name,
            contract_decimals=metadata.decimals,
            num_tokens=request.num_tokens,
            num_invites=request.num_invites,
            block_number=block_number,
            read_only=request.read_only,
            dynamic_check=request.dynamic_check,
        )
        logger.info(
            "Gate %s created for %s/%s by user %s (%s %s, %s invites, block %s)",
            gate_id,
            request.repo_owner,
            request.repo_name,
            creator_id,
            request.num_tokens,
            metadata.name,
            request.num_invites,
            block_number or "live",
        )
        gate = gates_repo.get_gate(gate_id)
        if gate is None:
            raise GateNotFound()
        return gate

    def _require_admin(self, token: str, owner: str, repo: str) -> None:
        client = self.client_factory(token)
        try:
            repository = client.get_repository(owner, repo)
        except GitHubError as exc:
            if exc.status_code == 401:
                raise CredentialMissing("Linked GitHub account token was rejected.") from exc
            raise RepositoryAccessDenied() from exc

        permissions = repository.get("permissions") or {}
        if not permissions.get("admin"):
            raise RepositoryAccessDenied()


def list_gates(creator_id: int) -> list[Gate]:
    """Return the creator's gates that still have invites left."""
    return gates_repo.list_gates_for_creator(creator_id)


def get_public_gate(gate_id: str) -> Gate:
    """Return a gate by id for display to prospective invitees.

    Raises:
        GateNotFound: No such gate.
    """
    gate = gates_repo.get_gate(gate_id)
    if gate is None:
        raise GateNotFound()
    return gate


def delete_gate(user_id: int, gate_id: str) -> None:
    """Delete a gate the caller created.

    Raises:
        GateNotFound: No such gate.
        NotGateCreator: The gate belongs to another user.
    """
    gate = gates_repo.get_gate(gate_id)
    if gate is None:
        raise GateNotFound()
    if gate.creator_id != user_id:
        raise NotGateCreator()
    if not gates_repo.delete_gate(gate_id, creator_id=user_id):
        raise GateNotFound()
    logger.info("Gate %s deleted by user %s", gate_id, user_id)


def build_provisioner() -> GateProvisioner:
    """Wire a provisioner from runtime configuration."""
    from gate_repo.chain.rpc import build_rpc_client
    from gate_repo.github.client import build_client_factory

    return GateProvisioner(build_rpc_client(), build_client_factory())
