"""
Pydantic models for API requests and responses.

Request bodies accept the camelCase field names the browser client sends
(``gateId``, ``readOnly``, ``dynamicCheck`` ...) as well as snake_case.
Every authenticated request carries its session token in ``session_id``.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# REQUEST MODELS (Client → Server)
# ============================================================================


class SessionRequest(BaseModel):
    """Any request that only needs an authenticated caller."""

    session_id: str | None = None


class AccessRequest(SessionRequest):
    """
    Request to join a gated repository.

    Attributes:
        address: Claimed Ethereum address, checksummed or lowercase hex.
        signature: Hex ``personal_sign`` signature over the challenge text.
        gate_id: Target gate id.
        read_only: Informational only; the stored gate is authoritative.
        dynamic_check: Informational only; the stored gate is authoritative.
    """

    model_config = ConfigDict(populate_by_name=True)

    address: str | None = None
    signature: str | None = None
    gate_id: str | None = Field(default=None, alias="gateId")
    read_only: bool | None = Field(default=None, alias="readOnly")
    dynamic_check: bool | None = Field(default=None, alias="dynamicCheck")


class CreateGateRequest(SessionRequest):
    """
    Request to create a gate on a repository the caller administers.

    Attributes:
        owner: Repository owner login.
        repo: Repository name.
        contract: ERC-20 token contract address.
        num_tokens: Minimum token balance (decimal string or number).
        num_invites: Invite capacity.
        read_only: Invite with ``pull`` permission.
        dynamic_check: Check the live balance instead of a pinned snapshot.
    """

    model_config = ConfigDict(populate_by_name=True)

    owner: str | None = None
    repo: str | None = None
    contract: str | None = Field(default=None, alias="contractAddress")
    num_tokens: str | int | float | None = Field(default=None, alias="numTokens")
    num_invites: int | str | None = Field(default=None, alias="numInvites")
    read_only: bool = Field(default=False, alias="readOnly")
    dynamic_check: bool = Field(default=False, alias="dynamicCheck")


class DeleteGateRequest(SessionRequest):
    model_config = ConfigDict(populate_by_name=True)

    gate_id: str | None = Field(default=None, alias="gateId")


# ============================================================================
# RESPONSE MODELS (Server → Client)
# ============================================================================


class SuccessResponse(BaseModel):
    success: bool = True


class GateResponse(BaseModel):
    """Public view of one gate."""

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
    remaining_invites: int


class CreateGateResponse(SuccessResponse):
    gate: GateResponse


class GateListResponse(BaseModel):
    gates: list[GateResponse]


class ErrorResponse(BaseModel):
    error: str
