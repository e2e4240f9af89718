"""Gate endpoints: access attempts and creator-side gate management."""

from fastapi import APIRouter
from starlette.concurrency import run_in_threadpool

from gate_repo.access.errors import MissingParameters
from gate_repo.access.orchestrator import GateAccessOrchestrator
from gate_repo.api.auth import get_session_user_id, require_user_id
from gate_repo.api.models import (
    AccessRequest,
    CreateGateRequest,
    CreateGateResponse,
    DeleteGateRequest,
    ErrorResponse,
    GateListResponse,
    GateResponse,
    SessionRequest,
    SuccessResponse,
)
from gate_repo.services import gate_provisioning
from gate_repo.services.gate_provisioning import GateProvisioner

_ERROR_STATUSES = (400, 401, 403, 404, 409, 502, 503)


def router(orchestrator: GateAccessOrchestrator, provisioner: GateProvisioner) -> APIRouter:
    """Build the gates router around injected collaborators."""
    api = APIRouter(
        prefix="/gates",
        responses={status: {"model": ErrorResponse} for status in _ERROR_STATUSES},
    )

    @api.post("/access", response_model=SuccessResponse)
    async def request_access(request: AccessRequest):
        """Verify the caller's address and balance, then invite them to the repository.

        ``readOnly`` and ``dynamicCheck`` in the body are ignored; the stored
        gate decides both.
        """
        user_id = get_session_user_id(request.session_id)
        # Blocking RPC and GitHub calls run off the event loop.
        await run_in_threadpool(
            orchestrator.run, user_id, request.address, request.signature, request.gate_id
        )
        return SuccessResponse()

    @api.post("/create", response_model=CreateGateResponse)
    async def create_gate(request: CreateGateRequest):
        """Create a gate on a repository the caller administers."""
        user_id = require_user_id(request.session_id)
        gate_request = gate_provisioning.parse_gate_request(
            owner=request.owner,
            repo=request.repo,
            contract=request.contract,
            num_tokens=request.num_tokens,
            num_invites=request.num_invites,
            read_only=request.read_only,
            dynamic_check=request.dynamic_check,
        )
        gate = await run_in_threadpool(provisioner.create_gate, user_id, gate_request)
        return CreateGateResponse(gate=GateResponse(**gate.to_public_dict()))

    @api.post("/all", response_model=GateListResponse)
    async def list_gates(request: SessionRequest):
        """List the caller's gates that still have invites left."""
        user_id = require_user_id(request.session_id)
        gates = gate_provisioning.list_gates(user_id)
        return GateListResponse(gates=[GateResponse(**gate.to_public_dict()) for gate in gates])

    @api.post("/delete", response_model=SuccessResponse)
    async def delete_gate(request: DeleteGateRequest):
        """Delete one of the caller's gates."""
        user_id = require_user_id(request.session_id)
        gate_id = (request.gate_id or "").strip()
        if not gate_id:
            raise MissingParameters()
        gate_provisioning.delete_gate(user_id, gate_id)
        return SuccessResponse()

    @api.get("/{gate_id}", response_model=GateResponse)
    async def get_gate(gate_id: str):
        """Public gate details for the join page."""
        gate = gate_provisioning.get_public_gate(gate_id)
        return GateResponse(**gate.to_public_dict())

    return api
