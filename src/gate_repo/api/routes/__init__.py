"""
Route registration entry point for the FastAPI application.

Collaborators are built once by the caller and handed to the router builders,
so tests can register routes around substitutes.
"""

from fastapi import FastAPI

from gate_repo.access.orchestrator import GateAccessOrchestrator
from gate_repo.api.routes import gates, health
from gate_repo.services.gate_provisioning import GateProvisioner


def register_routes(
    app: FastAPI, orchestrator: GateAccessOrchestrator, provisioner: GateProvisioner
) -> None:
    """Register all API routes with the FastAPI app."""
    app.include_router(health.router)
    app.include_router(gates.router(orchestrator, provisioner))
